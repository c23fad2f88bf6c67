from __future__ import annotations

import re
from typing import Any

"""Restricted JS literal parser.

Parses the data subset of JavaScript used in hand-authored combo snippets
without evaluating anything:

- objects with bare identifier, quoted or numeric keys
- arrays, trailing commas in both
- single, double and backtick strings (backticks without ``${}``)
- numbers (sign, decimals, exponent, hex), true/false/null/undefined,
  NaN/Infinity
- // line and /* block */ comments

``undefined`` is returned as None.
"""

__all__ = [
    "LiteralSyntaxError",
    "parse_literal",
    "parse_literal_at",
    "find_declaration",
]


class LiteralSyntaxError(ValueError):
    def __init__(self, message: str, pos: int) -> None:
        self.pos = pos
        super().__init__(f"{message} at offset {pos}")


_IDENT_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_NUMBER_RE = re.compile(
    r"[+-]?(?:0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)
_KEYWORDS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "NaN": float("nan"),
    "Infinity": float("inf"),
}
MAX_DEPTH = 200
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


class _Parser:
    def __init__(self, text: str, pos: int = 0) -> None:
        self.text = text
        self.pos = pos
        self.depth = 0

    # -- whitespace / comments -------------------------------------------------
    def skip_ws(self) -> None:
        text = self.text
        n = len(text)
        while self.pos < n:
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = n if end < 0 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end < 0:
                    raise LiteralSyntaxError("unterminated comment", self.pos)
                self.pos = end + 2
            else:
                break

    def peek(self) -> str:
        self.skip_ws()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, ch: str) -> None:
        if self.peek() != ch:
            found = self.text[self.pos] if self.pos < len(self.text) else "end of input"
            raise LiteralSyntaxError(f"expected {ch!r}, found {found!r}", self.pos)
        self.pos += 1

    # -- values ----------------------------------------------------------------
    def value(self) -> Any:
        ch = self.peek()
        if ch in ("{", "["):
            if self.depth >= MAX_DEPTH:
                raise LiteralSyntaxError("nesting too deep", self.pos)
            self.depth += 1
            try:
                return self.obj() if ch == "{" else self.array()
            finally:
                self.depth -= 1
        if ch in ("'", '"', "`"):
            return self.string()
        if ch and (ch.isdigit() or ch in "+-."):
            return self.number()
        m = _IDENT_RE.match(self.text, self.pos)
        if m and m.group(0) in _KEYWORDS:
            self.pos = m.end()
            return _KEYWORDS[m.group(0)]
        if not ch:
            raise LiteralSyntaxError("unexpected end of input", self.pos)
        raise LiteralSyntaxError(f"unexpected token {ch!r}", self.pos)

    def obj(self) -> dict[str, Any]:
        self.expect("{")
        out: dict[str, Any] = {}
        while True:
            ch = self.peek()
            if ch == "}":
                self.pos += 1
                return out
            key = self.key()
            self.expect(":")
            out[key] = self.value()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
                continue
            if ch == "}":
                self.pos += 1
                return out
            raise LiteralSyntaxError("expected ',' or '}'", self.pos)

    def key(self) -> str:
        ch = self.peek()
        if ch in ("'", '"', "`"):
            return self.string()
        if ch and (ch.isdigit() or ch == "."):
            num = self.number()
            return str(int(num)) if isinstance(num, float) and num.is_integer() else str(num)
        m = _IDENT_RE.match(self.text, self.pos)
        if not m:
            raise LiteralSyntaxError("expected object key", self.pos)
        self.pos = m.end()
        return m.group(0)

    def array(self) -> list[Any]:
        self.expect("[")
        out: list[Any] = []
        while True:
            ch = self.peek()
            if ch == "]":
                self.pos += 1
                return out
            out.append(self.value())
            ch = self.peek()
            if ch == ",":
                self.pos += 1
                continue
            if ch == "]":
                self.pos += 1
                return out
            raise LiteralSyntaxError("expected ',' or ']'", self.pos)

    def number(self) -> int | float:
        m = _NUMBER_RE.match(self.text, self.pos)
        if not m:
            raise LiteralSyntaxError("invalid number", self.pos)
        self.pos = m.end()
        raw = m.group(0)
        sign = -1 if raw.startswith("-") else 1
        body = raw.lstrip("+-")
        if body[:2] in ("0x", "0X"):
            return sign * int(body, 16)
        if any(c in body for c in ".eE"):
            return sign * float(body)
        return sign * int(body)

    def string(self) -> str:
        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1
        parts: list[str] = []
        text = self.text
        n = len(text)
        while self.pos < n:
            ch = text[self.pos]
            if ch == quote:
                self.pos += 1
                return "".join(parts)
            if ch == "\\":
                parts.append(self.escape())
                continue
            if quote == "`" and text.startswith("${", self.pos):
                raise LiteralSyntaxError("template interpolation is not supported", self.pos)
            if ch == "\n" and quote != "`":
                raise LiteralSyntaxError("unterminated string", start)
            parts.append(ch)
            self.pos += 1
        raise LiteralSyntaxError("unterminated string", start)

    def escape(self) -> str:
        text = self.text
        self.pos += 1  # backslash
        if self.pos >= len(text):
            raise LiteralSyntaxError("unterminated escape", self.pos)
        ch = text[self.pos]
        self.pos += 1
        if ch in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[ch]
        if ch == "\n":  # line continuation
            return ""
        if ch == "\r":
            if text.startswith("\n", self.pos):
                self.pos += 1
            return ""
        if ch == "x":
            return chr(self.hex_digits(2))
        if ch == "u":
            if text.startswith("{", self.pos):
                end = text.find("}", self.pos)
                if end < 0:
                    raise LiteralSyntaxError("invalid unicode escape", self.pos)
                digits = text[self.pos + 1 : end]
                if not digits or not _HEX_DIGITS.issuperset(digits) or int(digits, 16) > 0x10FFFF:
                    raise LiteralSyntaxError("invalid unicode escape", self.pos)
                self.pos = end + 1
                return chr(int(digits, 16))
            code = self.hex_digits(4)
            # surrogate pair
            if 0xD800 <= code <= 0xDBFF and text.startswith("\\u", self.pos):
                save = self.pos
                self.pos += 2
                low = self.hex_digits(4)
                if 0xDC00 <= low <= 0xDFFF:
                    return chr(0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00))
                self.pos = save
            return chr(code)
        return ch

    def hex_digits(self, count: int) -> int:
        digits = self.text[self.pos : self.pos + count]
        if len(digits) != count or not _HEX_DIGITS.issuperset(digits):
            raise LiteralSyntaxError("invalid hex escape", self.pos)
        self.pos += count
        return int(digits, 16)


def parse_literal_at(text: str, pos: int = 0) -> tuple[Any, int]:
    """Parse one literal starting at ``pos``; return (value, end offset)."""
    p = _Parser(text, pos)
    value = p.value()
    return value, p.pos


def parse_literal(text: str) -> Any:
    """Parse ``text`` as exactly one literal (optionally wrapped in parens, ``;`` allowed)."""
    p = _Parser(text)
    depth = 0
    while p.peek() == "(":
        p.pos += 1
        depth += 1
    value = p.value()
    for _ in range(depth):
        p.expect(")")
    while p.peek() == ";":
        p.pos += 1
    if p.peek():
        raise LiteralSyntaxError("unexpected trailing content", p.pos)
    return value


def find_declaration(source: str, name: str) -> Any:
    """Return the literal assigned to ``name`` by a top-level declaration.

    Recognises ``const|let|var name = ...`` (optionally prefixed by
    ``export``) and ``window.name = ...``. The last declaration wins.

    Raises:
        LookupError: no declaration of ``name``
        LiteralSyntaxError: the initialiser is not a literal
    """
    pattern = re.compile(
        r"(?:\b(?:const|let|var)\s+|\b(?:window|globalThis)\s*\.\s*)"
        + re.escape(name)
        + r"\s*=(?!=)\s*"
    )
    matches = list(pattern.finditer(source))
    if not matches:
        raise LookupError(f"no declaration of {name}")
    value, _ = parse_literal_at(source, matches[-1].end())
    return value
