"""Combo data readers: CSV, <script> blocks and raw JS array literals."""

from .combo_parser import FormatHint, detect_format, parse

__all__ = [
    "FormatHint",
    "detect_format",
    "parse",
]
