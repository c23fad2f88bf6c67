from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

"""Error taxonomy and collaborator result types.

ParseError / ValidationError are raised and are fatal to the single operation
that triggered them. UpstreamError is never raised past a collaborator
boundary: collaborators return ``Err(UpstreamError(...))`` and the caller
logs once and degrades to partial data.
"""

__all__ = [
    "ParseError",
    "ValidationError",
    "UpstreamError",
    "RateLimitHint",
    "Ok",
    "Err",
    "Result",
    "PositionSuggestion",
    "SuggestionBatch",
    "ScrapeDot",
    "ScrapeResult",
]

T = TypeVar("T")


class ParseError(Exception):
    """Input matched none of the recognised encodings.

    ``field`` carries a path such as ``[3].dots`` when a specific item failed
    schema validation.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)


class ValidationError(Exception):
    """A structural precondition failed before the store was touched."""


@dataclass(frozen=True)
class UpstreamError:
    """Failure reported by an external service (catalog, sheets, AI, ...)."""
    service: str  # e.g. "catalog", "sheets", "ai", "scrape", "crosssell"
    message: str
    status: int | None = None


@dataclass(frozen=True)
class RateLimitHint:
    """Retry-after signal extracted from an upstream rate-limit error."""
    retry_delay: str  # raw upstream value, e.g. "49s"

    @property
    def seconds(self) -> float | None:
        value = self.retry_delay.strip().rstrip("s")
        try:
            return float(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: UpstreamError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


@dataclass(frozen=True)
class PositionSuggestion:
    """AI answer for one candidate (dot) image."""
    sku: str
    position: tuple[str, str] | None  # (top, left) with "%" suffix
    raw_response: str
    rate_limit: RateLimitHint | None = None


@dataclass(frozen=True)
class SuggestionBatch:
    suggestions: list[PositionSuggestion] = field(default_factory=list)

    @property
    def found_count(self) -> int:
        return sum(1 for s in self.suggestions if s.position is not None)

    @property
    def fail_count(self) -> int:
        return sum(1 for s in self.suggestions if s.position is None)

    @property
    def rate_limit(self) -> RateLimitHint | None:
        for s in self.suggestions:
            if s.rate_limit is not None:
                return s.rate_limit
        return None


@dataclass(frozen=True)
class ScrapeDot:
    top: str
    left: str


@dataclass(frozen=True)
class ScrapeResult:
    url: str
    image: str | None
    dots: list[ScrapeDot] = field(default_factory=list)
    title: str | None = None
