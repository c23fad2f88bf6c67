from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the upstream error log.

Each absorbed collaborator failure (catalog lookup, sheet pull/push, scrape
page, AI candidate, crosssell SKU) becomes one JSON line. ``target`` is the
unit of work that failed; "-" when the failure is not tied to one unit.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        service: Collaborator name (catalog, sheets, ai, scrape, crosssell)
        target: SKU, URL or sheet the failure belongs to
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Upstream message
    """
    timestamp: str
    service: str
    target: str
    error_type: str
    message: str

    @staticmethod
    def create(service: str, target: str, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            service=service,
            target=target or "-",
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
