from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from combo_tools.models.error_record import ErrorRecord
from combo_tools.models.results import UpstreamError

"""Upstream error log buffering.

Collaborator failures are absorbed into partial results; the caller records
them here and flushes once per CLI run to
``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC, JSON Lines).
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    - the file path is fixed on first access
    - flush() appends and clears the buffer
    - single writer, no locking
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def record_upstream(self, error: UpstreamError, target: str = "-") -> None:
        error_type = "UPSTREAM_HTTP_ERROR" if error.status else "UPSTREAM_ERROR"
        self.append(ErrorRecord.create(error.service, target, error_type, error.message))

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns None when nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
