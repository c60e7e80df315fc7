"""Per-line error collection for concurrent runs.

Per-line failures are not raised mid-run. Workers record them here and the
pipeline folds the collected records into the final summary.
"""

import logging
import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class ErrorRecord:
    """Record of a single error that occurred while processing a line."""

    error: Exception
    line_number: Optional[int] = None
    timestamp: float = field(default_factory=time.time)
    context: dict[str, Any] = field(default_factory=dict)
    component: str = "masking"

    def to_dict(self) -> dict[str, Any]:
        """Convert error record to dictionary for serialization."""
        return {
            "error_type": type(self.error).__name__,
            "message": str(self.error),
            "line_number": self.line_number,
            "timestamp": self.timestamp,
            "context": self.context,
            "component": self.component,
        }


class ErrorCollector:
    """Collects errors from worker threads.

    All mutation happens under a lock, so a single collector can be shared
    by every worker of a run.
    """

    def __init__(self, max_records: int = 1000) -> None:
        self.max_records = max_records
        self.errors: list[ErrorRecord] = []
        self.error_count = 0
        self._lock = Lock()

    def record_error(
        self,
        error: Exception,
        line_number: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
        component: str = "masking",
    ) -> None:
        """Record an error; only the first ``max_records`` are retained."""
        with self._lock:
            self.error_count += 1
            if len(self.errors) < self.max_records:
                self.errors.append(
                    ErrorRecord(
                        error=error,
                        line_number=line_number,
                        context=context or {},
                        component=component,
                    )
                )
            count = self.error_count

        logger.debug(f"Error recorded in {component} at line {line_number}: {error} (total: {count})")

    def has_errors(self) -> bool:
        with self._lock:
            return self.error_count > 0

    def sorted_errors(self) -> list[ErrorRecord]:
        """Retained errors ordered by line number."""
        with self._lock:
            records = list(self.errors)
        return sorted(records, key=lambda r: (r.line_number is None, r.line_number or 0))

    def get_error_summary(self) -> dict[str, Any]:
        """Get summary of all recorded errors."""
        error_types: dict[str, int] = {}
        with self._lock:
            for error_record in self.errors:
                error_type = type(error_record.error).__name__
                error_types[error_type] = error_types.get(error_type, 0) + 1
            total = self.error_count
            retained = len(self.errors)

        return {
            "total_errors": total,
            "retained_errors": retained,
            "error_types": error_types,
        }

    def clear(self) -> None:
        """Clear all recorded errors and reset counters."""
        with self._lock:
            self.errors.clear()
            self.error_count = 0
