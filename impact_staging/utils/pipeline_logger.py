"""Structured logging utilities for staging runs.

Provides consistent logging format with required fields:
- source (record type)
- batch_id
- row_count
- file_path
- duration
"""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class PipelineLogContext:
    """Context for pipeline logging with required fields."""

    source: str
    batch_id: str
    step: str = ""
    row_count: int = 0
    file_path: Optional[str] = None
    duration_ms: Optional[float] = None
    status: str = "started"
    error: Optional[str] = None
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        data = asdict(self)
        data["timestamp"] = datetime.now(timezone.utc).isoformat()
        # Remove None values
        return {k: v for k, v in data.items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class PipelineLogger:
    """Structured logger for staging steps."""

    def __init__(self, source: str, batch_id: str):
        """Initialize pipeline logger.

        Args:
            source: Record type being staged (e.g., 'fusion', 'seg')
            batch_id: Unique batch identifier
        """
        self.source = source
        self.batch_id = batch_id
        self.logger = logging.getLogger(f"pipeline.{source}")
        self._start_time: Optional[float] = None

    def _elapsed_ms(self) -> Optional[float]:
        if self._start_time is None:
            return None
        return (time.time() - self._start_time) * 1000

    def _log(self, level: int, step: str, **kwargs) -> None:
        """Internal logging method with structured context."""
        ctx = PipelineLogContext(
            source=self.source,
            batch_id=self.batch_id,
            step=step,
            **kwargs
        )
        self.logger.log(level, ctx.to_json(), extra=ctx.to_dict())

    def start(self, step: str) -> None:
        """Log step start."""
        self._start_time = time.time()
        self._log(logging.INFO, step, status="started")

    def success(self, step: str, **kwargs) -> None:
        """Log step success."""
        self._log(
            logging.INFO,
            step,
            status="success",
            duration_ms=self._elapsed_ms(),
            **kwargs
        )

    def error(self, step: str, error: Exception, **kwargs) -> None:
        """Log step error."""
        self._log(
            logging.ERROR,
            step,
            status="error",
            error=str(error),
            duration_ms=self._elapsed_ms(),
            **kwargs
        )

    def log_rejected(self, record_index: int, error: Exception) -> None:
        """Log a record that failed to flatten."""
        self._log(
            logging.WARNING,
            step="flatten",
            status="rejected",
            error=str(error),
            extra={
                "record_index": record_index,
                "field_name": getattr(error, "field_name", None),
                "record_id": getattr(error, "record_id", None),
            }
        )

    def log_flatten(
        self,
        input_count: int,
        output_count: int,
        rejected_count: int,
        duration_ms: float,
    ) -> None:
        """Log flattening step."""
        self._log(
            logging.INFO,
            step="flatten",
            status="success",
            row_count=output_count,
            duration_ms=duration_ms,
            extra={
                "input_count": input_count,
                "output_count": output_count,
                "rejected_count": rejected_count,
            }
        )

    def log_staging_write(
        self,
        file_path: str,
        row_count: int,
    ) -> None:
        """Log a finished staging file."""
        self._log(
            logging.INFO,
            step="staging_write",
            status="success",
            file_path=file_path,
            row_count=row_count,
        )


@contextmanager
def timed_operation(name: str, logger: logging.Logger = None):
    """Context manager to time an operation.

    Usage:
        with timed_operation("flatten") as timer:
            lines = list(flatten_records(flattener, records))
        print(f"Took {timer.duration_ms}ms")

    Args:
        name: Operation name for logging
        logger: Optional logger instance

    Yields:
        Timer object with duration_ms attribute
    """
    class Timer:
        def __init__(self):
            self.start_time = time.time()
            self.end_time = None
            self.duration_ms = 0

    timer = Timer()

    try:
        yield timer
    finally:
        timer.end_time = time.time()
        timer.duration_ms = (timer.end_time - timer.start_time) * 1000

        if logger:
            logger.debug(
                f"Operation '{name}' completed",
                extra={"operation": name, "duration_ms": timer.duration_ms}
            )
