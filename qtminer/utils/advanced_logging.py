"""
Logging for the QT miner.

structlog on top of the standard logging module:
- one configuration call per process (console or JSON lines, optional
  rotating file)
- a correlation id shared by every event of one clustering run
- timers for whole operations and progress events for long row loops
"""

import contextlib
import contextvars
import functools
import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional

import structlog
from structlog.types import EventDict, Processor


_LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
_LOG_FILE_BACKUPS = 2


# =============================================================================
# Setup
# =============================================================================


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_file: Optional[str] = None,
    service_name: str = "qtminer",
) -> None:
    """
    Route structlog events through stdlib logging.

    Events go to stderr so that stdout stays free for reports. Calling this
    again replaces the previous handlers.

    Args:
        log_level: Minimum level name (DEBUG ... CRITICAL)
        log_format: "json" for JSON lines, anything else for console output
        log_file: Also write events to this rotating file
        service_name: Value of the ``service`` field of every event
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=_LOG_FILE_MAX_BYTES,
                backupCount=_LOG_FILE_BACKUPS,
            )
        )
    logging.basicConfig(format="%(message)s", level=level, handlers=handlers, force=True)

    renderer: Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_context(service_name),
            add_correlation_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_service_context(service_name: str) -> Processor:
    """Processor stamping every event with ``service``."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Processor adding the current run id, when one is set."""
    correlation_id = LogContext.get_correlation_id()
    if correlation_id is not None:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


# =============================================================================
# Run correlation
# =============================================================================


_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "qtminer_correlation_id", default=None
)


class LogContext:
    """Correlation id of the clustering run in progress."""

    @staticmethod
    def set_correlation_id(correlation_id: str) -> None:
        _correlation_id.set(correlation_id)

    @staticmethod
    def get_correlation_id() -> Optional[str]:
        return _correlation_id.get()

    @staticmethod
    def clear_correlation_id() -> None:
        _correlation_id.set(None)

    @staticmethod
    @contextlib.contextmanager
    def correlation_context(correlation_id: str) -> Iterator[None]:
        """
        Tag every event emitted inside the block with ``correlation_id``.

        Example:
            with LogContext.correlation_context(run_id):
                miner.compute(data)
        """
        token = _correlation_id.set(correlation_id)
        try:
            yield
        finally:
            _correlation_id.reset(token)


def get_logger(name: str) -> structlog.BoundLogger:
    """structlog logger for ``name``; the run id is added at emit time."""
    return structlog.get_logger(name)


# =============================================================================
# Timing
# =============================================================================


class PerformanceLogger:
    """
    Time a block and log one event when it ends.

    Emits ``operation_started`` (debug) on entry, then either
    ``operation_completed`` at ``log_level`` or ``operation_failed`` (error)
    with the exception type. Throughput is added when ``item_count`` is set.

    Example:
        with PerformanceLogger("qt_compute", item_count=len(data)):
            miner.compute(data)
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.BoundLogger] = None,
        log_level: str = "info",
        item_count: Optional[int] = None,
        **extra_context: Any,
    ):
        self.operation = operation
        self.logger = logger or get_logger(__name__)
        self.log_level = log_level
        self.item_count = item_count
        self.extra_context = extra_context
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug("operation_started", operation=self.operation, **self.extra_context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._stopped = time.perf_counter()
        fields = dict(self.extra_context)
        fields["operation"] = self.operation
        fields["duration_seconds"] = round(self.elapsed_time, 3)
        if self.item_count and self.elapsed_time > 0:
            fields["item_count"] = self.item_count
            fields["items_per_second"] = round(self.item_count / self.elapsed_time, 2)

        if exc_type is None:
            getattr(self.logger, self.log_level)("operation_completed", **fields)
        else:
            self.logger.error("operation_failed", error=str(exc_val), error_type=exc_type.__name__, **fields)

    @property
    def elapsed_time(self) -> float:
        """Seconds since entry (up to exit once the block is done)."""
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return end - self._started


def timed(operation: Optional[str] = None, log_level: str = "info") -> Callable:
    """
    Decorator form of PerformanceLogger.

    Example:
        @timed(operation="load_table")
        def from_table(cls, table_name):
            ...
    """

    def decorator(func: Callable) -> Callable:
        name = operation or func.__qualname__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with PerformanceLogger(name, logger=get_logger(func.__module__), log_level=log_level):
                return func(*args, **kwargs)

        return wrapper

    return decorator


# =============================================================================
# Progress
# =============================================================================


class BatchLogger:
    """
    Progress of a loop over a known number of items.

    ``update`` emits ``batch_progress`` at debug level every
    ``log_interval`` items and on the last one; ``complete`` emits
    ``batch_completed`` at info level.
    """

    def __init__(
        self,
        total_items: int,
        operation: str,
        log_interval: int = 100,
        logger: Optional[structlog.BoundLogger] = None,
    ):
        self.total_items = total_items
        self.operation = operation
        self.log_interval = max(1, log_interval)
        self.logger = logger or get_logger(__name__)
        self.processed_items = 0
        self._last_reported = 0
        self._started = time.perf_counter()

    def update(self, count: int = 1) -> None:
        self.processed_items += count
        due = self.processed_items - self._last_reported >= self.log_interval
        if due or self.processed_items >= self.total_items:
            self._report()
            self._last_reported = self.processed_items

    def _report(self) -> None:
        elapsed = time.perf_counter() - self._started
        percent = 100.0 * self.processed_items / self.total_items if self.total_items else 100.0
        self.logger.debug(
            "batch_progress",
            operation=self.operation,
            processed=self.processed_items,
            total=self.total_items,
            progress_pct=round(percent, 1),
            elapsed_seconds=round(elapsed, 2),
        )

    def complete(self) -> None:
        elapsed = time.perf_counter() - self._started
        self.logger.info(
            "batch_completed",
            operation=self.operation,
            total_items=self.processed_items,
            duration_seconds=round(elapsed, 3),
            items_per_second=round(self.processed_items / elapsed, 2) if elapsed > 0 else None,
        )


# =============================================================================
# Exceptions
# =============================================================================


@contextlib.contextmanager
def log_exceptions(
    logger: Optional[structlog.BoundLogger] = None,
    operation: Optional[str] = None,
    reraise: bool = True,
) -> Iterator[None]:
    """
    Log any exception leaving the block with its traceback.

    Example:
        with log_exceptions(logger, operation="cli"):
            return run_mine(...)
    """
    log = logger or get_logger(__name__)
    try:
        yield
    except Exception as e:
        fields = {"error": str(e), "error_type": type(e).__name__}
        if operation is not None:
            fields["operation"] = operation
        log.error("exception_caught", exc_info=True, **fields)
        if reraise:
            raise
