"""
Errors of the QT miner and the retry helper used at the database boundary.

Every error carries a stable ``error_code`` and a ``details`` dict so the
CLI can report it as text or JSON without parsing messages.
"""

import functools
import random
import time
from typing import Any, Callable, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field


logger = structlog.get_logger(__name__)


# =============================================================================
# Error Taxonomy
# =============================================================================


class QTMinerError(Exception):
    """Root of every error raised by the miner."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        self.details = dict(details) if details else {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class ConfigurationError(QTMinerError):
    """Invalid radius, attribute domain, tuple size or settings."""


class DatasetError(QTMinerError):
    """Rows inconsistent with the declared attribute schema."""


class DistanceError(QTMinerError):
    """Two items or tuples that cannot be compared."""


# Clustering

class ClusteringError(QTMinerError):
    """A QT run could not produce a usable partition."""


class EmptyDatasetError(ClusteringError):
    """The dataset has no rows."""


class ClusteringRadiusError(ClusteringError):
    """Every row ended up in one cluster: the radius is too large."""

    def __init__(self, message: str, number_of_examples: Optional[int] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.number_of_examples = number_of_examples
        if number_of_examples is not None:
            self.details.setdefault("number_of_examples", number_of_examples)


# Storage

class StorageError(QTMinerError):
    """Saved clustering problems other than plain I/O errors."""


class ClusterDecodeError(StorageError):
    """A file was read but does not hold a saved clustering."""


# Database

class DatabaseError(QTMinerError):
    """Table access failed."""


class DatabaseConnectionError(DatabaseError):
    """The database could not be reached."""


class EmptySetError(DatabaseError):
    """A table that must have rows has none."""


class NoValueError(DatabaseError):
    """A NULL was found where a value is required."""


# =============================================================================
# Retry
# =============================================================================


T = TypeVar("T")


class RetryConfig(BaseModel):
    """Backoff policy: delay grows by ``backoff_factor`` up to ``max_delay``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    max_attempts: int = Field(default=3, ge=1)
    initial_delay: float = Field(default=1.0, ge=0.0)
    max_delay: float = Field(default=30.0, ge=0.0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    jitter: bool = True
    retriable_exceptions: tuple[Type[BaseException], ...] = (ConnectionError, TimeoutError)


def retry(
    config: Optional[RetryConfig] = None,
    max_attempts: Optional[int] = None,
    initial_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    backoff_factor: Optional[float] = None,
    jitter: Optional[bool] = None,
    retriable_exceptions: Optional[tuple[Type[BaseException], ...]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Retry the decorated call on ``retriable_exceptions`` with exponential
    backoff. Keyword arguments override the matching ``config`` fields.

    The last exception is re-raised once ``max_attempts`` calls have failed;
    other exceptions propagate at once.

    Example:
        check = retry(max_attempts=3, retriable_exceptions=(OperationalError,))(ping)
    """
    overrides = {
        "max_attempts": max_attempts,
        "initial_delay": initial_delay,
        "max_delay": max_delay,
        "backoff_factor": backoff_factor,
        "jitter": jitter,
        "retriable_exceptions": retriable_exceptions,
    }
    base = config or RetryConfig()
    policy = base.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = getattr(func, "__name__", repr(func))

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = policy.initial_delay
            for attempt in range(1, policy.max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except policy.retriable_exceptions as e:
                    if attempt == policy.max_attempts:
                        logger.error(
                            "retry_exhausted",
                            function=name,
                            attempts=attempt,
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                        raise
                    wait = min(delay, policy.max_delay)
                    if policy.jitter:
                        wait *= random.uniform(0.5, 1.5)
                    logger.warning(
                        "retry_attempt",
                        function=name,
                        attempt=attempt,
                        max_attempts=policy.max_attempts,
                        delay=round(wait, 3),
                        error=str(e),
                    )
                    time.sleep(wait)
                    delay *= policy.backoff_factor

        return wrapper

    return decorator
