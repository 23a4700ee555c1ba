"""Failure kinds raised by the progress core."""

from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()


class ProgressError(Exception):
    """Base class for all progress-core failures."""


class NotFoundError(ProgressError):
    """An addressed unit, story or resource has no catalog entries."""


class ValidationError(ProgressError):
    """A required field is missing or a numeric input is not a number."""


class StoreError(ProgressError):
    """The persistent store is unreachable or rejected a write.

    The original store exception is chained as ``__cause__``.
    """

    def __init__(self, operation: str, message: str):
        super().__init__(f"Failed to {operation}: {message}")
        self.operation = operation


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate store-layer exceptions into StoreError.

    ProgressError subclasses raised inside the block propagate unchanged.

    Args:
        operation: Human-readable name of the operation, e.g. "complete unit".
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("store_operation_failed", operation=operation)
        raise StoreError(operation, str(exc)) from exc
