"""Failure taxonomy for the review operations.

Every operation raises one of these and nothing else. Callers (the CLI, a
dashboard backend) render them as a retryable error state; this layer never
retries on its own.
"""

from __future__ import annotations

import functools
import logging

logger = logging.getLogger(__name__)


class CodeCraftError(Exception):
    """Base class for every failure an operation can raise."""


class InvalidInput(CodeCraftError):
    """A required argument is missing or the review payload is malformed."""


class UserNotFound(CodeCraftError):
    def __init__(self, identity_id: str):
        self.identity_id = identity_id
        super().__init__("User not found. Please sign in again.")


class NotFound(CodeCraftError):
    """The review or bookmark doesn't exist."""


class AlreadySaved(CodeCraftError):
    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__("Review already saved")


class AccessDenied(CodeCraftError):
    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__("Access denied")


class PersistenceFailure(CodeCraftError):
    """Wraps any error raised by the underlying store."""


def persistence_boundary(message: str):
    """Decorate an operation so store errors surface as PersistenceFailure.

    CodeCraftError subclasses pass through untouched. Anything else is logged
    and re-raised as ``PersistenceFailure("<message>: <cause>")``, chained to
    the original exception.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except CodeCraftError:
                raise
            except Exception as e:
                logger.error("%s (%s): %s", message, type(e).__name__, e)
                raise PersistenceFailure(f"{message}: {e}") from e

        return wrapper

    return decorator
