"""
Domain errors.

Services raise these synchronously; the API layer turns them into JSON
responses with the carried status code (see main.py).
"""

from typing import Optional


class KondateError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class UnknownCategory(KondateError):
    """No expiration rule exists for the category id."""

    status_code = 404

    def __init__(self, category_id: str):
        super().__init__(f"categoryExpireRule not found: {category_id}")
        self.category_id = category_id


class InvalidCustomDuration(KondateError):
    """Custom category without a finite, positive, bounded number of days."""

    status_code = 422

    def __init__(self, value=None, max_days: Optional[int] = None):
        if max_days is None:
            message = f"custom_expire_days must be a positive number for custom category (got {value!r})"
        else:
            message = f"custom_expire_days must be between 1 and {max_days} (got {value!r})"
        super().__init__(message)
        self.value = value


class NotFound(KondateError):
    status_code = 404


class Forbidden(KondateError):
    status_code = 403


class AlreadyApplied(KondateError):
    """The draft session was already applied to the shopping list."""

    status_code = 409


class InvalidTransition(KondateError):
    """A status change or edit not allowed from the current state."""

    status_code = 409


class ValidationFailed(KondateError):
    status_code = 422


class BatchWriteError(KondateError):
    """
    A multi-document write failed part way.

    `committed` lists the ids written before the failure, `failed` the ids
    (or labels) that could not be written. `rolled_back` tells whether the
    committed writes were compensated.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        committed: list[str] | None = None,
        failed: list[str] | None = None,
        rolled_back: bool = False,
    ):
        super().__init__(message)
        self.committed = committed or []
        self.failed = failed or []
        self.rolled_back = rolled_back

    def to_dict(self) -> dict:
        return {
            "committed": self.committed,
            "failed": self.failed,
            "rolled_back": self.rolled_back,
        }
