import functools
import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base for every business error raised by the ledger core.

    `kind` is stable and safe to show to callers,
    `message` is the human-readable reason.
    """

    kind = "internal"

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def as_dict(self):
        return {"kind": self.kind, "message": self.message}


class NotFoundError(LedgerError):
    """Raised when a referenced entity does not exist (for this company)."""

    kind = "not_found"


class InputValidationError(LedgerError):
    """Raised on malformed or missing input, e.g. a non-positive amount."""

    kind = "validation"


class InvalidStateError(LedgerError):
    """Raised when an entity's status does not permit the operation."""

    kind = "invalid_state"


class ConflictError(LedgerError):
    """Raised on duplicate conversion or duplicate code/number."""

    kind = "conflict"


class InternalError(LedgerError):
    """Raised on unexpected store failures and exhausted numbering retries."""

    kind = "internal"


def translate_store_errors(func):
    """
    Wrap a service entry point so only LedgerError leaves it.
    - model clean() failures → InputValidationError
    - anything the database raises → InternalError (store text is logged, not returned)
    Applied outside transaction.atomic() so the rollback has already happened.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except LedgerError:
            raise
        except ValidationError as exc:
            raise InputValidationError("; ".join(exc.messages)) from exc
        except DatabaseError as exc:
            logger.exception("Store failure in %s", func.__name__)
            raise InternalError(
                f"{func.__name__.replace('_', ' ')} failed") from exc

    return wrapper
