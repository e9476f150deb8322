# ev_admin_system/business_logic/errors.py

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ev_admin_system.data.outcomes import Outcome, Rejected

logger = logging.getLogger(__name__)


class HttpError(Exception):
    """Base exception for every error that reaches the HTTP layer."""
    status = 500

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.data = data if data is not None else []


class BusinessRuleError(HttpError):
    """Raised when a request breaks a domain rule or the store rejects it."""
    status = 400


class UnauthorizedError(HttpError):
    status = 401


class ForbiddenError(HttpError):
    status = 403


class ValidationError(HttpError):
    """Raised when request input fails validation."""
    status = 422


class InternalError(HttpError):
    """Raised when a store or transport failure prevents an operation from completing."""
    status = 500


@contextmanager
def store_errors():
    """
    Converts database failures escaping the block into InternalError, keeping the cause.
    """
    try:
        yield
    except SQLAlchemyError as err:
        logger.error(f"Database operation failed: {err}")
        raise InternalError("Internal Server Error") from err


def ensure_success(outcome: Outcome) -> Dict[str, Any]:
    """Returns the row of a successful store outcome, raises the store's status otherwise."""
    if isinstance(outcome, Rejected):
        raise BusinessRuleError(outcome.status)
    return outcome.row


def ensure_page(limit: Any, offset: Any, limit_message: str, offset_message: str):
    if not isinstance(limit, int) or isinstance(limit, bool):
        raise BusinessRuleError(limit_message)
    if not isinstance(offset, int) or isinstance(offset, bool):
        raise BusinessRuleError(offset_message)
