"""Credits domain exceptions."""

import functools
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from genledger.core.exceptions import ExternalServiceError, PaymentRequiredException


class InsufficientCreditError(PaymentRequiredException):
    """Raised when a reservation asks for more credits than the account holds."""

    def __init__(
        self,
        account_id: UUID,
        requested: int,
        available: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        """Initialize with the requested amount and the balance seen."""
        if message is None:
            message = f"Insufficient credits: requested {requested}, available {available}"
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__(message)


class LedgerUnavailableError(ExternalServiceError):
    """Raised when the ledger store fails. No balance change was made."""

    def __init__(self, message: str = "Ledger store unavailable"):
        """Initialize with default message."""
        super().__init__(service_name="LedgerStore", message=message)


def wrap_store_errors(fn):
    """Decorator: catch database and connection errors, wrap as LedgerUnavailableError."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except (SQLAlchemyError, OSError) as e:
            raise LedgerUnavailableError(message=str(e)) from e

    return wrapper
