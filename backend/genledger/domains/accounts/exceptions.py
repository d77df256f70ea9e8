"""Accounts domain exceptions."""

from uuid import UUID

from genledger.core.exceptions import NotFoundException


class AccountNotFoundError(NotFoundException):
    """Raised when an account does not exist or has been deactivated."""

    def __init__(self, account_id: UUID, message: str = "Account not found") -> None:
        """Initialize with the account ID that failed to resolve."""
        self.account_id = account_id
        super().__init__(f"{message}: {account_id}")
