"""Usage domain exceptions."""

from typing import Optional
from uuid import UUID

from genledger.core.exceptions import RateLimitExceededException


class RateLimitExceededError(RateLimitExceededException):
    """Raised when an account has used its daily allowance."""

    def __init__(
        self,
        account_id: UUID,
        limit: int,
        retry_after: float,
        message: Optional[str] = None,
    ) -> None:
        """Initialize with the daily limit and seconds until it resets."""
        if message is None:
            message = f"Daily limit of {limit} reached; retry after {retry_after:.0f} seconds"
        self.account_id = account_id
        super().__init__(retry_after=retry_after, limit=limit, remaining=0, message=message)
