"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError


class GenledgerException(Exception):
    """Base exception for genledger services."""

    pass


class NotFoundException(GenledgerException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ExternalServiceError(Exception):
    """Exception raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The error message. Has default message.

        """
        self.service_name = service_name
        self.message = message
        super().__init__(f"{service_name}: {message}")


class InvalidStateError(Exception):
    """Exception raised when an object is in an invalid state.

    Used when multiple services are involved and the state of one service is invalid,
    in relation to the other services.
    """

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class RateLimitExceededException(GenledgerException):
    """Exception raised when a usage rate limit is exceeded."""

    def __init__(
        self,
        retry_after: float,
        limit: int,
        remaining: int,
        message: Optional[str] = None,
    ):
        """Create a new RateLimitExceededException instance.

        Args:
        ----
            retry_after (float): Seconds until the rate limit window resets.
            limit (int): Maximum actions allowed in the window.
            remaining (int): Actions remaining in the current window.
            message (str, optional): Custom error message.

        """
        if message is None:
            message = (
                f"Rate limit exceeded. Please retry after {retry_after:.0f} seconds. "
                f"Limit: {limit} requests per window."
            )

        self.retry_after = retry_after
        self.limit = limit
        self.remaining = remaining
        self.message = message
        super().__init__(self.message)


class PaymentRequiredException(GenledgerException):
    """Exception raised when an action needs a balance the caller does not have."""

    def __init__(self, message: Optional[str] = "Payment required"):
        """Create a new PaymentRequiredException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_messages.append({field: message})

    return {"errors": error_messages}
