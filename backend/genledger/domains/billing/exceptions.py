"""Billing domain exceptions."""

import functools
from typing import Optional

from genledger.core.exceptions import ExternalServiceError, InvalidStateError, NotFoundException


class BillingStateError(InvalidStateError):
    """Raised when a billing operation is invalid for the current state."""

    def __init__(self, message: str = "Invalid billing state"):
        """Initialize with default message."""
        super().__init__(message)


class BillingNotAvailableError(InvalidStateError):
    """Raised by NullPaymentGateway when billing is not enabled."""

    def __init__(self, message: str = "Billing is not enabled for this instance"):
        """Initialize with default message."""
        super().__init__(message)


class UnknownPlanError(BillingStateError):
    """Raised when a checkout names a plan that is not in the catalog."""

    def __init__(self, plan_id: str):
        """Initialize with the unknown plan ID."""
        self.plan_id = plan_id
        super().__init__(f"Unknown plan: {plan_id}")


class PriceNotConfiguredError(BillingStateError):
    """Raised when a catalog plan has no provider price ID for the region."""

    def __init__(self, plan_id: str, region: str):
        """Initialize with the plan and region that lack a price."""
        self.plan_id = plan_id
        self.region = region
        super().__init__(f"No price configured for plan {plan_id} in {region}")


class InvalidCreditAmountError(BillingStateError):
    """Raised when a credit purchase asks for a non-positive amount."""

    def __init__(self, amount: int):
        """Initialize with the rejected amount."""
        self.amount = amount
        super().__init__(f"Credit amount must be positive, got {amount}")


# ---------------------------------------------------------------------------
# Webhook outcomes
# ---------------------------------------------------------------------------


class InvalidWebhookError(InvalidStateError):
    """Base for webhook deliveries rejected before any state was touched."""

    pass


class InvalidSignatureError(InvalidWebhookError):
    """Raised when the webhook signature does not match the payload."""

    def __init__(self, message: str = "Invalid webhook signature"):
        """Initialize with default message."""
        super().__init__(message)


class InvalidPayloadError(InvalidWebhookError):
    """Raised when a signed payload cannot be decoded into a known event shape."""

    def __init__(self, message: str = "Malformed webhook payload"):
        """Initialize with default message."""
        super().__init__(message)


class UnresolvedAccountError(NotFoundException):
    """Raised when no account matches a billing event. The event is not recorded."""

    def __init__(self, event_id: str, event_type: str, message: Optional[str] = None):
        """Initialize with the event that could not be routed."""
        self.event_id = event_id
        self.event_type = event_type
        super().__init__(message or f"No account for {event_type} event {event_id}")


class TransientFailureError(ExternalServiceError):
    """Raised when applying an event failed midway and was rolled back.

    The provider should redeliver; the dedup record was rolled back too.
    """

    def __init__(self, event_id: str, message: str = "Transient failure applying event"):
        """Initialize with the event ID."""
        self.event_id = event_id
        super().__init__(service_name="BillingWebhook", message=f"{message} ({event_id})")


# ---------------------------------------------------------------------------
# Payment gateway
# ---------------------------------------------------------------------------


class PaymentGatewayError(ExternalServiceError):
    """Wraps ExternalServiceError from the payment adapter at the domain boundary."""

    def __init__(self, message: str = "Payment gateway error"):
        """Initialize with default message."""
        super().__init__(service_name="PaymentGateway", message=message)


def wrap_gateway_errors(fn):
    """Decorator: catch ExternalServiceError from payment gateway, wrap as PaymentGatewayError."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except PaymentGatewayError:
            raise
        except ExternalServiceError as e:
            raise PaymentGatewayError(message=e.message) from e

    return wrapper
