"""Billing events: decoding verified provider payloads into domain variants.

The provider envelope is validated as a tagged union on its ``type`` field, so
each event type gets exactly the payload shape it needs. Types we do not act
on decode to ``UnknownBillingEvent`` instead of failing.
"""

from dataclasses import dataclass
from typing import Annotated, Any, Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from genledger.domains.billing.exceptions import InvalidPayloadError
from genledger.domains.billing.types import tier_for_plan_id
from genledger.schemas.account import SubscriptionTier

# ---------------------------------------------------------------------------
# Provider payload shapes
# ---------------------------------------------------------------------------


class _StripeModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CheckoutSessionPayload(_StripeModel):
    """checkout.session object."""

    id: str
    mode: Optional[str] = None
    customer: Optional[str] = None
    client_reference_id: Optional[str] = None
    amount_total: Optional[int] = None
    metadata: dict[str, str] = Field(default_factory=dict)


class SubscriptionDetails(_StripeModel):
    """Subscription snapshot embedded in an invoice."""

    subscription: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)


class InvoiceParent(_StripeModel):
    """Invoice parent (newer API versions nest subscription details here)."""

    subscription_details: Optional[SubscriptionDetails] = None


class InvoicePayload(_StripeModel):
    """invoice object."""

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    billing_reason: Optional[str] = None
    amount_paid: int = 0
    metadata: dict[str, str] = Field(default_factory=dict)
    subscription_details: Optional[SubscriptionDetails] = None
    parent: Optional[InvoiceParent] = None

    def subscription_metadata(self) -> dict[str, str]:
        """Metadata of the subscription that issued this invoice."""
        details = self.subscription_details
        if details is None and self.parent is not None:
            details = self.parent.subscription_details
        return details.metadata if details else {}


class SubscriptionPayload(_StripeModel):
    """subscription object."""

    id: str
    customer: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)


PayloadT = TypeVar("PayloadT")


class _EventData(_StripeModel, Generic[PayloadT]):
    obj: PayloadT = Field(alias="object")


class CheckoutSessionCompletedEnvelope(_StripeModel):
    id: str
    type: Literal["checkout.session.completed"]
    data: _EventData[CheckoutSessionPayload]


class InvoicePaidEnvelope(_StripeModel):
    id: str
    type: Literal["invoice.payment_succeeded", "invoice.paid"]
    data: _EventData[InvoicePayload]


class SubscriptionDeletedEnvelope(_StripeModel):
    id: str
    type: Literal["customer.subscription.deleted"]
    data: _EventData[SubscriptionPayload]


StripeEnvelope = Annotated[
    Union[CheckoutSessionCompletedEnvelope, InvoicePaidEnvelope, SubscriptionDeletedEnvelope],
    Field(discriminator="type"),
]

_envelope_adapter: TypeAdapter = TypeAdapter(StripeEnvelope)

HANDLED_EVENT_TYPES = frozenset(
    {
        "checkout.session.completed",
        "invoice.payment_succeeded",
        "invoice.paid",
        "customer.subscription.deleted",
    }
)

# ---------------------------------------------------------------------------
# Domain events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _RoutedEvent:
    event_id: str
    event_type: str
    account_ref: Optional[str]
    customer_ref: Optional[str]


@dataclass(frozen=True)
class CheckoutCompleted(_RoutedEvent):
    """A subscription checkout was paid.

    ``raw_credits`` overrides the plan's credit grant when the checkout carried one.
    """

    tier: SubscriptionTier
    plan_id: str
    amount_paid: Optional[int] = None
    raw_credits: Optional[int] = None


@dataclass(frozen=True)
class OneTimeCreditsPurchased(_RoutedEvent):
    """A one-off credit pack was paid."""

    amount: int


@dataclass(frozen=True)
class InvoicePaymentSucceeded(_RoutedEvent):
    """A subscription invoice was paid. ``tier`` is None when the invoice does not say."""

    tier: Optional[SubscriptionTier]
    billing_reason: Optional[str]
    invoice_id: str


@dataclass(frozen=True)
class SubscriptionCancelled(_RoutedEvent):
    """The provider ended a subscription."""

    subscription_id: str


@dataclass(frozen=True)
class UnknownBillingEvent:
    """Any event type the engine does not act on."""

    event_id: str
    event_type: str


BillingEvent = Union[
    CheckoutCompleted,
    OneTimeCreditsPurchased,
    InvoicePaymentSucceeded,
    SubscriptionCancelled,
    UnknownBillingEvent,
]


def decode_event(raw: Any) -> BillingEvent:
    """Decode a verified provider event.

    Raises:
        InvalidPayloadError: the payload is not an event, or a handled event
            type carries a malformed object.
    """
    if not isinstance(raw, dict):
        raise InvalidPayloadError("Event payload must be a JSON object")
    event_id = raw.get("id")
    event_type = raw.get("type")
    if not isinstance(event_id, str) or not isinstance(event_type, str):
        raise InvalidPayloadError("Event is missing id or type")

    if event_type not in HANDLED_EVENT_TYPES:
        return UnknownBillingEvent(event_id=event_id, event_type=event_type)

    try:
        envelope = _envelope_adapter.validate_python(raw)
    except ValidationError as e:
        raise InvalidPayloadError(f"Malformed {event_type} payload: {e.error_count()} error(s)") from e

    if isinstance(envelope, CheckoutSessionCompletedEnvelope):
        return _decode_checkout(envelope)
    if isinstance(envelope, InvoicePaidEnvelope):
        return _decode_invoice(envelope)
    return _decode_subscription_deleted(envelope)


def _decode_checkout(envelope: CheckoutSessionCompletedEnvelope) -> BillingEvent:
    session = envelope.data.obj
    account_ref = session.metadata.get("accountId") or session.client_reference_id
    credits = _credits_amount(session.metadata)

    plan_id = session.metadata.get("planId")
    tier = tier_for_plan_id(plan_id)
    if tier is not None:
        return CheckoutCompleted(
            event_id=envelope.id,
            event_type=envelope.type,
            account_ref=account_ref,
            customer_ref=session.customer,
            tier=tier,
            plan_id=plan_id,
            amount_paid=session.amount_total,
            raw_credits=credits,
        )

    if credits is not None:
        return OneTimeCreditsPurchased(
            event_id=envelope.id,
            event_type=envelope.type,
            account_ref=account_ref,
            customer_ref=session.customer,
            amount=credits,
        )

    # Checkouts we did not create (no planId, no creditsAmount)
    return UnknownBillingEvent(event_id=envelope.id, event_type=envelope.type)


def _credits_amount(metadata: dict[str, str]) -> Optional[int]:
    """Positive ``creditsAmount`` from checkout metadata, or None if absent."""
    credits = metadata.get("creditsAmount")
    if credits is None:
        return None
    try:
        amount = int(credits)
    except ValueError as e:
        raise InvalidPayloadError(f"creditsAmount is not an integer: {credits!r}") from e
    if amount <= 0:
        raise InvalidPayloadError(f"creditsAmount must be positive, got {amount}")
    return amount


def _decode_invoice(envelope: InvoicePaidEnvelope) -> InvoicePaymentSucceeded:
    invoice = envelope.data.obj
    sub_meta = invoice.subscription_metadata()
    plan_id = sub_meta.get("planId") or invoice.metadata.get("planId")
    return InvoicePaymentSucceeded(
        event_id=envelope.id,
        event_type=envelope.type,
        account_ref=sub_meta.get("accountId") or invoice.metadata.get("accountId"),
        customer_ref=invoice.customer,
        tier=tier_for_plan_id(plan_id),
        billing_reason=invoice.billing_reason,
        invoice_id=invoice.id,
    )


def _decode_subscription_deleted(envelope: SubscriptionDeletedEnvelope) -> SubscriptionCancelled:
    subscription = envelope.data.obj
    return SubscriptionCancelled(
        event_id=envelope.id,
        event_type=envelope.type,
        account_ref=subscription.metadata.get("accountId"),
        customer_ref=subscription.customer,
        subscription_id=subscription.id,
    )
