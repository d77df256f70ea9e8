"""Cross-cutting infrastructure protocols."""

from genledger.core.protocols.payment import PaymentGatewayProtocol

__all__ = ["PaymentGatewayProtocol"]
