"""CRUD singletons for the genledger models."""

from genledger.crud.crud_account import account
from genledger.crud.crud_processed_event import processed_event
from genledger.crud.crud_usage_reservation import usage_reservation

__all__ = ["account", "processed_event", "usage_reservation"]
