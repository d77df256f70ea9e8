"""Dependency Injection Container Module.

This module provides the DI container and factory for wiring dependencies
across the application.

Usage:
------
    # Initialize at startup (call once from main.py)
    from genledger.core.container import initialize_container
    from genledger.core.config import settings
    initialize_container(settings)

    # Import the global container after initialization
    from genledger.core import container as container_mod
    ledger = container_mod.container.credit_ledger

    # In tests (construct directly with fakes, don't use global)
    from genledger.core.container import Container
    test_container = Container(payment_gateway=FakePaymentGateway(), ...)

Module structure:
-----------------
    container/
    ├── __init__.py      # This file - exports public API
    ├── container.py     # Container dataclass (serves)
    └── factory.py       # create_container() (builds)
"""

from typing import TYPE_CHECKING

from genledger.core.container.container import Container
from genledger.core.container.factory import create_container

if TYPE_CHECKING:
    from genledger.core.config import Settings

__all__ = ["Container", "create_container", "container", "initialize_container"]


container: Container | None = None
"""Global container instance.

Initialized via `initialize_container()` at application startup and read by
api/deps.py. Do NOT import this in domain code; domains receive dependencies
through their constructors.
"""


def initialize_container(settings: "Settings") -> None:
    """Initialize the global container. Call once at startup.

    Raises:
        RuntimeError: If called more than once (container already initialized)
    """
    global container

    if container is not None:
        raise RuntimeError(
            "Container already initialized. "
            "initialize_container() should only be called once at startup."
        )

    container = create_container(settings)


def reset_container() -> None:
    """Reset the global container to None. For testing only."""
    global container
    container = None
