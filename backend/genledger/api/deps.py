"""Dependencies that are used in the API endpoints."""

import uuid
from typing import Optional, get_type_hints

from fastapi import Depends, Header, HTTPException

from genledger.core import container as container_mod
from genledger.core.container import Container
from genledger.db.session import get_db

__all__ = ["Inject", "get_account_id", "get_container", "get_db"]


async def get_account_id(
    x_account_id: Optional[str] = Header(None, alias="X-Account-ID"),
) -> uuid.UUID:
    """Account identity forwarded by the authenticating gateway in front of us.

    Raises:
    ------
        HTTPException: 401 if the header is missing, 400 if it is not a UUID.

    """
    if not x_account_id:
        raise HTTPException(status_code=401, detail="X-Account-ID header required")
    try:
        return uuid.UUID(x_account_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="X-Account-ID must be a valid UUID")


def get_container() -> Container:
    """Get the DI container. Initialized at startup."""
    c = container_mod.container
    if c is None:
        raise RuntimeError("Container not initialized. Call initialize_container() first.")
    return c


# ---------------------------------------------------------------------------
# Protocol Injection
# ---------------------------------------------------------------------------

# Cache of protocol_type → Container field name, built once at first call.
_INJECT_CACHE: dict[type, str] = {}


def _resolve_field_name(protocol_type: type) -> str:
    """Find which Container field matches the given protocol type.

    Uses get_type_hints() to introspect the Container dataclass.
    Result is cached so the lookup happens at most once per protocol type.
    """
    if not _INJECT_CACHE:
        for name, hint in get_type_hints(Container).items():
            _INJECT_CACHE[hint] = name

    field_name = _INJECT_CACHE.get(protocol_type)
    if field_name is None:
        available = list(_INJECT_CACHE.values())
        raise TypeError(
            f"No binding for {protocol_type.__name__} in Container. Available fields: {available}"
        )
    return field_name


def Inject(protocol_type: type):  # noqa: N802 (uppercase to match FastAPI's Depends)
    """Resolve a protocol implementation from the DI container.

    Usage in FastAPI endpoints::

        @router.get("/credits")
        async def get_credits(
            accounts: AccountServiceProtocol = Inject(AccountServiceProtocol),
        ):
            ...
    """
    field_name = _resolve_field_name(protocol_type)

    def _resolve(c: Container = Depends(get_container)):
        return getattr(c, field_name)

    return Depends(_resolve)
