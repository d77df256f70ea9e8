"""API endpoints for account lifecycle."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from genledger import schemas
from genledger.api import deps
from genledger.api.deps import Inject
from genledger.domains.accounts.protocols import AccountServiceProtocol

router = APIRouter()


@router.post("/", response_model=schemas.Account, status_code=201)
async def create_account(
    request: schemas.SignupRequest,
    db: AsyncSession = Depends(deps.get_db),
    accounts: AccountServiceProtocol = Inject(AccountServiceProtocol),
) -> schemas.Account:
    """Open a free-tier account with the signup credit grant."""
    return await accounts.create_account(db, email=request.email)


@router.delete("/me", status_code=204)
async def deactivate_account(
    db: AsyncSession = Depends(deps.get_db),
    account_id: UUID = Depends(deps.get_account_id),
    accounts: AccountServiceProtocol = Inject(AccountServiceProtocol),
) -> Response:
    """Deactivate the caller's account."""
    await accounts.deactivate(db, account_id=account_id)
    return Response(status_code=204)
