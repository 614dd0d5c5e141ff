"""gl_wallet REST API — live (MPGW) pool funding and entry history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_common.database import get_db_session
from src.gl_common.response import ApiResponse, success_response
from src.gl_wallet.application.schemas import CreditRequest
from src.gl_wallet.application.service import LiveWalletApplicationService

router = APIRouter(prefix="/live-wallet", tags=["live-wallet"])

_service = LiveWalletApplicationService()


@router.post("/{user_id}/credit")
async def credit(
    user_id: str,
    body: CreditRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.fund(db, user_id, body.grams, body.bucket, body.reference_id)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{user_id}/entries")
async def list_entries(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: str | None = Query(None, description="Filter by LiveEntryType"),
) -> ApiResponse:
    data = await _service.list_entries(db, user_id, cursor, limit, entry_type)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
