"""gl_balance REST API — combined dual-wallet balance."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_balance.application.service import BalanceApplicationService
from src.gl_common.database import get_db_session
from src.gl_common.response import ApiResponse, success_response

router = APIRouter(prefix="/dual-wallet", tags=["dual-wallet"])

_service = BalanceApplicationService()


@router.get("/{user_id}/balance")
async def get_balance(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, user_id)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
