"""gl_transfer REST API — spend checks, pool transfers, bucket moves, peer sends."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_common.database import get_db_session
from src.gl_common.response import ApiResponse, success_response
from src.gl_transfer.application.schemas import (
    InvariantReportResponse,
    ReallocateRequest,
    ReallocationResponse,
    SendRequest,
    SendResponse,
    SpendValidationResponse,
    TransferRequest,
    TransferResponse,
    ValidateSpendRequest,
)
from src.gl_transfer.application.service import TransferEngine

IDEMPOTENCY_KEY_PATTERN = r"^[A-Za-z0-9_-]{8,64}$"

router = APIRouter(tags=["transfers"])

_engine = TransferEngine()


def _wrap(request: Request, data: dict) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/dual-wallet/validate-spend")
async def validate_spend(
    body: ValidateSpendRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _engine.validate_spend(db, body.user_id, body.grams, body.wallet_type)
    return _wrap(request, SpendValidationResponse.from_validation(result).model_dump(mode="json"))


@router.post("/dual-wallet/transfer")
async def transfer(
    body: TransferRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    x_idempotency_key: Annotated[
        str | None, Header(min_length=8, max_length=64, pattern=IDEMPOTENCY_KEY_PATTERN)
    ] = None,
) -> ApiResponse:
    result = await _engine.transfer(
        db,
        body.user_id,
        body.grams,
        body.from_wallet_type,
        body.to_wallet_type,
        body.notes,
        x_idempotency_key,
    )
    return _wrap(request, TransferResponse.from_result(result).model_dump(mode="json"))


@router.get("/dual-wallet/{user_id}/transfers")
async def list_transfers(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(50, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _engine.list_transfers(db, user_id, cursor, limit)
    return _wrap(request, data.model_dump(mode="json"))


@router.get("/dual-wallet/{user_id}/invariants")
async def verify_invariants(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    report = await _engine.verify_invariants(db, user_id)
    return _wrap(request, InvariantReportResponse.from_report(report).model_dump(mode="json"))


@router.post("/batches/reallocate")
async def reallocate(
    body: ReallocateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _engine.reallocate(
        db, body.user_id, body.grams, body.from_bucket, body.to_bucket
    )
    return _wrap(request, ReallocationResponse.from_result(result).model_dump(mode="json"))


@router.post("/batches/send")
async def send_fixed_gold(
    body: SendRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _engine.send_fixed_gold(
        db, body.from_user_id, body.to_user_id, body.grams, body.notes
    )
    return _wrap(request, SendResponse.from_result(result).model_dump(mode="json"))
