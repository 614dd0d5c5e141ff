"""gl_batch REST API — fixed-price batch creation, listing and retagging."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_batch.application.schemas import CreateBatchRequest, RetagBatchRequest
from src.gl_batch.application.service import BatchApplicationService
from src.gl_common.database import get_db_session
from src.gl_common.enums import BalanceBucket
from src.gl_common.response import ApiResponse, success_response

router = APIRouter(tags=["batches"])

_service = BatchApplicationService()


@router.post("/batches", status_code=201)
async def create_batch(
    body: CreateBatchRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_batch(
        db,
        body.owner_id,
        body.grams,
        body.locked_price_usd_per_gram,
        body.bucket,
        body.source_type,
        body.source_transaction_id,
        body.notes,
    )
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/batches/{batch_id}/retag")
async def retag_batch(
    batch_id: str,
    body: RetagBatchRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.retag(db, batch_id, body.bucket)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/dual-wallet/{user_id}/batches")
async def list_batches(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    bucket: BalanceBucket | None = Query(None, description="Filter by balance bucket"),
    include_closed: bool = Query(False, description="Include Consumed/Transferred batches"),
) -> ApiResponse:
    data = await _service.list_batches(db, user_id, bucket, include_closed)
    resp = success_response(data.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
