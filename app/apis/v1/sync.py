# backend/app/apis/v1/sync.py

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.config import settings
from app.core.limiter import limiter
from app.schemas.trade_schemas import SyncRequest, SyncResponse
from app.services.sync_service import SyncService, get_sync_service

router = APIRouter()


@router.post(
    "",
    response_model=SyncResponse,
    responses={400: {"description": "Missing userId or broker"}, 500: {"description": "Sync failed"}},
    summary="Fetch and normalize a user's trades from one broker",
)
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_trades(
    request: Request,
    body: SyncRequest,
    service: SyncService = Depends(get_sync_service),
):
    if not body.user_id or not body.broker:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing required fields: userId, broker"},
        )

    try:
        trades = await service.sync_trades(body.user_id, body.broker)
    except Exception as e:
        logger.error(f"SYNC_FAIL: user={body.user_id} broker={body.broker}: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e) or "Internal Server Error"},
        )

    result = SyncResponse(user_id=body.user_id, broker=body.broker, count=len(trades), trades=trades)
    # Serialized here so NaN quantities/prices go out as null instead of failing response validation
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))
