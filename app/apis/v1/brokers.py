# backend/app/apis/v1/brokers.py

from fastapi import APIRouter, Depends

from app.schemas.trade_schemas import BrokerInfo, BrokerListResponse
from app.services.sync_service import SyncService, get_sync_service

router = APIRouter()


@router.get("", response_model=BrokerListResponse)
async def get_brokers(service: SyncService = Depends(get_sync_service)):
    """Brokers that can be synced through the config-driven adapter."""
    return BrokerListResponse(
        brokers=[BrokerInfo(name=cfg.name, base_url=cfg.base_url) for cfg in service.list_brokers()]
    )
