# backend/app/apis/v1/__init__.py
from fastapi import APIRouter
from app.apis.v1 import sync
from app.apis.v1 import brokers
api_router = APIRouter()

# 1. Trade Sync Router
api_router.include_router(sync.router, prefix="/sync", tags=["Sync"])

# 2. Brokers Router
api_router.include_router(brokers.router, prefix="/brokers", tags=["Brokers"])
