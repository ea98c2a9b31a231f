# backend/app/core/limiter.py

from slowapi import Limiter
from slowapi.util import get_remote_address
from app.core.config import settings

# key_func: Uses IP address, so unauthenticated sync spam is throttled too.
# storage_uri: Defaults to memory://, switch to Redis via .env for multi-worker setups.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URL,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED
)
