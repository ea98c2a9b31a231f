# backend/run.py
# One-shot sync from the command line: python run.py [user_id] [broker]
import asyncio
import json
import sys
from dotenv import load_dotenv

load_dotenv()

from app.services.sync_service import get_sync_service, shutdown_sync_service  # noqa: E402


async def main(user_id: str, broker: str) -> None:
    service = get_sync_service()
    try:
        trades = await service.sync_trades(user_id, broker)
        print("Normalized Trades:", json.dumps([t.model_dump(mode="json") for t in trades], indent=2))
    finally:
        await shutdown_sync_service()


if __name__ == "__main__":
    user_id = sys.argv[1] if len(sys.argv) > 1 else "demo-user-1"
    broker = sys.argv[2] if len(sys.argv) > 2 else "zerodha"
    asyncio.run(main(user_id, broker))
