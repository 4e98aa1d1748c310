# /scripts/example.py
"""
Minimal usage: register the scripts, bump one counter, release the connection.

Usage:
  REDIS_URL=redis://localhost:6379/0 python scripts/example.py
"""

from __future__ import annotations
import asyncio
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from components.boundedcounter import LIMIT_EXCEEDED, BoundedCounterService  # noqa: E402


async def start() -> None:
    svc = BoundedCounterService()
    await svc.init()
    try:
        result = await svc.incr_with_limit("count", 20)
        print("limit reached" if result is LIMIT_EXCEEDED else result)
    finally:
        await svc.quit()


if __name__ == "__main__":
    asyncio.run(start())
