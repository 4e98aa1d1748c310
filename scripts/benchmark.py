# /scripts/benchmark.py
"""
Compares throughput of the scripted bounded increment against a plain
MULTI/GET/INCR/EXEC round trip on a live Redis.

Usage:
  python scripts/benchmark.py --seconds 5 --redis-url redis://localhost:6379/0
"""

from __future__ import annotations
import argparse
import asyncio
import logging
import time
from pathlib import Path
import sys

import redis.asyncio as redis

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from components.boundedcounter.config import CounterSettings  # noqa: E402
from components.boundedcounter.service import BoundedCounterService  # noqa: E402

LIMIT = 1_000_000


async def bench_incr_with_limit(client: redis.Redis, seconds: float) -> int:
    n = 0
    async with BoundedCounterService(client=client) as svc:
        deadline = time.monotonic() + seconds
        while time.monotonic() < deadline:
            await svc.incr_with_limit("countIncrWithLimit", LIMIT)
            n += 1
    print(f"incrWithLimit: completed {n} operations within {seconds}s")
    return n


async def bench_multi_incr(client: redis.Redis, seconds: float) -> int:
    n = 0
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        async with client.pipeline(transaction=True) as pipe:
            pipe.get("countIncr")
            pipe.incr("countIncr")
            await pipe.execute()
        n += 1
    print(f"incr: completed {n} MULTI/EXEC operations within {seconds}s")
    return n


async def run(seconds: float, url: str) -> None:
    client = redis.from_url(url)
    try:
        await client.delete("countIncrWithLimit", "countIncr")
        await bench_incr_with_limit(client, seconds)
        await bench_multi_incr(client, seconds)
    finally:
        await client.aclose()


def main() -> None:
    ap = argparse.ArgumentParser(description="Bounded counter throughput benchmark")
    ap.add_argument("--seconds", type=float, default=5.0, help="Duration of each run")
    ap.add_argument("--redis-url", default=None, help="Defaults to REDIS_URL from settings")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    url = args.redis_url or CounterSettings().REDIS_URL
    asyncio.run(run(args.seconds, url))


if __name__ == "__main__":
    main()
