"""Discover NFT contracts from historical factory events.

Usage:
  python -m scripts.backfill <from_block> [<to_block>] [--step 2000]

`to_block` defaults to the current chain head.
"""

import argparse
import asyncio
from config.loader import get_core_config
from utils.exceptions import LogFetchError
from utils.service import ContractFilterService
from utils.logging import logger, configure_logging
from utils.redis.redis_conn import RedisPool


def iter_ranges(start: int, end: int, step: int):
    """Yield inclusive [a, b] block ranges of at most `step` blocks."""
    x = start
    while x <= end:
        y = min(end, x + step - 1)
        yield x, y
        x = y + 1


async def run_backfill(from_block: int, to_block: int, step: int) -> int:
    settings = get_core_config()
    configure_logging(
        level=settings.logs.level,
        debug_mode=settings.logs.debug_mode,
        write_to_files=settings.logs.write_to_files,
    )
    service = ContractFilterService(settings)
    total = 0
    try:
        await service.init()
        if to_block < 0:
            to_block = await service.fetcher.latest_block()
        logger.info(f"⏪ Backfilling NFT contracts over blocks {from_block}-{to_block} (step {step})")
        for a, b in iter_ranges(from_block, to_block, step):
            try:
                total += await service.backfill(a, b)
            except LogFetchError as e:
                logger.error(f"❌ Skipping blocks {a}-{b}: {e}")
        stats = service.stats()
        logger.success(
            f"✅ Backfill finished: {total} creation events, "
            f"{stats.registry.dynamic_count} NFT contracts watched, {stats.discovery.errors} malformed events"
        )
    finally:
        await service.close()
        await RedisPool.close()
    return total


def main():
    parser = argparse.ArgumentParser(description="Backfill NFT contracts from factory events")
    parser.add_argument('from_block', type=int)
    parser.add_argument('to_block', type=int, nargs='?', default=-1)
    parser.add_argument('--step', type=int, default=2_000)
    args = parser.parse_args()
    asyncio.run(run_backfill(args.from_block, args.to_block, args.step))


if __name__ == "__main__":
    main()
