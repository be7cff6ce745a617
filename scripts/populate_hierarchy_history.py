#!/usr/bin/env python3
"""
Populate hierarchy edges from users' parent_ref.

For every user that references a parent but has no open edge yet, opens an
edge joined at the user's creation time. Existing edges are left untouched,
so the script is safe to run repeatedly.

Usage:
    python scripts/populate_hierarchy_history.py
    python scripts/populate_hierarchy_history.py --batch-size 1000
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from sqlalchemy import func, select

from app.config.database import async_engine, async_session_maker
from app.models.hierarchy_edge import HierarchyEdge
from app.services.hierarchy.hierarchy_store import HierarchyStore


# Configure logger
logger.remove()
logger.add(sys.stderr, level="INFO", format="{time:HH:mm:ss} | {level} | {message}")


async def populate(batch_size: int) -> None:
    try:
        async with async_session_maker() as session:
            result = await HierarchyStore(session).backfill_from_parent_refs(
                batch_size=batch_size
            )

            total = await session.scalar(select(func.count(HierarchyEdge.id)))
            active = await session.scalar(
                select(func.count(HierarchyEdge.id)).where(
                    HierarchyEdge.left_at.is_(None)
                )
            )
    finally:
        await async_engine.dispose()

    logger.info(f"Created: {result.created} edges")
    logger.info(f"Skipped: {result.skipped} (edge already existed)")
    if result.missing_parent:
        logger.warning(f"Unresolved parent_ref: {result.missing_parent}")
    logger.info(f"Total hierarchy edges: {total}, active: {active}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Populate hierarchy edges from existing parent references"
    )
    parser.add_argument("--batch-size", type=int, default=500)
    args = parser.parse_args()

    asyncio.run(populate(args.batch_size))
    logger.success("Hierarchy history population completed")


if __name__ == "__main__":
    main()
