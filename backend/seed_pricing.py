"""
Database seeding script for default pricing data.

Creates pricing rule version 1 and the four complexity fees when missing.
Run this script after the database is set up; running it again is harmless.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.db.session import engine, Base, session_scope
from backend.app.main import register_models
from backend.app.services.pricing_seed import seed_pricing_defaults


async def main():
    register_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_scope() as db:
        created = await seed_pricing_defaults(db)

    print(f"Seeded {created['rules']} pricing rule(s) and {created['complexity_fees']} complexity fee(s)")
    await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
