"""
Apply the extra performance indexes.
Run: python -m scripts.apply_performance_indexes  (from backend/)
"""

import asyncio

from insurance_crm.core.logging import setup_logging
from insurance_crm.db.performance import apply_performance_indexes
from insurance_crm.db.session import engine


async def main():
    try:
        await apply_performance_indexes(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
