"""
Apply the hand-tuned indexes in `sql/performance_indexes.sql`.

Alembic owns the schema; these indexes are extras that can be (re)applied
at any time because every statement is `CREATE INDEX IF NOT EXISTS`.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from insurance_crm.core.logging import get_logger

logger = get_logger(__name__)

PERFORMANCE_SQL = Path(__file__).parent / "sql" / "performance_indexes.sql"


def _strip_comments(fragment: str) -> str:
    lines = [line for line in fragment.splitlines() if not line.strip().startswith("--")]
    return "\n".join(lines).strip()


def split_sql_statements(sql: str) -> list[str]:
    """Split a script on `;`, dropping blank and comment-only fragments."""
    statements = []
    for fragment in sql.split(";"):
        statement = _strip_comments(fragment)
        if statement:
            statements.append(statement)
    return statements


async def apply_performance_indexes(engine: AsyncEngine, path: Path = PERFORMANCE_SQL) -> int:
    """Execute every statement in order. Returns how many ran."""
    statements = split_sql_statements(path.read_text(encoding="utf-8"))
    async with engine.begin() as conn:
        for statement in statements:
            logger.info("Executing index statement", statement=statement[:60])
            await conn.execute(text(statement))
    logger.info("Performance indexes applied", count=len(statements))
    return len(statements)
