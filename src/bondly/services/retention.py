"""Retention sweep: delete everything older than the retention window."""

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from bondly.db import Advice, Response, Session
from bondly.db.models import utcnow

logger = logging.getLogger(__name__)

RETENTION_WINDOW = timedelta(hours=24)

# Children first; each table is swept on its own cutoff regardless
_TABLES = (
    ("advice", Advice),
    ("responses", Response),
    ("sessions", Session),
)


async def sweep(
    db: AsyncSession,
    max_age: timedelta = RETENTION_WINDOW,
    now: datetime | None = None,
) -> dict[str, int]:
    """
    Delete rows whose ``created_at`` is older than ``max_age``.

    Each table is committed separately. Running it again right away deletes
    nothing. Returns deleted row counts per table.
    """
    cutoff = (now or utcnow()) - max_age
    deleted: dict[str, int] = {}

    for table, model in _TABLES:
        result = await db.execute(
            delete(model)
            .where(model.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        deleted[table] = result.rowcount or 0

    logger.info(
        "Retention sweep before %s deleted %d sessions, %d responses, %d advice",
        cutoff.isoformat(),
        deleted["sessions"],
        deleted["responses"],
        deleted["advice"],
    )
    return deleted
