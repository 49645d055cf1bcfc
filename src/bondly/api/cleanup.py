"""Scheduled retention sweep endpoint."""

import hmac
import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Header
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bondly.config import Settings, get_settings
from bondly.db import get_session
from bondly.errors import PersistenceError, Unauthorized
from bondly.services.retention import sweep

from .schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["maintenance"])


class DeletedCounts(CamelModel):
    sessions: int
    responses: int
    advice: int


class CleanupResponse(CamelModel):
    success: bool = True
    deleted: DeletedCounts
    timestamp: datetime


def _authorized(authorization: str | None, settings: Settings) -> bool:
    """Outside development the caller must present the shared cron secret."""
    if settings.is_development:
        return True
    if not settings.cron_secret or not authorization:
        return False
    expected = f"Bearer {settings.cron_secret}"
    return hmac.compare_digest(authorization.encode(), expected.encode())


@router.get("/cleanup", response_model=CleanupResponse)
async def cleanup(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> CleanupResponse:
    """Delete sessions, responses and advice older than the retention window."""
    if not _authorized(authorization, settings):
        logger.warning("Rejected unauthenticated cleanup call")
        raise Unauthorized("Unauthorized")

    try:
        deleted = await sweep(db, max_age=timedelta(hours=settings.retention_hours))
    except SQLAlchemyError as e:
        logger.exception("Retention sweep failed")
        raise PersistenceError("Cleanup failed") from e

    return CleanupResponse(
        deleted=DeletedCounts(**deleted),
        timestamp=datetime.now(timezone.utc),
    )
