"""Analysis endpoints: run the analysis and look up advice ids by role."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bondly.advice import AdviceGenerator
from bondly.config import Settings, get_settings
from bondly.db import get_session
from bondly.services.analyzer import SessionAnalyzer
from bondly.services.sessions import find_advice_id, require_uuid
from bondly.stream import EventStream

from .deps import get_advice_generator, get_event_stream
from .schemas import CamelModel

router = APIRouter(tags=["analysis"])


class AnalyzeRequest(CamelModel):
    session_id: str


class AdviceIdsResponse(CamelModel):
    creator: str
    partner: str


class AnalyzeResponse(CamelModel):
    success: bool = True
    advice_ids: AdviceIdsResponse


class AdviceIdResponse(CamelModel):
    advice_id: str | None


@router.post("/analyze-session", response_model=AnalyzeResponse)
async def analyze_session(
    data: AnalyzeRequest,
    db: AsyncSession = Depends(get_session),
    generator: AdviceGenerator = Depends(get_advice_generator),
    events: EventStream = Depends(get_event_stream),
    settings: Settings = Depends(get_settings),
) -> AnalyzeResponse:
    """
    Generate advice for both participants of a completed session.

    Returns 400 for bad input or session state, 404 for an unknown session,
    429 (code QUOTA_EXCEEDED) when the AI service is rate limited and 500 for
    other failures.
    """
    analyzer = SessionAnalyzer(
        db,
        generator,
        events,
        poll_attempts=settings.response_poll_attempts,
        poll_delay=settings.response_poll_delay,
    )
    ids = await analyzer.analyze(data.session_id)
    return AnalyzeResponse(advice_ids=AdviceIdsResponse(creator=ids.creator, partner=ids.partner))


@router.get("/get-advice-id", response_model=AdviceIdResponse)
async def get_advice_id(
    session_id: str | None = Query(None, alias="sessionId"),
    is_creator: bool = Query(False, alias="isCreator"),
    db: AsyncSession = Depends(get_session),
) -> AdviceIdResponse:
    """
    Advice id for a session and role, or null if not generated yet.

    Only the id is returned, never the advice itself.
    """
    require_uuid(session_id)
    advice_id = await find_advice_id(db, session_id, is_creator)
    return AdviceIdResponse(advice_id=advice_id)
