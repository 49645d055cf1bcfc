"""Session endpoints: creation, dashboard, detail and readiness."""

import json
from datetime import datetime
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sse_starlette.sse import EventSourceResponse

from bondly.advice.prompts import MAX_NAME_LENGTH
from bondly.config import Settings, get_settings
from bondly.db import Session, get_session, get_sessionmaker
from bondly.errors import NotFound
from bondly.services import sessions as session_service
from bondly.status import Readiness, ReadinessWatcher, resolve_readiness
from bondly.stream import STATUS_EVENT, EventStream

from .deps import get_event_stream
from .schemas import CamelModel, Submission

router = APIRouter(prefix="/sessions", tags=["sessions"])


# --- Schemas ---


class SessionCreate(Submission):
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    partner_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)


class SessionResponse(CamelModel):
    id: str
    creator_id: str
    creator_name: str
    partner_name: str | None
    share_token: str
    share_url: str
    status: str
    created_at: datetime
    updated_at: datetime


class SessionCreated(CamelModel):
    session: SessionResponse
    user_id: str


class StatusResponse(CamelModel):
    session_id: str
    status: str
    state: str
    advice_id: str | None = None


def _session_response(session: Session, settings: Settings) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        creator_id=session.creator_id,
        creator_name=session.creator_name,
        partner_name=session.partner_name,
        share_token=session.share_token,
        share_url=f"{settings.site_url.rstrip('/')}/partner/{session.share_token}",
        status=session.status,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


def _status_response(session_id: str, readiness: Readiness) -> StatusResponse:
    return StatusResponse(
        session_id=session_id,
        status=readiness.status,
        state=readiness.state.value,
        advice_id=readiness.advice_id,
    )


async def readiness_events(session_id: str, watcher: ReadinessWatcher) -> AsyncIterator[dict]:
    """SSE events for each readiness change; a vanished session ends the stream."""
    try:
        async for readiness in watcher.watch():
            yield {
                "event": readiness.state.value,
                "data": _status_response(session_id, readiness).model_dump_json(by_alias=True),
            }
    except NotFound:
        yield {"event": "gone", "data": json.dumps({"sessionId": session_id})}


# --- Routes ---


@router.post("", response_model=SessionCreated)
async def create_session(
    data: SessionCreate,
    db: AsyncSession = Depends(get_session),
    events: EventStream = Depends(get_event_stream),
    settings: Settings = Depends(get_settings),
) -> SessionCreated:
    """Create a session with the creator's response."""
    session, user_id = await session_service.create_session(
        db,
        events,
        creator_name=data.name,
        partner_name=data.partner_name,
        situation=data.situation,
        feelings=data.feelings,
        emotions=data.emotions,
        user_id=data.user_id,
    )
    return SessionCreated(session=_session_response(session, settings), user_id=user_id)


@router.get("", response_model=list[SessionResponse])
async def list_sessions(
    creator_id: str = Query(alias="creatorId", min_length=1),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> list[SessionResponse]:
    """List a creator's sessions, newest first."""
    sessions = await session_service.list_sessions(db, creator_id)
    return [_session_response(s, settings) for s in sessions]


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session_detail(
    session_id: str,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> SessionResponse:
    """Get a session, with its status reconciled against stored advice."""
    session = await session_service.get_session_or_404(db, session_id)
    await session_service.reconcile_status(db, session)
    return _session_response(session, settings)


@router.get("/{session_id}/status", response_model=StatusResponse)
async def get_session_status(
    session_id: str,
    is_creator: bool | None = Query(None, alias="isCreator"),
    user_id: str | None = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_session),
) -> StatusResponse:
    """One-shot readiness check for the status page."""
    readiness = await resolve_readiness(db, session_id, is_creator, user_id)
    return _status_response(session_id, readiness)


@router.get("/{session_id}/stream")
async def stream_session_status(
    session_id: str,
    is_creator: bool | None = Query(None, alias="isCreator"),
    user_id: str | None = Query(None, alias="userId"),
    sessionmaker: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
    events: EventStream = Depends(get_event_stream),
    settings: Settings = Depends(get_settings),
) -> EventSourceResponse:
    """
    Stream readiness changes via Server-Sent Events.

    Emits ``waiting`` / ``processing`` as the session moves, then one
    ``ready`` event carrying the viewer's advice id, and closes.
    """
    async with sessionmaker() as db:
        await session_service.get_session_or_404(db, session_id)

    async def check() -> Readiness:
        # Fresh session per tick so status changes are visible
        async with sessionmaker() as db:
            return await resolve_readiness(db, session_id, is_creator, user_id)

    watcher = ReadinessWatcher(
        check,
        subscribe=lambda: events.subscribe(session_id, event_types=(STATUS_EVENT,)),
        poll_interval=settings.status_poll_interval,
    )
    return EventSourceResponse(readiness_events(session_id, watcher))
