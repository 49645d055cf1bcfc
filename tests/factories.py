"""
Request payloads and row builders for tests that need data the API cannot produce directly.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from bondly.db import Advice, Response, Session, SessionStatus

CREATOR_PAYLOAD = {
    "name": "Alex",
    "partnerName": "Jordan",
    "situation": "We keep arguing about chores.",
    "feelings": "I feel unappreciated.",
    "emotions": ["Sad"],
}

PARTNER_PAYLOAD = {
    "situation": "I work longer hours and feel judged.",
    "feelings": "I feel misunderstood.",
    "emotions": ["Frustrated", "Hopeful"],
}


async def add_session(
    db: AsyncSession,
    status: SessionStatus = SessionStatus.COMPLETED,
    created_at: datetime | None = None,
) -> Session:
    session = Session(
        id=str(uuid4()),
        creator_id=str(uuid4()),
        creator_name="Alex",
        partner_name="Jordan",
        share_token=uuid4().hex,
        status=status.value,
    )
    if created_at is not None:
        session.created_at = created_at
    db.add(session)
    await db.commit()
    return session


async def add_response(
    db: AsyncSession,
    session_id: str,
    is_creator: bool,
    situation: str = "situation",
    created_at: datetime | None = None,
    user_id: str | None = None,
) -> Response:
    response = Response(
        id=str(uuid4()),
        session_id=session_id,
        user_id=user_id or str(uuid4()),
        is_creator=is_creator,
        situation_description=situation,
        feelings="feelings",
        emotional_state=["Sad"],
    )
    if created_at is not None:
        response.created_at = created_at
    db.add(response)
    await db.commit()
    return response


async def add_advice(
    db: AsyncSession,
    session_id: str,
    is_creator: bool,
    created_at: datetime | None = None,
) -> Advice:
    advice = Advice(
        id=str(uuid4()),
        session_id=session_id,
        user_id=str(uuid4()),
        is_creator=is_creator,
        advice_text="Be kind.",
        conversation_starters=["Hi"],
        action_steps=["Breathe"],
    )
    if created_at is not None:
        advice.created_at = created_at
    db.add(advice)
    await db.commit()
    return advice
