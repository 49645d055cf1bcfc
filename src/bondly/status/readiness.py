"""Where a participant stands: waiting, processing or ready (with their advice id)."""

import enum
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bondly.db import Response, Session, SessionStatus
from bondly.services.sessions import find_advice_id, get_session_or_404, reconcile_status


class ReadinessState(str, enum.Enum):
    WAITING = "waiting"
    PROCESSING = "processing"
    READY = "ready"


_STATE_BY_STATUS = {
    SessionStatus.WAITING_FOR_PARTNER.value: ReadinessState.WAITING,
    SessionStatus.COMPLETED.value: ReadinessState.PROCESSING,
    # Analyzed but no advice visible yet for this role
    SessionStatus.ANALYZED.value: ReadinessState.PROCESSING,
}


@dataclass(frozen=True)
class Readiness:
    state: ReadinessState
    status: str
    advice_id: str | None = None
    is_creator: bool | None = None


async def roles_to_check(
    db: AsyncSession,
    session: Session,
    is_creator: bool | None = None,
    user_id: str | None = None,
) -> list[bool]:
    """
    Which role flags to look up advice for.

    An explicit flag wins. Otherwise the user id is matched against the
    session's responses (then its creator). When the role is still unknown,
    both are checked, creator first.
    """
    if is_creator is not None:
        return [is_creator]

    if user_id:
        result = await db.execute(
            select(Response.is_creator)
            .where(Response.session_id == session.id, Response.user_id == user_id)
            .order_by(Response.created_at.desc())
            .limit(1)
        )
        role = result.scalar_one_or_none()
        if role is not None:
            return [role]
        if session.creator_id == user_id:
            return [True]

    return [True, False]


async def resolve_readiness(
    db: AsyncSession,
    session_id: str,
    is_creator: bool | None = None,
    user_id: str | None = None,
) -> Readiness:
    """
    Resolve readiness for one viewer of a session.

    Advice rows are checked directly; the status flag alone may lag behind
    them, in which case it is reconciled.
    """
    session = await get_session_or_404(db, session_id)

    for role in await roles_to_check(db, session, is_creator, user_id):
        advice_id = await find_advice_id(db, session.id, role)
        if advice_id:
            await reconcile_status(db, session)
            return Readiness(ReadinessState.READY, session.status, advice_id, role)

    return Readiness(_STATE_BY_STATUS[session.status], session.status)
