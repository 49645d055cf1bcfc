"""Session lifecycle: creation, partner submission, lookups and status reconciliation."""

import logging
import re
import secrets
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bondly.db import Advice, Response, Session, SessionStatus
from bondly.errors import InvalidInput, NotFound, SessionClosed
from bondly.stream import STATUS_EVENT, EventStream

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def is_valid_uuid(value: str | None) -> bool:
    return bool(value) and bool(_UUID_RE.match(value))


def new_id() -> str:
    return str(uuid4())


def new_share_token() -> str:
    return secrets.token_urlsafe(24)


def require_uuid(value: str | None, label: str = "Session ID") -> str:
    """Reject missing or malformed identifiers before touching storage."""
    if not value:
        raise InvalidInput(f"{label} required")
    if not is_valid_uuid(value):
        raise InvalidInput(f"Invalid {label.lower()}")
    return value


async def notify_status(events: EventStream, session_id: str, status: str) -> None:
    await events.publish(session_id, STATUS_EVENT, {"status": status})


async def get_session_or_404(db: AsyncSession, session_id: str) -> Session:
    """Load a session by id. Malformed ids are reported as not found."""
    if not is_valid_uuid(session_id):
        raise NotFound("Session not found")
    session = await db.get(Session, session_id)
    if not session:
        raise NotFound("Session not found")
    return session


async def get_session_by_token(db: AsyncSession, share_token: str) -> Session:
    result = await db.execute(select(Session).where(Session.share_token == share_token))
    session = result.scalar_one_or_none()
    if not session:
        raise NotFound("Session not found")
    return session


async def find_advice_id(db: AsyncSession, session_id: str, is_creator: bool) -> str | None:
    """Advice id for one role, queried by role flag (never by insertion order)."""
    result = await db.execute(
        select(Advice.id)
        .where(Advice.session_id == session_id, Advice.is_creator == is_creator)
        .order_by(Advice.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def advice_ids_by_role(db: AsyncSession, session_id: str) -> dict[bool, str]:
    result = await db.execute(
        select(Advice.id, Advice.is_creator)
        .where(Advice.session_id == session_id)
        .order_by(Advice.created_at)
    )
    # Later rows overwrite earlier ones, so the newest per role wins
    return {is_creator: advice_id for advice_id, is_creator in result.all()}


async def reconcile_status(db: AsyncSession, session: Session) -> bool:
    """
    Advance a lagging status to ``analyzed`` when advice exists for both roles.

    Covers a crash between persisting advice and updating the session.
    Returns True if the status changed.
    """
    if session.status == SessionStatus.ANALYZED.value:
        return False

    ids = await advice_ids_by_role(db, session.id)
    if True not in ids or False not in ids:
        return False

    session.advance_status(SessionStatus.ANALYZED)
    await db.commit()
    logger.info("Reconciled session %s status to analyzed", session.id)
    return True


async def create_session(
    db: AsyncSession,
    events: EventStream,
    *,
    creator_name: str,
    partner_name: str,
    situation: str,
    feelings: str,
    emotions: list[str],
    user_id: str | None = None,
) -> tuple[Session, str]:
    """
    Create a session and the creator's response.

    The session is committed before the response insert is attempted.
    Returns the session and the creator's user id (minted when not given).
    """
    creator_id = user_id or new_id()

    session = Session(
        id=new_id(),
        creator_id=creator_id,
        creator_name=creator_name,
        partner_name=partner_name,
        share_token=new_share_token(),
        status=SessionStatus.WAITING_FOR_PARTNER.value,
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)

    response = Response(
        id=new_id(),
        session_id=session.id,
        user_id=creator_id,
        is_creator=True,
        situation_description=situation,
        feelings=feelings,
        emotional_state=emotions,
    )
    db.add(response)
    await db.commit()

    logger.info("Created session %s", session.id)
    await notify_status(events, session.id, session.status)
    return session, creator_id


async def list_sessions(db: AsyncSession, creator_id: str) -> list[Session]:
    """Sessions created by ``creator_id``, newest first."""
    result = await db.execute(
        select(Session)
        .where(Session.creator_id == creator_id)
        .order_by(Session.created_at.desc())
    )
    return list(result.scalars().all())


async def get_invitation(db: AsyncSession, share_token: str) -> Session:
    """The session behind a share link, as long as it still accepts a response."""
    session = await get_session_by_token(db, share_token)
    if session.status == SessionStatus.ANALYZED.value:
        raise SessionClosed("This session has already been completed")
    return session


async def submit_partner_response(
    db: AsyncSession,
    events: EventStream,
    share_token: str,
    *,
    situation: str,
    feelings: str,
    emotions: list[str],
    user_id: str | None = None,
) -> tuple[Session, Response]:
    """Record the partner's response and move the session to ``completed``."""
    session = await get_invitation(db, share_token)
    partner_id = user_id or new_id()

    response = Response(
        id=new_id(),
        session_id=session.id,
        user_id=partner_id,
        is_creator=False,
        situation_description=situation,
        feelings=feelings,
        emotional_state=emotions,
    )
    db.add(response)
    # A repeated submission leaves the status where it is
    session.advance_status(SessionStatus.COMPLETED)
    await db.commit()
    await db.refresh(session)

    logger.info("Partner responded to session %s", session.id)
    await notify_status(events, session.id, session.status)
    return session, response


async def get_advice(db: AsyncSession, advice_id: str) -> tuple[Advice, Session]:
    """
    Load an advice record and its session.

    Holding the advice id is sufficient to read it. Malformed and unknown ids
    are both reported as not found.
    """
    if not is_valid_uuid(advice_id):
        raise NotFound("Advice not found")
    advice = await db.get(Advice, advice_id)
    if not advice:
        raise NotFound("Advice not found")
    session = await db.get(Session, advice.session_id)
    if not session:
        raise NotFound("Advice not found")
    return advice, session
