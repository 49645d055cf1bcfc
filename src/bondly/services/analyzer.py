"""Turn a completed session into two advice records."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bondly.advice import AdviceContent, AdviceGenerator, Perspective
from bondly.db import Advice, Response, Session, SessionStatus
from bondly.errors import (
    AdviceGenerationError,
    AlreadyAnalyzed,
    InsufficientResponses,
    MissingRole,
    NotFound,
    PersistenceError,
    QuotaExceeded,
)
from bondly.stream import EventStream

from .sessions import new_id, notify_status, reconcile_status, require_uuid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdviceIds:
    creator: str
    partner: str


def latest_by_role(responses: list[Response]) -> dict[bool, Response]:
    """Collapse duplicate submissions, keeping the newest response per role flag."""
    latest: dict[bool, Response] = {}
    for response in responses:
        current = latest.get(response.is_creator)
        if current is None or response.created_at >= current.created_at:
            latest[response.is_creator] = response
    return latest


def _perspective(name: str | None, response: Response) -> Perspective:
    return Perspective(
        name=name or "Partner",
        situation=response.situation_description,
        feelings=response.feelings,
        emotions=list(response.emotional_state or []),
    )


class SessionAnalyzer:
    """
    Generates and stores advice for both participants of a session.

    Safe to call repeatedly until it succeeds once; afterwards the session is
    ``analyzed`` and further calls fail with AlreadyAnalyzed.
    """

    def __init__(
        self,
        db: AsyncSession,
        generator: AdviceGenerator,
        events: EventStream,
        poll_attempts: int = 3,
        poll_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.db = db
        self.generator = generator
        self.events = events
        self.poll_attempts = max(1, poll_attempts)
        self.poll_delay = poll_delay
        self._sleep = sleep

    async def _load_responses(self, session_id: str) -> list[Response] | None:
        """
        Read the session's responses, waiting out read-after-write lag.

        Returns None when fewer than two are still visible after the last
        attempt, so the caller can report "not yet" rather than a hard error.
        """
        for attempt in range(self.poll_attempts):
            result = await self.db.execute(
                select(Response).where(Response.session_id == session_id)
            )
            responses = list(result.scalars().all())
            if len(responses) >= 2:
                return responses
            if attempt + 1 < self.poll_attempts:
                delay = self.poll_delay * (attempt + 1)
                logger.info(
                    "Session %s has %d visible responses, re-reading in %.2fs",
                    session_id,
                    len(responses),
                    delay,
                )
                await self._sleep(delay)
        return None

    async def _generate_both(
        self, creator: Perspective, partner: Perspective
    ) -> tuple[AdviceContent, AdviceContent]:
        results = await asyncio.gather(
            self.generator.generate(creator, partner),
            self.generator.generate(partner, creator),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            # A quota problem is retryable, so it takes precedence
            for error in errors:
                if isinstance(error, QuotaExceeded):
                    raise error
            error = errors[0]
            if isinstance(error, AdviceGenerationError):
                raise error
            raise AdviceGenerationError("Failed to generate advice") from error
        return results[0], results[1]

    async def analyze(self, session_id: str) -> AdviceIds:
        """
        Generate advice for both participants and mark the session analyzed.

        Raises:
            InvalidInput: malformed session id
            NotFound: no such session
            AlreadyAnalyzed: advice already exists for this session
            InsufficientResponses: fewer than two responses visible
            MissingRole: creator or partner response missing
            QuotaExceeded / AdviceGenerationError: generation failed
            PersistenceError: advice could not be stored
        """
        require_uuid(session_id)

        session = await self.db.get(Session, session_id)
        if not session:
            raise NotFound("Session not found")

        if session.status == SessionStatus.ANALYZED.value:
            raise AlreadyAnalyzed("Session has already been analyzed")
        if await reconcile_status(self.db, session):
            raise AlreadyAnalyzed("Session has already been analyzed")

        responses = await self._load_responses(session_id)
        if responses is None:
            raise InsufficientResponses("Both responses required")

        by_role = latest_by_role(responses)
        creator_response = by_role.get(True)
        partner_response = by_role.get(False)
        if not creator_response or not partner_response:
            raise MissingRole("Missing responses")

        creator_name = session.creator_name
        partner_name = session.partner_name
        logger.info("Analyzing session %s", session_id)

        creator_advice, partner_advice = await self._generate_both(
            _perspective(creator_name, creator_response),
            _perspective(partner_name, partner_response),
        )

        rows = [
            Advice(
                id=new_id(),
                session_id=session_id,
                user_id=response.user_id,
                is_creator=response.is_creator,
                advice_text=content.advice,
                conversation_starters=content.conversation_starters,
                action_steps=content.action_steps,
            )
            for response, content in (
                (creator_response, creator_advice),
                (partner_response, partner_advice),
            )
        ]
        advice_ids = AdviceIds(creator=rows[0].id, partner=rows[1].id)

        self.db.add_all(rows)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to store advice for session %s", session_id)
            raise PersistenceError("Failed to save advice") from e

        session.advance_status(SessionStatus.ANALYZED)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            # Advice is stored; readers reconcile the lagging status
            await self.db.rollback()
            logger.exception("Advice stored but status update failed for session %s", session_id)
        else:
            await notify_status(self.events, session_id, SessionStatus.ANALYZED.value)

        logger.info(
            "Session %s analyzed (fallback used: creator=%s, partner=%s)",
            session_id,
            creator_advice.is_fallback,
            partner_advice.is_fallback,
        )
        return advice_ids

