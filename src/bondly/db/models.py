"""SQLAlchemy models for sessions, responses and advice."""

import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp with microseconds (SQLite CURRENT_TIMESTAMP only has seconds)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class SessionStatus(str, enum.Enum):
    """Session lifecycle. Values are ordered; status never moves backward."""

    WAITING_FOR_PARTNER = "waiting_for_partner"
    COMPLETED = "completed"
    ANALYZED = "analyzed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [
    SessionStatus.WAITING_FOR_PARTNER,
    SessionStatus.COMPLETED,
    SessionStatus.ANALYZED,
]


class Session(Base):
    """A conflict shared by a creator and (eventually) their partner."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    creator_id: Mapped[str] = mapped_column(String(64), index=True)
    creator_name: Mapped[str] = mapped_column(String(50))
    partner_name: Mapped[str | None] = mapped_column(String(50))
    share_token: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    status: Mapped[str] = mapped_column(String(32), default=SessionStatus.WAITING_FOR_PARTNER.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    responses: Mapped[list["Response"]] = relationship(back_populates="session", passive_deletes=True)
    advice: Mapped[list["Advice"]] = relationship(back_populates="session", passive_deletes=True)

    def advance_status(self, status: SessionStatus) -> bool:
        """Move the session forward to ``status``.

        Returns False (and changes nothing) when ``status`` is not ahead of
        the current one.
        """
        if status.rank <= SessionStatus(self.status).rank:
            return False
        self.status = status.value
        return True


class Response(Base):
    """One participant's side of the story."""

    __tablename__ = "responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sessions.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64))
    is_creator: Mapped[bool] = mapped_column(Boolean)
    situation_description: Mapped[str] = mapped_column(Text)
    feelings: Mapped[str] = mapped_column(Text)
    emotional_state: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    session: Mapped["Session"] = relationship(back_populates="responses")


class Advice(Base):
    """Generated guidance for one participant. The id doubles as a capability token."""

    __tablename__ = "advice"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sessions.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64))
    is_creator: Mapped[bool] = mapped_column(Boolean)
    advice_text: Mapped[str] = mapped_column(Text)
    conversation_starters: Mapped[list[str]] = mapped_column(JSON, default=list)
    action_steps: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    session: Mapped["Session"] = relationship(back_populates="advice")
