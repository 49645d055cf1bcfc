"""Database module for Bondly."""

from .models import Advice, Base, Response, Session, SessionStatus
from .session import create_engine, create_sessionmaker, get_session, get_sessionmaker

__all__ = [
    "Advice",
    "Base",
    "Response",
    "Session",
    "SessionStatus",
    "create_engine",
    "create_sessionmaker",
    "get_session",
    "get_sessionmaker",
]
