"""Advice page endpoint."""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bondly.db import get_session
from bondly.services import sessions as session_service

from .schemas import CamelModel

router = APIRouter(prefix="/advice", tags=["advice"])


class AdviceResponse(CamelModel):
    id: str
    session_id: str
    is_creator: bool
    user_name: str
    partner_name: str
    advice_text: str
    action_steps: list[str]
    conversation_starters: list[str]
    created_at: datetime


@router.get("/{advice_id}", response_model=AdviceResponse)
async def get_advice(
    advice_id: str,
    db: AsyncSession = Depends(get_session),
) -> AdviceResponse:
    """Get one participant's advice. The advice id is the access token."""
    advice, session = await session_service.get_advice(db, advice_id)

    creator_name = session.creator_name
    partner_name = session.partner_name or "your partner"
    if advice.is_creator:
        user_name, other_name = creator_name, partner_name
    else:
        user_name, other_name = partner_name, creator_name

    return AdviceResponse(
        id=advice.id,
        session_id=advice.session_id,
        is_creator=advice.is_creator,
        user_name=user_name,
        partner_name=other_name,
        advice_text=advice.advice_text,
        action_steps=advice.action_steps,
        conversation_starters=advice.conversation_starters,
        created_at=advice.created_at,
    )
