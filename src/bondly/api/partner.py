"""Partner endpoints, addressed by the share token."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bondly.db import get_session
from bondly.services import sessions as session_service
from bondly.stream import EventStream

from .deps import get_event_stream
from .schemas import CamelModel, Submission

router = APIRouter(prefix="/partner", tags=["partner"])


class InvitationResponse(CamelModel):
    session_id: str
    creator_name: str
    partner_name: str | None
    status: str


class PartnerSubmitted(CamelModel):
    session_id: str
    response_id: str
    user_id: str
    status: str


@router.get("/{share_token}", response_model=InvitationResponse)
async def get_invitation(
    share_token: str,
    db: AsyncSession = Depends(get_session),
) -> InvitationResponse:
    """What the partner sees before answering."""
    session = await session_service.get_invitation(db, share_token)
    return InvitationResponse(
        session_id=session.id,
        creator_name=session.creator_name,
        partner_name=session.partner_name,
        status=session.status,
    )


@router.post("/{share_token}/responses", response_model=PartnerSubmitted)
async def submit_response(
    share_token: str,
    data: Submission,
    db: AsyncSession = Depends(get_session),
    events: EventStream = Depends(get_event_stream),
) -> PartnerSubmitted:
    """Record the partner's side; the session becomes ``completed``."""
    session, response = await session_service.submit_partner_response(
        db,
        events,
        share_token,
        situation=data.situation,
        feelings=data.feelings,
        emotions=data.emotions,
        user_id=data.user_id,
    )
    return PartnerSubmitted(
        session_id=session.id,
        response_id=response.id,
        user_id=response.user_id,
        status=session.status,
    )
