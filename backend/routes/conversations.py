#  Voice Tutor - Conversation Routes
#
#  Start a realtime voice conversation, end it with results, and list
#  past conversations.
#
#  Depends on: container.py, services/conversations.py, middleware/auth.py, rate_limit.py
#  Used by:    app.py

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, HTTPException, Query

from backend.config import CONVERSATION_PAGE_SIZE
from backend.container import Container
from backend.middleware.auth import get_current_user, get_identity
from backend.models.enums import OperationClass
from backend.models.schemas import (
    ConversationEndRequest,
    ConversationEndResponse,
    ConversationOut,
    ConversationPage,
    ConversationStartOut,
)
from backend.rate_limit import RateLimit
from backend.services.conversations import ConversationService
from backend.services.tokens import Identity

router = APIRouter(tags=["conversations"])


@router.post(
    "/conversation",
    dependencies=[Depends(RateLimit(OperationClass.CONVERSATION))],
)
@inject
async def start_conversation(
    user: dict = Depends(get_current_user),
    conversations: ConversationService = Depends(Provide[Container.conversations]),
) -> ConversationStartOut:
    """Create a conversation and an ephemeral realtime session token for it."""
    try:
        result = await conversations.start_conversation(user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ConversationStartOut(**result)


@router.patch(
    "/conversation/{conversation_id}/end",
    dependencies=[Depends(RateLimit(OperationClass.POINTS))],
)
@inject
async def end_conversation(
    conversation_id: str,
    body: ConversationEndRequest,
    identity: Identity = Depends(get_identity),
    conversations: ConversationService = Depends(Provide[Container.conversations]),
) -> ConversationEndResponse:
    """Record the results of a finished conversation and award its points."""
    updated = await conversations.end_conversation(
        identity.user_id,
        conversation_id,
        duration_minutes=body.duration_minutes,
        topic=body.topic,
        points_earned=body.points_earned or 0,
        transcript=body.transcript,
        had_errors=bool(body.had_errors),
        error_log=body.error_log,
    )
    return ConversationEndResponse(
        message="Conversation ended successfully",
        conversation=ConversationOut(**updated),
    )


@router.get("/conversations", dependencies=[Depends(RateLimit())])
@inject
async def list_conversations(
    limit: int = Query(default=CONVERSATION_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    identity: Identity = Depends(get_identity),
    conversations: ConversationService = Depends(Provide[Container.conversations]),
) -> ConversationPage:
    """Completed conversations, most recent first."""
    return ConversationPage(**await conversations.list_conversations(
        identity.user_id, limit=limit, offset=offset,
    ))
