"""
AI Assistant Endpoints

    POST   /api/ai/chat                           - One chat turn
    GET    /api/ai/sessions/{session_id}          - Session history
    PATCH  /api/ai/sessions/{session_id}/context  - Merge-update context
    DELETE /api/ai/sessions/{session_id}          - Deactivate a session
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import get_optional_user
from tableside.core.config import get_settings
from tableside.core.rate_limit import AI_LIMIT, limiter
from tableside.database import get_db
from tableside.models import Restaurant, User
from tableside.schemas import AISessionResponse, ChatContext, ChatRequest, ChatResponse
from tableside.services.assistant import BaseAssistantService, get_assistant_service
from tableside.services.chat_session import get_active_session, merge_context, run_chat_turn

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/ai", tags=["AI Assistant"])


def _client_metadata(request: Request) -> dict:
    user_agent = request.headers.get("user-agent", "")
    return {
        "user_agent": user_agent[:500],
        "ip_address": request.client.host if request.client else None,
        "device_type": "mobile" if "mobile" in user_agent.lower() else "desktop",
    }


async def _session_or_404(db: AsyncSession, session_id: str, user: Optional[User]):
    session = await get_active_session(db, session_id, user.id if user else None)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.post("/chat")
@limiter.limit(AI_LIMIT)
async def chat(
    request: Request,
    payload: ChatRequest,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    assistant: BaseAssistantService = Depends(get_assistant_service),
) -> dict[str, Any]:
    context = payload.context.model_dump() if payload.context else {}
    restaurant = await db.get(Restaurant, context.get("restaurant_id") or settings.default_restaurant_id)
    if restaurant is not None and (restaurant.settings or {}).get("ai_chat_enabled") is False:
        raise HTTPException(status_code=403, detail="AI chat is disabled for this restaurant")

    turn = await run_chat_turn(
        db,
        assistant,
        payload.message,
        session_id=payload.session_id,
        context=context,
        user_id=user.id if user else None,
        client_metadata=_client_metadata(request),
    )
    return ChatResponse(**turn.to_dict()).model_dump(mode="json")


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    session = await _session_or_404(db, session_id, user)
    return {"success": True, "data": AISessionResponse.model_validate(session).model_dump(mode="json")}


@router.patch("/sessions/{session_id}/context")
async def update_session_context(
    session_id: str,
    payload: ChatContext,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    session = await _session_or_404(db, session_id, user)
    context = merge_context(session, payload.model_dump(exclude_unset=True))
    await db.commit()
    return {"success": True, "data": {"session_id": session.session_id, "context": context}}


@router.delete("/sessions/{session_id}")
async def end_session(
    session_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    session = await _session_or_404(db, session_id, user)
    session.is_active = False
    await db.commit()
    logger.info(f"💬 AI session {session_id} deactivated")
    return {"success": True, "message": "Session ended"}
