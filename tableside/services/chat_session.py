"""
AI Chat Session Service

Runs one assistant turn end to end:
    1. Resolve the caller's session (or open a new one)
    2. Append the user message
    3. Build the system prompt from the active menu and session context
    4. Send the prompt plus the most recent messages to the assistant
    5. Append the reply (or a fixed fallback) and cap the stored history
    6. Extract menu recommendations from the reply

Stored history and the model's context window are bounded separately:
the session keeps the last ``chat_history_limit`` messages, the model
sees the last ``chat_context_window`` of them.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.config import get_settings
from tableside.models import AISession, MenuItem, MessageRole
from tableside.services.assistant import BaseAssistantService

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I apologize, but I cannot provide a response at this time."
RECOMMENDATION_REASONS = ["Mentioned in conversation"]
DEFAULT_INTENT = "general"
DEFAULT_CONFIDENCE = 0.9


@dataclass
class ChatTurn:
    """Outcome of one chat turn, shaped for the API response."""
    message: str
    recommendations: list[dict]
    session_id: str
    intent: str = DEFAULT_INTENT
    confidence: float = DEFAULT_CONFIDENCE
    used_fallback: bool = False
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "recommendations": self.recommendations,
            "session_id": self.session_id,
            "intent": self.intent,
            "confidence": self.confidence,
        }


# =============================================================================
# MESSAGE BOOKKEEPING
# =============================================================================

def make_message(role: MessageRole, content: str, metadata: Optional[dict] = None) -> dict:
    return {
        "id": f"msg_{uuid.uuid4().hex}",
        "role": role.value,
        "content": content[:4000],
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "metadata": metadata or {},
    }


def append_message(
    session: AISession,
    role: MessageRole,
    content: str,
    metadata: Optional[dict] = None,
    limit: Optional[int] = None,
) -> dict:
    """
    Append a message and keep only the newest ``limit`` messages.

    The list is rebuilt rather than mutated so the JSON column is flagged dirty.
    """
    limit = limit or get_settings().chat_history_limit
    message = make_message(role, content, metadata)
    messages = list(session.messages or []) + [message]
    session.messages = messages[-limit:]
    return message


def recent_messages(session: AISession, limit: Optional[int] = None) -> list[dict]:
    limit = limit or get_settings().chat_context_window
    return list(session.messages or [])[-limit:]


def merge_context(session: AISession, updates: dict) -> dict:
    """Shallow-merge ``updates`` into the session context, ignoring None values."""
    context = dict(session.context or {})
    context.update({k: v for k, v in updates.items() if v is not None})
    session.context = context
    return context


# =============================================================================
# PROMPT
# =============================================================================

def _format_menu_line(item: MenuItem) -> str:
    line = f"- {item.name}: {item.description} (${item.price:.2f}) [{item.category}]"
    if item.tags:
        line += f" Tags: {', '.join(item.tags)}"
    return line


def build_system_prompt(menu_items: list[MenuItem], context: dict) -> str:
    """System prompt: role, menu, diner context and reply guidelines."""
    settings = get_settings()
    menu_block = "\n".join(_format_menu_line(item) for item in menu_items) or "- (menu unavailable)"

    current_order = context.get("current_order") or []
    order_names = ", ".join(str(line.get("name", "item")) for line in current_order) or "Empty"
    preferences = ", ".join(context.get("preferences") or []) or "None specified"
    dietary = ", ".join(context.get("dietary_restrictions") or []) or "None"
    budget = context.get("budget")
    budget_text = f"${budget:.2f}" if budget is not None else "No limit"

    return (
        f"You are a friendly and knowledgeable restaurant assistant for {settings.restaurant_name}. "
        "Help customers explore the menu, make recommendations and answer questions "
        "about dishes. Only recommend items that appear on the menu below, and refer "
        "to them by their exact names.\n\n"
        f"MENU:\n{menu_block}\n\n"
        "CUSTOMER CONTEXT:\n"
        f"- Restaurant: {context.get('restaurant_id') or settings.default_restaurant_id}\n"
        f"- Current order: {order_names}\n"
        f"- Preferences: {preferences}\n"
        f"- Dietary restrictions: {dietary}\n"
        f"- Budget: {budget_text}\n"
        f"- Party size: {context.get('party_size') or 1}\n\n"
        "GUIDELINES:\n"
        "- Be concise and conversational\n"
        "- Respect dietary restrictions and budget when suggesting items\n"
        "- Mention prices when recommending\n"
        "- If asked about something not on the menu, say so politely"
    )


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

def extract_recommendations(reply: str, menu_items: list[MenuItem]) -> list[dict]:
    """
    Menu items whose name appears in ``reply`` as a whole word/phrase.

    Matching is case-insensitive and the name is regex-escaped, so
    "Pie" does not match "Pierogi" and names with punctuation are literal.
    """
    confidence = get_settings().chat_recommendation_confidence
    recommendations = []
    for item in menu_items:
        pattern = re.compile(rf"\b{re.escape(item.name)}\b", re.IGNORECASE)
        if pattern.search(reply):
            recommendations.append({
                "menu_item_id": item.id,
                "name": item.name,
                "description": item.description,
                "price": item.price,
                "image_url": item.image_url,
                "confidence": confidence,
                "reasons": list(RECOMMENDATION_REASONS),
            })
    return recommendations


# =============================================================================
# SESSION LOOKUP
# =============================================================================

async def get_active_session(
    db: AsyncSession,
    session_id: Optional[str],
    user_id: Optional[int] = None,
) -> Optional[AISession]:
    """
    Active session owned by ``user_id``.

    Account sessions match only their account and anonymous sessions match
    only anonymous callers; any other pairing is reported as missing.
    """
    if not session_id:
        return None
    owner = AISession.user_id.is_(None) if user_id is None else AISession.user_id == user_id
    result = await db.execute(
        select(AISession).where(
            AISession.session_id == session_id,
            AISession.is_active.is_(True),
            owner,
        )
    )
    return result.scalar_one_or_none()


async def open_session(
    db: AsyncSession,
    context: Optional[dict] = None,
    user_id: Optional[int] = None,
    client_metadata: Optional[dict] = None,
) -> AISession:
    settings = get_settings()
    initial = {k: v for k, v in (context or {}).items() if v is not None}
    initial.setdefault("restaurant_id", settings.default_restaurant_id)

    session = AISession(
        user_id=user_id,
        messages=[],
        context=initial,
        client_metadata=client_metadata or {},
        is_active=True,
    )
    db.add(session)
    await db.flush()
    logger.info(f"💬 Opened AI session {session.session_id}")
    return session


async def active_menu(db: AsyncSession, restaurant_id: Optional[str] = None) -> list[MenuItem]:
    query = select(MenuItem).where(MenuItem.active.is_(True))
    if restaurant_id:
        query = query.where(MenuItem.restaurant_id == restaurant_id)
    result = await db.execute(query.order_by(MenuItem.category, MenuItem.sort_order, MenuItem.name))
    return list(result.scalars().all())


# =============================================================================
# CHAT TURN
# =============================================================================

async def run_chat_turn(
    db: AsyncSession,
    assistant: BaseAssistantService,
    message: str,
    session_id: Optional[str] = None,
    context: Optional[dict] = None,
    user_id: Optional[int] = None,
    client_metadata: Optional[dict] = None,
) -> ChatTurn:
    """
    Handle one user message and commit the updated session.

    An unknown, deactivated or foreign ``session_id`` starts a fresh
    session rather than failing, so clients can always recover by sending
    their old id.
    """
    session = await get_active_session(db, session_id, user_id)
    if session is None:
        if session_id:
            logger.info(f"AI session {session_id} not found or inactive, opening a new one")
        session = await open_session(db, context, user_id, client_metadata)

    restaurant_id = (session.context or {}).get("restaurant_id")
    menu_items = await active_menu(db, restaurant_id)

    append_message(session, MessageRole.USER, message)

    prompt = build_system_prompt(menu_items, session.context or {})
    window = [
        {"role": m["role"], "content": m["content"]}
        for m in recent_messages(session)
    ]
    result = await assistant.complete([{"role": "system", "content": prompt}] + window)

    used_fallback = not (result.success and result.content)
    if used_fallback:
        logger.warning(
            f"Assistant unavailable for session {session.session_id}: "
            f"{result.error_code} - {result.error_message}"
        )
        reply = FALLBACK_REPLY
    else:
        reply = result.content

    recommendations = extract_recommendations(reply, menu_items)
    append_message(
        session,
        MessageRole.ASSISTANT,
        reply,
        metadata={
            "menu_item_ids": [r["menu_item_id"] for r in recommendations],
            "confidence": DEFAULT_CONFIDENCE,
            "intent": DEFAULT_INTENT,
        },
    )

    await db.commit()

    logger.info(
        f"💬 AI turn - session={session.session_id} "
        f"recommendations={len(recommendations)} fallback={used_fallback}"
    )

    return ChatTurn(
        message=reply,
        recommendations=recommendations,
        session_id=session.session_id,
        used_fallback=used_fallback,
        metadata={"attempts": result.attempts, "model": result.model},
    )


# =============================================================================
# RETENTION
# =============================================================================

async def purge_expired_sessions(db: AsyncSession, retention_days: Optional[int] = None) -> int:
    """Delete sessions untouched for longer than the retention window. Returns rows deleted."""
    days = retention_days or get_settings().ai_session_retention_days
    cutoff = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=days)
    result = await db.execute(delete(AISession).where(AISession.updated_at < cutoff))
    await db.commit()
    purged = result.rowcount or 0
    if purged:
        logger.info(f"🧹 Purged {purged} AI sessions idle since {cutoff:%Y-%m-%d}")
    return purged
