"""
Assistant endpoints.

The canned endpoints (daily summary, schedule optimization, urgent items)
send a fixed request plus a snapshot of the user's cached calendar, unread
mail and ranked tasks. Chat keeps a persisted transcript per conversation.
"""

from datetime import datetime, timedelta
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from tabsy.api.deps import get_agent, get_calendar, get_email, get_settings, get_user_id
from tabsy.api.responses import ok
from tabsy.config import Settings
from tabsy.database import get_db
from tabsy.services import agent as agent_prompts
from tabsy.services import chat_service, prioritization, task_service
from tabsy.services.agent import ConversationalAgent
from tabsy.services.calendar_tools import day_bounds
from tabsy.services.refresh import CalendarRefresher, EmailRefresher

router = APIRouter(prefix="/agent", tags=["Agent"])


# ============ Schemas ============

class HistoryEntry(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: Optional[str] = None
    history: Optional[list[HistoryEntry]] = None


class ChatResponse(BaseModel):
    conversation_id: int
    response: str


class ConversationResponse(BaseModel):
    id: int
    archived: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    message_count: int
    last_message: Optional[str]


# ============ CANNED REQUESTS ============

def _workspace_context(
    db: Session,
    user_id: str,
    calendar: CalendarRefresher,
    email: EmailRefresher,
    days: int = 1
) -> str:
    """Cached events from today on, unread mail and ranked open tasks."""
    now = calendar.clock()
    start, _ = day_bounds(now.date())
    _, end = day_bounds(now.date() + timedelta(days=days - 1))

    events = calendar.get_events_in_range(
        db, user_id, start=start, end=end, overlapping=True
    )
    emails = email.get_unread(db, user_id)
    ranked = prioritization.prioritize(task_service.list_open_tasks(db, user_id), now)

    return agent_prompts.build_context(events, emails, ranked)


@router.post("/daily-summary")
def daily_summary(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    calendar: CalendarRefresher = Depends(get_calendar),
    email: EmailRefresher = Depends(get_email),
    agent: ConversationalAgent = Depends(get_agent)
):
    """Summary of today: priorities, urgent mail, task order and focus time."""
    context = _workspace_context(db, user_id, calendar, email)
    text = agent.generate(agent_prompts.compose_prompt(agent_prompts.DAILY_SUMMARY_PROMPT, context))
    return ok({"summary": text})


@router.post("/optimize-schedule")
def optimize_schedule(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    calendar: CalendarRefresher = Depends(get_calendar),
    email: EmailRefresher = Depends(get_email),
    agent: ConversationalAgent = Depends(get_agent)
):
    """Suggestions for focus blocks, buffers and task placement this week."""
    context = _workspace_context(db, user_id, calendar, email, days=7)
    text = agent.generate(agent_prompts.compose_prompt(agent_prompts.OPTIMIZE_SCHEDULE_PROMPT, context))
    return ok({"suggestions": text})


@router.post("/urgent-items")
def urgent_items(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    calendar: CalendarRefresher = Depends(get_calendar),
    email: EmailRefresher = Depends(get_email),
    agent: ConversationalAgent = Depends(get_agent)
):
    """Meetings, mail and tasks that need attention in the next few hours."""
    context = _workspace_context(db, user_id, calendar, email)
    text = agent.generate(agent_prompts.compose_prompt(agent_prompts.URGENT_ITEMS_PROMPT, context))
    return ok({"urgent_items": text})


# ============ CHAT ============

@router.post("/chat")
def chat(
    payload: ChatRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    agent: ConversationalAgent = Depends(get_agent),
    settings: Settings = Depends(get_settings)
):
    """
    Send a message to the assistant.

    Without a client-side `history`, the last messages of the active
    conversation are used as context.
    """
    history = [entry.model_dump() for entry in payload.history or []]
    result = chat_service.chat(
        db, user_id, agent,
        message=payload.message,
        history=history,
        history_limit=settings.CHAT_HISTORY_LIMIT,
        archive_after_days=settings.CHAT_ARCHIVE_AFTER_DAYS
    )
    return ok(ChatResponse(conversation_id=result["conversation_id"], response=result["response"]))


@router.post("/chat/new")
def new_conversation(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    """Start a new conversation thread; later chat turns go to it."""
    conversation = chat_service.start_new_conversation(db, user_id)
    return ok({"conversation_id": conversation.id})


@router.get("/conversations")
def list_conversations(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    conversations = chat_service.list_conversations(db, user_id, limit)
    return ok([ConversationResponse(**c) for c in conversations])


@router.delete("/conversations/{conversation_id}")
def delete_conversation(
    conversation_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    chat_service.delete_conversation(db, user_id, conversation_id)
    return ok({"conversation_id": conversation_id, "deleted": True})


@router.get("/chat/stats")
def chat_stats(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    return ok(chat_service.conversation_stats(db, user_id))
