"""
Chat transcripts and the chat turn.

A chat turn:
1. Archive conversations idle for longer than the archive window
2. Reuse the active conversation (or create one)
3. Load up to the last 10 prior messages as context
4. Persist the user message, call the agent, persist the reply
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tabsy.errors import NotFoundError, ValidationError
from tabsy.models.chat import ChatConversation, ChatMessage
from tabsy.timeutil import utcnow

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant")
FALLBACK_REPLY = "I processed your request."


def build_chat_prompt(history: list[dict], message: str) -> str:
    """
    Compose the single prompt sent to the agent.

    Args:
        history: Prior messages as {'role', 'content'} dicts, oldest first
        message: Current user message

    Returns:
        The message alone when there is no history, otherwise the formatted
        transcript followed by the current message
    """
    if not history:
        return message

    transcript = "\n\n".join(
        f"{'User' if entry['role'] == 'user' else 'Assistant'}: {entry['content']}"
        for entry in history
    )
    return f"Previous conversation:\n{transcript}\n\nCurrent message:\n{message}"


# ============ CONVERSATIONS ============

def archive_idle_conversations(
    db: Session,
    user_id: str,
    after_days: int = 30,
    now: datetime = None
) -> int:
    """Mark conversations idle for more than `after_days` as archived."""
    cutoff = (now or utcnow()) - timedelta(days=after_days)

    count = db.query(ChatConversation).filter(
        ChatConversation.user_id == user_id,
        ChatConversation.archived.is_(False),
        ChatConversation.updated_at < cutoff
    ).update({ChatConversation.archived: True}, synchronize_session="fetch")
    db.commit()

    if count:
        logger.info("Archived %d idle conversations for %s", count, user_id)
    return count


def get_active_conversation(db: Session, user_id: str) -> Optional[ChatConversation]:
    return db.query(ChatConversation).filter(
        ChatConversation.user_id == user_id,
        ChatConversation.archived.is_(False)
    ).order_by(
        ChatConversation.updated_at.desc(),
        ChatConversation.id.desc()
    ).first()


def get_or_create_active_conversation(db: Session, user_id: str) -> ChatConversation:
    """Most recently used non-archived conversation, created if there is none."""
    conversation = get_active_conversation(db, user_id)
    if conversation:
        return conversation
    return start_new_conversation(db, user_id)


def start_new_conversation(db: Session, user_id: str) -> ChatConversation:
    """
    Start a fresh thread.

    The new conversation has the newest updated_at, so it becomes the
    active one for the next chat turn.
    """
    conversation = ChatConversation(user_id=user_id)
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    logger.info("Started new conversation %s", conversation.id)
    return conversation


def add_message(
    db: Session,
    conversation: ChatConversation,
    role: str,
    content: str,
    now: datetime = None
) -> ChatMessage:
    """Append a message and bump the conversation's updated_at."""
    if role not in ROLES:
        raise ValidationError(f"Invalid role '{role}'")

    now = now or utcnow()
    message = ChatMessage(
        conversation_id=conversation.id,
        role=role,
        content=content,
        created_at=now
    )
    db.add(message)
    conversation.updated_at = now
    db.commit()
    db.refresh(message)
    return message


def get_history(db: Session, conversation_id: int, limit: int = 10) -> list[dict]:
    """Last `limit` messages of a conversation, oldest first."""
    latest = db.query(ChatMessage).filter(
        ChatMessage.conversation_id == conversation_id
    ).order_by(ChatMessage.id.desc()).limit(limit).all()

    return [
        {"role": message.role, "content": message.content}
        for message in reversed(latest)
    ]


def list_conversations(db: Session, user_id: str, limit: int = 10) -> list[dict]:
    """Recent conversations with a preview of their last message."""
    conversations = db.query(ChatConversation).filter(
        ChatConversation.user_id == user_id
    ).order_by(
        ChatConversation.updated_at.desc(),
        ChatConversation.id.desc()
    ).limit(limit).all()

    result = []
    for conversation in conversations:
        last = conversation.messages[-1] if conversation.messages else None
        result.append({
            "id": conversation.id,
            "archived": conversation.archived,
            "created_at": conversation.created_at,
            "updated_at": conversation.updated_at,
            "message_count": len(conversation.messages),
            "last_message": last.content if last else None
        })
    return result


def delete_conversation(db: Session, user_id: str, conversation_id: int) -> None:
    """Delete a conversation and all of its messages."""
    conversation = db.query(ChatConversation).filter(
        ChatConversation.id == conversation_id,
        ChatConversation.user_id == user_id
    ).first()

    if not conversation:
        raise NotFoundError(f"Conversation with ID {conversation_id} not found")

    db.delete(conversation)
    db.commit()
    logger.info("Deleted conversation %s", conversation_id)


def conversation_stats(db: Session, user_id: str) -> dict:
    total_conversations = db.query(func.count(ChatConversation.id)).filter(
        ChatConversation.user_id == user_id
    ).scalar()

    counts = dict(
        db.query(ChatMessage.role, func.count(ChatMessage.id))
        .join(ChatConversation, ChatMessage.conversation_id == ChatConversation.id)
        .filter(ChatConversation.user_id == user_id)
        .group_by(ChatMessage.role)
        .all()
    )

    return {
        "total_conversations": total_conversations,
        "total_messages": sum(counts.values()),
        "user_messages": counts.get("user", 0),
        "assistant_messages": counts.get("assistant", 0)
    }


# ============ CHAT TURN ============

def chat(
    db: Session,
    user_id: str,
    agent,
    message: str,
    history: list[dict] = None,
    history_limit: int = 10,
    archive_after_days: int = 30
) -> dict:
    """
    Run one chat turn and persist both sides of it.

    Args:
        agent: Anything with generate(prompt) -> str
        history: Optional client-side transcript; when empty, the stored
            history of the active conversation is used

    Returns:
        Dictionary with 'conversation_id', 'response' and 'prompt'
    """
    if not message or not message.strip():
        raise ValidationError("Message is required")

    archive_idle_conversations(db, user_id, archive_after_days)
    conversation = get_or_create_active_conversation(db, user_id)

    context = list(history or [])[-history_limit:]
    if not context:
        context = get_history(db, conversation.id, history_limit)

    add_message(db, conversation, "user", message)

    prompt = build_chat_prompt(context, message)
    reply = agent.generate(prompt) or FALLBACK_REPLY

    add_message(db, conversation, "assistant", reply)
    logger.info("Chat turn stored in conversation %s", conversation.id)

    return {
        "conversation_id": conversation.id,
        "response": reply,
        "prompt": prompt
    }
