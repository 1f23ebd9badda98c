"""
Email endpoints.

Lists are served from the local cache of unread Gmail messages (refreshed
when stale). Priority filtering, summaries and reply drafts are keyword
heuristics over the cached rows.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from tabsy.api.deps import get_email, get_user_id
from tabsy.api.responses import ok
from tabsy.database import get_db
from tabsy.errors import ValidationError
from tabsy.services import cache_repository, email_insights
from tabsy.services.refresh import EmailRefresher

router = APIRouter(prefix="/emails", tags=["Emails"])

PRIORITY_LEVELS = ("high", "medium", "low")


# ============ Schemas ============

class EmailResponse(BaseModel):
    """Cached email for list views."""
    id: int
    gmail_message_id: str
    thread_id: Optional[str]
    subject: Optional[str]
    sender: Optional[str]
    sender_name: Optional[str]
    snippet: Optional[str]
    received_at: datetime
    is_read: bool
    priority: Optional[str]
    labels: list[str] = Field(default_factory=list, validation_alias="label_list")

    # Keyword heuristic, computed per request
    priority_level: Optional[str] = None
    priority_reason: Optional[str] = None

    class Config:
        from_attributes = True


class EmailDetailResponse(EmailResponse):
    """Cached email including its body."""
    body_text: Optional[str]


class DraftReplyRequest(BaseModel):
    tone: str = "professional"
    context: Optional[str] = None


def _serialize(email, model=EmailResponse):
    level = email_insights.analyze_priority(email)
    return model.model_validate(email).model_copy(update={
        "priority_level": level,
        "priority_reason": email_insights.priority_reason(email, level)
    })


# ============ LIST ENDPOINTS ============

@router.get("")
def list_emails(
    force_refresh: bool = Query(False, alias="forceRefresh"),
    unread_only: bool = Query(False, alias="unreadOnly"),
    priority: Optional[str] = Query(None, description="Filter by heuristic priority: high, medium, low"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    email: EmailRefresher = Depends(get_email)
):
    """
    Cached emails, newest first (at most 100).

    **Example:**
    ```
    GET /api/v1/emails?unreadOnly=true&priority=high
    ```
    """
    if priority is not None and priority not in PRIORITY_LEVELS:
        raise ValidationError(f"Invalid priority '{priority}'. Expected one of: high, medium, low")

    if unread_only:
        emails = email.get_unread(db, user_id, force_refresh=force_refresh)
    else:
        emails = email.get_collection(db, user_id, force_refresh=force_refresh)

    distribution = email_insights.priority_distribution(emails)
    if priority:
        emails = [e for e in emails if email_insights.analyze_priority(e) == priority]

    return ok(
        [_serialize(e) for e in emails],
        count=len(emails),
        priorities=distribution
    )


@router.get("/unread")
def unread_emails(
    force_refresh: bool = Query(False, alias="forceRefresh"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    email: EmailRefresher = Depends(get_email)
):
    """Cached unread emails, newest first."""
    emails = email.get_unread(db, user_id, force_refresh=force_refresh)
    return ok([_serialize(e) for e in emails], count=len(emails))


@router.get("/summarize")
def summarize(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    email: EmailRefresher = Depends(get_email)
):
    """Inbox overview with action items for high and medium priority mail."""
    emails = email.get_unread(db, user_id)
    return ok(email_insights.summarize_emails(emails))


@router.get("/search")
def search(
    q: str = Query(..., min_length=1, description="Text to look for in subject, sender or body"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    email: EmailRefresher = Depends(get_email)
):
    """Search the cached emails."""
    email.ensure_fresh(db, user_id)
    emails = cache_repository.search_emails(db, user_id, q)
    return ok([_serialize(e) for e in emails], count=len(emails))


# ============ SINGLE EMAIL ============

@router.get("/{message_id}")
def get_email_detail(
    message_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    email: EmailRefresher = Depends(get_email)
):
    """Get a cached email by its Gmail id."""
    return ok(_serialize(email.get_email(db, user_id, message_id), EmailDetailResponse))


@router.post("/{message_id}/draft-reply")
def draft_reply(
    message_id: str,
    payload: Optional[DraftReplyRequest] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    email: EmailRefresher = Depends(get_email)
):
    """Draft a reply in the requested tone (professional, friendly, formal)."""
    payload = payload or DraftReplyRequest()
    if payload.tone not in email_insights.REPLY_TONES:
        raise ValidationError(
            f"Invalid tone '{payload.tone}'. Expected one of: {', '.join(email_insights.REPLY_TONES)}"
        )

    cached = email.get_email(db, user_id, message_id)
    draft = email_insights.draft_reply(cached, payload.tone, payload.context)
    return ok({"email_id": message_id, **draft})


@router.post("/{message_id}/mark-read")
def mark_read(
    message_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    email: EmailRefresher = Depends(get_email)
):
    """Mark an email as read in Gmail and in the cache."""
    updated = email.mark_as_read(db, user_id, message_id)
    return ok(_serialize(updated))
