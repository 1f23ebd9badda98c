"""
Keyword heuristics over cached emails.

- analyze_priority: high / medium / low from sender and keywords
- summarize_emails: inbox overview with action items
- draft_reply: tone-based reply template
"""

from collections import Counter

# Important keywords that indicate high priority
HIGH_PRIORITY_KEYWORDS = [
    'urgent', 'asap', 'important', 'critical', 'deadline', 'emergency',
    'action required', 'immediate', 'expires', 'due', 'overdue',
    'interview', 'meeting', 'tomorrow', 'today', 'tonight'
]

MEDIUM_PRIORITY_KEYWORDS = [
    'reminder', 'follow up', 'feedback', 'response', 'reply',
    'update', 'status', 'review', 'check', 'confirm'
]

# Sender fragments that always make an email high priority
VIP_SENDERS = [
    'boss@',
    'ceo@',
    'manager@'
]

REPLY_TONES = {
    "professional": ("Hi {name},", "Best regards,\nYour Name"),
    "friendly": ("Hey {name},", "Cheers,\nYour Name"),
    "formal": ("Dear {name},", "Sincerely,\nYour Name"),
}

MAX_SUMMARIZED = 20


def _text(email) -> str:
    return f"{email.subject or ''} {email.snippet or ''} {email.body_text or ''}".lower()


def is_vip_sender(sender: str) -> bool:
    sender = (sender or "").lower()
    return any(fragment in sender for fragment in VIP_SENDERS)


def analyze_priority(email) -> str:
    """
    Classify an email as high, medium or low priority.

    VIP senders and high keywords win, then medium keywords; anything
    else is low.
    """
    if is_vip_sender(email.sender):
        return "high"

    text = _text(email)
    if any(keyword in text for keyword in HIGH_PRIORITY_KEYWORDS):
        return "high"
    if any(keyword in text for keyword in MEDIUM_PRIORITY_KEYWORDS):
        return "medium"
    return "low"


def priority_reason(email, priority: str) -> str:
    """Human-readable explanation for a priority assigned by analyze_priority()."""
    text = f"{email.subject or ''} {email.snippet or ''}".lower()

    if priority == "high":
        if is_vip_sender(email.sender):
            return "VIP sender"
        keyword = next((k for k in HIGH_PRIORITY_KEYWORDS if k in text), None)
        if keyword:
            return f'Contains keyword: "{keyword}"'

    if priority == "medium":
        keyword = next((k for k in MEDIUM_PRIORITY_KEYWORDS if k in text), None)
        if keyword:
            return f'Contains keyword: "{keyword}"'

    return "Standard priority"


def priority_distribution(emails: list) -> dict:
    counts = Counter(analyze_priority(email) for email in emails)
    return {level: counts.get(level, 0) for level in ("high", "medium", "low")}


def display_sender_name(email) -> str:
    """Sender name, falling back to the local part of the address."""
    if email.sender_name and email.sender_name != "Unknown":
        return email.sender_name
    return (email.sender or "").split("@")[0] or "Unknown"


def suggested_action(subject: str) -> str:
    subject = (subject or "").lower()
    if "review" in subject:
        return "Needs review"
    if "reschedule" in subject:
        return "Respond to reschedule request"
    if "urgent" in subject:
        return "Urgent response needed"
    return "Follow up required"


def summarize_emails(emails: list) -> dict:
    """
    Overview of up to 20 emails with action items for high/medium ones.

    Returns:
        Dictionary with 'summary', 'action_items' and 'total_emails'
    """
    emails = emails[:MAX_SUMMARIZED]

    action_items = []
    for email in emails:
        priority = analyze_priority(email)
        if priority not in ("high", "medium"):
            continue
        action_items.append({
            "email_id": email.gmail_message_id,
            "subject": email.subject,
            "action": suggested_action(email.subject),
            "priority": priority
        })

    summary = (
        f"You have {len(emails)} email(s) to review. "
        f"{len(action_items)} require immediate action."
    )
    if action_items:
        summary += " Key items: " + ", ".join(item["subject"] for item in action_items[:3])

    return {
        "summary": summary,
        "action_items": action_items,
        "total_emails": len(emails)
    }


def draft_reply(email, tone: str = "professional", context: str = None) -> dict:
    """
    Template reply to a cached email.

    Returns:
        Dictionary with 'subject' and 'draft_body'
    """
    greeting, closing = REPLY_TONES.get(tone, REPLY_TONES["professional"])
    name = display_sender_name(email)
    subject = email.subject or "No Subject"

    body = (
        f"{greeting.format(name=name)}\n\n"
        f'Thank you for your email regarding "{subject}".\n\n'
        f"{context or 'I have reviewed your message and will get back to you with more details shortly.'}\n\n"
        f"{closing}"
    )

    return {
        "subject": subject if subject.lower().startswith("re:") else f"Re: {subject}",
        "draft_body": body
    }
