"""
Gmail adapter.

Fetches unread messages (one list call with a provider-side query, then a
detail call per message) and marks messages as read. Returns loosely
normalized dicts; the refresh orchestrator maps them onto the cache schema.
"""

import base64
import logging
import re
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Optional

from tabsy.services.google_auth import GoogleAuth, translate_google_error
from tabsy.services.text_cleaner import html_to_text
from tabsy.timeutil import to_naive_utc

logger = logging.getLogger(__name__)

UNREAD_QUERY = "is:unread"


def _decode(data: str) -> str:
    return base64.urlsafe_b64decode(data).decode("utf-8", errors="ignore")


def extract_body(payload: dict) -> str:
    """
    Extract a plain-text body from a Gmail message payload.

    Walks multipart messages recursively; text/plain parts win over
    text/html, which is converted with BeautifulSoup when it is all there is.
    """
    plain_parts = []
    html_parts = []

    def walk(part):
        mime_type = part.get("mimeType", "")
        if "parts" in part:
            for child in part["parts"]:
                walk(child)
            return
        data = part.get("body", {}).get("data", "")
        if not data:
            return
        if mime_type == "text/plain":
            plain_parts.append(_decode(data))
        elif mime_type == "text/html":
            html_parts.append(_decode(data))

    walk(payload)

    if plain_parts:
        return "\n".join(plain_parts).strip()
    if html_parts:
        return html_to_text("\n".join(html_parts))
    return ""


def parse_message(msg: dict) -> dict:
    """
    Flatten a Gmail "full" message resource.

    Returns:
        Dictionary with 'id', 'thread_id', 'subject', 'from', 'date',
        'snippet', 'body' and 'labels' keys (raw header values)
    """
    headers = msg.get("payload", {}).get("headers", [])
    subject = sender = date = None

    for h in headers:
        name = h.get("name", "")
        if name == "Subject":
            subject = h.get("value")
        elif name == "From":
            sender = h.get("value")
        elif name == "Date":
            date = h.get("value")

    return {
        "id": msg.get("id", ""),
        "thread_id": msg.get("threadId"),
        "subject": subject or "",
        "from": sender or "",
        "date": date or "",
        "snippet": msg.get("snippet", ""),
        "body": extract_body(msg.get("payload", {})),
        "labels": msg.get("labelIds", [])
    }


class GmailAdapter:
    """Thin wrapper over the Gmail v1 API for the signed-in user."""

    def __init__(self, auth: GoogleAuth):
        self._auth = auth

    def _service(self):
        return self._auth.build("gmail", "v1")

    def list_unread(self, limit: int = 10) -> list[dict]:
        """
        Fetch unread messages with headers, snippet and body.

        A message whose detail call fails is skipped and logged; a failing
        list call (or missing credentials) raises.
        """
        try:
            service = self._service()
            results = service.users().messages().list(
                userId="me",
                q=UNREAD_QUERY,
                maxResults=limit
            ).execute()
        except Exception as e:
            raise translate_google_error(e) from e

        messages = []
        for stub in results.get("messages", []):
            try:
                msg = service.users().messages().get(
                    userId="me",
                    id=stub["id"],
                    format="full"
                ).execute()
            except Exception as e:
                logger.warning("Skipping Gmail message %s: %s", stub.get("id"), e)
                continue
            messages.append(parse_message(msg))

        logger.info("Fetched %d unread messages from Gmail", len(messages))
        return messages

    def mark_as_read(self, message_id: str) -> None:
        """Remove the UNREAD label from a message."""
        try:
            self._service().users().messages().modify(
                userId="me",
                id=message_id,
                body={"removeLabelIds": ["UNREAD"]}
            ).execute()
        except Exception as e:
            raise translate_google_error(e) from e


# ============ HEADER PARSING ============

SENDER_PATTERN = re.compile(r'^(.+?)\s*<(.+?)>$')


def parse_sender(from_header: str) -> tuple[str, str]:
    """
    Split a From header into (display name, address).

    '"Jane Doe" <jane@example.com>' → ("Jane Doe", "jane@example.com");
    a bare address is returned as both name and address.
    """
    from_header = (from_header or "").strip()
    match = SENDER_PATTERN.match(from_header)
    if match:
        return match.group(1).strip().replace('"', ''), match.group(2).strip()
    return from_header, from_header


def parse_email_date(date_header: str) -> Optional[datetime]:
    """Parse an RFC 2822 Date header into naive UTC, or None."""
    if not date_header:
        return None
    try:
        parsed = parsedate_to_datetime(date_header)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    return to_naive_utc(parsed)
