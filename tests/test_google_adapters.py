"""Tests for the Gmail / Google helpers: header parsing, body extraction, error mapping."""

import base64
from datetime import datetime
from types import SimpleNamespace

from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from tabsy.errors import AuthenticationError, ProviderError, ValidationError
from tabsy.services.gmail_service import extract_body, parse_email_date, parse_message, parse_sender
from tabsy.services.google_auth import translate_google_error
from tabsy.services.text_cleaner import html_to_text


def _b64(text):
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")


def http_error(status, message="boom"):
    resp = SimpleNamespace(status=status, reason=message)
    return HttpError(resp, f'{{"error": {{"message": "{message}"}}}}'.encode("utf-8"))


class TestHeaders:
    def test_parse_sender_with_name(self):
        assert parse_sender('"Jane Doe" <jane@example.com>') == ("Jane Doe", "jane@example.com")

    def test_parse_sender_bare_address(self):
        assert parse_sender("jane@example.com") == ("jane@example.com", "jane@example.com")

    def test_parse_email_date_to_naive_utc(self):
        assert parse_email_date("Thu, 14 Nov 2024 10:00:00 +0200") == datetime(2024, 11, 14, 8, 0)

    def test_parse_email_date_garbage(self):
        assert parse_email_date("yesterday-ish") is None
        assert parse_email_date("") is None


class TestBody:
    def test_plain_text_part_wins(self):
        payload = {
            "mimeType": "multipart/alternative",
            "parts": [
                {"mimeType": "text/html", "body": {"data": _b64("<p>HTML version</p>")}},
                {"mimeType": "text/plain", "body": {"data": _b64("Plain version")}},
            ]
        }
        assert extract_body(payload) == "Plain version"

    def test_html_only_is_converted(self):
        payload = {"mimeType": "text/html", "body": {"data": _b64("<p>Hello <b>there</b></p><script>x()</script>")}}
        body = extract_body(payload)
        assert "Hello" in body and "there" in body
        assert "<" not in body
        assert "x()" not in body

    def test_html_to_text_strips_style(self):
        assert "color" not in html_to_text("<style>p {color: red}</style><p>Visible</p>")

    def test_parse_message(self):
        msg = {
            "id": "m1",
            "threadId": "t1",
            "snippet": "Preview",
            "labelIds": ["UNREAD", "INBOX"],
            "payload": {
                "mimeType": "text/plain",
                "headers": [
                    {"name": "Subject", "value": "Hi"},
                    {"name": "From", "value": "Jane <jane@example.com>"},
                    {"name": "Date", "value": "Thu, 14 Nov 2024 08:00:00 +0000"},
                ],
                "body": {"data": _b64("Body text")}
            }
        }
        parsed = parse_message(msg)
        assert parsed["id"] == "m1"
        assert parsed["thread_id"] == "t1"
        assert parsed["subject"] == "Hi"
        assert parsed["from"] == "Jane <jane@example.com>"
        assert parsed["body"] == "Body text"
        assert parsed["labels"] == ["UNREAD", "INBOX"]


class TestTranslateGoogleError:
    def test_unauthorized_is_authentication_error(self):
        assert isinstance(translate_google_error(http_error(401, "Invalid Credentials")), AuthenticationError)

    def test_refresh_error_is_authentication_error(self):
        assert isinstance(translate_google_error(RefreshError("invalid_grant")), AuthenticationError)

    def test_other_http_errors_are_provider_errors(self):
        error = translate_google_error(http_error(429, "Rate Limit Exceeded"))
        assert isinstance(error, ProviderError)
        assert "429" in error.message

    def test_network_failure_is_provider_error(self):
        assert isinstance(translate_google_error(ConnectionError("timed out")), ProviderError)

    def test_our_errors_pass_through(self):
        original = ValidationError("bad")
        assert translate_google_error(original) is original
