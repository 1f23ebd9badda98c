"""HTTP tests: envelope, status codes and wiring of every resource under /api/v1."""

from datetime import timedelta

from fastapi.testclient import TestClient

from tabsy.app import create_app
from tabsy.errors import AuthenticationError, ProviderError
from tabsy.timeutil import utcnow

from conftest import RecordingAgent, calendar_item, gmail_message

API = "/api/v1"


class TestHealthAndAuth:
    def test_root_service_info(self, client):
        body = client.get("/").json()
        assert body["success"] is True
        assert body["data"]["health"] == "/api/v1/health"

    def test_health(self, client):
        body = client.get(f"{API}/health").json()
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert body["data"]["googleAuth"] == "authenticated"

    def test_auth_status(self, client, google_auth):
        google_auth.authenticated = False
        body = client.get(f"{API}/auth/status").json()
        assert body["data"]["authenticated"] is False

    def test_login_redirects_to_google(self, client):
        response = client.get(f"{API}/auth/google", follow_redirects=False)
        assert response.status_code in (302, 307)
        assert response.headers["location"].startswith("https://accounts.google.com/")
        assert "api/v1/auth/google/callback" in response.headers["location"]

    def test_callback_exchanges_code_and_returns_to_dashboard(self, client, google_auth):
        response = client.get(f"{API}/auth/google/callback?code=abc", follow_redirects=False)
        assert response.headers["location"] == "http://localhost:3000/dashboard?auth=success"
        assert google_auth.exchanged[0][0] == "abc"

    def test_callback_without_code(self, client):
        response = client.get(f"{API}/auth/google/callback", follow_redirects=False)
        assert response.headers["location"] == "http://localhost:3000/auth/callback?error=no_code"

    def test_logout(self, client, google_auth):
        body = client.delete(f"{API}/auth/logout").json()
        assert body["success"] is True
        assert google_auth.authenticated is False

    def test_unknown_route_uses_envelope(self, client):
        response = client.get(f"{API}/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Not Found"}

    def test_wrong_method_uses_envelope(self, client):
        response = client.put(f"{API}/health")
        assert response.status_code == 405
        assert response.json() == {"success": False, "error": "Method Not Allowed"}
        assert "GET" in response.headers["allow"]


class TestCalendarApi:
    def test_list_events(self, client, calendar_provider):
        calendar_provider.items = [
            calendar_item("b", "2024-11-15T10:00:00Z", title="Later"),
            calendar_item("a", "2024-11-14T10:00:00Z", title="Sooner"),
        ]
        body = client.get(f"{API}/calendar/events").json()

        assert body["success"] is True
        assert body["count"] == 2
        assert [e["title"] for e in body["data"]] == ["Sooner", "Later"]

        client.get(f"{API}/calendar/events")
        assert calendar_provider.list_calls == 1

        client.get(f"{API}/calendar/events?forceRefresh=true")
        assert calendar_provider.list_calls == 2

    def test_authentication_failure_is_401(self, client, calendar_provider):
        calendar_provider.error = AuthenticationError()
        response = client.get(f"{API}/calendar/events")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert "/api/v1/auth/google" in body["error"]

    def test_provider_failure_is_502(self, client, calendar_provider):
        calendar_provider.error = ProviderError("Calendar API quota exceeded")
        response = client.get(f"{API}/calendar/events")
        assert response.status_code == 502
        assert response.json() == {"success": False, "error": "Calendar API quota exceeded"}

    def test_create_event(self, client, calendar_provider):
        response = client.post(f"{API}/calendar/events", json={
            "title": "Review",
            "start": "2024-11-15T10:00:00+01:00",
            "end": "2024-11-15T11:00:00+01:00"
        })
        assert response.status_code == 200
        assert response.json()["data"]["start"]["dateTime"] == "2024-11-15T09:00:00Z"
        assert len(calendar_provider.inserted) == 1

    def test_create_event_missing_fields_is_400(self, client, calendar_provider):
        response = client.post(f"{API}/calendar/events", json={"title": "No times"})
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert calendar_provider.inserted == []

    def test_update_event(self, client, calendar_provider):
        calendar_provider.events_by_id["e1"] = calendar_item("e1", "2024-11-15T09:00:00Z", title="Old")
        response = client.post(f"{API}/calendar/events/e1/update", json={"title": "New"})
        assert response.json()["data"]["summary"] == "New"

    def test_free_slots(self, client, calendar_provider):
        calendar_provider.items = [
            calendar_item("a", "2024-11-14T09:00:00Z", "2024-11-14T12:00:00Z"),
        ]
        body = client.get(f"{API}/calendar/free-slots?date=2024-11-14&duration=60").json()
        assert [(s["start"], s["end"], s["duration"]) for s in body["data"]] == [
            ("2024-11-14T08:00:00", "2024-11-14T09:00:00", 60),
            ("2024-11-14T12:00:00", "2024-11-14T18:00:00", 360),
        ]

    def test_free_slots_count_events_that_started_the_day_before(self, client, calendar_provider):
        calendar_provider.items = [
            {"id": "conf", "summary": "Conference",
             "start": {"date": "2024-11-14"}, "end": {"date": "2024-11-16"}},
            calendar_item("late", "2024-11-14T22:00:00Z", "2024-11-15T12:00:00Z"),
        ]
        body = client.get(f"{API}/calendar/free-slots?date=2024-11-15&duration=30").json()
        assert body == {"success": True, "data": []}

    def test_free_slots_after_overnight_event(self, client, calendar_provider):
        calendar_provider.items = [
            calendar_item("late", "2024-11-14T22:00:00Z", "2024-11-15T12:00:00Z"),
        ]
        body = client.get(f"{API}/calendar/free-slots?date=2024-11-15&duration=30").json()
        assert [(s["start"], s["end"]) for s in body["data"]] == [
            ("2024-11-15T12:00:00", "2024-11-15T18:00:00"),
        ]


class TestEmailApi:
    def _seed(self, email_provider):
        email_provider.messages = [
            gmail_message("m1", subject="Urgent: contract", body="Please sign."),
            gmail_message("m2", subject="Weekly newsletter", labels=("INBOX",)),
            gmail_message("m3", subject="Quick reminder", sender="Sam <sam@example.com>"),
        ]

    def test_list_emails_with_priorities(self, client, email_provider):
        self._seed(email_provider)
        body = client.get(f"{API}/emails").json()

        assert body["count"] == 3
        assert body["priorities"] == {"high": 1, "medium": 1, "low": 1}
        first = next(e for e in body["data"] if e["gmail_message_id"] == "m1")
        assert first["priority_level"] == "high"
        assert first["labels"] == ["UNREAD", "INBOX"]

    def test_priority_filter(self, client, email_provider):
        self._seed(email_provider)
        body = client.get(f"{API}/emails?priority=medium").json()
        assert [e["gmail_message_id"] for e in body["data"]] == ["m3"]

    def test_invalid_priority_is_400(self, client):
        assert client.get(f"{API}/emails?priority=whenever").status_code == 400

    def test_unread(self, client, email_provider):
        self._seed(email_provider)
        body = client.get(f"{API}/emails/unread").json()
        assert {e["gmail_message_id"] for e in body["data"]} == {"m1", "m3"}

    def test_summarize(self, client, email_provider):
        self._seed(email_provider)
        body = client.get(f"{API}/emails/summarize").json()
        assert body["data"]["total_emails"] == 2
        assert len(body["data"]["action_items"]) == 2

    def test_search(self, client, email_provider):
        self._seed(email_provider)
        body = client.get(f"{API}/emails/search?q=contract").json()
        assert [e["gmail_message_id"] for e in body["data"]] == ["m1"]

    def test_detail_and_unknown_id(self, client, email_provider):
        self._seed(email_provider)
        client.get(f"{API}/emails")

        detail = client.get(f"{API}/emails/m1").json()
        assert detail["data"]["body_text"] == "Please sign."

        missing = client.get(f"{API}/emails/nope")
        assert missing.status_code == 404
        assert missing.json()["success"] is False

    def test_draft_reply(self, client, email_provider):
        self._seed(email_provider)
        client.get(f"{API}/emails")
        body = client.post(f"{API}/emails/m3/draft-reply", json={"tone": "friendly"}).json()
        assert body["data"]["subject"] == "Re: Quick reminder"
        assert body["data"]["draft_body"].startswith("Hey Sam,")

    def test_draft_reply_bad_tone(self, client, email_provider):
        self._seed(email_provider)
        client.get(f"{API}/emails")
        response = client.post(f"{API}/emails/m3/draft-reply", json={"tone": "sarcastic"})
        assert response.status_code == 400

    def test_mark_read(self, client, email_provider):
        self._seed(email_provider)
        client.get(f"{API}/emails")
        body = client.post(f"{API}/emails/m1/mark-read").json()
        assert body["data"]["is_read"] is True
        assert email_provider.marked_read == ["m1"]


class TestTaskApi:
    def test_crud(self, client):
        created = client.post(f"{API}/tasks", json={"title": "Write report", "priority": "high"})
        assert created.status_code == 201
        task = created.json()["data"]
        assert task["status"] == "pending"

        listed = client.get(f"{API}/tasks?priority=high").json()
        assert [t["id"] for t in listed["data"]] == [task["id"]]

        updated = client.put(f"{API}/tasks/{task['id']}", json={"status": "completed"}).json()
        assert updated["data"]["completed_at"] is not None
        assert updated["data"]["title"] == "Write report"

        assert client.delete(f"{API}/tasks/{task['id']}").json()["data"]["deleted"] is True
        assert client.get(f"{API}/tasks/{task['id']}").status_code == 404

    def test_missing_title_is_400(self, client):
        response = client.post(f"{API}/tasks", json={"description": "no title"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Title is required"}

    def test_malformed_body_is_400(self, client):
        response = client.post(f"{API}/tasks", json={"title": "x", "due_date": "not a date"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_invalid_status_filter_is_400(self, client):
        assert client.get(f"{API}/tasks?status=done").status_code == 400

    def test_prioritize(self, client):
        soon = (utcnow() + timedelta(minutes=30)).isoformat()
        later = (utcnow() + timedelta(days=10)).isoformat()
        client.post(f"{API}/tasks", json={"title": "Someday", "priority": "low", "due_date": later})
        client.post(f"{API}/tasks", json={"title": "Now", "priority": "high", "due_date": soon})
        client.post(f"{API}/tasks", json={"title": "Done", "status": "completed"})

        body = client.get(f"{API}/tasks/prioritize").json()
        ranked = body["data"]["tasks"]

        assert [r["task"]["title"] for r in ranked] == ["Now", "Someday"]
        assert ranked[0]["urgency_score"] == 100
        assert ranked[0]["recommendation"] == "Do immediately"
        assert body["data"]["summary"].startswith("You have 2 active task(s).")


class TestAgentApi:
    def test_daily_summary(self, client):
        body = client.post(f"{API}/agent/daily-summary").json()
        assert body == {"success": True, "data": {"summary": "Here is your plan for today."}}

    def test_optimize_schedule_and_urgent_items(self, client):
        assert client.post(f"{API}/agent/optimize-schedule").json()["data"]["suggestions"]
        assert client.post(f"{API}/agent/urgent-items").json()["data"]["urgent_items"]

    def test_canned_request_fails_when_calendar_unauthenticated(self, client, calendar_provider):
        calendar_provider.error = AuthenticationError()
        assert client.post(f"{API}/agent/daily-summary").status_code == 401

    def test_chat_flow(self, client):
        first = client.post(f"{API}/agent/chat", json={"message": "Hi"}).json()
        assert first["data"]["response"] == "Here is your plan for today."

        second = client.post(f"{API}/agent/chat", json={"message": "And tomorrow?"}).json()
        assert second["data"]["conversation_id"] == first["data"]["conversation_id"]

        stats = client.get(f"{API}/agent/chat/stats").json()["data"]
        assert stats["total_messages"] == 4

        conversations = client.get(f"{API}/agent/conversations").json()["data"]
        assert conversations[0]["message_count"] == 4

    def test_chat_requires_message(self, client):
        response = client.post(f"{API}/agent/chat", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Message is required"

    def test_new_and_delete_conversation(self, client):
        first = client.post(f"{API}/agent/chat", json={"message": "Hi"}).json()["data"]
        new = client.post(f"{API}/agent/chat/new").json()["data"]
        assert new["conversation_id"] != first["conversation_id"]

        deleted = client.delete(f"{API}/agent/conversations/{first['conversation_id']}")
        assert deleted.json()["data"]["deleted"] is True
        assert client.delete(f"{API}/agent/conversations/{first['conversation_id']}").status_code == 404

    def test_daily_summary_context_includes_event_in_progress(
        self, settings, engine, calendar_provider, email_provider, google_auth
    ):
        agent = RecordingAgent(reply="Summary")
        app = create_app(
            settings,
            engine=engine,
            calendar_provider=calendar_provider,
            email_provider=email_provider,
            agent=agent,
            google_auth=google_auth
        )
        started = utcnow() - timedelta(days=1)
        calendar_provider.items = [
            calendar_item(
                "offsite",
                started.strftime("%Y-%m-%dT%H:%M:%SZ"),
                (utcnow() + timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%SZ"),
                title="Team offsite"
            ),
        ]

        with TestClient(app) as client:
            body = client.post(f"{API}/agent/daily-summary").json()

        assert body["data"]["summary"] == "Summary"
        assert ": Team offsite" in agent.prompts[0]
