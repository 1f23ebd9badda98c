"""
FastAPI dependencies for the collaborators built in create_app().
"""

from fastapi import Request

from tabsy.config import Settings
from tabsy.services.agent import ConversationalAgent
from tabsy.services.google_auth import GoogleAuth
from tabsy.services.refresh import CalendarRefresher, EmailRefresher


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_id(request: Request) -> str:
    """The single implicit owner."""
    return request.app.state.settings.DEFAULT_USER_ID


def get_calendar(request: Request) -> CalendarRefresher:
    return request.app.state.calendar


def get_email(request: Request) -> EmailRefresher:
    return request.app.state.email


def get_agent(request: Request) -> ConversationalAgent:
    return request.app.state.agent


def get_google_auth(request: Request) -> GoogleAuth:
    return request.app.state.google_auth
