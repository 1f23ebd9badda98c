"""
Application factory.

Every collaborator (database engine, Google adapters, refreshers, LLM agent)
is built here once and stored on app.state; endpoints reach them through
the dependencies in tabsy.api.deps. Tests pass their own engine, fake
providers and agent.
"""

import logging
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from tabsy.api.responses import register_exception_handlers
from tabsy.api.v1.api import api_router
from tabsy.config import Settings
from tabsy.database import Base, create_db_engine, create_session_factory
from tabsy.models import User
from tabsy.services.agent import ConversationalAgent, create_llm
from tabsy.services.calendar_service import GoogleCalendarAdapter
from tabsy.services.gmail_service import GmailAdapter
from tabsy.services.google_auth import GoogleAuth
from tabsy.services.refresh import CalendarRefresher, EmailRefresher, RefreshLocks

logger = logging.getLogger(__name__)


def ensure_default_user(db: Session, settings: Settings) -> User:
    """Create the single implicit owner if it does not exist yet."""
    user = db.get(User, settings.DEFAULT_USER_ID)
    if user is None:
        user = User(
            id=settings.DEFAULT_USER_ID,
            email=settings.DEFAULT_USER_EMAIL,
            name=settings.DEFAULT_USER_NAME
        )
        db.add(user)
        db.commit()
        logger.info("Default user initialized: %s", user.email)
    return user


def create_app(
    settings: Settings,
    *,
    engine: Engine = None,
    calendar_provider=None,
    email_provider=None,
    agent=None,
    google_auth: GoogleAuth = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings
        engine: Database engine (default: built from DATABASE_URL)
        calendar_provider: Calendar adapter (default: GoogleCalendarAdapter)
        email_provider: Email adapter (default: GmailAdapter)
        agent: Anything with generate(prompt) -> str (default: Gemini agent)
        google_auth: OAuth helper (default: built from the token files)
    """
    engine = engine or create_db_engine(settings.DATABASE_URL)
    google_auth = google_auth or GoogleAuth(
        settings.GOOGLE_CREDENTIALS_FILE,
        settings.GOOGLE_TOKEN_FILE
    )
    locks = RefreshLocks()

    app = FastAPI(
        title="Tabsy",
        description="Calendar, email and task assistant backed by Google APIs and Gemini",
        version="1.0.0"
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.google_auth = google_auth
    app.state.calendar = CalendarRefresher(
        calendar_provider or GoogleCalendarAdapter(google_auth),
        locks,
        ttl=timedelta(minutes=settings.CALENDAR_CACHE_TTL_MINUTES),
        days_back=settings.CALENDAR_DAYS_BACK,
        days_ahead=settings.CALENDAR_DAYS_AHEAD
    )
    app.state.email = EmailRefresher(
        email_provider or GmailAdapter(google_auth),
        locks,
        ttl=timedelta(minutes=settings.EMAIL_CACHE_TTL_MINUTES),
        ceiling=settings.EMAIL_CACHE_CEILING,
        list_limit=settings.EMAIL_LIST_LIMIT,
        fetch_limit=settings.EMAIL_FETCH_LIMIT
    )
    app.state.agent = agent or ConversationalAgent(create_llm(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    register_exception_handlers(app)

    @app.on_event("startup")
    def on_startup():
        """Create database tables and the default user on startup."""
        Base.metadata.create_all(bind=engine)
        with app.state.session_factory() as db:
            ensure_default_user(db, settings)
        logger.info("Database tables created/verified")

    app.include_router(api_router)

    @app.get("/")
    def service_info():
        return {
            "success": True,
            "data": {
                "service": "Tabsy Backend",
                "version": app.version,
                "docs": "/docs",
                "health": "/api/v1/health"
            }
        }

    return app
