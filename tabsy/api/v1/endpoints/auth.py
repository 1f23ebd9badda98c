"""
Google OAuth endpoints for Calendar and Gmail access.

Flow:
1. GET /auth/google -> Redirects to Google OAuth consent screen
2. Google redirects back to /auth/google/callback with code
3. The callback exchanges the code for tokens, saves them and sends the
   browser back to the frontend dashboard
"""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from tabsy.api.deps import get_google_auth, get_settings
from tabsy.api.responses import ok
from tabsy.config import Settings
from tabsy.services.google_auth import GoogleAuth

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

CALLBACK_PATH = "/api/v1/auth/google/callback"


class AuthStatusResponse(BaseModel):
    """Authentication status check response."""
    authenticated: bool
    message: str


def _redirect_uri(request: Request, settings: Settings) -> str:
    """Configured redirect URI, or one built from the incoming request."""
    if settings.GOOGLE_REDIRECT_URI:
        return settings.GOOGLE_REDIRECT_URI
    base_url = str(request.base_url).rstrip("/")
    return f"{base_url}{CALLBACK_PATH}"


@router.get("/google")
def login(
    request: Request,
    auth: GoogleAuth = Depends(get_google_auth),
    settings: Settings = Depends(get_settings)
):
    """
    Start OAuth flow - redirects to Google consent screen.

    After user grants permission, Google redirects to /auth/google/callback.
    """
    auth_url = auth.authorization_url(_redirect_uri(request, settings))
    return RedirectResponse(url=auth_url)


@router.get("/google/callback")
def callback(
    request: Request,
    code: str = None,
    error: str = None,
    auth: GoogleAuth = Depends(get_google_auth),
    settings: Settings = Depends(get_settings)
):
    """
    OAuth callback - exchanges authorization code for tokens.

    Always answers with a redirect to the frontend; failures are passed
    along as an `error` query parameter.
    """
    frontend_url = settings.FRONTEND_URL.rstrip("/")

    if error or not code:
        reason = error or "no_code"
        logger.warning("Google OAuth callback without code: %s", reason)
        return RedirectResponse(url=f"{frontend_url}/auth/callback?error={quote(reason)}")

    try:
        auth.exchange_code(code, _redirect_uri(request, settings))
    except Exception as e:
        logger.error("Google OAuth error: %s", e)
        return RedirectResponse(url=f"{frontend_url}/auth/callback?error={quote(str(e))}")

    return RedirectResponse(url=f"{frontend_url}/dashboard?auth=success")


@router.get("/status")
def auth_status(auth: GoogleAuth = Depends(get_google_auth)):
    """Check current authentication status."""
    authenticated = auth.is_authenticated()
    status = AuthStatusResponse(
        authenticated=authenticated,
        message=(
            "Google API is authenticated and ready"
            if authenticated
            else "Not authenticated. Visit /api/v1/auth/google to authenticate"
        )
    )
    return ok(status)


@router.delete("/logout")
def logout(auth: GoogleAuth = Depends(get_google_auth)):
    """
    Delete stored credentials (logout).

    After this, you'll need to sign in again via /auth/google.
    """
    if auth.logout():
        return ok({"message": "Logged out. Token deleted."})
    return ok({"message": "Already logged out. No token found."})
