"""
Google OAuth credentials and API client construction.

One GoogleAuth instance is built at startup and handed to the Calendar and
Gmail adapters. Tokens live in a JSON token file written by the OAuth
callback; expired tokens are refreshed automatically.
"""

import logging
import os
from typing import Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from tabsy.errors import AuthenticationError, ProviderError, TabsyError

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.compose"
]


class GoogleAuth:
    """Owns the OAuth token file and builds authenticated API services."""

    def __init__(self, credentials_file: str, token_file: str):
        self.credentials_file = credentials_file
        self.token_file = token_file
        self._code_verifier: Optional[str] = None

    # ============ CREDENTIALS ============

    def load_credentials(self) -> Optional[Credentials]:
        """
        Load stored credentials, refreshing them if they have expired.

        Returns:
            Valid credentials, or None if the user has to sign in again
        """
        if not os.path.exists(self.token_file):
            return None

        creds = Credentials.from_authorized_user_file(self.token_file, SCOPES)

        if creds.valid:
            return creds

        if creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except RefreshError as e:
                logger.error("Google token refresh failed: %s", e)
                return None
            self._save(creds)
            logger.info("Google access token refreshed")
            return creds

        return None

    def is_authenticated(self) -> bool:
        return self.load_credentials() is not None

    def credentials(self) -> Credentials:
        """Valid credentials or AuthenticationError (never retried)."""
        creds = self.load_credentials()
        if creds is None:
            raise AuthenticationError()
        return creds

    def build(self, api: str, version: str):
        """Build an authenticated Google API service, e.g. build("gmail", "v1")."""
        return build(api, version, credentials=self.credentials(), cache_discovery=False)

    def _save(self, creds: Credentials) -> None:
        with open(self.token_file, "w") as token:
            token.write(creds.to_json())

    # ============ OAUTH FLOW ============

    def _flow(self, redirect_uri: str) -> Flow:
        if not os.path.exists(self.credentials_file):
            raise TabsyError(
                f"{self.credentials_file} not found. Please configure Google OAuth."
            )
        return Flow.from_client_secrets_file(
            self.credentials_file,
            scopes=SCOPES,
            redirect_uri=redirect_uri
        )

    def authorization_url(self, redirect_uri: str) -> str:
        """URL of the Google consent screen (offline access, forced consent)."""
        flow = self._flow(redirect_uri)
        auth_url, _state = flow.authorization_url(
            access_type="offline",  # Get refresh token
            include_granted_scopes="true",
            prompt="consent"  # Force consent to get refresh token
        )
        # PKCE: the callback builds a new Flow and needs the same verifier
        self._code_verifier = flow.code_verifier
        return auth_url

    def exchange_code(self, code: str, redirect_uri: str) -> Credentials:
        """Exchange an authorization code for tokens and persist them."""
        flow = self._flow(redirect_uri)
        if self._code_verifier:
            flow.code_verifier = self._code_verifier

        flow.fetch_token(code=code)
        creds = flow.credentials
        self._save(creds)
        self._code_verifier = None

        logger.info("Google OAuth successful, token saved to %s", self.token_file)
        return creds

    def logout(self) -> bool:
        """Delete stored credentials. Returns True if a token was removed."""
        if os.path.exists(self.token_file):
            os.remove(self.token_file)
            return True
        return False


def translate_google_error(error: Exception) -> TabsyError:
    """
    Map a Google client exception onto the API error taxonomy.

    401 responses and revoked grants become AuthenticationError so the user
    is sent back through OAuth; everything else is a ProviderError.
    """
    if isinstance(error, TabsyError):
        return error

    if isinstance(error, RefreshError):
        return AuthenticationError()

    if isinstance(error, HttpError):
        status = error.resp.status
        if status == 401 or "invalid_grant" in str(error) or "Invalid Credentials" in str(error):
            return AuthenticationError()
        return ProviderError(f"Google API error ({status}): {error}")

    return ProviderError(f"Google API request failed: {error}")
