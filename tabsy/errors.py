"""
Error taxonomy shared by services and the HTTP layer.

Services raise these; tabsy.api.responses turns them into
{"success": false, "error": ...} responses with a matching status code.
"""


class TabsyError(Exception):
    """Base class for every error the API reports on purpose."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(TabsyError):
    """Google credentials are missing, expired or revoked."""

    status_code = 401

    def __init__(self, message: str = None):
        super().__init__(
            message
            or "Authentication required. Please visit /api/v1/auth/google to authenticate."
        )


class ProviderError(TabsyError):
    """A Google API call failed (rate limit, not found, network)."""

    status_code = 502


class ValidationError(TabsyError):
    """Input rejected before any persistence or external call."""

    status_code = 400


class NotFoundError(TabsyError):
    """Unknown task, email or conversation id."""

    status_code = 404


class AgentError(TabsyError):
    """The LLM call failed."""

    status_code = 502
