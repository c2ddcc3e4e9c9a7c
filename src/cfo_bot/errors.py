"""Exception hierarchy for the CFO bot."""

from typing import Any


class CfoBotError(Exception):
    """Base exception for CFO bot errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthError(CfoBotError):
    """The credential issuer rejected the refresh or returned no token."""

    pass


class LedgerApiError(CfoBotError):
    """The ledger service returned an error status or an embedded error code."""

    @property
    def body(self) -> Any:
        return self.details

    @property
    def is_auth_failure(self) -> bool:
        """Whether the failure means the access token is expired or invalid."""
        if self.status_code == 401:
            return True
        if isinstance(self.details, dict):
            return self.details.get("code") in AUTH_ERROR_CODES
        return False


# Zoho Books codes for an invalid or expired OAuth token
AUTH_ERROR_CODES = frozenset({14, 57})
