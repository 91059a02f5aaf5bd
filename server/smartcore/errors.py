"""Error taxonomy shared by the signup services and mapped to HTTP in main.py."""

from __future__ import annotations

from typing import Optional


class SmartCoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(SmartCoreError):
    """A required secret or URL is not configured."""


class UpstreamServiceError(SmartCoreError):
    """A collaborator (data store, identity, email) answered with a non-2xx status."""

    service = "upstream"

    def __init__(
        self,
        operation: str,
        *,
        status_code: Optional[int] = None,
        body: str = "",
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"{operation} failed: {body}" if body else f"{operation} failed"
        super().__init__(message)
        self.operation = operation
        self.upstream_status = status_code
        self.body = body


class SupabaseError(UpstreamServiceError):
    service = "supabase"


class IdentityServiceError(UpstreamServiceError):
    service = "identity"


class EmailDeliveryError(UpstreamServiceError):
    service = "email"


class SignupError(SmartCoreError):
    """Business-rule failure with user-facing guidance."""

    status_code = 400

    def __init__(self, message: str, *, status_code: int = 400, reason: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class IdentityUserExistsError(SignupError):
    def __init__(self, message: str = "This email is already registered. Please log in instead."):
        super().__init__(message, status_code=409, reason="user_exists")


class CodeRejectedError(SignupError):
    """A submitted signup code failed one of the redemption checks."""
