"""
Shared Enumerations for AuthPortal Models.

``StrEnum`` values compare equal to their string equivalents, so a
provider event name such as ``"PASSWORD_RECOVERY"`` can be compared
directly against ``SessionEventKind.PASSWORD_RECOVERY``.
"""

from __future__ import annotations

from enum import StrEnum


class AuthView(StrEnum):
    """The four mutually exclusive auth surfaces."""

    LOGIN = "login"
    REGISTER = "register"
    FORGOT_PASSWORD = "forgot_password"
    RESET_PASSWORD = "reset_password"


class ErrorKind(StrEnum):
    """Closed set of user-facing auth error categories.

    ``UNKNOWN`` is the fallback; it travels with the provider's raw
    message so the form can still display something meaningful.
    """

    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    WEAK_PASSWORD = "weak_password"
    PASSWORD_MISMATCH = "password_mismatch"
    USERNAME_REQUIRED = "username_required"
    RATE_LIMITED = "rate_limited"
    USER_NOT_FOUND = "user_not_found"
    INVALID_EMAIL_FORMAT = "invalid_email_format"
    SAME_PASSWORD_REUSE = "same_password_reuse"
    EMAIL_ALREADY_REGISTERED = "email_already_registered"
    NETWORK_ERROR = "network_error"
    BUSY = "busy"
    UNKNOWN = "unknown"


class OperationContext(StrEnum):
    """Which provider call produced an error.

    The same raw provider text can mean different things depending on
    the call, so normalisation is always done per context.
    """

    LOGIN = "login"
    REGISTER = "register"
    RESET_REQUEST = "reset_request"
    RESET_PERFORM = "reset_perform"
    LOGOUT = "logout"
    PROFILE = "profile"


class SessionEventKind(StrEnum):
    """Session lifecycle events pushed by the identity provider.

    Names match Supabase's ``AuthChangeEvent`` literals.
    """

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    USER_DELETED = "USER_DELETED"
    MFA_CHALLENGE_VERIFIED = "MFA_CHALLENGE_VERIFIED"


class NoticeKind(StrEnum):
    """Success banners shown on the login surface after a transition."""

    REGISTERED = "registered"
    RESET_EMAIL_SENT = "reset_email_sent"
    PASSWORD_CHANGED = "password_changed"
