from __future__ import annotations

"""
Data Models Package.

Re-exports the pydantic models and enumerations so callers can write::

    from authportal.models import AuthResult, ErrorKind, Identity
"""

from authportal.models.enums import (
    AuthView,
    ErrorKind,
    NoticeKind,
    OperationContext,
    SessionEventKind,
)
from authportal.models.identity import Identity, Profile, ProviderSession, SessionSnapshot
from authportal.models.auth_models import (
    AuthError,
    AuthResult,
    CredentialsDraft,
    FormSnapshot,
    Notice,
    SubmissionState,
    ViewSnapshot,
)

__all__ = [
    "AuthView",
    "ErrorKind",
    "NoticeKind",
    "OperationContext",
    "SessionEventKind",
    "Identity",
    "Profile",
    "ProviderSession",
    "SessionSnapshot",
    "AuthError",
    "AuthResult",
    "CredentialsDraft",
    "FormSnapshot",
    "Notice",
    "SubmissionState",
    "ViewSnapshot",
]
