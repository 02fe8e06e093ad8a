"""
Authentication Pipeline Models.

Pydantic models for the contracts between ``AuthService``, the
``ViewController`` and the UI.  Every auth operation returns an
``AuthResult`` rather than raising, so the view layer never inspects
raw provider exceptions.
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict

from authportal.models.enums import AuthView, ErrorKind, NoticeKind


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class AuthError(BaseModel):
    """A classified auth failure.

    Attributes
    ----------
    kind:
        Category from the closed ``ErrorKind`` set.
    message:
        The provider's original text.  Always present for
        ``ErrorKind.UNKNOWN``; optional (diagnostic only) otherwise.
    """

    kind: ErrorKind
    message: Optional[str] = None

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Unified operation result
# ---------------------------------------------------------------------------

class AuthResult(BaseModel):
    """Uniform result of every ``AuthService`` operation.

    ``data`` carries the operation payload on success (an ``Identity``
    for login, a ``Profile`` for profile reads/writes, ``None`` when
    there is nothing to return).
    """

    success: bool
    data: Optional[Any] = None
    error: Optional[AuthError] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def ok(cls, data: Any = None) -> "AuthResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: Optional[str] = None) -> "AuthResult":
        return cls(success=False, error=AuthError(kind=kind, message=message))

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None


# ---------------------------------------------------------------------------
# Form state
# ---------------------------------------------------------------------------

class CredentialsDraft(BaseModel):
    """Transient input buffer for one auth form.  Never persisted."""

    email: str = ""
    password: str = ""
    username: str = ""
    confirm_password: str = ""

    model_config = ConfigDict(validate_assignment=True)

    FIELDS: ClassVar[frozenset[str]] = frozenset({"email", "password", "username", "confirm_password"})


class SubmissionState(BaseModel):
    """Busy flag and most recent error of one form."""

    pending: bool = False
    last_error: Optional[AuthError] = None


class Notice(BaseModel):
    """Success banner; a separate channel from form errors."""

    kind: NoticeKind
    email: Optional[str] = None
    message: str = ""

    model_config = ConfigDict(frozen=True)


class FormSnapshot(BaseModel):
    """Renderable state of one form."""

    view: AuthView
    draft: CredentialsDraft
    pending: bool = False
    error: Optional[AuthError] = None
    error_message: Optional[str] = None


class ViewSnapshot(BaseModel):
    """Everything a renderer needs to draw the auth surface."""

    active: AuthView
    form: FormSnapshot
    notice: Optional[Notice] = None
