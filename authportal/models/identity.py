"""
Identity & Profile Models.

``Identity`` is the provider-issued handle for an authenticated user;
``Profile`` is the application record stored 1:1 against it in the
``profiles`` table.  ``SessionSnapshot`` is what ``SessionStore``
publishes to its subscribers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Identity(BaseModel):
    """Authenticated-user handle as reported by the provider."""

    id: str  # Supabase UUID
    email: str
    email_confirmed: bool = False

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Profile(BaseModel):
    """Application-level user record.

    The profiles table may grow columns the client does not know about;
    they are kept as extra attributes so a partial update never drops
    them from the cached copy.
    """

    id: str
    username: str = ""
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("username", mode="before")
    @classmethod
    def _null_username(cls, v: Optional[str]) -> str:
        """A NULL column reads as an empty username."""
        return "" if v is None else v

    model_config = ConfigDict(extra="allow", from_attributes=True)


class ProviderSession(BaseModel):
    """Session payload delivered with a provider session event."""

    identity: Optional[Identity] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class SessionSnapshot(BaseModel):
    """Immutable view of "who is signed in" at one point in time.

    ``sequence`` is the id of the event (or refresh) that produced the
    snapshot; ``0`` is the initial empty state.
    """

    identity: Optional[Identity] = None
    profile: Optional[Profile] = None
    sequence: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None
