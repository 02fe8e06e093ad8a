"""
Collaborator Capability Interfaces.

The auth core talks to the outside world only through these
protocols: the identity provider, the profile store, and the host's
navigation locator.  Production code plugs in the Supabase-backed
implementations; tests plug in in-memory fakes.

Provider implementations signal failure by raising ``ProviderError``
(the provider rejected the request) or ``ProviderUnavailableError``
(the provider could not be reached).  ``AuthService`` is the only
place these are caught.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from authportal.models.enums import SessionEventKind
from authportal.models.identity import Identity, Profile, ProviderSession

Unsubscribe = Callable[[], None]
SessionChangeCallback = Callable[[SessionEventKind, Optional[ProviderSession]], None]


class ProviderError(Exception):
    """The provider answered with an error.

    Attributes
    ----------
    message:
        Human-readable text as sent by the provider.
    code:
        Machine-readable error code, when the provider supplies one
        (e.g. ``"email_not_confirmed"``).
    """

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.code: Optional[str] = code


class ProviderUnavailableError(ProviderError):
    """The provider could not be reached (offline, DNS, timeout)."""


class IdentityProvider(Protocol):
    """Remote identity/credential provider."""

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
        redirect_to: Optional[str] = None,
    ) -> Optional[ProviderSession]: ...

    async def sign_in_with_password(self, email: str, password: str) -> ProviderSession: ...

    async def sign_out(self) -> None: ...

    async def get_current_user(self) -> Optional[Identity]: ...

    async def update_password(self, new_password: str) -> None: ...

    async def request_password_reset(self, email: str, redirect_to: str) -> None: ...

    async def set_session(self, access_token: str, refresh_token: str) -> ProviderSession: ...

    def on_session_change(self, callback: SessionChangeCallback) -> Unsubscribe: ...


class ProfileStore(Protocol):
    """Keyed store of ``Profile`` records."""

    async def get(self, profile_id: str) -> Profile: ...

    async def update(self, profile_id: str, fields: dict[str, Any]) -> Profile: ...


class NavigationLocator(Protocol):
    """The host's current navigation location (URL-like)."""

    def current(self) -> str: ...

    def replace(self, url: str) -> None: ...
