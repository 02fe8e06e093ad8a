"""
Supabase Identity Provider.

Adapts ``supabase.auth`` (the async GoTrue client) to the
``IdentityProvider`` protocol.  The adapter translates Supabase user and
session objects into ``Identity`` / ``ProviderSession`` models and
Supabase exceptions into ``ProviderError`` / ``ProviderUnavailableError``;
it performs no classification of its own.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import httpx
from supabase import AuthError as SupabaseAuthError
from supabase import AuthRetryableError

from authportal.connection import SupabaseConnection
from authportal.interfaces import (
    ProviderError,
    ProviderUnavailableError,
    SessionChangeCallback,
    Unsubscribe,
)
from authportal.logger import StructuredLogger
from authportal.models.enums import SessionEventKind
from authportal.models.identity import Identity, ProviderSession


class SupabaseIdentityProvider:
    """``IdentityProvider`` backed by Supabase Auth.

    Parameters
    ----------
    connection:
        Shared Supabase connection.
    logger:
        Structured JSON logger.
    """

    def __init__(self, connection: SupabaseConnection, logger: StructuredLogger) -> None:
        self._connection: SupabaseConnection = connection
        self._logger: StructuredLogger = logger

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    @staticmethod
    def to_identity(user: Any) -> Optional[Identity]:
        """Convert a Supabase ``User`` into an ``Identity``."""
        if user is None:
            return None
        return Identity(
            id=str(user.id),
            email=user.email or "",
            email_confirmed=getattr(user, "email_confirmed_at", None) is not None,
        )

    @classmethod
    def to_session(cls, session: Any) -> Optional[ProviderSession]:
        """Convert a Supabase ``Session`` into a ``ProviderSession``."""
        if session is None:
            return None
        return ProviderSession(
            identity=cls.to_identity(getattr(session, "user", None)),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
        )

    @contextmanager
    def _provider_errors(self, operation: str) -> Iterator[None]:
        """Re-raise Supabase / transport failures as provider errors."""
        try:
            yield
        except ProviderError:
            raise
        except (
            RuntimeError,
            ConnectionError,
            TimeoutError,
            httpx.TransportError,
            AuthRetryableError,
        ) as exc:
            self._logger.warning("Provider unreachable during %s: %s", operation, exc)
            raise ProviderUnavailableError(str(exc)) from exc
        except SupabaseAuthError as exc:
            raise ProviderError(
                getattr(exc, "message", None) or str(exc),
                code=getattr(exc, "code", None),
            ) from exc

    # ------------------------------------------------------------------
    # IdentityProvider
    # ------------------------------------------------------------------

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
        redirect_to: Optional[str] = None,
    ) -> Optional[ProviderSession]:
        with self._provider_errors("sign_up"):
            options: dict[str, Any] = {"data": metadata}
            if redirect_to:
                options["email_redirect_to"] = redirect_to
            response = await self._connection.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": options,
            })
        return self.to_session(response.session)

    async def sign_in_with_password(self, email: str, password: str) -> ProviderSession:
        with self._provider_errors("sign_in_with_password"):
            response = await self._connection.client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        session = self.to_session(response.session)
        if session is None:
            raise ProviderError("Sign-in returned no session.")
        return session

    async def sign_out(self) -> None:
        with self._provider_errors("sign_out"):
            await self._connection.client.auth.sign_out()

    async def get_current_user(self) -> Optional[Identity]:
        with self._provider_errors("get_current_user"):
            response = await self._connection.client.auth.get_user()
        if response is None:
            return None
        return self.to_identity(response.user)

    async def update_password(self, new_password: str) -> None:
        with self._provider_errors("update_password"):
            await self._connection.client.auth.update_user({"password": new_password})

    async def request_password_reset(self, email: str, redirect_to: str) -> None:
        with self._provider_errors("request_password_reset"):
            await self._connection.client.auth.reset_password_for_email(
                email, {"redirect_to": redirect_to},
            )

    async def set_session(self, access_token: str, refresh_token: str) -> ProviderSession:
        with self._provider_errors("set_session"):
            response = await self._connection.client.auth.set_session(
                access_token, refresh_token,
            )
        session = self.to_session(response.session)
        if session is None:
            raise ProviderError("Recovery link did not yield a session.")
        return session

    def on_session_change(self, callback: SessionChangeCallback) -> Unsubscribe:
        """Relay Supabase auth-state changes to *callback*.

        Supabase calls the listener synchronously from inside the auth
        client; *callback* must not block.
        """
        if not self._connection.is_online:
            self._logger.warning(
                "Session-change subscription skipped: provider is offline."
            )
            return lambda: None

        def relay(event: str, session: Any) -> None:
            try:
                kind = SessionEventKind(event)
            except ValueError:
                self._logger.debug("Ignoring unknown auth event: %s", event)
                return
            callback(kind, self.to_session(session))

        subscription = self._connection.client.auth.on_auth_state_change(relay)
        return subscription.unsubscribe
