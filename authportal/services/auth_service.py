"""
Authentication Service.

Single façade over every provider call the auth surface makes:
registration, login, logout, password-reset request, password reset,
and profile reads/writes.

All methods return an ``AuthResult``; provider and network failures are
caught here and classified by ``error_normalizer`` so the view layer
never sees a raw exception.  The service holds no session state of its
own; the ``SessionStore`` catches up with login/logout through the
provider's session events.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from authportal.interfaces import (
    IdentityProvider,
    ProfileStore,
    ProviderError,
    ProviderUnavailableError,
)
from authportal.logger import StructuredLogger
from authportal.models.auth_models import AuthResult
from authportal.models.enums import ErrorKind, OperationContext
from authportal.navigation import RecoveryLink
from authportal.services.base_service import BaseService
from authportal.services.error_normalizer import normalize

DEFAULT_MIN_PASSWORD_LENGTH: int = 6
DEFAULT_SIGNOUT_DELAY_S: float = 1.0


class AuthService(BaseService):
    """Stateless request → ``AuthResult`` façade.

    Parameters
    ----------
    provider:
        Identity provider (Supabase Auth in production).
    profiles:
        Profile store keyed by identity id.
    logger:
        Structured JSON logger.
    email_redirect_url:
        Where the signup confirmation link should land.
    reset_redirect_url:
        Where the password-reset link should land; the provider appends
        the recovery marker to it.
    min_password_length:
        Minimum accepted password length.
    signout_delay_s:
        Delay before the sign-out that follows a successful reset.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        profiles: ProfileStore,
        logger: StructuredLogger,
        email_redirect_url: Optional[str] = None,
        reset_redirect_url: str = "",
        min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
        signout_delay_s: float = DEFAULT_SIGNOUT_DELAY_S,
    ) -> None:
        super().__init__(logger)
        self._provider: IdentityProvider = provider
        self._profiles: ProfileStore = profiles
        self._email_redirect_url: Optional[str] = email_redirect_url
        self._reset_redirect_url: str = reset_redirect_url
        self._min_password_length: int = min_password_length
        self._signout_delay_s: float = signout_delay_s

        # Keeps scheduled sign-outs alive until they finish; the loop
        # only holds weak references to tasks.
        self._background: set[asyncio.Task[None]] = set()

    @property
    def min_password_length(self) -> int:
        return self._min_password_length

    # ==================================================================
    # Local validation
    # ==================================================================

    def validate_registration(self, password: str, username: str) -> Optional[ErrorKind]:
        """Caller-side checks that must pass before :meth:`register`.

        Returns the first failing ``ErrorKind`` or ``None``.
        """
        if len(password) < self._min_password_length:
            return ErrorKind.WEAK_PASSWORD
        if not username.strip():
            return ErrorKind.USERNAME_REQUIRED
        return None

    def validate_new_password(self, new_password: str, confirm_password: str) -> Optional[ErrorKind]:
        """Checks run by :meth:`perform_password_reset` before any network call."""
        if len(new_password) < self._min_password_length:
            return ErrorKind.WEAK_PASSWORD
        if new_password != confirm_password:
            return ErrorKind.PASSWORD_MISMATCH
        return None

    # ==================================================================
    # Error classification
    # ==================================================================

    def _failure(self, exc: Exception, context: OperationContext) -> AuthResult:
        """Convert an exception raised by a provider call into a result."""
        if isinstance(exc, ProviderUnavailableError):
            self._logger.warning(
                "Provider unreachable during %s: %s", context, exc,
                extra={"event": f"{context.upper()}_NETWORK_ERROR"},
            )
            return AuthResult.fail(ErrorKind.NETWORK_ERROR, str(exc))

        if isinstance(exc, ProviderError):
            error = normalize(exc.message, context, exc.code)
        else:
            self._logger.error(
                "Unexpected error during %s: %s", context, exc, exc_info=True,
            )
            error = normalize(str(exc), context)

        self._logger.warning(
            "%s failed (%s): %s", context, error.kind, exc,
            extra={"event": f"{context.upper()}_FAILED", "error_kind": str(error.kind)},
        )
        return AuthResult(success=False, error=error)

    # ==================================================================
    # Registration
    # ==================================================================

    async def register(self, email: str, password: str, username: str) -> AuthResult:
        """Create an account; the provider emails a confirmation link.

        Password length and username presence are the caller's job
        (see :meth:`validate_registration`).  No local session results
        from a successful signup.
        """
        email = email.strip()
        try:
            await self._provider.sign_up(
                email,
                password,
                {"username": username.strip()},
                redirect_to=self._email_redirect_url,
            )
        except Exception as exc:
            return self._failure(exc, OperationContext.REGISTER)

        self._audit("REGISTER", "User registered: %s", email, email=email)
        return AuthResult.ok({"email": email})

    # ==================================================================
    # Login / logout
    # ==================================================================

    async def login(self, email: str, password: str) -> AuthResult:
        """Sign in with email and password.

        On success ``data`` is the signed-in ``Identity``; the caller
        refreshes the ``SessionStore``.
        """
        email = email.strip()
        try:
            session = await self._provider.sign_in_with_password(email, password)
        except Exception as exc:
            return self._failure(exc, OperationContext.LOGIN)

        identity = session.identity
        self._audit(
            "LOGIN", "User authenticated: %s", email,
            email=email,
            user_id=identity.id if identity is not None else "unknown",
        )
        return AuthResult.ok(identity)

    async def logout(self) -> AuthResult:
        """Revoke the provider session.

        The ``SessionStore`` clears itself when the provider pushes the
        corresponding sign-out event; callers must not assume it already
        has.
        """
        try:
            await self._provider.sign_out()
        except Exception as exc:
            return self._failure(exc, OperationContext.LOGOUT)

        self._audit("LOGOUT", "User logged out.")
        return AuthResult.ok()

    # ==================================================================
    # Password reset
    # ==================================================================

    async def request_password_reset(self, email: str) -> AuthResult:
        """Ask the provider to email a reset link for *email*."""
        email = email.strip()
        try:
            await self._provider.request_password_reset(email, self._reset_redirect_url)
        except Exception as exc:
            return self._failure(exc, OperationContext.RESET_REQUEST)

        self._audit(
            "PASSWORD_RESET_REQUESTED", "Password reset requested for %s.", email, email=email,
        )
        return AuthResult.ok({"email": email})

    async def adopt_recovery_session(self, link: RecoveryLink) -> AuthResult:
        """Install the session carried by a recovery deep link.

        Without it the provider has no session to authorize
        :meth:`perform_password_reset`.
        """
        if not link.has_tokens:
            return AuthResult.ok()
        try:
            session = await self._provider.set_session(
                link.access_token or "", link.refresh_token or "",
            )
        except Exception as exc:
            return self._failure(exc, OperationContext.RESET_PERFORM)
        return AuthResult.ok(session.identity)

    async def perform_password_reset(self, new_password: str, confirm_password: str) -> AuthResult:
        """Set a new password for the recovery session.

        Length and equality are checked locally first; nothing is sent
        when they fail.  On success a sign-out is scheduled after
        ``signout_delay_s`` so the user has to sign in again with the
        new password.
        """
        local_error = self.validate_new_password(new_password, confirm_password)
        if local_error is not None:
            return AuthResult.fail(local_error)

        try:
            await self._provider.update_password(new_password)
        except Exception as exc:
            return self._failure(exc, OperationContext.RESET_PERFORM)

        self._audit("PASSWORD_UPDATED", "Password updated.")
        self._schedule_signout()
        return AuthResult.ok()

    def _schedule_signout(self) -> None:
        """Fire-and-forget sign-out after the configured delay."""
        task = asyncio.get_running_loop().create_task(self._deferred_signout())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _deferred_signout(self) -> None:
        await asyncio.sleep(self._signout_delay_s)
        try:
            await self._provider.sign_out()
        except Exception as exc:
            self._logger.warning(
                "Deferred sign-out after password reset failed: %s", exc,
            )
            return
        self._audit("LOGOUT", "Signed out after password reset.")

    async def wait_for_background(self) -> None:
        """Wait until every scheduled sign-out has run."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ==================================================================
    # Profiles
    # ==================================================================

    async def fetch_profile(self, identity_id: str) -> AuthResult:
        """Read the profile for *identity_id*; ``data`` is a ``Profile``."""
        try:
            profile = await self._profiles.get(identity_id)
        except Exception as exc:
            return self._failure(exc, OperationContext.PROFILE)
        return AuthResult.ok(profile)

    async def update_profile(self, identity_id: str, fields: dict[str, Any]) -> AuthResult:
        """Merge *fields* into the stored profile; other columns are kept."""
        try:
            profile = await self._profiles.update(identity_id, dict(fields))
        except Exception as exc:
            return self._failure(exc, OperationContext.PROFILE)
        return AuthResult.ok(profile)
