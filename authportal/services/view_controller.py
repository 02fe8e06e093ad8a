"""
Auth Surface View Controller.

State machine deciding which of the four auth surfaces is visible
(``LOGIN``, ``REGISTER``, ``FORGOT_PASSWORD``, ``RESET_PASSWORD``) and
owning each surface's draft, submission guard and error.

Transitions
-----------
======================  ==========================  ===================
From                    Trigger                     To
======================  ==========================  ===================
LOGIN                   show_register()             REGISTER
LOGIN                   show_forgot_password()      FORGOT_PASSWORD
REGISTER / FORGOT       back_to_login()             LOGIN
REGISTER                registration succeeds       LOGIN (+ notice)
FORGOT_PASSWORD         reset request succeeds      LOGIN (+ notice)
any                     recovery signal             RESET_PASSWORD
RESET_PASSWORD          reset succeeds              LOGIN (+ notice)
RESET_PASSWORD          cancel_reset()              LOGIN
======================  ==========================  ===================

Recovery signals come from two channels, the launch URL and the
provider's ``PASSWORD_RECOVERY`` event, and both go through
:meth:`ViewController.enter_recovery`.  Once in ``RESET_PASSWORD`` every
other navigation request is ignored until the reset completes or is
cancelled.

User-action transitions are applied synchronously.  Results of async
submissions are applied only if their surface is still the active one.
"""

from __future__ import annotations

import itertools
from typing import Callable, Optional

from authportal.auth import Disposer, SessionStore
from authportal.interfaces import IdentityProvider, NavigationLocator, Unsubscribe
from authportal.logger import StructuredLogger
from authportal.messages import describe_error, describe_notice
from authportal.models.auth_models import (
    AuthError,
    AuthResult,
    CredentialsDraft,
    FormSnapshot,
    Notice,
    ViewSnapshot,
)
from authportal.models.enums import AuthView, ErrorKind, NoticeKind, SessionEventKind
from authportal.models.identity import ProviderSession
from authportal.navigation import (
    RecoveryLink,
    has_recovery_marker,
    parse_recovery_link,
    split_fragment,
)
from authportal.services.auth_service import AuthService
from authportal.services.base_service import BaseService
from authportal.services.submission_guard import SubmissionGuard

ViewListener = Callable[[ViewSnapshot], None]


class ViewController(BaseService):
    """Selects the active auth surface and arbitrates transitions.

    Parameters
    ----------
    auth_service:
        Façade over provider calls.
    session_store:
        Refreshed after a successful login.
    provider:
        Source of ``PASSWORD_RECOVERY`` events (see :meth:`attach`).
    locator:
        Host navigation locator inspected for the recovery marker.
    logger:
        Structured JSON logger.
    locale:
        Message catalog used for rendered errors and notices.
    """

    def __init__(
        self,
        auth_service: AuthService,
        session_store: SessionStore,
        provider: IdentityProvider,
        locator: NavigationLocator,
        logger: StructuredLogger,
        locale: str = "en",
    ) -> None:
        super().__init__(logger)
        self._auth: AuthService = auth_service
        self._store: SessionStore = session_store
        self._provider: IdentityProvider = provider
        self._locator: NavigationLocator = locator
        self._locale: str = locale

        self._active: AuthView = AuthView.LOGIN
        self._notice: Optional[Notice] = None
        self._drafts: dict[AuthView, CredentialsDraft] = {
            view: CredentialsDraft() for view in AuthView
        }
        self._guards: dict[AuthView, SubmissionGuard] = {
            view: SubmissionGuard(str(view), on_change=lambda _state: self._notify())
            for view in AuthView
        }

        self._listeners: dict[int, ViewListener] = {}
        self._listener_ids = itertools.count(1)
        self._provider_subscription: Optional[Disposer] = None

    # ==================================================================
    # Reads
    # ==================================================================

    @property
    def active(self) -> AuthView:
        return self._active

    @property
    def notice(self) -> Optional[Notice]:
        return self._notice

    def draft(self, view: AuthView) -> CredentialsDraft:
        return self._drafts[view].model_copy()

    def error(self, view: AuthView) -> Optional[AuthError]:
        return self._guards[view].last_error

    def snapshot(self) -> ViewSnapshot:
        """Renderable state of the active surface."""
        view = self._active
        guard = self._guards[view]
        error = guard.last_error
        return ViewSnapshot(
            active=view,
            form=FormSnapshot(
                view=view,
                draft=self._drafts[view].model_copy(),
                pending=guard.pending,
                error=error,
                error_message=(
                    describe_error(error, self._locale, self._auth.min_password_length)
                    if error is not None
                    else None
                ),
            ),
            notice=self._notice,
        )

    def subscribe(self, callback: ViewListener) -> Unsubscribe:
        """Invoke *callback* with a fresh snapshot after every change."""
        listener_id = next(self._listener_ids)
        self._listeners[listener_id] = callback
        return Disposer(lambda: self._listeners.pop(listener_id, None), "View")

    # ==================================================================
    # Lifecycle
    # ==================================================================

    def attach(self) -> None:
        """Listen for the provider's ``PASSWORD_RECOVERY`` event."""
        if self._provider_subscription is not None:
            return
        unsubscribe = self._provider.on_session_change(self._on_provider_event)
        self._provider_subscription = Disposer(unsubscribe, "Recovery")

    def close(self) -> None:
        if self._provider_subscription is not None:
            self._provider_subscription()
            self._provider_subscription = None
        self._listeners.clear()

    def _on_provider_event(
        self, kind: SessionEventKind, session: Optional[ProviderSession],
    ) -> None:
        if kind == SessionEventKind.PASSWORD_RECOVERY:
            self.enter_recovery("provider_event")

    # ==================================================================
    # User navigation (synchronous)
    # ==================================================================

    def show_register(self) -> bool:
        return self._navigate_from_login(AuthView.REGISTER)

    def show_forgot_password(self) -> bool:
        return self._navigate_from_login(AuthView.FORGOT_PASSWORD)

    def _navigate_from_login(self, target: AuthView) -> bool:
        if self._active != AuthView.LOGIN:
            self._logger.debug("Ignoring navigation to %s from %s.", target, self._active)
            return False
        self._guards[AuthView.LOGIN].clear_error()
        self._notice = None
        self._set_active(target)
        return True

    def back_to_login(self) -> bool:
        """Leave ``REGISTER`` or ``FORGOT_PASSWORD``, discarding its draft."""
        if self._active not in (AuthView.REGISTER, AuthView.FORGOT_PASSWORD):
            return False
        self._discard_form(self._active)
        self._set_active(AuthView.LOGIN)
        return True

    def cancel_reset(self) -> bool:
        """Leave ``RESET_PASSWORD`` without changing the password."""
        if self._active != AuthView.RESET_PASSWORD:
            return False
        self._discard_form(AuthView.RESET_PASSWORD)
        self._set_active(AuthView.LOGIN)
        return True

    def update_field(self, name: str, value: str, view: Optional[AuthView] = None) -> None:
        """Edit one draft field; the form's error is cleared.

        Raises
        ------
        ValueError
            If *name* is not a draft field.
        """
        if name not in CredentialsDraft.FIELDS:
            raise ValueError(f"Unknown form field: {name}")
        target = view or self._active
        setattr(self._drafts[target], name, value)
        self._guards[target].clear_error()
        if target == AuthView.LOGIN:
            self._notice = None
        self._notify()

    # ==================================================================
    # Recovery arbitration
    # ==================================================================

    def enter_recovery(self, source: str) -> bool:
        """Switch to ``RESET_PASSWORD``; the single entry for both channels.

        Preempts whatever surface is active and discards unsaved drafts.
        Returns ``False`` when already in ``RESET_PASSWORD``.
        """
        self._clear_recovery_marker()

        if self._active == AuthView.RESET_PASSWORD:
            self._logger.debug("Recovery signal from %s ignored; already resetting.", source)
            return False

        for view in (AuthView.REGISTER, AuthView.FORGOT_PASSWORD, AuthView.RESET_PASSWORD):
            self._discard_form(view)
        self._guards[AuthView.LOGIN].clear_error()
        self._notice = None

        self._audit("RECOVERY_ENTERED", "Entering password reset (source: %s).", source, source=source)
        self._set_active(AuthView.RESET_PASSWORD)
        return True

    def check_location(self) -> Optional[RecoveryLink]:
        """Enter recovery if the current location carries the marker."""
        link = parse_recovery_link(self._locator.current())
        if link is None:
            return None
        self.enter_recovery("url")
        return link

    async def restore_from_location(self) -> bool:
        """:meth:`check_location`, then adopt the session the link carries.

        Returns ``True`` when the location was a recovery link.
        """
        link = self.check_location()
        if link is None:
            return False
        result = await self._auth.adopt_recovery_session(link)
        if not result.success:
            self._guards[AuthView.RESET_PASSWORD].set_error(result.error)
        return True

    def _clear_recovery_marker(self) -> None:
        url = self._locator.current()
        if has_recovery_marker(url):
            self._locator.replace(split_fragment(url)[0])

    # ==================================================================
    # Submissions
    # ==================================================================

    async def submit_login(self) -> AuthResult:
        draft = self._drafts[AuthView.LOGIN].model_copy()
        result = await self._guards[AuthView.LOGIN].execute(
            lambda: self._auth.login(draft.email, draft.password),
        )
        if result.success:
            self._drafts[AuthView.LOGIN] = CredentialsDraft()
            self._notice = None
            self._notify()
            await self._store.refresh()
        return result

    async def submit_register(self) -> AuthResult:
        draft = self._drafts[AuthView.REGISTER].model_copy()
        guard = self._guards[AuthView.REGISTER]

        local_error = self._auth.validate_registration(draft.password, draft.username)
        if local_error is not None and not guard.pending:
            result = AuthResult.fail(local_error)
            guard.set_error(result.error)
            return result

        result = await guard.execute(
            lambda: self._auth.register(draft.email, draft.password, draft.username),
        )
        if result.success and self._still_active(AuthView.REGISTER):
            self._discard_form(AuthView.REGISTER)
            self._drafts[AuthView.LOGIN] = CredentialsDraft(email=draft.email.strip())
            self._guards[AuthView.LOGIN].clear_error()
            self._show_notice(NoticeKind.REGISTERED, draft.email.strip())
            self._set_active(AuthView.LOGIN)
        return result

    async def submit_forgot_password(self) -> AuthResult:
        draft = self._drafts[AuthView.FORGOT_PASSWORD].model_copy()
        result = await self._guards[AuthView.FORGOT_PASSWORD].execute(
            lambda: self._auth.request_password_reset(draft.email),
        )
        if result.success and self._still_active(AuthView.FORGOT_PASSWORD):
            self._discard_form(AuthView.FORGOT_PASSWORD)
            self._guards[AuthView.LOGIN].clear_error()
            self._show_notice(NoticeKind.RESET_EMAIL_SENT, draft.email.strip())
            self._set_active(AuthView.LOGIN)
        return result

    async def submit_reset_password(self) -> AuthResult:
        draft = self._drafts[AuthView.RESET_PASSWORD].model_copy()
        result = await self._guards[AuthView.RESET_PASSWORD].execute(
            lambda: self._auth.perform_password_reset(draft.password, draft.confirm_password),
        )
        if result.success and self._still_active(AuthView.RESET_PASSWORD):
            self._discard_form(AuthView.RESET_PASSWORD)
            self._show_notice(NoticeKind.PASSWORD_CHANGED)
            self._set_active(AuthView.LOGIN)
        return result

    async def logout(self) -> AuthResult:
        """Sign out from the signed-in panel."""
        return await self._auth.logout()

    async def update_profile(self, fields: dict[str, object]) -> AuthResult:
        """Write profile fields for the signed-in identity and publish them."""
        identity = self._store.identity
        if identity is None:
            return AuthResult.fail(ErrorKind.UNKNOWN, "Not signed in.")
        result = await self._auth.update_profile(identity.id, fields)
        if result.success:
            self._store.publish_profile(result.data)
        return result

    # ==================================================================
    # Internals
    # ==================================================================

    def _still_active(self, origin: AuthView) -> bool:
        if self._active == origin:
            return True
        self._logger.info(
            "Discarding %s result; active surface is now %s.", origin, self._active,
        )
        return False

    def _discard_form(self, view: AuthView) -> None:
        self._drafts[view] = CredentialsDraft()
        self._guards[view].clear_error()

    def _show_notice(self, kind: NoticeKind, email: Optional[str] = None) -> None:
        self._notice = Notice(
            kind=kind,
            email=email,
            message=describe_notice(kind, self._locale, email),
        )

    def _set_active(self, view: AuthView) -> None:
        if view != self._active:
            self._logger.debug("Auth surface %s -> %s.", self._active, view)
        self._active = view
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners.values()):
            try:
                listener(snapshot)
            except Exception as exc:
                self._logger.error("View listener failed: %s", exc, exc_info=True)
