"""Application Host Shell.

The top-level ``CTk`` window.  While no identity is signed in (or a
password reset is in progress) it shows the ``LoginView``; otherwise a
small signed-in panel with the username, email and a Sign out button.

The shell contains no auth logic.  It subscribes to the ``SessionStore``
and the ``ViewController`` on the background loop and re-renders on the
Tk thread whenever either publishes.
"""

from __future__ import annotations

from typing import Optional

import customtkinter as ctk

from authportal import __version__ as _APP_VERSION
from authportal.interfaces import Unsubscribe
from authportal.logger import StructuredLogger
from authportal.models.auth_models import ViewSnapshot
from authportal.models.enums import AuthView
from authportal.models.identity import SessionSnapshot
from authportal.runtime import AsyncRunner
from authportal.services import ServiceContainer
from authportal.ui.login_view import LoginView
from authportal.ui.theme import (
    CONTENT_BG,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    FONT_BODY,
    FONT_BUTTON,
    FONT_HEADING,
    FONT_SMALL,
    LOGIN_WINDOW_HEIGHT,
    LOGIN_WINDOW_WIDTH,
    LOGOUT_HOVER,
    LOGOUT_PRIMARY,
    MAIN_WINDOW_HEIGHT,
    MAIN_WINDOW_WIDTH,
    PADDING_LG,
    PADDING_MD,
    TEXT_LIGHT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)


class AppShell(ctk.CTk):
    """Host shell: the main application window.

    Lifecycle
    ---------
    1. On boot: subscribes to session and view changes and renders the
       current state.
    2. Identity present and no reset in progress: signed-in panel.
    3. Otherwise: the ``LoginView`` showing the controller's surface.
    4. Window close: disposes both subscriptions, then destroys.

    Parameters
    ----------
    runner:
        Background loop that owns the services.
    services:
        Fully-wired service container.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        runner: AsyncRunner,
        services: ServiceContainer,
        logger: StructuredLogger,
    ) -> None:
        super().__init__()

        self._runner = runner
        self._services = services
        self._logger = logger

        self._session: SessionSnapshot = SessionSnapshot()
        self._view: Optional[ViewSnapshot] = None
        self._login_view: Optional[LoginView] = None
        self._signed_in_panel: Optional[ctk.CTkFrame] = None
        self._subscriptions: list[Unsubscribe] = []

        self.title(f"AuthPortal {_APP_VERSION}")
        ctk.set_appearance_mode("light")
        ctk.set_default_color_theme("blue")

        self.protocol("WM_DELETE_WINDOW", self._on_close)

        self._runner.call(self._subscribe)
        self._refresh()

    # ==================================================================
    # Subscriptions (run on the loop thread)
    # ==================================================================

    def _subscribe(self) -> None:
        store = self._services["session_store"]
        controller = self._services["view_controller"]
        self._subscriptions.append(store.subscribe(self._on_session))
        self._subscriptions.append(controller.subscribe(self._on_view))
        self._session = store.get_current()
        self._view = controller.snapshot()

    def _on_session(self, snapshot: SessionSnapshot) -> None:
        self.after(0, self._apply_session, snapshot)

    def _on_view(self, snapshot: ViewSnapshot) -> None:
        self.after(0, self._apply_view, snapshot)

    # ==================================================================
    # Rendering (Tk thread)
    # ==================================================================

    def _apply_session(self, snapshot: SessionSnapshot) -> None:
        self._session = snapshot
        self._refresh()

    def _apply_view(self, snapshot: ViewSnapshot) -> None:
        self._view = snapshot
        self._refresh()

    def _refresh(self) -> None:
        """Pick the panel for the latest session + view snapshots."""
        resetting = self._view is not None and self._view.active == AuthView.RESET_PASSWORD
        if self._session.is_authenticated and not resetting:
            self._show_signed_in()
        else:
            self._show_login()

    def _show_login(self) -> None:
        if self._signed_in_panel is not None:
            self._signed_in_panel.destroy()
            self._signed_in_panel = None

        if self._login_view is None:
            self.geometry(f"{LOGIN_WINDOW_WIDTH}x{LOGIN_WINDOW_HEIGHT}")
            self.resizable(True, True)
            self.minsize(LOGIN_WINDOW_WIDTH, LOGIN_WINDOW_HEIGHT)

            self._login_view = LoginView(
                parent=self,
                controller=self._services["view_controller"],
                runner=self._runner,
                logger=self._logger,
            )
            self._login_view.pack(fill="both", expand=True)

        if self._view is not None:
            self._login_view.render(self._view)

    def _show_signed_in(self) -> None:
        if self._login_view is not None:
            self._login_view.destroy()
            self._login_view = None
        if self._signed_in_panel is not None:
            self._signed_in_panel.destroy()

        self.geometry(f"{MAIN_WINDOW_WIDTH}x{MAIN_WINDOW_HEIGHT}")

        identity = self._session.identity
        profile = self._session.profile
        username = profile.username if profile is not None and profile.username else None

        panel = ctk.CTkFrame(self, fg_color=CONTENT_BG)
        panel.pack(fill="both", expand=True)
        card = ctk.CTkFrame(panel, fg_color=CONTENT_CARD_BG, corner_radius=16)
        card.place(relx=0.5, rely=0.5, anchor="center")

        ctk.CTkLabel(
            card,
            text=f"Welcome, {username}" if username else "Welcome",
            font=FONT_HEADING,
            text_color=TEXT_PRIMARY,
        ).pack(padx=PADDING_LG * 2, pady=(PADDING_LG, 4))
        ctk.CTkLabel(
            card,
            text=identity.email if identity is not None else "",
            font=FONT_BODY,
            text_color=TEXT_SECONDARY,
        ).pack(pady=(0, 4))
        if profile is None:
            ctk.CTkLabel(
                card,
                text="Profile unavailable.",
                font=FONT_SMALL,
                text_color=TEXT_SECONDARY,
            ).pack(pady=(0, 4))

        ctk.CTkButton(
            card,
            text="Sign out",
            font=FONT_BUTTON,
            fg_color=LOGOUT_PRIMARY,
            hover_color=LOGOUT_HOVER,
            text_color=TEXT_LIGHT,
            corner_radius=CORNER_RADIUS,
            command=self._handle_logout,
        ).pack(padx=PADDING_LG, pady=(PADDING_MD, PADDING_LG))

        self._signed_in_panel = panel

    # ==================================================================
    # Auth lifecycle
    # ==================================================================

    def _handle_logout(self) -> None:
        """Sign out; the store's SIGNED_OUT event brings back the login view."""
        self._runner.submit(self._services["view_controller"].logout())

    # ==================================================================
    # Window close
    # ==================================================================

    def _on_close(self) -> None:
        """Dispose subscriptions on the loop thread before destroying."""

        def _dispose() -> None:
            for unsubscribe in self._subscriptions:
                unsubscribe()
            self._subscriptions.clear()

        try:
            self._runner.call(_dispose)
        except TimeoutError:
            self._logger.warning("Timed out disposing UI subscriptions.")
        self.destroy()
