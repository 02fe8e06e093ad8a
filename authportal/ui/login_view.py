"""Login View: Authentication Surfaces.

Renders the four auth surfaces (sign in, create account, forgot
password, set new password) from ``ViewController`` snapshots and
forwards field edits, submissions and navigation back to it.

**Thin UI Rule**: This module contains ZERO business logic.  It gathers
inputs, delegates to the ``ViewController`` on the background loop, and
displays whatever snapshot comes back.
"""

from __future__ import annotations

from typing import Any, Callable, Coroutine, NamedTuple, Optional

import customtkinter as ctk

from authportal.logger import StructuredLogger
from authportal.models.auth_models import ViewSnapshot
from authportal.models.enums import AuthView
from authportal.runtime import AsyncRunner
from authportal.services.view_controller import ViewController
from authportal.ui.theme import (
    ACCENT_HOVER,
    ACCENT_PRIMARY,
    BUTTON_HEIGHT,
    CARD_BORDER,
    CARD_WIDTH,
    CONTENT_BG,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    ERROR_TEXT,
    FONT_BODY,
    FONT_BRAND,
    FONT_BUTTON,
    FONT_HEADING,
    FONT_ICON_LG,
    FONT_LABEL,
    FONT_SMALL,
    FONT_SUBTITLE,
    INPUT_BG,
    INPUT_BORDER,
    INPUT_HEIGHT,
    LINK_HOVER,
    PADDING_LG,
    PADDING_MD,
    PADDING_SM,
    SUCCESS_TEXT,
    TEXT_LIGHT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_BRAND_ICON_SIZE: int = 56
_MASK: str = "••••••••"


class _FieldSpec(NamedTuple):
    name: str
    label: str
    placeholder: str
    secret: bool = False


class _LinkSpec(NamedTuple):
    text: str
    command: Callable[[], object]


_SURFACE_TITLES: dict[AuthView, str] = {
    AuthView.LOGIN: "Sign In",
    AuthView.REGISTER: "Create Account",
    AuthView.FORGOT_PASSWORD: "Forgot Password",
    AuthView.RESET_PASSWORD: "Set New Password",
}

_SUBMIT_LABELS: dict[AuthView, tuple[str, str]] = {
    AuthView.LOGIN: ("Sign In  →", "Signing in..."),
    AuthView.REGISTER: ("Create Account  →", "Creating account..."),
    AuthView.FORGOT_PASSWORD: ("Send Reset Link", "Sending..."),
    AuthView.RESET_PASSWORD: ("Save Password", "Saving..."),
}


class LoginView(ctk.CTkFrame):
    """Centred card that shows exactly one auth surface at a time.

    Every widget change is driven by :meth:`render`; the view never
    decides on its own which surface is visible.

    Parameters
    ----------
    parent:
        The root ``CTk`` window this frame belongs to.
    controller:
        View controller owning the surfaces, drafts and submissions.
    runner:
        Background loop the controller lives on.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        parent: ctk.CTk,
        controller: ViewController,
        runner: AsyncRunner,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, fg_color=CONTENT_BG)

        self._controller: ViewController = controller
        self._runner: AsyncRunner = runner
        self._logger: StructuredLogger = logger

        self._surfaces: dict[AuthView, ctk.CTkFrame] = {}
        self._entries: dict[tuple[AuthView, str], ctk.CTkEntry] = {}
        self._submit_buttons: dict[AuthView, ctk.CTkButton] = {}
        self._error_labels: dict[AuthView, ctk.CTkLabel] = {}
        self._notice_label: Optional[ctk.CTkLabel] = None
        self._shown: Optional[AuthView] = None
        self._body: Optional[ctk.CTkFrame] = None

        self._build_ui()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        self.grid_rowconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=0)
        self.grid_rowconfigure(2, weight=1)
        self.grid_columnconfigure(0, weight=1)

        card = ctk.CTkFrame(
            self,
            width=CARD_WIDTH,
            fg_color=CONTENT_CARD_BG,
            corner_radius=16,
            border_width=1,
            border_color=CARD_BORDER,
        )
        card.grid(row=1, column=0)

        inner = ctk.CTkFrame(card, fg_color="transparent")
        inner.pack(fill="both", expand=True, padx=36, pady=28)

        icon_frame = ctk.CTkFrame(
            inner,
            width=_BRAND_ICON_SIZE,
            height=_BRAND_ICON_SIZE,
            corner_radius=14,
            fg_color=ACCENT_PRIMARY,
        )
        icon_frame.pack(pady=(0, 12))
        icon_frame.pack_propagate(False)
        ctk.CTkLabel(
            icon_frame, text="✓", font=FONT_ICON_LG, text_color=TEXT_LIGHT,
        ).place(relx=0.5, rely=0.5, anchor="center")

        ctk.CTkLabel(
            inner, text="AuthPortal", font=FONT_BRAND, text_color=TEXT_PRIMARY,
        ).pack(pady=(0, 2))
        ctk.CTkLabel(
            inner,
            text="Sign in to continue",
            font=FONT_SUBTITLE,
            text_color=TEXT_SECONDARY,
        ).pack(pady=(0, PADDING_MD))

        # Success banner shown above the sign-in surface only
        self._notice_label = ctk.CTkLabel(
            inner,
            text="",
            font=FONT_SMALL,
            text_color=SUCCESS_TEXT,
            wraplength=CARD_WIDTH - 100,
        )

        body = ctk.CTkFrame(inner, fg_color="transparent")
        body.pack(fill="both", expand=True)
        self._body = body

        c = self._controller
        self._build_surface(
            body,
            AuthView.LOGIN,
            fields=[
                _FieldSpec("email", "EMAIL ADDRESS", "name@example.com"),
                _FieldSpec("password", "PASSWORD", _MASK, secret=True),
            ],
            submit=c.submit_login,
            links=[
                _LinkSpec("Forgot Password?", lambda: self._navigate(c.show_forgot_password)),
                _LinkSpec("Create an account", lambda: self._navigate(c.show_register)),
            ],
        )
        self._build_surface(
            body,
            AuthView.REGISTER,
            fields=[
                _FieldSpec("username", "USERNAME", "e.g. jdoe"),
                _FieldSpec("email", "EMAIL ADDRESS", "name@example.com"),
                _FieldSpec("password", "PASSWORD", _MASK, secret=True),
            ],
            submit=c.submit_register,
            links=[_LinkSpec("Back to sign in", lambda: self._navigate(c.back_to_login))],
        )
        self._build_surface(
            body,
            AuthView.FORGOT_PASSWORD,
            fields=[_FieldSpec("email", "EMAIL ADDRESS", "name@example.com")],
            submit=c.submit_forgot_password,
            links=[_LinkSpec("Back to sign in", lambda: self._navigate(c.back_to_login))],
        )
        self._build_surface(
            body,
            AuthView.RESET_PASSWORD,
            fields=[
                _FieldSpec("password", "NEW PASSWORD", _MASK, secret=True),
                _FieldSpec("confirm_password", "CONFIRM PASSWORD", _MASK, secret=True),
            ],
            submit=c.submit_reset_password,
            links=[_LinkSpec("Cancel", lambda: self._navigate(c.cancel_reset))],
        )

    def _build_surface(
        self,
        parent: ctk.CTkFrame,
        view: AuthView,
        fields: list[_FieldSpec],
        submit: Callable[[], Coroutine[Any, Any, object]],
        links: list[_LinkSpec],
    ) -> None:
        """Build one surface frame (kept unpacked until rendered)."""
        frame = ctk.CTkFrame(parent, fg_color="transparent")
        self._surfaces[view] = frame

        ctk.CTkLabel(
            frame,
            text=_SURFACE_TITLES[view],
            font=FONT_HEADING,
            text_color=TEXT_PRIMARY,
            anchor="w",
        ).pack(fill="x", pady=(0, PADDING_SM))

        for field in fields:
            ctk.CTkLabel(
                frame,
                text=field.label,
                font=FONT_LABEL,
                text_color=TEXT_PRIMARY,
                anchor="w",
            ).pack(fill="x", pady=(PADDING_SM, 4))

            entry = ctk.CTkEntry(
                frame,
                placeholder_text=field.placeholder,
                font=FONT_BODY,
                fg_color=INPUT_BG,
                border_color=INPUT_BORDER,
                text_color=TEXT_PRIMARY,
                show="*" if field.secret else "",
                height=INPUT_HEIGHT,
                corner_radius=CORNER_RADIUS,
            )
            entry.pack(fill="x")
            entry.bind(
                "<KeyRelease>",
                lambda _event, v=view, f=field.name: self._forward_field(v, f),
            )
            entry.bind("<Return>", lambda _event, s=submit: self._submit(s))
            self._entries[(view, field.name)] = entry

        button = ctk.CTkButton(
            frame,
            text=_SUBMIT_LABELS[view][0],
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            text_color=TEXT_LIGHT,
            height=BUTTON_HEIGHT,
            corner_radius=CORNER_RADIUS,
            command=lambda s=submit: self._submit(s),
        )
        button.pack(fill="x", pady=(PADDING_LG, PADDING_SM))
        self._submit_buttons[view] = button

        # Error label (hidden by default)
        error_label = ctk.CTkLabel(
            frame,
            text="",
            font=FONT_SMALL,
            text_color=ERROR_TEXT,
            wraplength=CARD_WIDTH - 100,
        )
        self._error_labels[view] = error_label

        for link in links:
            ctk.CTkButton(
                frame,
                text=link.text,
                font=FONT_SMALL,
                fg_color="transparent",
                hover_color=LINK_HOVER,
                text_color=ACCENT_PRIMARY,
                height=28,
                corner_radius=CORNER_RADIUS,
                command=link.command,
            ).pack(pady=(PADDING_SM, 0))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, snapshot: ViewSnapshot) -> None:
        """Apply a controller snapshot.  Must run on the Tk thread."""
        view = snapshot.active
        if view != self._shown:
            if self._shown is not None:
                self._surfaces[self._shown].pack_forget()
            self._surfaces[view].pack(fill="both", expand=True)
            self._shown = view
            self._fill_entries(snapshot)

        form = snapshot.form
        idle_text, busy_text = _SUBMIT_LABELS[view]
        self._submit_buttons[view].configure(
            text=busy_text if form.pending else idle_text,
            state="disabled" if form.pending else "normal",
        )

        error_label = self._error_labels[view]
        if form.error_message:
            error_label.configure(text=form.error_message)
            error_label.pack(fill="x", after=self._submit_buttons[view])
        else:
            error_label.configure(text="")
            error_label.pack_forget()

        if self._notice_label is not None:
            if view == AuthView.LOGIN and snapshot.notice is not None:
                self._notice_label.configure(text=snapshot.notice.message)
                self._notice_label.pack(fill="x", pady=(0, PADDING_SM), before=self._body)
            else:
                self._notice_label.configure(text="")
                self._notice_label.pack_forget()

    def _fill_entries(self, snapshot: ViewSnapshot) -> None:
        """Load the draft into the entries of a newly shown surface."""
        draft = snapshot.form.draft
        for (view, name), entry in self._entries.items():
            if view != snapshot.active:
                continue
            entry.delete(0, "end")
            value = getattr(draft, name)
            if value:
                entry.insert(0, value)

    # ------------------------------------------------------------------
    # Event Handlers
    # ------------------------------------------------------------------

    def _forward_field(self, view: AuthView, name: str) -> None:
        value = self._entries[(view, name)].get()
        self._runner.post(lambda: self._controller.update_field(name, value, view))

    def _submit(self, submit: Callable[[], Coroutine[Any, Any, object]]) -> None:
        """Start a submission on the background loop.

        The resulting state arrives through the controller subscription,
        so nothing is done with the return value here.
        """
        self._runner.submit(submit())

    def _navigate(self, action: Callable[[], bool]) -> None:
        self._runner.post(action)

