"""
Navigation Locator & Recovery Deep Links.

A password-reset email links back into the application with a URL such
as::

    authportal://login#reset-password#access_token=...&refresh_token=...&type=recovery

The desktop launcher hands that URL to the process (command-line
argument or ``AUTHPORTAL_LAUNCH_URL``).  ``LaunchLocator`` exposes it
through the ``NavigationLocator`` protocol so the view controller can
detect the recovery marker and strip it once consumed, which keeps a
relaunch with the same locator from re-entering the reset flow.
"""

from __future__ import annotations

import os
from typing import Optional
from urllib.parse import parse_qs

from pydantic import BaseModel

from authportal.logger import StructuredLogger

RESET_MARKER: str = "reset-password"
RECOVERY_TYPE_MARKER: str = "type=recovery"
LAUNCH_URL_ENV: str = "AUTHPORTAL_LAUNCH_URL"


class RecoveryLink(BaseModel):
    """Tokens carried by a recovery deep link, when the provider sent any."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def has_tokens(self) -> bool:
        return bool(self.access_token and self.refresh_token)


def split_fragment(url: str) -> tuple[str, str]:
    """Return ``(url_without_fragment, fragment)``."""
    base, _, fragment = url.partition("#")
    return base, fragment


def has_recovery_marker(url: str) -> bool:
    """``True`` when *url* carries the password-recovery marker."""
    _, fragment = split_fragment(url)
    if not fragment:
        return False
    return fragment.split("#", 1)[0] == RESET_MARKER or RECOVERY_TYPE_MARKER in fragment


def parse_recovery_link(url: str) -> Optional[RecoveryLink]:
    """Extract the recovery tokens from *url*.

    Returns ``None`` when *url* has no recovery marker.
    """
    if not has_recovery_marker(url):
        return None

    _, fragment = split_fragment(url)
    # The provider appends its parameters after any fragment that was
    # already part of the redirect target, so only the last segment
    # holds key=value pairs.
    params = parse_qs(fragment.rsplit("#", 1)[-1])
    return RecoveryLink(
        access_token=(params.get("access_token") or [None])[0],
        refresh_token=(params.get("refresh_token") or [None])[0],
    )


class LaunchLocator:
    """``NavigationLocator`` over the URL the application was launched with.

    Parameters
    ----------
    url:
        The launch URL; empty when the app was started normally.
    logger:
        Structured JSON logger.
    """

    def __init__(self, url: str, logger: StructuredLogger) -> None:
        self._url: str = url
        self._logger: StructuredLogger = logger

    @classmethod
    def from_environment(
        cls, argv: list[str], logger: StructuredLogger,
    ) -> "LaunchLocator":
        """Build from the first command-line argument or the environment."""
        url = argv[1] if len(argv) > 1 else os.environ.get(LAUNCH_URL_ENV, "")
        return cls(url, logger)

    def current(self) -> str:
        return self._url

    def replace(self, url: str) -> None:
        """Swap the current location without restarting the application."""
        self._logger.debug("Navigation locator replaced.")
        self._url = url
        if os.environ.get(LAUNCH_URL_ENV):
            os.environ[LAUNCH_URL_ENV] = url
