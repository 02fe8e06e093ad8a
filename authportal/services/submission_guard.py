"""
Single-Flight Submission Guard.

One ``SubmissionGuard`` per form.  While an action is in flight, further
submissions are rejected immediately with ``ErrorKind.BUSY`` rather than
queued, and the form's submit control is rendered disabled.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from authportal.models.auth_models import AuthError, AuthResult, SubmissionState
from authportal.models.enums import ErrorKind

Action = Callable[[], Awaitable[AuthResult]]
StateListener = Callable[[SubmissionState], None]


class SubmissionGuard:
    """At most one in-flight action per form.

    Parameters
    ----------
    name:
        Form name used in log messages and for debugging.
    on_change:
        Optional callback told about every pending/error change, used by
        the view to toggle the busy state of the submit control.
    """

    def __init__(self, name: str, on_change: Optional[StateListener] = None) -> None:
        self.name: str = name
        self._state: SubmissionState = SubmissionState()
        self._on_change: Optional[StateListener] = on_change

    @property
    def pending(self) -> bool:
        return self._state.pending

    @property
    def last_error(self) -> Optional[AuthError]:
        return self._state.last_error

    def set_error(self, error: Optional[AuthError]) -> None:
        """Replace the form's error (``None`` clears it)."""
        if self._state.last_error == error:
            return
        self._state = SubmissionState(pending=self._state.pending, last_error=error)
        self._notify()

    def clear_error(self) -> None:
        self.set_error(None)

    async def execute(self, action: Action) -> AuthResult:
        """Run *action* unless one is already pending for this form.

        The pending flag is cleared, and listeners told, before the
        result is returned, so the form re-enables exactly once per
        accepted submission.
        """
        if self._state.pending:
            return AuthResult.fail(ErrorKind.BUSY)

        self._state = SubmissionState(pending=True, last_error=None)
        self._notify()

        result: Optional[AuthResult] = None
        try:
            result = await action()
        finally:
            error = None
            if result is not None and not result.success:
                error = result.error
            self._state = SubmissionState(pending=False, last_error=error)
            self._notify()

        return result

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self._state)
