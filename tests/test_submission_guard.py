import asyncio

import pytest

from authportal.models.auth_models import AuthResult, SubmissionState
from authportal.models.enums import ErrorKind
from authportal.services.submission_guard import SubmissionGuard


def test_second_submission_while_pending_is_rejected() -> None:
    guard = SubmissionGuard("login")
    calls: list[str] = []

    async def scenario() -> tuple[AuthResult, AuthResult, AuthResult, bool]:
        gate = asyncio.Event()

        async def slow() -> AuthResult:
            calls.append("slow")
            await gate.wait()
            return AuthResult.ok()

        async def quick() -> AuthResult:
            calls.append("quick")
            return AuthResult.ok()

        first = asyncio.create_task(guard.execute(slow))
        await asyncio.sleep(0)
        pending_during_flight = guard.pending
        second = await guard.execute(quick)
        gate.set()
        first_result = await first
        third = await guard.execute(quick)
        return first_result, second, third, pending_during_flight

    first, second, third, pending_during_flight = asyncio.run(scenario())

    assert pending_during_flight is True
    assert first.success
    assert second.error_kind == ErrorKind.BUSY
    assert third.success
    assert calls == ["slow", "quick"]
    assert guard.pending is False


def test_failed_action_records_error_until_next_submission() -> None:
    guard = SubmissionGuard("register")

    async def failing() -> AuthResult:
        return AuthResult.fail(ErrorKind.INVALID_CREDENTIALS)

    async def passing() -> AuthResult:
        return AuthResult.ok()

    asyncio.run(guard.execute(failing))
    assert guard.last_error is not None
    assert guard.last_error.kind == ErrorKind.INVALID_CREDENTIALS

    asyncio.run(guard.execute(passing))
    assert guard.last_error is None


def test_exception_clears_pending_and_propagates() -> None:
    guard = SubmissionGuard("reset")

    async def broken() -> AuthResult:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio.run(guard.execute(broken))
    assert guard.pending is False


def test_listener_sees_pending_then_idle() -> None:
    states: list[SubmissionState] = []
    guard = SubmissionGuard("forgot", on_change=states.append)

    async def action() -> AuthResult:
        return AuthResult.ok()

    asyncio.run(guard.execute(action))

    assert [state.pending for state in states] == [True, False]


def test_set_error_without_change_does_not_notify() -> None:
    states: list[SubmissionState] = []
    guard = SubmissionGuard("login", on_change=states.append)

    guard.clear_error()
    assert states == []
