import asyncio

import pytest

from authportal.models.auth_models import AuthResult, ViewSnapshot
from authportal.models.enums import AuthView, ErrorKind, NoticeKind, SessionEventKind
from authportal.models.identity import Profile
from authportal.services import ServiceContainer
from authportal.services.view_controller import ViewController
from conftest import FakeIdentityProvider, FakeProfileStore, MemoryLocator, settle


@pytest.fixture()
def controller(services: ServiceContainer) -> ViewController:
    return services["view_controller"]


def test_starts_on_login(controller: ViewController) -> None:
    assert controller.active == AuthView.LOGIN
    assert controller.notice is None


def test_navigation_from_login(controller: ViewController) -> None:
    assert controller.show_register()
    assert controller.active == AuthView.REGISTER

    # Only reachable from the sign-in surface.
    assert not controller.show_forgot_password()
    assert controller.active == AuthView.REGISTER

    assert controller.back_to_login()
    assert controller.show_forgot_password()
    assert controller.active == AuthView.FORGOT_PASSWORD


def test_back_to_login_discards_draft(controller: ViewController) -> None:
    controller.show_register()
    controller.update_field("email", "neo@example.com")
    controller.update_field("username", "neo")

    controller.back_to_login()
    controller.show_register()

    assert controller.draft(AuthView.REGISTER).email == ""
    assert controller.draft(AuthView.REGISTER).username == ""


def test_unknown_field_is_rejected(controller: ViewController) -> None:
    with pytest.raises(ValueError):
        controller.update_field("phone", "555")


def test_register_validation_happens_before_network(
    controller: ViewController, provider: FakeIdentityProvider,
) -> None:
    controller.show_register()
    controller.update_field("email", "neo@example.com")
    controller.update_field("password", "abc")
    controller.update_field("username", "neo")

    result = asyncio.run(controller.submit_register())

    assert result.error_kind == ErrorKind.WEAK_PASSWORD
    assert controller.error(AuthView.REGISTER) is not None
    assert provider.calls == []

    controller.update_field("password", "abcdef")
    controller.update_field("username", "  ")
    result = asyncio.run(controller.submit_register())

    assert result.error_kind == ErrorKind.USERNAME_REQUIRED
    assert provider.calls == []


def test_editing_a_field_clears_the_form_error(
    controller: ViewController, provider: FakeIdentityProvider,
) -> None:
    controller.update_field("email", "neo@example.com")
    controller.update_field("password", "wrong!")
    asyncio.run(controller.submit_login())
    assert controller.error(AuthView.LOGIN) is not None

    controller.update_field("password", "matrix1")

    assert controller.error(AuthView.LOGIN) is None


def test_failed_login_keeps_draft(controller: ViewController) -> None:
    controller.update_field("email", "neo@example.com")
    controller.update_field("password", "wrong!")

    result = asyncio.run(controller.submit_login())

    assert result.error_kind == ErrorKind.INVALID_CREDENTIALS
    assert controller.draft(AuthView.LOGIN).email == "neo@example.com"
    snapshot = controller.snapshot()
    assert snapshot.form.error_message == "Incorrect email or password."


def test_recovery_preempts_forgot_password_and_discards_its_draft(controller: ViewController) -> None:
    controller.show_forgot_password()
    controller.update_field("email", "neo@example.com")

    assert controller.enter_recovery("provider_event")

    assert controller.active == AuthView.RESET_PASSWORD
    assert controller.draft(AuthView.FORGOT_PASSWORD).email == ""


def test_recovery_is_idempotent(controller: ViewController) -> None:
    assert controller.enter_recovery("url")
    controller.update_field("password", "abcdef")

    assert not controller.enter_recovery("provider_event")

    assert controller.active == AuthView.RESET_PASSWORD
    assert controller.draft(AuthView.RESET_PASSWORD).password == "abcdef"


def test_navigation_is_ignored_while_resetting(
    controller: ViewController, services: ServiceContainer, provider: FakeIdentityProvider,
) -> None:
    controller.enter_recovery("url")

    assert not controller.show_register()
    assert not controller.back_to_login()
    assert controller.active == AuthView.RESET_PASSWORD

    assert controller.cancel_reset()
    assert controller.active == AuthView.LOGIN

    asyncio.run(services["auth_service"].wait_for_background())
    assert provider.called("sign_out") == []


def test_recovery_marker_in_location_is_consumed(
    controller: ViewController, locator: MemoryLocator,
) -> None:
    locator.url = "authportal://login#reset-password"

    link = controller.check_location()

    assert link is not None
    assert controller.active == AuthView.RESET_PASSWORD
    assert locator.current() == "authportal://login"
    assert controller.check_location() is None


def test_location_without_marker_changes_nothing(
    controller: ViewController, locator: MemoryLocator,
) -> None:
    assert controller.check_location() is None
    assert controller.active == AuthView.LOGIN
    assert locator.history == []


def test_provider_recovery_event_enters_reset(
    controller: ViewController, provider: FakeIdentityProvider,
) -> None:
    controller.attach()

    provider.emit(SessionEventKind.PASSWORD_RECOVERY)

    assert controller.active == AuthView.RESET_PASSWORD
    controller.close()
    assert provider.listener_count == 0


def test_both_recovery_channels_enter_reset_once(
    controller: ViewController, provider: FakeIdentityProvider, locator: MemoryLocator,
) -> None:
    seen: list[ViewSnapshot] = []
    controller.attach()
    controller.subscribe(seen.append)
    locator.url = "authportal://login#reset-password"

    controller.check_location()
    provider.emit(SessionEventKind.PASSWORD_RECOVERY)

    entries = [
        s for i, s in enumerate(seen)
        if s.active == AuthView.RESET_PASSWORD and (i == 0 or seen[i - 1].active != AuthView.RESET_PASSWORD)
    ]
    assert controller.active == AuthView.RESET_PASSWORD
    assert len(entries) == 1
    assert locator.history == ["authportal://login"]


def test_restore_adopts_recovery_tokens(
    controller: ViewController, provider: FakeIdentityProvider, locator: MemoryLocator,
) -> None:
    identity = provider.add_account("neo@example.com", "matrix1")
    provider.recovery_tokens[f"recovery-{identity.id}"] = identity
    locator.url = (
        "authportal://login#reset-password"
        f"#access_token=recovery-{identity.id}&refresh_token=rt&type=recovery"
    )

    assert asyncio.run(controller.restore_from_location())

    assert controller.active == AuthView.RESET_PASSWORD
    assert provider.called("set_session") == [(f"recovery-{identity.id}", "rt")]
    assert provider.current == identity
    assert controller.error(AuthView.RESET_PASSWORD) is None


def test_stale_result_is_discarded_after_recovery(
    controller: ViewController, provider: FakeIdentityProvider,
) -> None:
    controller.show_forgot_password()
    controller.update_field("email", "neo@example.com")

    async def scenario() -> AuthResult:
        gate = provider.hold("request_password_reset")
        pending = asyncio.create_task(controller.submit_forgot_password())
        await settle()
        controller.enter_recovery("provider_event")
        gate.set()
        return await pending

    result = asyncio.run(scenario())

    assert result.success
    assert controller.active == AuthView.RESET_PASSWORD
    assert controller.notice is None


def test_double_submit_is_busy(controller: ViewController, provider: FakeIdentityProvider) -> None:
    provider.add_account("neo@example.com", "matrix1")
    controller.update_field("email", "neo@example.com")
    controller.update_field("password", "matrix1")

    async def scenario() -> tuple[AuthResult, AuthResult]:
        gate = provider.hold("sign_in_with_password")
        first = asyncio.create_task(controller.submit_login())
        await settle()
        assert controller.snapshot().form.pending
        second = await controller.submit_login()
        gate.set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert first.success
    assert second.error_kind == ErrorKind.BUSY
    assert len(provider.called("sign_in_with_password")) == 1


def test_forgot_password_success_shows_notice(controller: ViewController) -> None:
    controller.show_forgot_password()
    controller.update_field("email", "neo@example.com")

    asyncio.run(controller.submit_forgot_password())

    assert controller.active == AuthView.LOGIN
    assert controller.notice is not None
    assert controller.notice.kind == NoticeKind.RESET_EMAIL_SENT
    assert controller.notice.email == "neo@example.com"
    assert "neo@example.com" in controller.notice.message


def test_editing_login_form_clears_notice(controller: ViewController) -> None:
    controller.show_forgot_password()
    controller.update_field("email", "neo@example.com")
    asyncio.run(controller.submit_forgot_password())

    controller.update_field("email", "trinity@example.com")

    assert controller.notice is None


def test_reset_success_returns_to_login(
    controller: ViewController, provider: FakeIdentityProvider,
) -> None:
    provider.current = provider.add_account("neo@example.com", "matrix1")
    controller.enter_recovery("url")
    controller.update_field("password", "matrix2")
    controller.update_field("confirm_password", "matrix2")

    result = asyncio.run(controller.submit_reset_password())

    assert result.success
    assert controller.active == AuthView.LOGIN
    assert controller.notice is not None
    assert controller.notice.kind == NoticeKind.PASSWORD_CHANGED


def test_reset_mismatch_stays_on_reset(controller: ViewController, provider: FakeIdentityProvider) -> None:
    controller.enter_recovery("url")
    controller.update_field("password", "abcdef")
    controller.update_field("confirm_password", "abcdeg")

    result = asyncio.run(controller.submit_reset_password())

    assert result.error_kind == ErrorKind.PASSWORD_MISMATCH
    assert controller.active == AuthView.RESET_PASSWORD
    assert controller.snapshot().form.error_message == "Passwords do not match."
    assert provider.calls == []


def test_update_profile_requires_session(controller: ViewController) -> None:
    result = asyncio.run(controller.update_profile({"username": "neo"}))

    assert not result.success


def test_update_profile_publishes_to_store(
    services: ServiceContainer, provider: FakeIdentityProvider, profiles: FakeProfileStore,
) -> None:
    controller = services["view_controller"]
    store = services["session_store"]
    identity = provider.add_account("neo@example.com", "matrix1")
    profiles.rows[identity.id] = Profile(id=identity.id, username="neo")
    provider.current = identity

    async def scenario() -> AuthResult:
        await store.refresh()
        return await controller.update_profile({"username": "the_one"})

    result = asyncio.run(scenario())

    assert result.success
    assert store.profile is not None and store.profile.username == "the_one"


def test_view_listener_receives_snapshots(controller: ViewController) -> None:
    seen: list[ViewSnapshot] = []
    unsubscribe = controller.subscribe(seen.append)

    controller.show_register()
    unsubscribe()
    controller.back_to_login()

    assert seen[-1].active == AuthView.REGISTER
    with pytest.raises(RuntimeError):
        unsubscribe()
