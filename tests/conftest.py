import asyncio
import itertools
import os
import tempfile
from typing import Any, Callable, Optional

import pytest

os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "authportal-tests.log"))
os.environ.setdefault("SUPABASE_URL", "")

from authportal.config import AppConfig  # noqa: E402
from authportal.interfaces import ProviderError  # noqa: E402
from authportal.models.enums import SessionEventKind  # noqa: E402
from authportal.models.identity import Identity, Profile, ProviderSession  # noqa: E402
from authportal.services import ServiceContainer, build_services  # noqa: E402

SessionCallback = Callable[[SessionEventKind, Optional[ProviderSession]], None]


async def settle(rounds: int = 20) -> None:
    """Let every ready task on the running loop make progress."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class _Controls:
    """Per-method failure injection and gating shared by the fakes."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._errors: dict[str, Exception] = {}
        self._gates: dict[str, asyncio.Event] = {}

    def fail(self, method: str, exc: Exception) -> None:
        self._errors[method] = exc

    def recover(self, method: str) -> None:
        self._errors.pop(method, None)

    def hold(self, method: str) -> asyncio.Event:
        """Block *method* until the returned event is set."""
        gate = asyncio.Event()
        self._gates[method] = gate
        return gate

    def called(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    async def _enter(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        gate = self._gates.get(method)
        if gate is not None:
            await gate.wait()
        exc = self._errors.get(method)
        if exc is not None:
            raise exc


class FakeIdentityProvider(_Controls):
    """In-memory identity provider with Supabase-like error texts."""

    def __init__(self, profiles: Optional["FakeProfileStore"] = None) -> None:
        super().__init__()
        self.profiles = profiles
        self.current: Optional[Identity] = None
        self.passwords: dict[str, str] = {}
        self.accounts: dict[str, Identity] = {}
        self.recovery_tokens: dict[str, Identity] = {}
        self._listeners: dict[int, SessionCallback] = {}
        self._ids = itertools.count(1)

    # -- test helpers ---------------------------------------------------

    def add_account(self, email: str, password: str, confirmed: bool = True) -> Identity:
        identity = Identity(id=f"user-{next(self._ids)}", email=email, email_confirmed=confirmed)
        self.accounts[email] = identity
        self.passwords[email] = password
        return identity

    def confirm(self, email: str) -> None:
        self.accounts[email] = self.accounts[email].model_copy(update={"email_confirmed": True})

    def emit(self, kind: SessionEventKind, identity: Optional[Identity] = None) -> None:
        session = ProviderSession(identity=identity, access_token="at", refresh_token="rt") if identity else None
        for callback in list(self._listeners.values()):
            callback(kind, session)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    # -- IdentityProvider -------------------------------------------------

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
        redirect_to: Optional[str] = None,
    ) -> Optional[ProviderSession]:
        await self._enter("sign_up", email, password, metadata, redirect_to)
        if email in self.accounts:
            raise ProviderError("User already registered", code="user_already_exists")
        if "@" not in email:
            raise ProviderError("Unable to validate email address: invalid format", code="validation_failed")
        identity = self.add_account(email, password, confirmed=False)
        if self.profiles is not None:
            self.profiles.rows[identity.id] = Profile(
                id=identity.id, username=metadata.get("username", ""), email=email,
            )
        return None

    async def sign_in_with_password(self, email: str, password: str) -> ProviderSession:
        await self._enter("sign_in_with_password", email, password)
        identity = self.accounts.get(email)
        if identity is None or self.passwords.get(email) != password:
            raise ProviderError("Invalid login credentials", code="invalid_credentials")
        if not identity.email_confirmed:
            raise ProviderError("Email not confirmed", code="email_not_confirmed")
        self.current = identity
        self.emit(SessionEventKind.SIGNED_IN, identity)
        return ProviderSession(identity=identity, access_token="at", refresh_token="rt")

    async def sign_out(self) -> None:
        await self._enter("sign_out")
        self.current = None
        self.emit(SessionEventKind.SIGNED_OUT)

    async def get_current_user(self) -> Optional[Identity]:
        await self._enter("get_current_user")
        return self.current

    async def update_password(self, new_password: str) -> None:
        await self._enter("update_password", new_password)
        if self.current is None:
            raise ProviderError("Auth session missing!", code="session_not_found")
        if self.passwords.get(self.current.email) == new_password:
            raise ProviderError(
                "New password should be different from the old password.",
                code="same_password",
            )
        self.passwords[self.current.email] = new_password
        self.emit(SessionEventKind.USER_UPDATED, self.current)

    async def request_password_reset(self, email: str, redirect_to: str) -> None:
        await self._enter("request_password_reset", email, redirect_to)
        identity = self.accounts.get(email)
        if identity is not None:
            self.recovery_tokens[f"recovery-{identity.id}"] = identity

    async def set_session(self, access_token: str, refresh_token: str) -> ProviderSession:
        await self._enter("set_session", access_token, refresh_token)
        identity = self.recovery_tokens.get(access_token)
        if identity is None:
            raise ProviderError("Invalid Refresh Token: Refresh Token Not Found", code="refresh_token_not_found")
        self.current = identity
        self.emit(SessionEventKind.SIGNED_IN, identity)
        return ProviderSession(identity=identity, access_token=access_token, refresh_token=refresh_token)

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        listener_id = next(self._ids)
        self._listeners[listener_id] = callback
        return lambda: self._listeners.pop(listener_id)


class FakeProfileStore(_Controls):
    def __init__(self) -> None:
        super().__init__()
        self.rows: dict[str, Profile] = {}

    async def get(self, profile_id: str) -> Profile:
        await self._enter("get", profile_id)
        profile = self.rows.get(profile_id)
        if profile is None:
            raise ProviderError(f"Profile {profile_id} not found", code="profile_not_found")
        return profile

    async def update(self, profile_id: str, fields: dict[str, Any]) -> Profile:
        await self._enter("update", profile_id, fields)
        current = self.rows.get(profile_id)
        if current is None:
            raise ProviderError(f"Profile {profile_id} not found", code="profile_not_found")
        updated = Profile.model_validate({**current.model_dump(), **fields})
        self.rows[profile_id] = updated
        return updated


class MemoryLocator:
    def __init__(self, url: str = "authportal://login") -> None:
        self.url = url
        self.history: list[str] = []

    def current(self) -> str:
        return self.url

    def replace(self, url: str) -> None:
        self.history.append(url)
        self.url = url


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig(
        _env_file=None,
        SUPABASE_URL="",
        DEFERRED_SIGNOUT_DELAY_S=0.01,
        LOCALE="en",
    )


@pytest.fixture()
def profiles() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture()
def provider(profiles: FakeProfileStore) -> FakeIdentityProvider:
    return FakeIdentityProvider(profiles=profiles)


@pytest.fixture()
def locator() -> MemoryLocator:
    return MemoryLocator()


@pytest.fixture()
def services(
    config: AppConfig,
    provider: FakeIdentityProvider,
    profiles: FakeProfileStore,
    locator: MemoryLocator,
) -> ServiceContainer:
    return build_services(config, provider, profiles, locator)
