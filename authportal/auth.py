"""
Session State.

``SessionStore`` is the single writer of "who is signed in": the cached
provider ``Identity`` plus the ``Profile`` derived from it.  Every other
component reads it through :meth:`SessionStore.get_current` or a
subscription and never mutates identity or profile directly.

State changes come from two paths:

- :meth:`SessionStore.refresh`, which re-queries the provider;
- provider session events, delivered through the subscription opened by
  :meth:`SessionStore.start`.

Each change takes a sequence number when it arrives.  A change whose
sequence is older than the newest one observed is discarded when it
finally resolves, so a slow profile fetch for an old event can never
overwrite the state produced by a newer one.

Usage::

    store = SessionStore(provider=provider, profiles=profiles, logger=log)
    async with store:
        unsubscribe = store.subscribe(render)
        ...
        unsubscribe()
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Callable, Optional

from authportal.interfaces import (
    IdentityProvider,
    ProfileStore,
    ProviderError,
    Unsubscribe,
)
from authportal.logger import StructuredLogger
from authportal.models.enums import SessionEventKind
from authportal.models.identity import Identity, Profile, ProviderSession, SessionSnapshot

SessionListener = Callable[[SessionSnapshot], None]


class Disposer:
    """One-shot unsubscribe handle.

    Calling it a second time is a programming error and raises
    ``RuntimeError`` instead of silently doing nothing.
    """

    def __init__(self, release: Callable[[], None], label: str) -> None:
        self._release: Optional[Callable[[], None]] = release
        self._label: str = label

    def __call__(self) -> None:
        if self._release is None:
            raise RuntimeError(f"{self._label} subscription already disposed.")
        release, self._release = self._release, None
        release()

    @property
    def disposed(self) -> bool:
        return self._release is None


class SessionStore:
    """Injectable holder of the current session.

    Create one instance at the composition root and pass it to every
    consumer; there is no module-level session.

    Parameters
    ----------
    provider:
        Identity provider queried on refresh and subscribed to on start.
    profiles:
        Profile store used to derive the ``Profile`` for an identity.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        profiles: ProfileStore,
        logger: StructuredLogger,
    ) -> None:
        self._provider: IdentityProvider = provider
        self._profiles: ProfileStore = profiles
        self._logger: StructuredLogger = logger

        self._snapshot: SessionSnapshot = SessionSnapshot()
        self._latest_sequence: int = 0
        self._listeners: dict[int, SessionListener] = {}
        self._listener_ids = itertools.count(1)

        self._provider_subscription: Optional[Disposer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_current(self) -> SessionSnapshot:
        """Return the cached snapshot without touching the provider."""
        return self._snapshot

    @property
    def identity(self) -> Optional[Identity]:
        return self._snapshot.identity

    @property
    def profile(self) -> Optional[Profile]:
        return self._snapshot.profile

    @property
    def is_authenticated(self) -> bool:
        return self._snapshot.identity is not None

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: SessionListener) -> Unsubscribe:
        """Invoke *callback* with every published snapshot.

        Returns a disposer that must be called exactly once.
        """
        listener_id = next(self._listener_ids)
        self._listeners[listener_id] = callback
        return Disposer(lambda: self._listeners.pop(listener_id, None), "Session")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin listening to provider session events.

        Must be called from the event loop that will own the store.
        """
        if self._provider_subscription is not None:
            return
        self._loop = asyncio.get_running_loop()
        unsubscribe = self._provider.on_session_change(self._on_provider_event)
        self._provider_subscription = Disposer(unsubscribe, "Provider session")
        self._logger.debug("Session store listening for provider events.")

    def close(self) -> None:
        """Stop listening to provider events and drop all listeners."""
        if self._provider_subscription is not None:
            self._provider_subscription()
            self._provider_subscription = None
        self._listeners.clear()

    async def __aenter__(self) -> "SessionStore":
        self.start()
        await self.refresh()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def refresh(self) -> SessionSnapshot:
        """Re-query the provider and publish the result.

        A profile that cannot be fetched is published as ``None``; the
        identity alone is still authoritative.  A provider failure is
        treated as "no session".
        """
        sequence = self._allocate_sequence()
        try:
            identity = await self._provider.get_current_user()
        except ProviderError as exc:
            self._logger.warning("Session refresh failed: %s", exc)
            identity = None

        profile = await self._load_profile(identity) if identity is not None else None
        self._publish(sequence, identity, profile)
        return self._snapshot

    async def handle_event(
        self,
        sequence: int,
        kind: SessionEventKind,
        session: Optional[ProviderSession],
    ) -> None:
        """Apply one provider event that arrived with *sequence*."""
        self._latest_sequence = max(self._latest_sequence, sequence)
        identity = session.identity if session is not None else None

        self._logger.info(
            "Session event %s (seq %d).", kind, sequence,
            extra={"event": "SESSION_EVENT", "kind": str(kind), "sequence": sequence},
        )

        if identity is None:
            self._publish(sequence, None, None)
            return

        current = self._snapshot
        same_identity = current.identity is not None and current.identity.id == identity.id
        if same_identity and current.profile is not None and kind != SessionEventKind.USER_UPDATED:
            profile: Optional[Profile] = current.profile
        else:
            profile = await self._load_profile(identity)
            # A local profile write landed while the fetch was in flight.
            written = self._snapshot
            if (
                written.sequence == sequence
                and written.profile is not None
                and written.profile.id == identity.id
            ):
                profile = written.profile

        self._publish(sequence, identity, profile)

    def publish_profile(self, profile: Profile) -> None:
        """Publish a profile written through the profile store.

        Ignored when *profile* does not belong to the current identity.
        The write reuses the newest sequence instead of taking a new one,
        so a provider event still resolving keeps its identity and adopts
        this profile.
        """
        identity = self._snapshot.identity
        if identity is None or identity.id != profile.id:
            self._logger.debug("Dropping profile update for inactive identity %s.", profile.id)
            return
        self._publish(self._latest_sequence, identity, profile)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _allocate_sequence(self) -> int:
        self._latest_sequence += 1
        return self._latest_sequence

    def _on_provider_event(
        self, kind: SessionEventKind, session: Optional[ProviderSession],
    ) -> None:
        # The sequence is taken here, synchronously, so it reflects
        # arrival order even though handling is asynchronous.
        sequence = self._allocate_sequence()
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self.handle_event(sequence, kind, session))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _load_profile(self, identity: Identity) -> Optional[Profile]:
        try:
            return await self._profiles.get(identity.id)
        except ProviderError as exc:
            self._logger.warning(
                "Profile fetch failed for %s: %s", identity.id, exc,
            )
            return None

    def _publish(
        self,
        sequence: int,
        identity: Optional[Identity],
        profile: Optional[Profile],
    ) -> None:
        if sequence < self._latest_sequence:
            self._logger.debug(
                "Discarding stale session update (seq %d < %d).",
                sequence,
                self._latest_sequence,
            )
            return

        self._snapshot = SessionSnapshot(identity=identity, profile=profile, sequence=sequence)
        for listener in list(self._listeners.values()):
            try:
                listener(self._snapshot)
            except Exception as exc:
                self._logger.error(
                    "Session listener failed: %s", exc, exc_info=True,
                )
