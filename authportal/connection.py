"""
Provider Connection.

Owns the single async Supabase client used by both the identity
provider adapter and the profile repository.  The client is created
once by :meth:`SupabaseConnection.connect` and injected everywhere
else; nothing in the code base calls ``acreate_client`` directly.

Usage (at application startup)::

    connection = SupabaseConnection(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        logger=StructuredLogger(name="authportal.connection"),
    )
    await connection.connect()
"""

from __future__ import annotations

from typing import Optional

from supabase import AsyncClient, acreate_client

from authportal.logger import StructuredLogger


class SupabaseConnection:
    """Lazily-connected holder of the async Supabase client.

    When ``supabase_url`` or ``supabase_key`` is empty the client is
    never created.  The :pyattr:`client` property then raises
    ``RuntimeError``, which the adapters turn into
    ``ProviderUnavailableError`` so every auth operation fails with a
    network error instead of crashing.

    Parameters
    ----------
    supabase_url:
        The Supabase project URL (e.g. ``https://xyz.supabase.co``).
    supabase_key:
        The project's anonymous key.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        logger: StructuredLogger,
    ) -> None:
        self._url: str = supabase_url
        self._key: str = supabase_key
        self._logger: StructuredLogger = logger
        self._client: Optional[AsyncClient] = None

    async def connect(self) -> bool:
        """Create the client.  Returns ``True`` when a client is available.

        Safe to call more than once; later calls are no-ops.
        """
        if self._client is not None:
            return True

        if not self._url or not self._key:
            self._logger.warning(
                "Supabase credentials not configured; authentication is offline."
            )
            return False

        try:
            self._client = await acreate_client(self._url, self._key)
        except (ValueError, TypeError) as exc:
            self._logger.warning(
                "Supabase credential format error: %s. Authentication is offline.",
                exc,
            )
            return False

        self._logger.info("Supabase client initialized.")
        return True

    @property
    def client(self) -> AsyncClient:
        """Return the connected client.

        Raises
        ------
        RuntimeError
            If :meth:`connect` has not produced a client.
        """
        if self._client is None:
            raise RuntimeError(
                "Supabase client is not initialised. "
                "Authentication is running offline."
            )
        return self._client

    @property
    def is_online(self) -> bool:
        """``True`` when a client is available."""
        return self._client is not None
