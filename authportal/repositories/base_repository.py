"""
Base Repository.

Shared plumbing for repositories that read and write Supabase tables:
the connection, the logger, and translation of PostgREST, transport and
row-validation failures into provider errors.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import httpx
from pydantic import ValidationError
from supabase import AsyncClient, PostgrestAPIError

from authportal.connection import SupabaseConnection
from authportal.interfaces import ProviderError, ProviderUnavailableError
from authportal.logger import StructuredLogger


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, connection: SupabaseConnection, logger: StructuredLogger) -> None:
        self._connection = connection
        self._logger = logger

    @property
    def supabase(self) -> AsyncClient:
        """The shared Supabase client (raises ``RuntimeError`` when offline)."""
        return self._connection.client

    @contextmanager
    def _table_errors(self, operation_name: str) -> Iterator[None]:
        """Re-raise PostgREST, transport and row-parsing failures as provider errors.

        Parameters
        ----------
        operation_name:
            Label for log messages, e.g. ``"get (profiles)"``.
        """
        try:
            yield
        except ProviderError:
            raise
        except (RuntimeError, ConnectionError, TimeoutError, httpx.TransportError) as exc:
            self._logger.warning("Supabase unavailable for %s: %s", operation_name, exc)
            raise ProviderUnavailableError(str(exc)) from exc
        except PostgrestAPIError as exc:
            self._logger.warning("Supabase rejected %s: %s", operation_name, exc)
            raise ProviderError(
                getattr(exc, "message", None) or str(exc),
                code=getattr(exc, "code", None),
            ) from exc
        except ValidationError as exc:
            self._logger.warning("Unreadable row from %s: %s", operation_name, exc)
            raise ProviderError(
                f"Malformed row returned by {operation_name}.", code="invalid_row",
            ) from exc
