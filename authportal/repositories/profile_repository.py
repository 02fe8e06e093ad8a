"""
Profile Repository.

Reads and partially updates rows of the Supabase ``profiles`` table,
keyed by the identity id.  Rows are created server-side (by the
signup trigger); this repository never inserts.
"""

from __future__ import annotations

from typing import Any

from authportal.connection import SupabaseConnection
from authportal.interfaces import ProviderError
from authportal.logger import StructuredLogger
from authportal.models.identity import Profile
from authportal.repositories.base_repository import BaseRepository

# Columns owned by the database; a client update must never send them.
_READ_ONLY_COLUMNS: frozenset[str] = frozenset({"id", "created_at"})


class ProfileRepository(BaseRepository):
    """``ProfileStore`` backed by a Supabase table."""

    TABLE = "profiles"

    def __init__(
        self,
        connection: SupabaseConnection,
        logger: StructuredLogger,
        table: str = "profiles",
    ) -> None:
        super().__init__(connection, logger)
        self.TABLE = table

    async def get(self, profile_id: str) -> Profile:
        """Fetch the profile row for *profile_id*.

        Raises
        ------
        ProviderError
            If no row exists or the query is rejected.
        """
        with self._table_errors(f"get ({self.TABLE})"):
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("id", profile_id)
                .limit(1)
                .execute()
            )
        if not response.data:
            raise ProviderError(f"Profile {profile_id} not found.", code="profile_not_found")
        return self._to_profile(response.data[0], "get")

    async def update(self, profile_id: str, fields: dict[str, Any]) -> Profile:
        """Apply *fields* to the row; columns not named are left untouched."""
        payload = {k: v for k, v in fields.items() if k not in _READ_ONLY_COLUMNS}
        if not payload:
            return await self.get(profile_id)

        with self._table_errors(f"update ({self.TABLE})"):
            response = await (
                self.supabase.table(self.TABLE)
                .update(payload)
                .eq("id", profile_id)
                .execute()
            )
        if not response.data:
            raise ProviderError(f"Profile {profile_id} not found.", code="profile_not_found")

        self._logger.info(
            "Profile updated: %s", profile_id,
            extra={"event": "PROFILE_UPDATED", "fields": ",".join(sorted(payload))},
        )
        return self._to_profile(response.data[0], "update")

    def _to_profile(self, row: dict[str, Any], operation: str) -> Profile:
        with self._table_errors(f"{operation} ({self.TABLE})"):
            return Profile.model_validate(row)
