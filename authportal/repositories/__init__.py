"""
Repository Package.

Data access for Supabase tables.  Repositories translate PostgREST
failures into ``ProviderError`` so services handle one error family.
"""

from authportal.repositories.base_repository import BaseRepository
from authportal.repositories.profile_repository import ProfileRepository

__all__ = ["BaseRepository", "ProfileRepository"]
