"""AuthPortal: desktop authentication surface backed by Supabase."""

__version__ = "1.0.0"
