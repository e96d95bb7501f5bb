"""Storage layer for persisting seen announcements."""

from .base import BaseStore, StoreError
from .supabase_store import SupabaseStore

__all__ = ["BaseStore", "StoreError", "SupabaseStore"]
