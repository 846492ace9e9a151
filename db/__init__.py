"""Backend appointment store."""

from .supabase_client import SupabaseStore, get_store, translate_api_error

__all__ = ["SupabaseStore", "get_store", "translate_api_error"]
