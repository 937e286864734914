from orbitalscan.stores.memory import InMemoryStore
from orbitalscan.stores.supabase import SupabaseStore

__all__ = ["InMemoryStore", "SupabaseStore"]
