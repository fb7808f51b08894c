"""Query cache with invalidate-on-mutation semantics."""

from . import keys
from .entry_state import EntryStateStore
from .query_cache import Loader, QueryCache, QueryKey

__all__ = ["keys", "EntryStateStore", "Loader", "QueryCache", "QueryKey"]
