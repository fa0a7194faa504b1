"""
Cache package for Elections Service.

Provides a process-local, thread-safe key/value cache. Entries never
expire on their own; callers invalidate them after writes.
"""

from .key_value_cache import KeyValueCache

__all__ = ["KeyValueCache"]
