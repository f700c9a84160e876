#!/usr/bin/env python3
"""
Target Change Detection — Hash-Driven Invalidation

A cached call result depends on the object the method was called on. When
that object mutates structurally between evaluations (not merely gets
re-referenced), the key stays the same but the cached value is stale.

Implements:
- check_and_record(key, observed, cache) → invalidate key if the hash moved
- record(key, observed) → store the post-call hash without invalidating
- reset() → forget every observed hash (new evaluation session)
"""

import logging
from typing import Any, Dict, Optional

from .cache import QueryCache
from .hashing import DEFAULT_DIGEST_BYTES, structural_hash
from .key_generator import QueryKey

logger = logging.getLogger(__name__)


class TargetHashTable:
    """
    Last observed structural hash per serialized query key.

    Entries are overwritten on every check and only removed by reset().
    """

    def __init__(self, separator: str = ".", digest_bytes: int = DEFAULT_DIGEST_BYTES):
        self.separator = separator
        self.digest_bytes = digest_bytes
        self._hashes: Dict[str, int] = {}

    def check_and_record(self, key: QueryKey, observed: Any, cache: QueryCache) -> bool:
        """
        Record the hash of observed for key; invalidate on change.

        Args:
            key: Query key of the step about to be read
            observed: Object the step's method is bound to
            cache: Cache holding the step's entry

        Returns:
            True if a change was detected and key was invalidated
        """
        joined = self.separator.join(key)
        target_hash = structural_hash(observed, self.digest_bytes)
        previous = self._hashes.get(joined)

        needs_refresh = previous is not None and previous != target_hash
        self._hashes[joined] = target_hash

        if needs_refresh:
            logger.info(f"Target changed for {joined} ({previous:x} → {target_hash:x}), invalidating")
            cache.invalidate(key)

        return needs_refresh

    def record(self, key: QueryKey, observed: Any) -> int:
        """
        Overwrite the stored hash for key without invalidating.

        Called once the step's value has resolved, so a method that mutates
        its own target is compared against its post-call state next time.
        """
        target_hash = structural_hash(observed, self.digest_bytes)
        self._hashes[self.separator.join(key)] = target_hash
        return target_hash

    def get(self, key: QueryKey) -> Optional[int]:
        return self._hashes.get(self.separator.join(key))

    def reset(self) -> None:
        """Clear all observed hashes."""
        count = len(self._hashes)
        self._hashes.clear()
        logger.debug(f"Target hash table reset ({count} entries dropped)")

    def __len__(self) -> int:
        return len(self._hashes)
