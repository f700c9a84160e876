#!/usr/bin/env python3
"""
Query Key Generation — Hierarchical Cache Keys

Implements:
- root_key(root) → base key from the root's identity descriptor
- compose(base_key, item) → base key + one segment for the chain step
- compose_chain(root, items) → full key for a whole chain
- prefixes(root, items) → every intermediate key of a chain
- serialize(key) → flat string form (for tables and logs)

Key layout:
    (root_token, step_token, step_token, ...)
    - root_token = "<TypeName>:<identity>" or "class:<module.QualName>"
    - property read → "<name>"
    - method call   → "<name>(<args hash>)"
    - transforms contribute nothing

A key of length N is always a strict extension of the key of length N-1
built from the same chain, so prefix matching means "derived from".
"""

import inspect
import logging
from typing import Any, Iterable, Iterator, Tuple

from .hashing import DEFAULT_DIGEST_BYTES, structural_hash

logger = logging.getLogger(__name__)

QueryKey = Tuple[str, ...]

IDENTITY_HOOK = "__ghost_identity__"
IDENTITY_ATTRIBUTE = "id"


class QueryKeyGenerator:
    """
    Generate deterministic query keys from a root and its chain steps.

    Design:
    - Root keys use an identity descriptor, not the full structural hash,
      so a re-fetched copy of the same entity maps to the same key
    - Step keys hash call arguments structurally; arguments that hash the
      same share a key (cache-hit rate over exotic-argument precision)
    - Same root identity + same steps = identical key = cache hit
    """

    def __init__(self, separator: str = ".", digest_bytes: int = DEFAULT_DIGEST_BYTES):
        self.separator = separator
        self.digest_bytes = digest_bytes

    # ── Root ─────────────────────────────────────────────────────

    def identity_of(self, root: Any) -> Any:
        """
        Resolve the identity descriptor of a root value.

        Order:
        1. root.__ghost_identity__() if defined
        2. root.id if present
        3. structural hash (no better identity available)
        """
        hook = getattr(root, IDENTITY_HOOK, None)
        if hook is not None and callable(hook):
            return hook()

        identity = getattr(root, IDENTITY_ATTRIBUTE, None)
        if identity is not None and not callable(identity):
            return identity

        return self._hex(structural_hash(root, self.digest_bytes))

    def root_key(self, root: Any) -> QueryKey:
        if root is None:
            return ("None",)

        if inspect.isclass(root):
            return (f"class:{root.__module__}.{root.__qualname__}",)

        identity = self.identity_of(root)
        if not isinstance(identity, (str, int, float, bool)):
            identity = self._hex(structural_hash(identity, self.digest_bytes))

        return (f"{type(root).__qualname__}:{identity}",)

    # ── Steps ────────────────────────────────────────────────────

    def segment(self, item: Any) -> str:
        """Key segment for a single non-transform chain step."""
        if item.args is None:
            return item.prop_name
        args_hash = structural_hash(tuple(item.args), self.digest_bytes)
        return f"{item.prop_name}({self._hex(args_hash)})"

    def compose(self, base_key: QueryKey, item: Any) -> QueryKey:
        """
        Extend a key by one chain step.

        Transform steps return the base key unchanged.
        """
        if item.is_transform:
            return base_key

        key = tuple(base_key) + (self.segment(item),)
        logger.debug(f"Composed key: {self.serialize(key)}")
        return key

    def compose_chain(self, root: Any, items: Iterable[Any]) -> QueryKey:
        key = self.root_key(root)
        for item in items:
            key = self.compose(key, item)
        return key

    def prefixes(self, root: Any, items: Iterable[Any]) -> Iterator[QueryKey]:
        """Yield the key after each non-transform step, shortest first."""
        key = self.root_key(root)
        for item in items:
            if item.is_transform:
                continue
            key = self.compose(key, item)
            yield key

    # ── Helpers ──────────────────────────────────────────────────

    def serialize(self, key: Iterable[str]) -> str:
        return self.separator.join(key)

    @staticmethod
    def is_prefix(prefix: QueryKey, key: QueryKey) -> bool:
        prefix = tuple(prefix)
        return tuple(key[:len(prefix)]) == prefix

    def _hex(self, value: int) -> str:
        return format(value, f"0{self.digest_bytes * 2}x")
