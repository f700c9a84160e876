"""
Invalidation entry points.

- invalidate_by_chain(session, root, chain): every async step of the chain,
  and by prefix cascade everything derived from those steps
- invalidate_by_key(session, key): a key obtained elsewhere, e.g. from an
  Evaluation, as a tuple or in its serialized string form
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Sequence, Union

from cache.key_generator import QueryKey

from .chain import Chain, ChainItem

if TYPE_CHECKING:
    from .session import GhostSession

logger = logging.getLogger(__name__)


def invalidate_by_chain(
    session: "GhostSession",
    root: Any,
    chain: Union[Chain, Sequence[ChainItem]],
) -> int:
    """
    Invalidate the keys of root + chain.

    Each step key of the chain is invalidated, so the steps the chain was
    built on are refreshed too, not only what follows its last step. The
    bare root key is left alone: other chains on the same root keep their
    entries unless they share a step with this one.

    Returns:
        Number of cache entries marked stale
    """
    items = chain.items if isinstance(chain, Chain) else tuple(chain)
    marked = 0
    for key in session.keys.prefixes(root, items):
        marked += session.cache.invalidate(key)

    logger.debug(f"invalidate_by_chain({session.keys.serialize(session.keys.root_key(root))}): {marked} marked")
    return marked


def invalidate_by_key(session: "GhostSession", key: Union[QueryKey, Iterable[str], str]) -> int:
    """
    Invalidate a raw key and everything extending it.

    A string key is matched against the serialized form of every cached key
    and each of its prefixes.
    """
    if not isinstance(key, str):
        return session.cache.invalidate(tuple(key))

    matches = set()
    for cached_key in session.cache.keys():
        for length in range(1, len(cached_key) + 1):
            if session.keys.serialize(cached_key[:length]) == key:
                matches.add(cached_key[:length])
                break

    marked = 0
    for match in sorted(matches, key=len):
        marked += session.cache.invalidate(match)

    if not matches:
        logger.debug(f"invalidate_by_key({key!r}): no cached key matches")
    return marked
