#!/usr/bin/env python3
"""
Ghost Session — Evaluation Context

Owns the shared, mutable state every cached evaluation touches:
- cache:      QueryCache (single-flight values and errors)
- targets:    TargetHashTable (last observed hash per step key)
- transforms: TransformMemo (last result per transform site)
- keys:       QueryKeyGenerator configured from GhostConfig

Lifecycle:
    session = GhostSession(load_config("ghost.yml"))
    evaluation = await session.evaluate(chain)
    session.reset()   # forget hashes and transform results, keep cache
    session.clear()   # reset() plus drop every cache entry

Independent sessions never share state, so tests and unrelated consumers
cannot interfere with each other.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from cache.cache import QueryCache
from cache.key_generator import QueryKey, QueryKeyGenerator
from cache.target_tracker import TargetHashTable

from .chain import Chain
from .config import GhostConfig
from .evaluator import Evaluation, EvaluateOptions, TransformMemo, evaluate
from .invalidate import invalidate_by_chain, invalidate_by_key

logger = logging.getLogger(__name__)

_ROOT_OF_CHAIN = object()


class GhostSession:
    def __init__(self, config: Optional[GhostConfig] = None, clock: Callable[[], float] = time.monotonic):
        self.config = config or GhostConfig()
        self.config.apply_log_level()

        self.keys = QueryKeyGenerator(
            separator=self.config.key_separator,
            digest_bytes=self.config.hash_digest_bytes,
        )
        self.cache = QueryCache(stale_time=self.config.stale_time_sec, clock=clock)
        self.targets = TargetHashTable(
            separator=self.config.key_separator,
            digest_bytes=self.config.hash_digest_bytes,
        )
        self.transforms = TransformMemo()

        logger.info(f"GhostSession created (stale_time={self.config.stale_time_sec})")

    async def evaluate(
        self,
        chain: Chain,
        options: Union[EvaluateOptions, Mapping[str, Any], None] = None,
        root: Any = _ROOT_OF_CHAIN,
    ) -> Evaluation:
        """Evaluate chain against its own root, or against root if given."""
        if root is _ROOT_OF_CHAIN:
            root = chain.root
        return await evaluate(root, chain, options, session=self)

    async def value(self, chain: Chain, options: Union[EvaluateOptions, Mapping[str, Any], None] = None) -> Any:
        evaluation = await self.evaluate(chain, options)
        return evaluation.value

    def invalidate_chain(self, chain: Chain, root: Any = _ROOT_OF_CHAIN) -> int:
        if root is _ROOT_OF_CHAIN:
            root = chain.root
        return invalidate_by_chain(self, root, chain)

    def invalidate_key(self, key: Union[QueryKey, Iterable[str], str]) -> int:
        return invalidate_by_key(self, key)

    def reset(self) -> None:
        """Forget observed target hashes and memoized transforms."""
        self.targets.reset()
        self.transforms.clear()
        logger.info("GhostSession reset")

    def clear(self) -> None:
        """reset() and drop every cache entry."""
        self.reset()
        self.cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        stats = self.cache.get_stats()
        stats["tracked_targets"] = len(self.targets)
        stats["memoized_transforms"] = len(self.transforms)
        return stats

    def __repr__(self) -> str:
        return f"GhostSession(entries={len(self.cache)}, targets={len(self.targets)})"
