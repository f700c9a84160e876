#!/usr/bin/env python3
"""
Chain Evaluator — Folding a Ghost Chain Over a Root Value

One pass per evaluation, left to right, starting from the root:

  transform       → apply fn to the current value (memoized by identity)
  current is None → skip the step, None propagates
  property read   → getattr(current, name)
  method call     → change check on current, then cache.read_or_produce(key, call)

The running query key grows by one segment per non-transform step, so
every async step's key extends the keys of the steps before it.

Without a session the chain is resolved directly: same semantics, no
cache, no change detection, no transform memo.
"""

import inspect
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

from cache.key_generator import QueryKey, QueryKeyGenerator

from .chain import Chain, ChainItem
from .context import QueryContext, query_scope
from .errors import ChainContractError
from .invalidate import invalidate_by_chain

if TYPE_CHECKING:
    from .session import GhostSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluateOptions:
    """
    Per-evaluation options.

    dependencies: extra values consulted alongside the target hash for
        async steps and alongside the inputs of transform steps
    stale_time: seconds a cached step result stays fresh (None = session default)
    """
    dependencies: Tuple[Any, ...] = ()
    stale_time: Optional[float] = None

    @classmethod
    def coerce(cls, options: Union["EvaluateOptions", Mapping[str, Any], None]) -> "EvaluateOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, Mapping):
            return cls(
                dependencies=tuple(options.get("dependencies") or ()),
                stale_time=options.get("stale_time"),
            )
        raise ChainContractError(f"options must be EvaluateOptions or a mapping, got {type(options).__name__}")


@dataclass
class Evaluation:
    """Result of evaluating a chain: the value plus a bound invalidator."""
    value: Any
    key: QueryKey
    invalidate: Callable[[], int] = field(repr=False)


# ── Transform memo ──────────────────────────────────────────────

@dataclass
class _MemoSlot:
    inputs: Tuple[Any, ...]
    result: Any


class TransformMemo:
    """
    Remembers the last result of each transform site.

    A site is (query key at the transform, chain position). The result is
    reused while the mapping fn, the value and every dependency are the very
    same objects as last time; any new object, even an equal one, recomputes.
    """

    def __init__(self) -> None:
        self._slots: Dict[Tuple[QueryKey, int], _MemoSlot] = {}

    def apply(self, site: Tuple[QueryKey, int], fn: Callable[[Any], Any], value: Any, deps: Sequence[Any]) -> Any:
        slot_key = (tuple(site[0]), site[1])
        inputs = (fn, value) + tuple(deps)
        slot = self._slots.get(slot_key)

        if slot is not None and _same_objects(slot.inputs, inputs):
            return slot.result

        result = fn(value)
        self._slots[slot_key] = _MemoSlot(inputs=inputs, result=result)
        logger.debug(f"Transform recomputed at {site[0]}[{site[1]}]")
        return result

    def clear(self) -> None:
        self._slots.clear()

    def __len__(self) -> int:
        return len(self._slots)


def _same_objects(previous: Tuple[Any, ...], current: Tuple[Any, ...]) -> bool:
    return len(previous) == len(current) and all(a is b for a, b in zip(previous, current))


# ── Evaluation ──────────────────────────────────────────────────

async def _invoke(method: Callable[..., Any], args: Tuple[Any, ...], context: QueryContext) -> Any:
    with query_scope(context):
        result = method(*args)
        if inspect.isawaitable(result):
            result = await result
    return result


async def evaluate(
    root: Any,
    chain: Union[Chain, Sequence[ChainItem]],
    options: Union[EvaluateOptions, Mapping[str, Any], None] = None,
    session: "Optional[GhostSession]" = None,
) -> Evaluation:
    """
    Evaluate chain against root.

    Args:
        root: Value the chain starts from
        chain: Chain (or plain sequence of ChainItems)
        options: EvaluateOptions or a mapping with the same fields
        session: Cache context; None resolves the chain directly

    Returns:
        Evaluation(value, key, invalidate)

    Raises:
        ChainContractError: a step calls a non-callable attribute
        AttributeError: a step names an attribute the value lacks
        Exception: whatever the producing method raised (cached per key)
    """
    options = EvaluateOptions.coerce(options)
    items = chain.items if isinstance(chain, Chain) else tuple(chain)
    keys = session.keys if session is not None else QueryKeyGenerator()

    key = keys.root_key(root)
    current = root

    for position, item in enumerate(items):
        if item.is_transform:
            deps = item.transform_dependencies + options.dependencies
            if session is None:
                current = item.transform_fn(current)
            else:
                current = session.transforms.apply((key, position), item.transform_fn, current, deps)
            continue

        key = keys.compose(key, item)

        if current is None:
            continue

        attribute = getattr(current, item.prop_name)

        if not item.is_call:
            current = attribute
            continue

        if not callable(attribute):
            raise ChainContractError(
                f"{type(current).__name__}.{item.prop_name} is not callable "
                f"(got {type(attribute).__name__}) but was called with arguments"
            )

        context = QueryContext(key=key, session=session)
        producer = partial(_invoke, attribute, item.args, context)

        if session is None:
            current = await producer()
            continue

        observed = (current, options.dependencies) if options.dependencies else current
        session.targets.check_and_record(key, observed, session.cache)

        result = await session.cache.read_or_produce(key, producer, stale_time=options.stale_time)
        session.targets.record(key, observed)
        current = result

    def invalidate() -> int:
        if session is None:
            return 0
        return invalidate_by_chain(session, root, items)

    return Evaluation(value=current, key=key, invalidate=invalidate)
