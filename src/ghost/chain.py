#!/usr/bin/env python3
"""
Ghost Chains — Deferred Property Reads and Method Calls

A chain ("ghost") records what to do with a root value without doing it:

    ghost = (
        build_chain(Project("A"))
        .call("get_detailed")       # async method, cached per key
        .get("customer")            # plain attribute hop
        .call("get_detailed")
        .call("get_name")
        .transform(str.upper)       # pure local mapping, memoized
    )

Nothing runs until the chain is evaluated:
    await ghost                     # direct resolution, no cache
    await ghost.evaluate(session)   # cached, invalidatable

Every builder step returns a new Chain; earlier chains never change, so a
chain prefix can be shared and extended in several directions.
"""

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, Sequence, Tuple

from .errors import ChainContractError

if TYPE_CHECKING:
    from .evaluator import Evaluation, EvaluateOptions
    from .session import GhostSession

logger = logging.getLogger(__name__)

TRANSFORM_PROP = "__ghost_transform__"


class ItemKind(enum.Enum):
    PROPERTY_READ = "property_read"
    METHOD_CALL = "method_call"
    TRANSFORM = "transform"


@dataclass(frozen=True)
class ChainItem:
    """One step of a chain. args is None for a plain property read."""
    prop_name: str
    args: Optional[Tuple[Any, ...]] = None

    __hash__ = None  # args may hold unhashable values

    @classmethod
    def read(cls, name: str) -> "ChainItem":
        return cls(prop_name=name)

    @classmethod
    def call(cls, name: str, args: Sequence[Any] = ()) -> "ChainItem":
        return cls(prop_name=name, args=tuple(args))

    @classmethod
    def transform(cls, fn: Callable[[Any], Any], dependencies: Optional[Sequence[Any]] = None) -> "ChainItem":
        if not callable(fn):
            raise ChainContractError(f"transform requires a mapping function, got {type(fn).__name__}")
        if dependencies is None:
            dependencies = ()
        if not isinstance(dependencies, (list, tuple)):
            raise ChainContractError(
                f"transform dependencies must be a list or tuple, got {type(dependencies).__name__}"
            )
        return cls(prop_name=TRANSFORM_PROP, args=(fn, tuple(dependencies)))

    @property
    def kind(self) -> ItemKind:
        if self.prop_name == TRANSFORM_PROP:
            return ItemKind.TRANSFORM
        if self.args is None:
            return ItemKind.PROPERTY_READ
        return ItemKind.METHOD_CALL

    @property
    def is_transform(self) -> bool:
        return self.kind is ItemKind.TRANSFORM

    @property
    def is_call(self) -> bool:
        return self.kind is ItemKind.METHOD_CALL

    @property
    def transform_fn(self) -> Callable[[Any], Any]:
        return self.args[0]

    @property
    def transform_dependencies(self) -> Tuple[Any, ...]:
        return self.args[1]

    def __repr__(self) -> str:
        if self.is_transform:
            name = getattr(self.transform_fn, "__qualname__", repr(self.transform_fn))
            return f"transform({name})"
        if self.args is None:
            return f".{self.prop_name}"
        rendered = ", ".join(repr(a) for a in self.args)
        return f".{self.prop_name}({rendered})"


class Chain:
    """
    Immutable, append-only sequence of ChainItems bound to a root value.

    Equality compares the root and the items, so independently built
    chains with the same steps are interchangeable.
    """

    __slots__ = ("_root", "_items")

    def __init__(self, root: Any = None, items: Sequence[ChainItem] = ()):
        self._root = root
        self._items: Tuple[ChainItem, ...] = tuple(items)

    @property
    def root(self) -> Any:
        return self._root

    @property
    def items(self) -> Tuple[ChainItem, ...]:
        return self._items

    # ── Builder ──────────────────────────────────────────────────

    def extend(self, prop_name: str, args: Optional[Sequence[Any]] = None) -> "Chain":
        """Append a property read (args is None) or a method call."""
        if prop_name == TRANSFORM_PROP:
            raise ChainContractError(f"{TRANSFORM_PROP!r} is reserved; use transform()")
        if args is None:
            item = ChainItem.read(prop_name)
        else:
            item = ChainItem.call(prop_name, args)
        return Chain(self._root, self._items + (item,))

    def get(self, name: str) -> "Chain":
        return self.extend(name)

    def call(self, name: str, *args: Any) -> "Chain":
        return self.extend(name, args)

    def transform(self, fn: Callable[[Any], Any], dependencies: Optional[Sequence[Any]] = None) -> "Chain":
        """Append a pure mapping over the current value."""
        return Chain(self._root, self._items + (ChainItem.transform(fn, dependencies),))

    # ── Materialization ──────────────────────────────────────────

    async def evaluate(
        self,
        session: "GhostSession",
        options: "Optional[EvaluateOptions]" = None,
    ) -> "Evaluation":
        """Evaluate against the session's cache."""
        from .evaluator import evaluate

        return await evaluate(self._root, self, options, session=session)

    async def resolve(self) -> Any:
        """Evaluate directly, bypassing any cache."""
        from .evaluator import evaluate

        evaluation = await evaluate(self._root, self)
        return evaluation.value

    def __await__(self):
        return self.resolve().__await__()

    def invalidate(self, session: "GhostSession") -> int:
        """Invalidate this chain's keys in the session cache."""
        from .invalidate import invalidate_by_chain

        return invalidate_by_chain(session, self._root, self)

    # ── Sequence protocol ────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ChainItem]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Chain):
            return NotImplemented
        return self._root == other._root and self._items == other._items

    __hash__ = None

    def __repr__(self) -> str:
        steps = "".join(repr(item) if not item.is_transform else f".{item!r}" for item in self._items)
        return f"Chain({self._root!r}){steps}"


def build_chain(root: Any) -> Chain:
    """Start an empty chain on root. Nothing is evaluated."""
    return Chain(root)


make_ghost = build_chain
