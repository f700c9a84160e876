#!/usr/bin/env python3
"""
Structural Hashing — Change Fingerprints for Arbitrary Values

Implements:
- stable_serialize(value) → canonical text rendering of a value's shape/content
- structural_hash(value) → fixed-width unsigned integer token

Two values that are structurally equal (same type names, same field values,
same container contents) always hash identically, across calls and across
independently built objects. Any change to a field changes the hash.

Used for:
- Argument fingerprints inside query keys
- Target change detection (did the upstream object mutate?)
"""

import dataclasses
import enum
import hashlib
import inspect
from typing import Any, Set

DEFAULT_DIGEST_BYTES = 8
MAX_DIGEST_BYTES = 8


def _qualified_name(obj: Any) -> str:
    module = getattr(obj, "__module__", None) or "?"
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None) or repr(obj)
    return f"{module}.{name}"


def _object_state(value: Any) -> dict:
    """Instance attributes from __dict__ and __slots__, whichever exist."""
    state = dict(getattr(value, "__dict__", {}))
    for cls in type(value).__mro__:
        slots = cls.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for slot in slots:
            if slot in ("__dict__", "__weakref__") or slot in state:
                continue
            if hasattr(value, slot):
                state[slot] = getattr(value, slot)
    return state


def _has_declared_state(value: Any) -> bool:
    """True for instances backed by a __dict__ or declared __slots__, empty or not."""
    if hasattr(value, "__dict__"):
        return True
    return any("__slots__" in cls.__dict__ for cls in type(value).__mro__)


def stable_serialize(value: Any, _active: Set[int] = None) -> str:
    """
    Render a value as deterministic text.

    Containers are walked recursively; mappings and sets are ordered by the
    serialized form of their members so insertion order never matters.
    Self-referencing structures render the back-reference as <cycle>.
    """
    if value is None or isinstance(value, (bool, int, float, complex, str, bytes)):
        return f"{type(value).__name__}:{value!r}"

    if isinstance(value, enum.Enum):
        return f"enum:{_qualified_name(type(value))}.{value.name}"

    if inspect.isclass(value):
        return f"class:{_qualified_name(value)}"

    if inspect.ismethod(value):
        return f"method:{_qualified_name(value.__func__)}"

    if callable(value) and (inspect.isfunction(value) or inspect.isbuiltin(value)):
        return f"fn:{_qualified_name(value)}"

    active = _active if _active is not None else set()
    marker = id(value)
    if marker in active:
        return "<cycle>"
    active.add(marker)

    try:
        if isinstance(value, dict):
            items = sorted(
                (stable_serialize(k, active), stable_serialize(v, active))
                for k, v in value.items()
            )
            return "{" + ",".join(f"{k}:{v}" for k, v in items) + "}"

        if isinstance(value, (list, tuple)):
            inner = ",".join(stable_serialize(v, active) for v in value)
            brackets = "[]" if isinstance(value, list) else "()"
            return brackets[0] + inner + brackets[1]

        if isinstance(value, (set, frozenset)):
            inner = ",".join(sorted(stable_serialize(v, active) for v in value))
            return "set{" + inner + "}"

        if dataclasses.is_dataclass(value):
            fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
            return f"{_qualified_name(type(value))}" + stable_serialize(fields, active)

        state = _object_state(value)
        if state or _has_declared_state(value):
            return f"{_qualified_name(type(value))}" + stable_serialize(state, active)

        # Opaque object without inspectable state
        return f"{_qualified_name(type(value))}<{value!r}>"
    finally:
        active.discard(marker)


def structural_hash(value: Any, digest_bytes: int = DEFAULT_DIGEST_BYTES) -> int:
    """
    Deterministic fixed-width hash of a value's structure.

    Args:
        value: Anything; objects are hashed by type name plus attributes
        digest_bytes: Width of the returned token in bytes (1-8)

    Returns:
        Unsigned integer below 2 ** (8 * digest_bytes)
    """
    if not 1 <= digest_bytes <= MAX_DIGEST_BYTES:
        raise ValueError(f"digest_bytes must be between 1 and {MAX_DIGEST_BYTES}, got {digest_bytes}")

    data = stable_serialize(value)
    digest = hashlib.sha256(data.encode("utf-8")).digest()[:digest_bytes]
    return int.from_bytes(digest, "big")
