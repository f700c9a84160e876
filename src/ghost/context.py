"""Query context visible to methods while they are being produced."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional

from cache.key_generator import QueryKey

if TYPE_CHECKING:
    from .session import GhostSession


@dataclass(frozen=True)
class QueryContext:
    key: QueryKey
    session: Optional["GhostSession"] = None

    @property
    def cached(self) -> bool:
        return self.session is not None


_current_query: ContextVar[Optional[QueryContext]] = ContextVar("ghost_current_query", default=None)


def current_query() -> Optional[QueryContext]:
    """The query being produced by the running chain step, if any."""
    return _current_query.get()


@contextmanager
def query_scope(context: QueryContext) -> Iterator[QueryContext]:
    token = _current_query.set(context)
    try:
        yield context
    finally:
        _current_query.reset(token)
