#!/usr/bin/env python3
"""
Unit tests for GhostSession lifecycle and the invalidation entry points
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from ghost import GhostConfig, GhostSession, build_chain, invalidate_by_chain, invalidate_by_key
from ghost_mocks import Customer, Project, customer_name_chain


def test_sessions_are_isolated():
    first, second = GhostSession(), GhostSession()

    async def run():
        await customer_name_chain().evaluate(first)
        await customer_name_chain().evaluate(second)

    asyncio.run(run())

    assert Project.mocks.get_detailed.call_count == 2
    assert len(first.cache) == len(second.cache) == 3


def test_reset_keeps_cache_but_forgets_hashes(session):
    asyncio.run(customer_name_chain().evaluate(session))
    assert len(session.targets) == 3

    session.reset()

    assert len(session.targets) == 0
    assert len(session.transforms) == 0
    assert len(session.cache) == 3


def test_clear_drops_everything(session):
    async def run():
        await customer_name_chain().evaluate(session)
        session.clear()
        await customer_name_chain().evaluate(session)

    asyncio.run(run())

    assert len(session.targets) == 3
    assert Customer.mocks.get_name.call_count == 2


def test_session_evaluate_against_other_root(session):
    chain = build_chain(Project("A")).call("get_detailed").get("name")

    evaluation = asyncio.run(session.evaluate(chain, root=Project("B")))

    assert evaluation.value == "Project B"


def test_session_value_shortcut(session):
    assert asyncio.run(session.value(customer_name_chain())) == "Customer C1"


def test_invalidate_by_chain_without_cache_is_noop(session):
    assert invalidate_by_chain(session, Project("A"), customer_name_chain()) == 0


def test_invalidate_by_chain_counts_marked_entries(session):
    asyncio.run(customer_name_chain().evaluate(session))

    assert session.invalidate_chain(customer_name_chain()) == 3
    assert session.invalidate_chain(customer_name_chain()) == 0


def test_invalidate_by_key_accepts_lists(session):
    evaluation = asyncio.run(customer_name_chain().evaluate(session))

    assert invalidate_by_key(session, list(evaluation.key[:2])) == 3


def test_invalidate_by_serialized_prefix(session):
    asyncio.run(customer_name_chain().evaluate(session))
    root_token = session.keys.root_key(Project("A"))[0]

    assert session.invalidate_key(root_token) == 3
    assert session.invalidate_key("no-such-key") == 0


def test_custom_separator():
    session = GhostSession(GhostConfig(key_separator="/"))
    evaluation = asyncio.run(customer_name_chain().evaluate(session))

    serialized = session.keys.serialize(evaluation.key)
    assert serialized.count("/") == 4
    assert session.invalidate_key(serialized) == 1


def test_stats(session):
    async def run():
        await customer_name_chain().evaluate(session)
        await customer_name_chain().transform(str.upper).evaluate(session)

    asyncio.run(run())
    stats = session.get_stats()

    assert stats["producer_calls"] == 3
    assert stats["hits"] == 3
    assert stats["tracked_targets"] == 3
    assert stats["memoized_transforms"] == 1
