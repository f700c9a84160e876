#!/usr/bin/env python3
"""
Unit tests for target change detection
"""

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from cache.cache import QueryCache
from cache.target_tracker import TargetHashTable


class Target:
    def __init__(self, name):
        self.name = name


@pytest.fixture
def primed_cache():
    """Cache holding ("r", "step") and ("r", "step", "next")."""
    cache = QueryCache()

    async def value():
        return "v"

    async def prime():
        await cache.read_or_produce(("r", "step"), value)
        await cache.read_or_produce(("r", "step", "next"), value)

    asyncio.run(prime())
    return cache


class TestTargetHashTable:

    def test_first_observation_records_only(self, primed_cache):
        table = TargetHashTable()

        assert table.check_and_record(("r", "step"), Target("a"), primed_cache) is False
        assert table.get(("r", "step")) is not None
        assert not primed_cache.peek(("r", "step")).stale

    def test_identical_structure_keeps_entry(self, primed_cache):
        table = TargetHashTable()
        table.check_and_record(("r", "step"), Target("a"), primed_cache)

        assert table.check_and_record(("r", "step"), Target("a"), primed_cache) is False
        assert not primed_cache.peek(("r", "step")).stale

    def test_changed_structure_invalidates_key_and_descendants(self, primed_cache):
        table = TargetHashTable()
        target = Target("a")
        table.check_and_record(("r", "step"), target, primed_cache)

        target.name = "b"

        assert table.check_and_record(("r", "step"), target, primed_cache) is True
        assert primed_cache.peek(("r", "step")).stale
        assert primed_cache.peek(("r", "step", "next")).stale

    def test_hash_is_overwritten(self, primed_cache):
        table = TargetHashTable()
        table.check_and_record(("r", "step"), Target("a"), primed_cache)
        table.check_and_record(("r", "step"), Target("b"), primed_cache)

        # b is now the baseline, so seeing b again is not a change
        assert table.check_and_record(("r", "step"), Target("b"), primed_cache) is False

    def test_reset_forgets_everything(self, primed_cache):
        table = TargetHashTable()
        table.check_and_record(("r", "step"), Target("a"), primed_cache)
        assert len(table) == 1

        table.reset()

        assert len(table) == 0
        assert table.check_and_record(("r", "step"), Target("b"), primed_cache) is False
        assert not primed_cache.peek(("r", "step")).stale

    def test_keys_are_serialized_with_separator(self, primed_cache):
        table = TargetHashTable(separator="/")
        table.check_and_record(("r", "step"), Target("a"), primed_cache)

        assert "r/step" in table._hashes

    def test_record_moves_baseline_without_invalidating(self, primed_cache):
        table = TargetHashTable()
        target = Target("a")
        table.check_and_record(("r", "step"), target, primed_cache)

        target.name = "b"
        table.record(("r", "step"), target)

        assert not primed_cache.peek(("r", "step")).stale
        assert table.check_and_record(("r", "step"), target, primed_cache) is False
