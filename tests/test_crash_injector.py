"""Tests for probabilistic crash injection."""

import random

import pytest

from quorumsim.crash_injector import CrashFaultInjector
from quorumsim.errors import ConfigurationError, NodeCrashed


class TestCrashFaultInjector:
    def test_always_crashes_at_probability_one(self, events):
        injector = CrashFaultInjector("node-1", 1.0, random.Random(1), events)
        with pytest.raises(NodeCrashed) as info:
            injector.maybe_crash("put")
        assert info.value.node_id == "node-1"
        assert info.value.context == "put"
        assert events.named("crash", actor="node-1")[0].details == {"context": "put"}

    def test_never_crashes_at_probability_zero(self, events):
        injector = CrashFaultInjector("node-1", 0.0, random.Random(1), events)
        for _ in range(500):
            injector.maybe_crash("get")
        assert injector.crashes == 0
        assert events.count("crash") == 0

    def test_only_listed_contexts_crash(self, events):
        injector = CrashFaultInjector(
            "node-1", 1.0, random.Random(1), events, contexts=["put"]
        )
        injector.maybe_crash("get")
        with pytest.raises(NodeCrashed):
            injector.maybe_crash("put")
        assert injector.crashes == 1

    def test_rejects_out_of_range_probability(self, events):
        with pytest.raises(ConfigurationError):
            CrashFaultInjector("node-1", 2.0, random.Random(1), events)
