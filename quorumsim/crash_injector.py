"""Probabilistic crash faults consulted by a node before each operation."""

from typing import Iterable, Optional
import random
from quorumsim.config import check_probability
from quorumsim.errors import NodeCrashed
from quorumsim.event_log import EventLog


class CrashFaultInjector:
    """Injects crashes with a fixed probability, optionally for some operations only."""

    def __init__(
        self,
        node_id: str,
        crash_probability: float,
        rng: random.Random,
        events: EventLog,
        contexts: Optional[Iterable[str]] = None,
    ):
        self.node_id = node_id
        self.crash_probability = check_probability("crash_probability", crash_probability)
        self.rng = rng
        self.events = events
        self.contexts = frozenset(contexts) if contexts is not None else None
        self.crashes = 0

    def maybe_crash(self, context: str) -> None:
        """Raise NodeCrashed if the draw falls inside the crash probability."""
        if self.contexts is not None and context not in self.contexts:
            return
        if self.rng.random() < self.crash_probability:
            self.crashes += 1
            self.events.record(self.node_id, "crash", {"context": context})
            raise NodeCrashed(self.node_id, context)
