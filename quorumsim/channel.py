"""Unreliable channel simulating latency jitter and dropped deliveries."""

from asimpy import Environment
from typing import Any, Awaitable, Callable, Mapping, Optional, Union
import inspect
import random
from quorumsim.config import check_probability
from quorumsim.errors import ConfigurationError, LinkFailure
from quorumsim.event_log import EventLog

Action = Callable[[], Union[Any, Awaitable[Any]]]


class Channel:
    """A single simulated link with jittered latency and drop probability."""

    def __init__(
        self,
        env: Environment,
        channel_id: str,
        events: EventLog,
        rng: random.Random,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        failure_probability: float = 0.0,
    ) -> None:
        if min_latency < 0:
            raise ConfigurationError("min_latency must be non-negative")
        if max_latency < min_latency:
            raise ConfigurationError("max_latency must be >= min_latency")
        self.env = env
        self.channel_id = channel_id
        self.events = events
        self.rng = rng
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.failure_probability = check_probability(
            "failure_probability", failure_probability
        )

        # Statistics
        self.deliveries = 0
        self.drops = 0

    def __str__(self) -> str:
        return f"Channel({self.channel_id})"

    async def deliver(
        self,
        description: str,
        action: Action,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Wait out the link latency, then drop the delivery or run the action."""
        delay = self._jitter()
        self.deliveries += 1
        self.events.record(
            self.channel_id,
            "deliver",
            {"desc": description, "delay": f"{delay:.4f}"},
            metadata,
        )

        await self.env.timeout(delay)

        if self.rng.random() < self.failure_probability:
            self.drops += 1
            self.events.record(
                self.channel_id,
                "deliver-failed",
                {"desc": description, "reason": "link-drop"},
                metadata,
            )
            raise LinkFailure(self.channel_id, description)

        result = action()
        if inspect.isawaitable(result):
            result = await result
        return result

    def _jitter(self) -> float:
        """Delay drawn uniformly from the latency bounds."""
        if self.max_latency == self.min_latency:
            return self.min_latency
        return self.rng.uniform(self.min_latency, self.max_latency)

    def print_statistics(self) -> None:
        """Print channel statistics."""
        print(
            f"{self.channel_id}: {self.deliveries} deliveries, {self.drops} dropped "
            f"({100 * self.drops / max(self.deliveries, 1):.1f}%)"
        )
