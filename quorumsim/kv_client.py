"""Client that reads and writes with retries over its own channels."""

from asimpy import Process
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
import random
from quorumsim.channel import Channel
from quorumsim.errors import (
    ConfigurationError,
    LinkFailure,
    NodeUnavailable,
    ReplicationError,
)
from quorumsim.event_log import EventLog

RecoveryCallback = Callable[[NodeUnavailable], None]


class KVClient(Process):
    """Client that picks a random entry node per request and retries failures.

    ``store`` is a Cluster or a StandaloneStore. ``channels[i]`` is the
    client's own channel to entry node ``i``.
    """

    def init(
        self,
        client_id: str,
        store: Any,
        channels: List[Channel],
        rng: random.Random,
        events: EventLog,
        max_retries: int = 3,
        on_node_crash: Optional[RecoveryCallback] = None,
        operations: Optional[List[Tuple[str, str, Optional[str]]]] = None,
        think_time: float = 0.5,
    ):
        if max_retries < 1:
            raise ConfigurationError(f"max_retries must be >= 1, got {max_retries}")
        if not channels:
            raise ConfigurationError("client needs at least one channel")
        self.client_id = client_id
        self.store = store
        self.channels = list(channels)
        self.rng = rng
        self.events = events
        self.max_retries = max_retries
        self.on_node_crash = on_node_crash
        self.operations = operations or []  # List of (op, key, value) tuples
        self.think_time = think_time
        self.request_seq = 0

        self.succeeded = 0
        self.failed = 0
        self.finished = False

    async def run(self):
        """Execute scripted operations; a failed request does not stop the script."""
        for op, key, value in self.operations:
            try:
                if op == "put":
                    await self.put(key, value)
                elif op == "get":
                    await self.get(key)
                else:
                    raise ValueError(f"unknown operation {op!r}")
                self.succeeded += 1
            except ReplicationError as exc:
                self.failed += 1
                self.events.record(
                    self.client_id,
                    "request-failed",
                    {"op": op, "key": key, "reason": str(exc)},
                )
            await self.timeout(self.think_time)
        self.finished = True

    async def put(self, key: str, value: str) -> None:
        """Write a key, retrying transient failures."""
        request_id = self._next_request_id()
        entry = self._choose_entry()
        metadata = {"id": request_id, "entry": entry, "key": key, "value": value}
        try:
            await self._with_retry(
                "client-put",
                lambda: self.store.put(key, value, entry, self.channels[entry], metadata),
                metadata,
            )
        except ReplicationError as exc:
            self.events.record(
                self.client_id,
                "put-failed",
                {"key": key, "value": value, "reason": str(exc), "entry": entry, "id": request_id},
            )
            raise
        self.events.record(
            self.client_id,
            "put-ok",
            {"key": key, "value": value, "entry": entry, "id": request_id},
        )

    async def get(self, key: str) -> Optional[str]:
        """Read a key, retrying transient failures; None if absent."""
        request_id = self._next_request_id()
        entry = self._choose_entry()
        metadata = {"id": request_id, "entry": entry, "key": key}
        try:
            value = await self._with_retry(
                "client-get",
                lambda: self.store.get(key, entry, self.channels[entry], metadata),
                metadata,
            )
        except ReplicationError as exc:
            self.events.record(
                self.client_id,
                "get-failed",
                {"key": key, "reason": str(exc), "entry": entry, "id": request_id},
            )
            raise
        self.events.record(
            self.client_id,
            "get-ok",
            {"key": key, "value": value, "entry": entry, "id": request_id},
        )
        return value

    async def _with_retry(
        self,
        desc: str,
        attempt_fn: Callable[[], Awaitable[Any]],
        metadata: Dict[str, Any],
    ) -> Any:
        """Run attempt_fn, retrying link and node failures up to max_retries times.

        Any other error, QuorumFailure included, propagates on the first attempt.
        """
        last_failure: Optional[ReplicationError] = None
        for attempt in range(1, self.max_retries + 1):
            details = {"desc": desc, "attempt": attempt, "id": metadata["id"]}
            try:
                return await attempt_fn()
            except LinkFailure as exc:
                last_failure = exc
                self.events.record(self.client_id, "link-retry", details)
            except NodeUnavailable as exc:
                last_failure = exc
                self.events.record(
                    self.client_id, "node-recovery", {**details, "node": exc.node_id}
                )
                if self.on_node_crash is not None:
                    self.on_node_crash(exc)

        self.events.record(
            self.client_id,
            "op-failed",
            {"desc": desc, "id": metadata["id"], "reason": str(last_failure)},
        )
        raise last_failure

    def _next_request_id(self) -> str:
        self.request_seq += 1
        return f"{self.client_id}-{self.request_seq}"

    def _choose_entry(self) -> int:
        """Pick an entry node uniformly at random."""
        return self.rng.randrange(len(self.channels))
