"""Cluster that replicates reads and writes with a majority quorum."""

from asimpy import AllOf, Environment, Event, Process
from collections import Counter
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from quorumsim.channel import Action, Channel
from quorumsim.config import derive_rng
from quorumsim.crash_injector import CrashFaultInjector
from quorumsim.errors import (
    ConfigurationError,
    LinkFailure,
    NodeUnavailable,
    QuorumFailure,
)
from quorumsim.event_log import EventLog
from quorumsim.storage_node import StorageNode
from quorumsim.write_ahead_log import WriteAheadLog

Mesh = Sequence[Sequence[Optional[Channel]]]


def node_name(index: int) -> str:
    """Stable identifier of the node at mesh position index."""
    return f"node-{index}"


class Dispatch(Process):
    """Delivers one unit of fan-out work to one target."""

    def init(
        self,
        target_id: str,
        channel: Channel,
        description: str,
        action: Action,
        metadata: Mapping[str, Any],
    ):
        self.target_id = target_id
        self.channel = channel
        self.description = description
        self.action = action
        self.metadata = metadata
        self.result: Any = None
        self.error: Optional[Exception] = None
        self.done = Event(self._env)

    async def run(self):
        """Deliver to one target, keep its result or error, then signal done."""
        try:
            self.result = await self.channel.deliver(
                self.description, self.action, self.metadata
            )
        except Exception as exc:
            # Kept for the coordinator, which decides what is a target failure.
            self.error = exc
        self.done.succeed(self.target_id)


class Cluster:
    """Coordinates quorum reads and writes across a mesh of nodes."""

    def __init__(
        self,
        env: Environment,
        nodes: List[StorageNode],
        mesh: Mesh,
        events: EventLog,
    ):
        if not nodes:
            raise ConfigurationError("cluster needs at least one node")
        if len(mesh) != len(nodes) or any(len(row) != len(nodes) for row in mesh):
            raise ConfigurationError("mesh size must match nodes")
        self.env = env
        self.nodes = list(nodes)
        self.mesh = [list(row) for row in mesh]
        self.events = events
        self.quorum = len(self.nodes) // 2 + 1

        # Statistics
        self.writes_committed = 0
        self.writes_failed = 0
        self.reads_committed = 0
        self.reads_failed = 0

    @classmethod
    def build(
        cls,
        env: Environment,
        events: EventLog,
        node_count: int,
        seed: int,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        drop_probability: float = 0.0,
        crash_probability: float = 0.0,
        wal_dir: Optional[str] = None,
    ) -> "Cluster":
        """Wire nodes, crash injectors, optional logs and a full mesh."""
        if node_count < 1:
            raise ConfigurationError(f"node_count must be >= 1, got {node_count}")

        nodes = []
        for i in range(node_count):
            node_id = node_name(i)
            injector = CrashFaultInjector(
                node_id, crash_probability, derive_rng(seed, f"crash-{node_id}"), events
            )
            wal = None
            if wal_dir is not None:
                wal = WriteAheadLog(node_id, Path(wal_dir) / f"{node_id}.log", events)
            nodes.append(StorageNode(env, node_id, events, injector, wal))

        mesh = []
        for src in range(node_count):
            row = []
            for dst in range(node_count):
                channel_id = f"link-{node_name(src)}-{node_name(dst)}"
                row.append(
                    Channel(
                        env,
                        channel_id,
                        events,
                        derive_rng(seed, channel_id),
                        min_latency,
                        max_latency,
                        drop_probability,
                    )
                )
            mesh.append(row)

        return cls(env, nodes, mesh, events)

    async def put(
        self,
        key: str,
        value: str,
        entry: int,
        client_channel: Channel,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Write through the entry node; commits once a quorum acknowledges."""
        self._check_entry(entry)
        await client_channel.deliver(
            "client-put", lambda: self._replicate_put(key, value, entry), metadata
        )

    async def get(
        self,
        key: str,
        entry: int,
        client_channel: Channel,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        """Read through the entry node; returns the value a quorum agrees on."""
        self._check_entry(entry)
        return await client_channel.deliver(
            "client-get", lambda: self._replicate_get(key, entry), metadata
        )

    async def _replicate_put(self, key: str, value: str, entry: int) -> None:
        dispatches = await self._fan_out(
            entry,
            "put",
            lambda node: lambda: node.put(key, value),
            {"key": key, "value": value},
        )
        failed = self._failed_targets(dispatches)
        successes = len(dispatches) - len(failed)

        # Nodes that did take the write keep it even if the quorum fails.
        if successes < self.quorum:
            self.writes_failed += 1
            error = QuorumFailure("write", key, successes, self.quorum, failed)
            self.events.record(
                "cluster",
                "write-quorum-failed",
                {"key": key, "value": value, "acks": successes, "reason": str(error)},
            )
            raise error

        self.writes_committed += 1
        self.events.record(
            "cluster", "write-commit", {"key": key, "value": value, "acks": successes}
        )

    async def _replicate_get(self, key: str, entry: int) -> Optional[str]:
        dispatches = await self._fan_out(
            entry, "get", lambda node: lambda: node.get(key), {"key": key}
        )
        failed = self._failed_targets(dispatches)

        votes: Counter = Counter(d.result for d in dispatches if d.error is None)
        successes = sum(votes.values())

        # Quorum is a strict majority, so at most one value can reach it.
        if votes:
            value, count = votes.most_common(1)[0]
            if count >= self.quorum and successes >= self.quorum:
                self.reads_committed += 1
                self.events.record(
                    "cluster",
                    "read-commit",
                    {"key": key, "value": value, "acks": successes},
                )
                return value

        self.reads_failed += 1
        error = QuorumFailure("read", key, successes, self.quorum, failed, votes)
        self.events.record(
            "cluster",
            "read-quorum-failed",
            {"key": key, "acks": successes, "reason": str(error)},
        )
        raise error

    async def _fan_out(
        self,
        entry: int,
        description: str,
        action_for: Callable[[StorageNode], Action],
        details: Dict[str, Any],
    ) -> List[Dispatch]:
        """Dispatch to every reachable target at once and wait for all of them."""
        dispatches = []
        for target, node in enumerate(self.nodes):
            channel = self.mesh[entry][target]
            if channel is None:
                continue
            metadata = {"from": node_name(entry), "to": node.node_id, **details}
            dispatches.append(
                Dispatch(
                    self.env,
                    node.node_id,
                    channel,
                    description,
                    action_for(node),
                    metadata,
                )
            )

        if dispatches:
            await AllOf(self.env, **{f"t{i}": d.done for i, d in enumerate(dispatches)})
        return dispatches

    def _failed_targets(self, dispatches: List[Dispatch]) -> List[str]:
        """Targets that dropped or were down; anything else is re-raised."""
        failed = []
        for d in dispatches:
            if d.error is None:
                continue
            if not isinstance(d.error, (LinkFailure, NodeUnavailable)):
                raise d.error
            failed.append(d.target_id)
        return failed

    def _check_entry(self, entry: int) -> None:
        """Reject an entry index outside the node list."""
        if not 0 <= entry < len(self.nodes):
            raise ValueError(f"entry node {entry} out of range 0..{len(self.nodes) - 1}")

    def node(self, node_id: str) -> StorageNode:
        """Look up a node by id."""
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        raise KeyError(node_id)

    def restart(self, node_id: str) -> None:
        """Restart one node."""
        self.node(node_id).restart()

    def restart_crashed(self) -> List[str]:
        """Restart every crashed node and return their ids."""
        restarted = []
        for node in self.nodes:
            if not node.alive:
                node.restart()
                restarted.append(node.node_id)
        return restarted

    def print_statistics(self) -> None:
        """Print quorum statistics."""
        print(f"\n{'=' * 60}")
        print("Cluster Statistics:")
        print("=" * 60)
        print(f"Nodes: {len(self.nodes)} (quorum {self.quorum})")
        print(f"Writes committed: {self.writes_committed}")
        print(f"Writes failed: {self.writes_failed}")
        print(f"Reads committed: {self.reads_committed}")
        print(f"Reads failed: {self.reads_failed}")
        drops = sum(c.drops for row in self.mesh for c in row if c is not None)
        deliveries = sum(c.deliveries for row in self.mesh for c in row if c is not None)
        print(f"Mesh deliveries: {deliveries} ({drops} dropped)")


def client_channels(
    env: Environment,
    events: EventLog,
    node_count: int,
    seed: int,
    min_latency: float = 0.0,
    max_latency: float = 0.0,
    drop_probability: float = 0.0,
    client_id: str = "client",
) -> List[Channel]:
    """One front-door channel per potential entry node."""
    channels = []
    for i in range(node_count):
        channel_id = f"{client_id}-link-{node_name(i)}"
        channels.append(
            Channel(
                env,
                channel_id,
                events,
                derive_rng(seed, channel_id),
                min_latency,
                max_latency,
                drop_probability,
            )
        )
    return channels
