"""Simulation drivers for the quorum cluster and the single-node store."""

from asimpy import Environment, Process
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import argparse
import tempfile
from quorumsim.channel import Channel
from quorumsim.cluster import Cluster, client_channels
from quorumsim.config import (
    CRASH_PROBABILITY,
    DROP_PROBABILITY,
    MAX_LATENCY,
    MAX_RETRIES,
    MIN_LATENCY,
    NODE_COUNT,
    REQUESTS,
    SEED,
    SimulationConfig,
    derive_rng,
)
from quorumsim.crash_injector import CrashFaultInjector
from quorumsim.event_log import EventLog
from quorumsim.kv_client import KVClient
from quorumsim.standalone import StandaloneStore
from quorumsim.storage_node import StorageNode
from quorumsim.write_ahead_log import WriteAheadLog


class NodeSupervisor(Process):
    """Process that restarts crashed nodes until the client is done."""

    def init(self, cluster: Cluster, client: KVClient, interval: float = 1.0):
        self.cluster = cluster
        self.client = client
        self.interval = interval
        self.restarts = 0

    async def run(self):
        while not self.client.finished:
            await self.timeout(self.interval)
            self.restarts += len(self.cluster.restart_crashed())


def workload(requests: int) -> List[Tuple[str, str, Optional[str]]]:
    """Write then read back k0..k<n-1>."""
    operations: List[Tuple[str, str, Optional[str]]] = []
    for i in range(requests):
        operations.append(("put", f"k{i}", f"v{i}"))
        operations.append(("get", f"k{i}", None))
    return operations


def run_quorum_simulation(config: SimulationConfig, echo: bool = True) -> Dict[str, Any]:
    """Majority quorum writes and reads with link drops."""
    env = Environment()
    events = EventLog(env, echo=echo)

    cluster = Cluster.build(
        env,
        events,
        config.node_count,
        config.seed,
        config.min_latency,
        config.max_latency,
        config.drop_probability,
        config.crash_probability,
        config.wal_dir,
    )
    channels = client_channels(
        env,
        events,
        config.node_count,
        config.seed,
        config.min_latency,
        config.max_latency,
        config.client_drop_probability,
        client_id="client-1",
    )
    client = KVClient(
        env,
        "client-1",
        cluster,
        channels,
        derive_rng(config.seed, "client-1"),
        events,
        max_retries=config.max_retries,
        operations=workload(config.requests),
        think_time=config.think_time,
    )
    # The cluster absorbs node failures during fan-out, so crashed replicas
    # are restarted by the supervisor rather than a client callback.
    supervisor = NodeSupervisor(env, cluster, client)

    env.run()

    events.record(
        "simulation",
        "finished",
        {
            "nodes": config.node_count,
            "dropProb": config.drop_probability,
            "seed": config.seed,
        },
    )
    return {
        "succeeded": client.succeeded,
        "failed": client.failed,
        "writes_committed": cluster.writes_committed,
        "reads_committed": cluster.reads_committed,
        "restarts": supervisor.restarts,
        "cluster": cluster,
        "events": events,
    }


def run_single_node_simulation(config: SimulationConfig, echo: bool = True) -> Dict[str, Any]:
    """Single node with a write-ahead log, crashable and observable."""
    env = Environment()
    events = EventLog(env, echo=echo)

    with tempfile.TemporaryDirectory() as scratch:
        wal_dir = Path(config.wal_dir) if config.wal_dir else Path(scratch)
        node_id = "node-1"
        injector = CrashFaultInjector(
            node_id,
            config.crash_probability,
            derive_rng(config.seed, f"crash-{node_id}"),
            events,
        )
        wal = WriteAheadLog(node_id, wal_dir / f"{node_id}.log", events)
        node = StorageNode(env, node_id, events, injector, wal)
        loopback = Channel(
            env,
            "loopback",
            events,
            derive_rng(config.seed, "loopback"),
            config.min_latency,
            config.max_latency,
            config.client_drop_probability,
        )
        client = KVClient(
            env,
            "client-1",
            StandaloneStore(node),
            [loopback],
            derive_rng(config.seed, "client-1"),
            events,
            max_retries=config.max_retries,
            on_node_crash=lambda error: node.restart(),
            operations=workload(config.requests),
            think_time=config.think_time,
        )

        env.run()

    events.record(
        "simulation",
        "finished",
        {"seed": config.seed, "crashProbability": config.crash_probability},
    )
    return {
        "succeeded": client.succeeded,
        "failed": client.failed,
        "crashes": injector.crashes,
        "data": dict(node.data),
        "events": events,
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Command-line options, defaulting to the values in config."""
    parser = argparse.ArgumentParser(description="Replicated key-value store simulator")
    parser.add_argument("--mode", choices=["quorum", "single"], default="quorum")
    parser.add_argument("--nodes", type=int, default=NODE_COUNT, help="Cluster size")
    parser.add_argument("--drop", type=float, default=DROP_PROBABILITY, help="Link drop probability")
    parser.add_argument("--crash", type=float, default=CRASH_PROBABILITY, help="Node crash probability")
    parser.add_argument("--seed", type=int, default=SEED, help="Random seed")
    parser.add_argument("--requests", type=int, default=REQUESTS, help="Keys to write and read")
    parser.add_argument("--retries", type=int, default=MAX_RETRIES, help="Client attempts per request")
    parser.add_argument("--min-latency", type=float, default=MIN_LATENCY)
    parser.add_argument("--max-latency", type=float, default=MAX_LATENCY)
    parser.add_argument("--wal-dir", help="Directory for write-ahead logs")
    parser.add_argument("--quiet", action="store_true", help="Only print the summary")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Run one simulation and print its summary."""
    args = parse_args(argv)
    config = SimulationConfig(
        node_count=args.nodes,
        min_latency=args.min_latency,
        max_latency=args.max_latency,
        drop_probability=args.drop,
        crash_probability=args.crash,
        max_retries=args.retries,
        seed=args.seed,
        requests=args.requests,
        wal_dir=args.wal_dir,
    )

    if args.mode == "quorum":
        summary = run_quorum_simulation(config, echo=not args.quiet)
        summary["cluster"].print_statistics()
    else:
        summary = run_single_node_simulation(config, echo=not args.quiet)

    print(f"\nRequests succeeded: {summary['succeeded']}")
    print(f"Requests failed: {summary['failed']}")


if __name__ == "__main__":
    main()
