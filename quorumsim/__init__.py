"""Deterministic fault-injecting simulator of a quorum-replicated key-value store."""

from quorumsim.channel import Channel
from quorumsim.cluster import Cluster, client_channels
from quorumsim.config import SimulationConfig, derive_rng
from quorumsim.crash_injector import CrashFaultInjector
from quorumsim.errors import (
    ConfigurationError,
    LinkFailure,
    NodeCrashed,
    NodeDown,
    NodeUnavailable,
    QuorumFailure,
    ReplicationError,
)
from quorumsim.event_log import EventLog, EventRecord
from quorumsim.kv_client import KVClient
from quorumsim.standalone import StandaloneStore
from quorumsim.storage_node import NodeState, StorageNode
from quorumsim.write_ahead_log import WriteAheadLog

__all__ = [
    "Channel",
    "Cluster",
    "ConfigurationError",
    "CrashFaultInjector",
    "EventLog",
    "EventRecord",
    "KVClient",
    "LinkFailure",
    "NodeCrashed",
    "NodeDown",
    "NodeState",
    "NodeUnavailable",
    "QuorumFailure",
    "ReplicationError",
    "SimulationConfig",
    "StandaloneStore",
    "StorageNode",
    "WriteAheadLog",
    "client_channels",
    "derive_rng",
]
