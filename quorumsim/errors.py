"""Exceptions raised by channels, nodes and the quorum coordinator."""

from typing import Dict, List, Optional


class ReplicationError(Exception):
    """Base class for simulated replication failures."""


class ConfigurationError(ReplicationError, ValueError):
    """Invalid construction-time configuration."""


class LinkFailure(ReplicationError):
    """A channel dropped a delivery."""

    def __init__(self, channel_id: str, description: str):
        super().__init__(f"Link {channel_id} dropped {description}")
        self.channel_id = channel_id
        self.description = description


class NodeUnavailable(ReplicationError):
    """A node could not serve a request."""

    def __init__(self, node_id: str, message: str):
        super().__init__(message)
        self.node_id = node_id


class NodeCrashed(NodeUnavailable):
    """A node crashed while serving a request."""

    def __init__(self, node_id: str, context: str):
        super().__init__(node_id, f"Node {node_id} crashed during {context}")
        self.context = context


class NodeDown(NodeUnavailable):
    """A request reached a node that is already crashed."""

    def __init__(self, node_id: str):
        super().__init__(node_id, f"Node {node_id} is down")


class QuorumFailure(ReplicationError):
    """Not enough acknowledgements or matching votes to commit."""

    def __init__(
        self,
        operation: str,
        key: str,
        successes: int,
        quorum: int,
        failed: List[str],
        votes: Optional[Dict[Optional[str], int]] = None,
    ):
        self.operation = operation
        self.key = key
        self.successes = successes
        self.quorum = quorum
        self.failed = list(failed)
        self.votes = dict(votes) if votes is not None else None
        if operation == "write":
            detail = f"success={successes}, need={quorum}, failures={self.failed}"
        else:
            detail = f"acks={successes}, need={quorum}, votes={self.votes}"
        super().__init__(f"{operation.capitalize()} quorum failed ({detail})")
