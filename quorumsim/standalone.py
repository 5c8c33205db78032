"""Single node behind the same interface as the cluster, without replication."""

from typing import Any, Mapping, Optional
from quorumsim.channel import Channel
from quorumsim.storage_node import StorageNode


class StandaloneStore:
    """Routes client requests straight to one node."""

    def __init__(self, node: StorageNode):
        self.node = node

    async def put(
        self,
        key: str,
        value: str,
        entry: int,
        client_channel: Channel,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        await client_channel.deliver(
            "client-put", lambda: self.node.put(key, value), metadata
        )

    async def get(
        self,
        key: str,
        entry: int,
        client_channel: Channel,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        return await client_channel.deliver(
            "client-get", lambda: self.node.get(key), metadata
        )
