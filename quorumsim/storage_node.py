"""Storage node: a crashable key-value state machine with optional WAL."""

from asimpy import Process, Queue
from enum import Enum
from typing import Dict, Optional, Union
from quorumsim.crash_injector import CrashFaultInjector
from quorumsim.errors import NodeDown, NodeUnavailable
from quorumsim.event_log import EventLog
from quorumsim.messages import GetRequest, NodeResponse, PutRequest
from quorumsim.write_ahead_log import WriteAheadLog


class NodeState(Enum):
    """Node liveness."""

    ALIVE = "ALIVE"
    CRASHED = "CRASHED"


class StorageNode(Process):
    """A node that owns its mapping and serves requests one at a time."""

    def init(
        self,
        node_id: str,
        events: EventLog,
        injector: Optional[CrashFaultInjector] = None,
        wal: Optional[WriteAheadLog] = None,
    ):
        self.node_id = node_id
        self.events = events
        self.injector = injector
        self.wal = wal
        self.request_queue = Queue(self._env)
        self.state = NodeState.ALIVE
        self.data: Dict[str, str] = self.wal.replay() if self.wal else {}

    def __str__(self) -> str:
        return f"StorageNode({self.node_id}, {self.state.value})"

    @property
    def alive(self) -> bool:
        return self.state is NodeState.ALIVE

    async def run(self):
        """Process put and get requests."""
        while True:
            request = await self.request_queue.get()
            try:
                if isinstance(request, PutRequest):
                    self._handle_put(request.key, request.value)
                    response = NodeResponse()
                else:
                    response = NodeResponse(value=self._handle_get(request.key))
            except (NodeUnavailable, OSError) as exc:
                response = NodeResponse(error=exc)
            await request.response_queue.put(response)

    async def put(self, key: str, value: str) -> None:
        """Write a key through this node's request queue."""
        await self._call(PutRequest(key, value, Queue(self._env)))

    async def get(self, key: str) -> Optional[str]:
        """Read a key through this node's request queue; None if absent."""
        return await self._call(GetRequest(key, Queue(self._env)))

    async def _call(self, request: Union[PutRequest, GetRequest]) -> Optional[str]:
        """Queue a request and wait for its response, raising any error it carries."""
        await self.request_queue.put(request)
        response = await request.response_queue.get()
        if response.error is not None:
            raise response.error
        return response.value

    def _handle_put(self, key: str, value: str) -> None:
        """Log the write, give the injector a chance to crash, then apply it."""
        self._ensure_alive()
        # The log append is the durability point and precedes visibility.
        if self.wal is not None:
            self.wal.append_put(key, value)
        self._inject_crash("put")
        self.data[key] = value
        self.events.record(self.node_id, "put", {"key": key, "value": value})

    def _handle_get(self, key: str) -> Optional[str]:
        """Read a key from memory; None if absent."""
        self._ensure_alive()
        self._inject_crash("get")
        value = self.data.get(key)
        self.events.record(self.node_id, "get", {"key": key, "value": value})
        return value

    def _ensure_alive(self) -> None:
        if not self.alive:
            raise NodeDown(self.node_id)

    def _inject_crash(self, context: str) -> None:
        """Crash this node if the injector fires for context."""
        if self.injector is None:
            return
        try:
            self.injector.maybe_crash(context)
        except NodeUnavailable:
            self.crash(context)
            raise

    def crash(self, reason: str) -> None:
        """Stop serving and lose all in-memory state."""
        self.state = NodeState.CRASHED
        self.data.clear()
        self.events.record(self.node_id, "crashed", {"reason": reason, "state": "lost"})

    def restart(self) -> None:
        """Come back up, restoring from the log if there is one."""
        self.state = NodeState.ALIVE
        if self.wal is not None:
            self.data = self.wal.replay()
            source = "from-wal"
        else:
            self.data = {}
            source = "empty"
        self.events.record(
            self.node_id, "restart", {"state": source, "entries": len(self.data)}
        )
