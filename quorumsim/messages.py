"""Request and response message types for storage nodes."""

from asimpy import Queue
from dataclasses import dataclass
from typing import Optional


@dataclass
class PutRequest:
    """Request to write a key."""

    key: str
    value: str
    response_queue: Queue


@dataclass
class GetRequest:
    """Request to read a key."""

    key: str
    response_queue: Queue


@dataclass
class NodeResponse:
    """Response to a put or get."""

    value: Optional[str] = None  # None is the absent value
    error: Optional[Exception] = None
