"""Event sink shared by every simulated component."""

from asimpy import Environment
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, TextIO
import sys


@dataclass
class EventRecord:
    """One recorded event."""

    time: float
    actor: str
    event: str
    details: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.time:.3f}] actor={self.actor} event={self.event}"]
        parts.extend(f"{k}={v}" for k, v in self.details.items())
        if self.metadata:
            meta = ", ".join(f"{k}: {v}" for k, v in self.metadata.items())
            parts.append("{" + meta + "}")
        return " ".join(parts)


def _text(value: Any) -> str:
    return "null" if value is None else str(value)


class EventLog:
    """Records events, prints them, and mirrors them into the environment log."""

    def __init__(self, env: Environment, out: Optional[TextIO] = None, echo: bool = True):
        self.env = env
        self.out = out
        self.echo = echo
        self.records: List[EventRecord] = []

    def record(
        self,
        actor: str,
        event: str,
        details: Optional[Mapping[str, Any]] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Record an event; never raises into the caller."""
        entry = EventRecord(
            time=self.env.now,
            actor=actor,
            event=event,
            details={k: _text(v) for k, v in (details or {}).items()},
            metadata={k: _text(v) for k, v in (metadata or {}).items()},
        )
        self.records.append(entry)
        self.env.log(actor, str(entry))

        if self.echo:
            try:
                print(entry, file=self.out or sys.stdout)
            except (OSError, ValueError):
                # Closed or broken stream: the record is still kept.
                self.echo = False

    def named(self, event: str, actor: Optional[str] = None) -> List[EventRecord]:
        """All records for an event, optionally from one actor."""
        return [
            r
            for r in self.records
            if r.event == event and (actor is None or r.actor == actor)
        ]

    def count(self, event: str) -> int:
        """Number of records for an event."""
        return len(self.named(event))
