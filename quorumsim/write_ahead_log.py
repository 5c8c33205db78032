"""Append-only write-ahead log for key/value puts.

Each record is one UTF-8 line::

    PUT <key> <value>

where key and value are URL-safe base64 without padding, so neither can
contain the space or newline used for framing.
"""

from pathlib import Path
from typing import Dict, Union
import base64
import binascii
import os
import re
import threading
from quorumsim.event_log import EventLog

FIELD_PATTERN = re.compile(r"[A-Za-z0-9_-]*")


def encode_field(text: str) -> str:
    """Encode a key or value for the log."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def decode_field(field: str) -> str:
    """Decode a key or value from the log.

    Only the unpadded URL-safe alphabet is accepted; standard-alphabet
    characters and "=" padding raise binascii.Error like any other bad field.
    """
    if not FIELD_PATTERN.fullmatch(field):
        raise binascii.Error(f"not unpadded base64url: {field!r}")
    padded = field + "=" * (-len(field) % 4)
    return base64.b64decode(padded, altchars=b"-_", validate=True).decode("utf-8")


class WriteAheadLog:
    """Durable record of one node's writes."""

    def __init__(self, node_id: str, path: Union[str, Path], events: EventLog):
        self.node_id = node_id
        self.path = Path(path)
        self.events = events
        self._lock = threading.Lock()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)

    def append_put(self, key: str, value: str) -> None:
        """Append a PUT record and force it to disk before returning."""
        line = f"PUT {encode_field(key)} {encode_field(value)}\n"
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        self.events.record(self.node_id, "wal-append", {"key": key, "value": value})

    def replay(self) -> Dict[str, str]:
        """Fold every well-formed record into a mapping, last write wins."""
        data: Dict[str, str] = {}
        if not self.path.exists():
            return data

        lines = 0
        skipped = 0
        with self._lock:
            with open(self.path, "r", encoding="utf-8") as f:
                for raw in f:
                    lines += 1
                    line = raw.rstrip("\r\n")
                    if not line.strip():
                        continue

                    parts = line.split(" ")
                    if len(parts) != 3 or parts[0] != "PUT":
                        skipped += 1
                        self._skip(lines, "bad-format")
                        continue

                    try:
                        key = decode_field(parts[1])
                        value = decode_field(parts[2])
                    except (binascii.Error, UnicodeDecodeError):
                        skipped += 1
                        self._skip(lines, "bad-encoding")
                        continue

                    data[key] = value

        self.events.record(
            self.node_id,
            "wal-replay",
            {"entries": len(data), "lines": lines, "skipped": skipped},
        )
        return data

    def _skip(self, line_number: int, reason: str) -> None:
        self.events.record(
            self.node_id, "wal-skip", {"line": line_number, "reason": reason}
        )
