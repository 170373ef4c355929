from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass
class Event:
    kind: str
    ts_ms: int
    data: Dict


class EventLog:
    """Append-only job event storage, read back by offset."""

    def __init__(self):
        self._log: List[Event] = []

    def append(self, evt: Event) -> int:
        """Append one event and return its offset."""
        self._log.append(evt)
        return len(self._log) - 1

    def since(self, offset: int, limit: int = 1000) -> tuple[list[Event], int]:
        """Return events starting from offset, up to limit."""
        offset = max(0, offset)
        chunk = self._log[offset: offset + limit]
        return chunk, offset + len(chunk)
