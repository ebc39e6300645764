"""
Event log writers producing deterministic NDJSON game streams.
"""

from __future__ import annotations

import json
import pathlib
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Protocol


class EventLog(Protocol):
    def log(self, event_type: str, payload: Optional[Dict[str, Any]] = None) -> None:
        ...


def _record(seq: int, event_type: str, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(),
        "seq": seq,
        "type": event_type,
        "payload": payload or {},
    }


class NDJSONLogger:
    """
    Writes JSON records to a file, one per line.

    Each record carries an ISO timestamp and a per-stream sequence number; field
    ordering is kept stable by serialising with sort_keys=True.
    """

    def __init__(self, path: pathlib.Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._path = path
        self._file = path.open("w", encoding="utf-8")
        self._seq = 0

    @property
    def path(self) -> pathlib.Path:
        return self._path

    def log(self, event_type: str, payload: Optional[Dict[str, Any]] = None) -> None:
        self._seq += 1
        record = _record(self._seq, event_type, payload)
        self._file.write(json.dumps(record, sort_keys=True) + "\n")
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()

    def __enter__(self) -> "NDJSONLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class MemoryEventLog:
    """Keeps records in memory; used by the HTTP service and tests."""

    def __init__(self) -> None:
        self.records: List[Dict[str, Any]] = []

    def log(self, event_type: str, payload: Optional[Dict[str, Any]] = None) -> None:
        self.records.append(_record(len(self.records) + 1, event_type, payload))

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [record for record in self.records if record["type"] == event_type]

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


def read_events(path: pathlib.Path) -> List[Dict[str, Any]]:
    events: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            if not line.strip():
                continue
            events.append(json.loads(line))
    return events
