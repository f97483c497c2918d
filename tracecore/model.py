"""In-memory trace model fed by the loader."""
import json
import logging
from collections import Counter
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class TraceModel:
    """Collects decoded trace events.

    Only the loader-facing methods (begin_collecting, receive, stream_complete,
    reset, mark_loaded_from_file) are used while a load is running.
    """

    def __init__(self):
        self.events: List[Dict[str, Any]] = []
        self.batch_count = 0
        self.collecting = False
        self.complete = False
        self.loaded_from_file = False

    def begin_collecting(self, expect_fresh_start: bool) -> None:
        if expect_fresh_start and self.events:
            logger.debug("Discarding %d events from a previous load", len(self.events))
            self.reset()
        self.collecting = True
        self.complete = False

    def receive(self, batch: List[Any]) -> None:
        """Accept one batch of events; non-object records are rejected."""
        for event in batch:
            if not isinstance(event, dict):
                raise ValueError(f"trace event must be an object, got {type(event).__name__}")
        self.events.extend(batch)
        self.batch_count += 1

    def stream_complete(self) -> None:
        self.collecting = False
        self.complete = True
        logger.debug("Trace stream complete: %d events in %d batches", len(self.events), self.batch_count)

    def reset(self) -> None:
        self.events = []
        self.batch_count = 0
        self.collecting = False
        self.complete = False
        self.loaded_from_file = False

    def mark_loaded_from_file(self) -> None:
        self.loaded_from_file = True

    def summary(self) -> Dict[str, Any]:
        phases = Counter(str(e.get("ph", "?")) for e in self.events)
        timestamps = [e["ts"] for e in self.events if isinstance(e.get("ts"), (int, float))]
        first_ts: Optional[float] = min(timestamps) if timestamps else None
        last_ts: Optional[float] = max(timestamps) if timestamps else None
        return {
            "events": len(self.events),
            "batches": self.batch_count,
            "phases": dict(phases),
            "first_ts": first_ts,
            "last_ts": last_ts,
            "duration": (last_ts - first_ts) if timestamps else 0,
        }

    def iter_fragments(self, batch_size: int = 1000) -> Iterator[str]:
        """Serialize events as comma-separated fragments for TraceArrayWriter."""
        for start in range(0, len(self.events), batch_size):
            fragment = ",".join(json.dumps(e, separators=(",", ":")) for e in self.events[start:start + batch_size])
            yield fragment if start == 0 else "," + fragment
