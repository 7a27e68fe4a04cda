"""
Append-Only Event Log
=====================

Audit trail of every successful mutation of the registry.
Uses JSONL format (one JSON object per line) for:
- Appending without parsing the whole file
- Line-by-line recovery if the file is partially corrupted
- Human-readable history of each proposal
"""

import json
import logging
import os
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Iterator, Dict, Any


logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Standard event types"""
    PROPOSAL_CREATED = "proposal_created"
    PROPOSAL_OVERWRITTEN = "proposal_overwritten"
    PROPOSAL_EDITED = "proposal_edited"
    PROPOSAL_CLOSED = "proposal_closed"
    VOTE_CAST = "vote_cast"
    RECOVERY_COMPLETED = "recovery_completed"


@dataclass
class Event:
    """A single event in the log"""
    event_type: str
    timestamp: str
    key: Optional[int] = None
    caller: Optional[str] = None
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


def _type_value(event_type: "str | EventType") -> str:
    return event_type.value if isinstance(event_type, EventType) else str(event_type)


class EventLog:
    """
    Append-only event log using JSONL format.

    Lines are never modified after writing, only appended.

    File structure:
        state/events.jsonl
    """

    def __init__(self, log_path: str | Path):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def append(
        self,
        event_type: str | EventType,
        key: Optional[int] = None,
        caller: Optional[str] = None,
        message: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Event:
        """Append an event and fsync it before returning"""
        event = Event(
            event_type=_type_value(event_type),
            timestamp=datetime.now(timezone.utc).isoformat(),
            key=key,
            caller=caller,
            message=message,
            data=data,
        )

        # Drop None values for compactness
        event_dict = {k: v for k, v in asdict(event).items() if v is not None}

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(event_dict, ensure_ascii=False, default=str) + "\n")
            f.flush()
            os.fsync(f.fileno())

        return event

    def read_all(self) -> list[Event]:
        return list(self.iterate())

    def iterate(self) -> Iterator[Event]:
        """
        Iterate over all events in the log.

        Corrupted lines are skipped with a warning.
        """
        if not self.log_path.exists():
            return

        with open(self.log_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue

                try:
                    yield Event(**json.loads(line))
                except (json.JSONDecodeError, TypeError) as e:
                    logger.warning("Corrupted event at line %d: %s", line_num, e)
                    continue

    def read_last_n(self, n: int) -> list[Event]:
        """Read the last N events"""
        events = list(self.iterate())
        return events[-n:] if n > 0 else []

    def find_events(
        self,
        event_type: Optional[str | EventType] = None,
        key: Optional[int] = None,
        caller: Optional[str] = None,
    ) -> list[Event]:
        """Find events matching every given criterion"""
        event_type_str = _type_value(event_type) if event_type else None

        results = []
        for event in self.iterate():
            if event_type_str and event.event_type != event_type_str:
                continue
            if key is not None and event.key != key:
                continue
            if caller is not None and event.caller != caller:
                continue
            results.append(event)

        return results

    def proposal_history(self, key: int) -> list[Event]:
        """All events for one proposal in chronological order"""
        return self.find_events(key=key)
