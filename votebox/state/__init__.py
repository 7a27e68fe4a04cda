"""
State Module
============

Records, stores and the audit log:
1. Proposal records and their bounded byte encoding
2. Record stores (atomic files, SQLite, memory)
3. Event log (append-only audit trail)
"""

from .records import Choice, CreateProposal, Proposal, MAX_VALUE_SIZE
from .store import RecordStore, FileRecordStore, MemoryRecordStore
from .database import SqlRecordStore
from .events import EventLog, EventType

__all__ = [
    "Choice",
    "CreateProposal",
    "Proposal",
    "MAX_VALUE_SIZE",
    "RecordStore",
    "FileRecordStore",
    "MemoryRecordStore",
    "SqlRecordStore",
    "EventLog",
    "EventType",
]
