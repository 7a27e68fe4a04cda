"""
Startup Recovery
================

Checks the record store after a crash or unclean shutdown.

Recovery process:
1. Remove temp files left by interrupted atomic writes
2. Decode every stored record
3. Report records that no longer decode (they are never deleted)
4. Log the outcome to the event log
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .errors import CorruptRecord
from .state.events import EventLog, EventType
from .state.store import RecordStore


logger = logging.getLogger(__name__)


@dataclass
class RecoveryResult:
    """Results from recovery process"""
    records_found: int = 0
    records_valid: int = 0
    partial_writes_removed: int = 0
    corrupt_keys: list = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.corrupt_keys


class RecoveryManager:
    """Verifies a store on startup"""

    def __init__(self, store: RecordStore, event_log: Optional[EventLog] = None):
        self.store = store
        self.event_log = event_log

    def recover(self) -> RecoveryResult:
        result = RecoveryResult()

        result.partial_writes_removed = self.store.remove_partial_writes()

        keys = self.store.keys()
        result.records_found = len(keys)

        for key in keys:
            try:
                self.store.get(key)
            except CorruptRecord as e:
                logger.warning("%s", e)
                result.corrupt_keys.append(key)
            else:
                result.records_valid += 1

        logger.info(
            "Recovery complete: %d records, %d valid, %d partial writes removed",
            result.records_found, result.records_valid, result.partial_writes_removed,
        )

        if self.event_log is not None:
            self.event_log.append(
                EventType.RECOVERY_COMPLETED,
                message=f"Recovery complete: {result.records_valid}/{result.records_found} records valid",
                data={
                    "records_found": result.records_found,
                    "records_valid": result.records_valid,
                    "partial_writes_removed": result.partial_writes_removed,
                    "corrupt_keys": result.corrupt_keys,
                },
            )

        return result
