"""
Durable Record Store
====================

Byte-level persistence of (key -> Proposal) pairs.

Stores only serialize and deserialize records; every business rule
lives in the registry. Keys are unsigned 64-bit integers and are
enumerated in ascending numeric order.

Backends:
- FileRecordStore: one file per key, atomic writes (ground truth on disk)
- SqlRecordStore: SQLite via SQLAlchemy (see database.py)
- MemoryRecordStore: process-local, for tests and embedding
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Iterator

from filelock import FileLock

from ..errors import CorruptRecord
from .records import Proposal, check_key, key_to_name


logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """Interface every backend implements"""

    @abstractmethod
    def get(self, key: int) -> Optional[Proposal]:
        """Return the record at key, or None if absent"""

    @abstractmethod
    def put(self, key: int, record: Proposal) -> Optional[Proposal]:
        """Insert or overwrite; return the previous record if there was one"""

    @abstractmethod
    def replace(self, key: int, record: Proposal) -> bool:
        """Overwrite an existing record; return False and write nothing if absent"""

    @abstractmethod
    def count(self) -> int:
        """Number of stored records"""

    @abstractmethod
    def keys(self) -> list[int]:
        """Stored keys in ascending order"""

    def items(self) -> Iterator[tuple[int, Proposal]]:
        for key in self.keys():
            record = self.get(key)
            if record is not None:
                yield key, record

    def remove_partial_writes(self) -> int:
        """Clean up leftovers of interrupted writes; return how many were removed"""
        return 0

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class MemoryRecordStore(RecordStore):
    """
    Non-durable store keeping serialized records in a dict.

    Records are kept as bytes so reads return fresh copies, the same as
    the durable backends.
    """

    def __init__(self):
        self._data: dict[int, bytes] = {}

    def get(self, key: int) -> Optional[Proposal]:
        data = self._data.get(check_key(key))
        if data is None:
            return None
        return Proposal.from_bytes(data, key)

    def put(self, key: int, record: Proposal) -> Optional[Proposal]:
        data = record.to_bytes()
        previous = self.get(key)
        self._data[key] = data
        return previous

    def replace(self, key: int, record: Proposal) -> bool:
        data = record.to_bytes()
        if check_key(key) not in self._data:
            return False
        self._data[key] = data
        return True

    def count(self) -> int:
        return len(self._data)

    def keys(self) -> list[int]:
        return sorted(self._data)


class FileRecordStore(RecordStore):
    """
    File-per-record store with atomic writes.

    Directory structure:
        state/
            ├── proposals.lock
            └── proposals/
                ├── 00000000000000000001.json
                ├── 00000000000000000042.json
                └── ...

    Each write goes temp file → fsync → rename → directory fsync, so a
    record file is either the old value or the new one, never a mix.
    """

    RECORD_SUFFIX = ".json"
    TEMP_SUFFIX = ".tmp"
    _NAME_RE = re.compile(r"^\d{20}$")

    def __init__(self, state_dir: str | Path, lock_timeout: float = -1):
        self.state_dir = Path(state_dir)
        self.records_dir = self.state_dir / "proposals"
        self.records_dir.mkdir(parents=True, exist_ok=True)
        self.lock = FileLock(str(self.state_dir / "proposals.lock"), timeout=lock_timeout)

    def record_path(self, key: int) -> Path:
        return self.records_dir / f"{key_to_name(key)}{self.RECORD_SUFFIX}"

    # =========================================================================
    # Core Atomic Operations
    # =========================================================================

    def _read(self, key: int) -> Optional[bytes]:
        path = self.record_path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def _write_atomic(self, path: Path, data: bytes) -> None:
        temp_path = path.with_suffix(self.TEMP_SUFFIX)

        with open(temp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, path)

        # Directory fsync makes the rename itself durable
        try:
            dir_fd = os.open(path.parent, os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
        except OSError:
            # Not supported on Windows
            pass

    # =========================================================================
    # Store Operations
    # =========================================================================

    def get(self, key: int) -> Optional[Proposal]:
        data = self._read(key)
        if data is None:
            return None
        return Proposal.from_bytes(data, key)

    def put(self, key: int, record: Proposal) -> Optional[Proposal]:
        data = record.to_bytes()
        path = self.record_path(key)
        with self.lock:
            try:
                previous = self.get(key)
            except CorruptRecord as e:
                logger.warning("Overwriting unreadable record: %s", e)
                previous = None
            self._write_atomic(path, data)
        return previous

    def replace(self, key: int, record: Proposal) -> bool:
        data = record.to_bytes()
        path = self.record_path(key)
        with self.lock:
            if not path.exists():
                return False
            self._write_atomic(path, data)
        return True

    def count(self) -> int:
        return len(self.keys())

    def keys(self) -> list[int]:
        return sorted(
            int(path.stem)
            for path in self.records_dir.glob(f"*{self.RECORD_SUFFIX}")
            if self._NAME_RE.match(path.stem)
        )

    def remove_partial_writes(self) -> int:
        removed = 0
        with self.lock:
            for temp_path in self.records_dir.glob(f"*{self.TEMP_SUFFIX}"):
                logger.info("Removing partial write %s", temp_path.name)
                temp_path.unlink()
                removed += 1
        return removed
