"""
SQLite Record Store
===================

RecordStore backend on SQLite through SQLAlchemy.

Keys are stored as zero-padded 20 digit strings: SQLite integers are
signed 64-bit, so the string form is what keeps the whole u64 range
in numeric order. The record itself is kept as its serialized bytes.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    create_engine,
    Column,
    String,
    LargeBinary,
    DateTime,
    event,
)
from sqlalchemy.orm import (
    declarative_base,
    sessionmaker,
    Session,
)

from ..errors import CorruptRecord
from .records import Proposal, key_to_name
from .store import RecordStore


logger = logging.getLogger(__name__)

Base = declarative_base()


class ProposalRow(Base):
    """One serialized proposal per key"""
    __tablename__ = "proposals"

    key = Column(String(20), primary_key=True)
    payload = Column(LargeBinary, nullable=False)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, onupdate=lambda: datetime.now(timezone.utc))


class SqlRecordStore(RecordStore):
    """
    SQLite-backed record store.

    Every operation runs in its own session and commits before
    returning, so a write is durable once the call completes.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        db_url = f"sqlite:///{self.db_path}"

        self.engine = create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False}
        )

        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            # FULL: a committed write survives power loss, not just a crash
            cursor.execute("PRAGMA synchronous=FULL")
            cursor.close()

        Base.metadata.create_all(self.engine)

        self.Session = sessionmaker(bind=self.engine)

    def get_session(self) -> Session:
        """Get a new database session"""
        return self.Session()

    def get(self, key: int) -> Optional[Proposal]:
        with self.get_session() as session:
            row = session.get(ProposalRow, key_to_name(key))
            if row is None:
                return None
            return Proposal.from_bytes(row.payload, key)

    def put(self, key: int, record: Proposal) -> Optional[Proposal]:
        data = record.to_bytes()
        name = key_to_name(key)
        with self.get_session() as session:
            row = session.get(ProposalRow, name)
            previous = None
            if row is None:
                session.add(ProposalRow(key=name, payload=data))
            else:
                try:
                    previous = Proposal.from_bytes(row.payload, key)
                except CorruptRecord as e:
                    logger.warning("Overwriting unreadable record: %s", e)
                row.payload = data
            session.commit()
        return previous

    def replace(self, key: int, record: Proposal) -> bool:
        data = record.to_bytes()
        with self.get_session() as session:
            row = session.get(ProposalRow, key_to_name(key))
            if row is None:
                return False
            row.payload = data
            session.commit()
        return True

    def count(self) -> int:
        with self.get_session() as session:
            return session.query(ProposalRow).count()

    def keys(self) -> list[int]:
        with self.get_session() as session:
            rows = session.query(ProposalRow.key).order_by(ProposalRow.key).all()
            return [int(name) for (name,) in rows]

    def close(self) -> None:
        self.engine.dispose()
