from __future__ import annotations

from contextlib import contextmanager
from dataclasses import fields
from typing import Iterator, List, Optional

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings
from .errors import EntryNotFound, RunningEntryConflict
from .logging import get_logger
from .models import TimeEntry

logger = get_logger(__name__)

Base = declarative_base()

ENTRY_FIELDS = [f.name for f in fields(TimeEntry)]


class TimeEntryRow(Base):
    __tablename__ = "time_entries"

    id = Column(String(64), primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    project_id = Column(String(64), nullable=False, index=True)
    activity_id = Column(String(64), nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=False, default=0)
    is_running = Column(Boolean, nullable=False, default=False)
    is_paused = Column(Boolean, nullable=False, default=False)
    resumed_at = Column(DateTime, nullable=True)
    description = Column(Text, nullable=False, default="")

    # At most one running entry per owner.
    __table_args__ = (
        Index(
            "uq_time_entries_owner_running",
            "owner_id",
            unique=True,
            sqlite_where=text("is_running = 1"),
            postgresql_where=text("is_running"),
        ),
    )

    def to_entry(self) -> TimeEntry:
        return TimeEntry(**{name: getattr(self, name) for name in ENTRY_FIELDS})


class SqlTimeEntryStore:
    """Time entry store on top of SQLAlchemy.

    The running-entry invariant is a partial unique index, so concurrent
    starts for the same owner fail inside the database instead of relying on
    a read-then-write check.
    """

    def __init__(self, engine: Engine | str | None = None) -> None:
        if engine is None:
            engine = get_settings().database_url
        self.engine = create_engine(engine, pool_pre_ping=True) if isinstance(engine, str) else engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get(self, entry_id: str) -> TimeEntry:
        with self.session_scope() as db:
            row = db.get(TimeEntryRow, entry_id)
            if row is None:
                raise EntryNotFound(entry_id)
            return row.to_entry()

    def create(self, entry: TimeEntry) -> TimeEntry:
        try:
            with self.session_scope() as db:
                db.add(TimeEntryRow(**{name: getattr(entry, name) for name in ENTRY_FIELDS}))
        except IntegrityError:
            self._raise_if_running_conflict(entry.owner_id, entry.id)
            raise
        return entry

    def update(self, entry_id: str, **changes) -> TimeEntry:
        try:
            with self.session_scope() as db:
                row = db.get(TimeEntryRow, entry_id)
                if row is None:
                    raise EntryNotFound(entry_id)
                for name, value in changes.items():
                    if name not in ENTRY_FIELDS or name == "id":
                        raise ValueError(f"Unknown time entry field: {name}")
                    setattr(row, name, value)
                db.flush()
                owner_id = row.owner_id
                updated = row.to_entry()
        except IntegrityError:
            self._raise_if_running_conflict(self.get(entry_id).owner_id, entry_id)
            raise
        logger.debug("entry_updated", entry_id=entry_id, owner_id=owner_id, fields=sorted(changes))
        return updated

    def delete(self, entry_id: str) -> None:
        with self.session_scope() as db:
            row = db.get(TimeEntryRow, entry_id)
            if row is None:
                raise EntryNotFound(entry_id)
            db.delete(row)

    def list_by_owner(self, owner_id: str) -> List[TimeEntry]:
        with self.session_scope() as db:
            rows = (
                db.query(TimeEntryRow)
                .filter(TimeEntryRow.owner_id == owner_id)
                .order_by(TimeEntryRow.start_time, TimeEntryRow.id)
                .all()
            )
            return [row.to_entry() for row in rows]

    def find_running(self, owner_id: str) -> Optional[TimeEntry]:
        with self.session_scope() as db:
            row = (
                db.query(TimeEntryRow)
                .filter(TimeEntryRow.owner_id == owner_id, TimeEntryRow.is_running.is_(True))
                .one_or_none()
            )
            return row.to_entry() if row else None

    def _raise_if_running_conflict(self, owner_id: str, entry_id: str) -> None:
        running = self.find_running(owner_id)
        if running is not None and running.id != entry_id:
            logger.warning("running_entry_conflict", owner_id=owner_id, running_entry_id=running.id)
            raise RunningEntryConflict(owner_id, running.id) from None
