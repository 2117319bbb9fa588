"""Persistent territory store.

This is the only component allowed to write territory control.  State
lives in SQLite so the last known controller of every town survives a
restart.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy import Column, DateTime, Float, Integer, String, create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from pyfoxhole.exceptions import FoxholeStoreError
from pyfoxhole.models.team import Team, resolve_team
from pyfoxhole.models.territory import ConquerStatus, TerritoryKey, TerritoryRecord, UpsertResult
from pyfoxhole.models.war import WarState
from pyfoxhole.state.policy import has_changed, is_new_war

Base = declarative_base()

_IN_MEMORY_URLS = frozenset({"sqlite://", "sqlite:///:memory:"})
_WAR_META_ID = 1


class TerritoryRow(Base):
    __tablename__ = "territories"

    region = Column(String, primary_key=True)
    icon_type = Column(Integer, primary_key=True)
    x = Column(Float, primary_key=True)
    y = Column(Float, primary_key=True)
    team = Column(String, nullable=False)
    label = Column(String, nullable=False, default="")
    updated_at = Column(DateTime, nullable=False)


class WarMetaRow(Base):
    __tablename__ = "war_meta"

    id = Column(Integer, primary_key=True)
    war_number = Column(Integer, nullable=False)
    conquest_start_time = Column(DateTime, nullable=True)
    required_victory_towns = Column(Integer, nullable=False, default=0)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _to_db(value: datetime | None) -> datetime | None:
    # SQLite has no timezone support: store naive UTC.
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.replace(tzinfo=None)


def _from_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=UTC)


def _row_identity(key: TerritoryKey) -> tuple[str, int, float, float]:
    return (key.region, key.icon_type, key.x, key.y)


class TerritoryStore:
    """SQLite-backed store for the last known controller of each territory.

    Every public method holds one lock, so the store is safe to share
    between concurrent callers (event-loop tasks or worker threads).
    """

    def __init__(
        self,
        url: str = "sqlite://",
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        engine_kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in _IN_MEMORY_URLS:
            # One shared connection, otherwise every session sees an empty database.
            engine_kwargs["poolclass"] = StaticPool
        self._clock = clock
        self._lock = threading.Lock()
        try:
            self._engine = create_engine(url, **engine_kwargs)
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise FoxholeStoreError(f"Could not open territory store at {url}: {exc}") from exc
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)
        self._closed = False

    @classmethod
    def from_path(cls, path: str | Path, **kwargs: Any) -> TerritoryStore:
        """Open (or create) a store in the SQLite file at *path*."""
        if str(path) in ("", ":memory:"):
            return cls("sqlite://", **kwargs)
        db_path = Path(path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return cls(f"sqlite:///{db_path}", **kwargs)

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        if self._closed:
            raise FoxholeStoreError("Territory store is closed")
        with self._lock:
            try:
                with self._sessions() as session, session.begin():
                    yield session
            except SQLAlchemyError as exc:
                raise FoxholeStoreError(f"Territory store operation failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, key: TerritoryKey, team: Team, label: str) -> UpsertResult:
        """Record the current controller of one territory.

        ``changed`` is true iff the territory was unknown or its team
        differs from the stored one.  The label is always overwritten.
        """
        return self.upsert_many([(key, team, label)])[0]

    def upsert_many(self, items: Iterable[tuple[TerritoryKey, Team, str]]) -> list[UpsertResult]:
        """Reconcile a batch of observations in a single transaction."""
        results: list[UpsertResult] = []
        now = _to_db(self._clock())
        with self._transaction() as session:
            seen: dict[tuple[str, int, float, float], TerritoryRow] = {}
            for key, team, label in items:
                identity = _row_identity(key)
                row = seen.get(identity)
                if row is None:
                    row = session.get(TerritoryRow, identity)
                previous = resolve_team(row.team) if row is not None else None
                changed = has_changed(previous, team)
                if row is None:
                    row = TerritoryRow(
                        region=key.region,
                        icon_type=key.icon_type,
                        x=key.x,
                        y=key.y,
                        team=team.value,
                        label=label,
                        updated_at=now,
                    )
                    session.add(row)
                else:
                    row.label = label
                    if changed:
                        row.team = team.value
                        row.updated_at = now
                seen[identity] = row
                results.append(UpsertResult(key=key, changed=changed, previous_team=previous))
        return results

    def record_war(self, war: WarState) -> int | None:
        """Remember the current war; return the previously stored war number."""
        with self._transaction() as session:
            return _write_war_meta(session, war)

    def begin_war(self, war: WarState, *, reset: bool = True) -> tuple[int | None, int]:
        """Record *war* and, if it is a new war, drop the previous war's territories.

        The comparison, the reset and the war write share one transaction,
        so a failure leaves both tables as they were and the next call
        sees the war change again.

        Returns
        -------
        tuple[int | None, int]
            The previously stored war number and the number of territory
            records dropped (0 unless the war changed and *reset* is true).
        """
        with self._transaction() as session:
            meta = session.get(WarMetaRow, _WAR_META_ID)
            previous = meta.war_number if meta is not None else None
            dropped = 0
            if reset and is_new_war(previous, war.war_number):
                result = session.execute(delete(TerritoryRow))
                dropped = int(result.rowcount or 0)
            _write_war_meta(session, war)
        return previous, dropped

    def reset(self) -> int:
        """Forget every territory.  Returns the number of records dropped."""
        with self._transaction() as session:
            result = session.execute(delete(TerritoryRow))
            return int(result.rowcount or 0)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, key: TerritoryKey) -> TerritoryRecord | None:
        with self._transaction() as session:
            row = session.get(TerritoryRow, _row_identity(key))
            return _to_record(row) if row is not None else None

    def war_number(self) -> int | None:
        with self._transaction() as session:
            meta = session.get(WarMetaRow, _WAR_META_ID)
            return meta.war_number if meta is not None else None

    def read_snapshot(self) -> ConquerStatus:
        """Return an immutable copy of every territory record."""
        with self._transaction() as session:
            rows = session.scalars(
                select(TerritoryRow).order_by(
                    TerritoryRow.region,
                    TerritoryRow.icon_type,
                    TerritoryRow.x,
                    TerritoryRow.y,
                )
            ).all()
            meta = session.get(WarMetaRow, _WAR_META_ID)
            return ConquerStatus(
                territories=tuple(_to_record(row) for row in rows),
                war_number=meta.war_number if meta is not None else None,
                conquest_start_time=_from_db(meta.conquest_start_time) if meta is not None else None,
                required_victory_towns=meta.required_victory_towns if meta is not None else 0,
                taken_at=self._clock(),
            )

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._engine.dispose()


def _to_record(row: TerritoryRow) -> TerritoryRecord:
    return TerritoryRecord(
        key=TerritoryKey(icon_type=row.icon_type, x=row.x, y=row.y, region=row.region),
        team=resolve_team(row.team),
        label=row.label,
        updated_at=_from_db(row.updated_at),
    )


def _write_war_meta(session: Session, war: WarState) -> int | None:
    meta = session.get(WarMetaRow, _WAR_META_ID)
    previous = meta.war_number if meta is not None else None
    if meta is None:
        meta = WarMetaRow(id=_WAR_META_ID, war_number=war.war_number)
        session.add(meta)
    meta.war_number = war.war_number
    meta.conquest_start_time = _to_db(war.conquest_start_time)
    meta.required_victory_towns = war.required_victory_towns
    return previous
