"""In-memory persistence session used to exercise the repository core.

FakeSession keeps persisted rows in ``store`` (copies keyed by widget_id)
and applies a real version check on update: a staged Widget commits only
when its version matches the stored one.  Tests simulate a concurrent
writer by editing ``store`` directly or through ``before_commit``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable

from repokit.domain.exceptions import ConcurrencyConflict
from repokit.domain.models.fields import EntityFields, fields_for, register_fields
from repokit.domain.ports.session import TrackingHandle


@dataclass
class Widget:
    widget_id: int | None = None
    name: str = ""
    price: float = 0.0
    tags: str | None = None
    version: int = 0


WIDGET_FIELDS = EntityFields.from_names(
    Widget, ["name", "price", "tags"], key_names=["widget_id", "version"]
)


def register_widget() -> None:
    register_fields(WIDGET_FIELDS)


class FakeTrackedSet:
    def __init__(self, session: FakeSession, entity_type: type) -> None:
        self._session = session
        self._entity_type = entity_type

    async def query(self, predicate=None) -> list:
        self._session.queries.append(predicate)
        rows = [dataclasses.replace(row) for _, row in sorted(self._session.store.items())]
        if predicate is not None:
            rows = [row for row in rows if predicate(row)]
        return rows

    async def first(self, predicate=None):
        self._session.first_queries.append(predicate)
        rows = await self.query(predicate)
        return rows[0] if rows else None

    async def count(self, predicate=None) -> int:
        return len(await self.query(predicate))

    async def from_raw(self, statement: str, parameters=None) -> list:
        self._session.raw_queries.append((statement, parameters))
        return await self.query()

    def local(self) -> list:
        return [e for e in self._session.tracked if isinstance(e, self._entity_type)]


class FakeConflictEntry:
    def __init__(self, session: FakeSession, entity: Widget) -> None:
        self._session = session
        self._entity = entity

    @property
    def entity(self) -> Widget:
        return self._entity

    def current_values(self) -> dict[str, Any]:
        return fields_for(Widget).dump(self._entity)

    async def get_database_values(self) -> dict[str, Any] | None:
        if self._session.database_values_missing:
            return None
        row = self._session.store.get(self._entity.widget_id)
        return dataclasses.asdict(row) if row is not None else None

    def set_original_values(self, values) -> None:
        self._session.original_values.append(dict(values))
        self._entity.version = values["version"]

    def set_current_values(self, values) -> None:
        self._session.current_values.append(dict(values))
        fields_for(Widget).apply(self._entity, values)


class FakeTransaction:
    def __init__(self, session: FakeSession, isolation_level: str) -> None:
        self._session = session
        self.isolation_level = isolation_level
        self.pending: list[tuple[str, Any]] = []
        self.committed = False
        self.rolled_back = False

    async def __aenter__(self) -> FakeTransaction:
        self._session.transactions.append(self)
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        if not self.committed:
            self.pending.clear()
            self.rolled_back = True

    async def execute(self, statement: str, parameters=None) -> int:
        if statement.startswith("FAIL"):
            raise RuntimeError(f"syntax error near {statement!r}")
        self.pending.append((statement, parameters))
        return self._session.raw_rowcount

    async def commit(self) -> None:
        self._session.executed.extend(self.pending)
        self.committed = True


@dataclass
class FakeSession:
    store: dict[int, Widget] = field(default_factory=dict)
    tracked: list[Any] = field(default_factory=list)
    staged: list[tuple[str, Any]] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    queries: list[Any] = field(default_factory=list)
    raw_queries: list[tuple[str, Any]] = field(default_factory=list)
    first_queries: list[Any] = field(default_factory=list)
    original_values: list[dict] = field(default_factory=list)
    current_values: list[dict] = field(default_factory=list)
    committed_updates: list[Widget] = field(default_factory=list)
    transactions: list[FakeTransaction] = field(default_factory=list)
    executed: list[tuple[str, Any]] = field(default_factory=list)
    stage_returns_none: bool = False
    database_values_missing: bool = False
    commit_error: Exception | None = None
    before_commit: Callable[[FakeSession], None] | None = None
    raw_rowcount: int = 1
    commits: int = 0
    next_id: int = 1

    def seed(self, *widgets: Widget) -> list[Widget]:
        for widget in widgets:
            if widget.widget_id is None:
                widget.widget_id = self.next_id
            self.next_id = max(self.next_id, widget.widget_id + 1)
            if widget.version == 0:
                widget.version = 1
            self.store[widget.widget_id] = dataclasses.replace(widget)
        return list(widgets)

    def tracked_set(self, entity_type: type) -> FakeTrackedSet:
        return FakeTrackedSet(self, entity_type)

    def _stage(self, op: str, entity: Any) -> TrackingHandle | None:
        self.calls.append(op)
        if self.stage_returns_none:
            return None
        self.staged.append((op, entity))
        if not any(t is entity for t in self.tracked):
            self.tracked.append(entity)
        return TrackingHandle(entity)

    async def add(self, entity: Any) -> TrackingHandle | None:
        return self._stage("add", entity)

    async def update(self, entity: Any) -> TrackingHandle | None:
        return self._stage("update", entity)

    async def remove(self, entity: Any) -> TrackingHandle | None:
        return self._stage("remove", entity)

    async def commit_all(self) -> None:
        self.commits += 1
        if self.before_commit is not None:
            self.before_commit(self)
        if self.commit_error is not None:
            raise self.commit_error

        staged, self.staged = self.staged, []
        stale = [
            entity
            for op, entity in staged
            if op == "update"
            and (
                entity.widget_id not in self.store
                or self.store[entity.widget_id].version != entity.version
            )
        ]
        if stale:
            raise ConcurrencyConflict([FakeConflictEntry(self, entity) for entity in stale])

        for op, entity in staged:
            if op == "add":
                if entity.widget_id is None:
                    entity.widget_id = self.next_id
                    self.next_id += 1
                entity.version = 1
                self.store[entity.widget_id] = dataclasses.replace(entity)
            elif op == "update":
                entity.version += 1
                self.store[entity.widget_id] = dataclasses.replace(entity)
                self.committed_updates.append(dataclasses.replace(entity))
            elif op == "remove":
                self.store.pop(entity.widget_id, None)
                self.tracked = [t for t in self.tracked if t is not entity]

    def begin_transaction(self, isolation_level: str) -> FakeTransaction:
        return FakeTransaction(self, isolation_level)

    def detach(self, entity: Any) -> None:
        self.calls.append("detach")
        self.tracked = [t for t in self.tracked if t is not entity]


def bump_store(widget_id: int, **changes: Any) -> Callable[[FakeSession], None]:
    """before_commit hook: a concurrent writer changes the row and bumps its version."""

    def _hook(session: FakeSession) -> None:
        row = session.store[widget_id]
        session.store[widget_id] = dataclasses.replace(row, version=row.version + 1, **changes)

    return _hook
