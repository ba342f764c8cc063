"""PersistenceSession implementation over a SQLAlchemy AsyncSession.

Optimistic concurrency relies on the mapper's version counter
(``__mapper_args__ = {"version_id_col": ...}``).  When a flush finds that a
versioned row no longer matches its baseline SQLAlchemy raises
StaleDataError; commit_all() rolls the session back and re-raises it as
ConcurrencyConflict with one SqlAlchemyConflictEntry per staged update.

The wrapped session should be created with ``expire_on_commit=False`` so that
committed entities stay readable without another round trip.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any, Generic, TypeVar

from sqlalchemy import func, inspect, select, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession, AsyncTransaction
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.attributes import flag_modified, set_committed_value
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.sql.expression import ColumnElement

from repokit.domain.exceptions import ConcurrencyConflict, RepositoryError
from repokit.domain.models.fields import fields_for
from repokit.domain.ports.session import Parameters, Predicate, TrackingHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_expression(predicate: Predicate | None) -> bool:
    return isinstance(predicate, ColumnElement)


def _column_values(entity: Any) -> dict[str, Any]:
    """Loaded column values of entity, read without triggering any load."""
    state = inspect(entity)
    return {
        attr.key: state.dict[attr.key] for attr in state.mapper.column_attrs if attr.key in state.dict
    }


def _key_attribute_names(mapper: Any) -> set[str]:
    columns = list(mapper.primary_key)
    if mapper.version_id_col is not None:
        columns.append(mapper.version_id_col)
    return {mapper.get_property_by_column(column).key for column in columns}


class SqlAlchemyTrackedSet(Generic[T]):
    """Queries over one mapped class.

    SQL expression predicates are pushed into the WHERE clause; callable
    predicates are applied to the loaded rows.
    """

    def __init__(self, session: AsyncSession, entity_type: type[T]) -> None:
        self._session = session
        self._entity_type = entity_type

    async def query(self, predicate: Predicate | None = None) -> list[T]:
        stmt = select(self._entity_type)
        if _is_expression(predicate):
            stmt = stmt.where(predicate)
        result = await self._session.execute(stmt)
        rows = list(result.scalars())
        if predicate is not None and not _is_expression(predicate):
            rows = [row for row in rows if predicate(row)]
        return rows

    async def first(self, predicate: Predicate | None = None) -> T | None:
        if predicate is not None and not _is_expression(predicate):
            return next(iter(await self.query(predicate)), None)
        stmt = select(self._entity_type)
        if predicate is not None:
            stmt = stmt.where(predicate)
        result = await self._session.execute(stmt.limit(1))
        return result.scalars().first()

    async def count(self, predicate: Predicate | None = None) -> int:
        if predicate is not None and not _is_expression(predicate):
            return len(await self.query(predicate))
        stmt = select(func.count()).select_from(self._entity_type)
        if predicate is not None:
            stmt = stmt.where(predicate)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def from_raw(self, statement: str, parameters: Parameters | None = None) -> list[T]:
        stmt = select(self._entity_type).from_statement(text(statement))
        result = await self._session.execute(stmt, dict(parameters or {}))
        return list(result.scalars())

    def local(self) -> list[T]:
        return [obj for obj in self._session.sync_session if isinstance(obj, self._entity_type)]


class SqlAlchemyConflictEntry(Generic[T]):
    """A staged update that failed its version check.

    values is the column snapshot taken just before the failed commit; the
    rollback that follows expires the instance itself.
    """

    def __init__(self, session: AsyncSession, entity: T, values: Mapping[str, Any]) -> None:
        self._session = session
        self._entity = entity
        self._values = dict(values)

    @property
    def entity(self) -> T:
        return self._entity

    def current_values(self) -> dict[str, Any]:
        return dict(self._values)

    async def get_database_values(self) -> dict[str, Any] | None:
        mapper = inspect(type(self._entity))
        criteria = []
        for column in mapper.primary_key:
            value = self._values.get(mapper.get_property_by_column(column).key)
            if value is None:
                return None
            criteria.append(column == value)

        attrs = list(mapper.column_attrs)
        stmt = select(*(attr.columns[0] for attr in attrs)).where(*criteria)
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return {attr.key: value for attr, value in zip(attrs, row)}

    def set_original_values(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            set_committed_value(self._entity, key, value)

    def set_current_values(self, values: Mapping[str, Any]) -> None:
        fields_for(type(self._entity)).apply(self._entity, values)


class SqlAlchemyTransaction:
    """Raw-statement transaction on its own connection at an explicit isolation level.

    The connection comes from the session's engine, so the session's tracked
    changes are neither flushed by commit() nor discarded by a rollback.
    Leaving the context without commit() rolls the statement back.
    """

    def __init__(self, session: AsyncSession, isolation_level: str) -> None:
        self._session = session
        self._isolation_level = isolation_level
        self._connection: AsyncConnection | None = None
        self._transaction: AsyncTransaction | None = None
        self._committed = False

    @property
    def connection(self) -> AsyncConnection:
        if self._connection is None:
            raise RepositoryError("Transaction has not been entered")
        return self._connection

    async def __aenter__(self) -> SqlAlchemyTransaction:
        engine = self._session.bind
        if engine is None:
            raise RepositoryError("Raw statements need a session bound to an engine")
        self._connection = await engine.connect()
        try:
            await self._connection.execution_options(isolation_level=self._isolation_level)
            self._transaction = await self._connection.begin()
        except Exception:
            await self._connection.close()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        try:
            if not self._committed:
                await self._transaction.rollback()
        finally:
            await self.connection.close()

    async def execute(self, statement: str, parameters: Parameters | None = None) -> int:
        result = await self.connection.execute(text(statement), dict(parameters or {}))
        return result.rowcount

    async def commit(self) -> None:
        await self._transaction.commit()
        self._committed = True


class SqlAlchemySession:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._staged_updates: list[Any] = []

    @property
    def session(self) -> AsyncSession:
        return self._session

    def tracked_set(self, entity_type: type[T]) -> SqlAlchemyTrackedSet[T]:
        return SqlAlchemyTrackedSet(self._session, entity_type)

    async def add(self, entity: T) -> TrackingHandle[T] | None:
        self._session.add(entity)
        return TrackingHandle(entity)

    async def update(self, entity: T) -> TrackingHandle[T] | None:
        state = inspect(entity)
        if state.persistent or state.pending:
            tracked = entity
        else:
            tracked = await self._attach_as_modified(entity)
            if tracked is None:
                return None
        if not any(staged is tracked for staged in self._staged_updates):
            self._staged_updates.append(tracked)
        return TrackingHandle(tracked)

    async def _attach_as_modified(self, entity: Any) -> Any | None:
        """Attach an untracked entity so that every loaded column is written on flush.

        The entity's own version value stays the baseline for the version check.
        """
        state = inspect(entity)
        mapper = state.mapper
        if state.transient:
            if any(
                state.dict.get(mapper.get_property_by_column(column).key) is None
                for column in mapper.primary_key
            ):
                logger.debug("Cannot stage update for %s without a primary key", mapper.class_)
                return None
            make_transient_to_detached(entity)

        keys = _key_attribute_names(mapper)
        existing = self._session.sync_session.identity_map.get(state.key)
        if existing is not None and existing is not entity:
            merged = await self._session.merge(entity)
            if mapper.version_id_col is not None:
                version_key = mapper.get_property_by_column(mapper.version_id_col).key
                set_committed_value(merged, version_key, state.dict.get(version_key))
            return merged

        self._session.add(entity)
        for attr in mapper.column_attrs:
            if attr.key in state.dict and attr.key not in keys:
                flag_modified(entity, attr.key)
        return entity

    async def remove(self, entity: T) -> TrackingHandle[T] | None:
        state = inspect(entity)
        if state.transient:
            return None
        if state.detached:
            entity = await self._session.merge(entity)
        await self._session.delete(entity)
        return TrackingHandle(entity)

    async def commit_all(self) -> None:
        snapshots = [(entity, _column_values(entity)) for entity in self._staged_updates]
        self._staged_updates = []
        try:
            await self._session.commit()
        except StaleDataError as exc:
            await self._session.rollback()
            raise ConcurrencyConflict(
                [SqlAlchemyConflictEntry(self._session, entity, values) for entity, values in snapshots],
                str(exc),
            ) from exc
        except Exception:
            await self._session.rollback()
            raise

    def begin_transaction(self, isolation_level: str) -> SqlAlchemyTransaction:
        return SqlAlchemyTransaction(self._session, isolation_level)

    def detach(self, entity: Any) -> None:
        self._session.expunge(entity)
