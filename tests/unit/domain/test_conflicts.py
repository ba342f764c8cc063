"""Tests for ConflictResolver policies."""

from repokit.domain.models import ConflictSnapshot, FieldConflict
from repokit.domain.services import ConflictResolver, DatabaseWinsResolver
from tests.support.fakes import WIDGET_FIELDS, Widget


def _snapshot(current: Widget, database: Widget) -> ConflictSnapshot[Widget]:
    resolved = WIDGET_FIELDS.build(WIDGET_FIELDS.dump(database))
    return ConflictSnapshot(current=current, database=database, resolved=resolved)


def test_submitted_value_wins_for_every_field():
    snap = _snapshot(
        Widget(widget_id=1, name="mine", price=2.0, tags="t", version=1),
        Widget(widget_id=1, name="theirs", price=3.0, tags="t", version=2),
    )
    ConflictResolver().resolve(snap, WIDGET_FIELDS)
    assert (snap.resolved.name, snap.resolved.price, snap.resolved.tags) == ("mine", 2.0, "t")


def test_key_fields_keep_database_values():
    snap = _snapshot(Widget(widget_id=1, version=1), Widget(widget_id=1, version=7))
    ConflictResolver().resolve(snap, WIDGET_FIELDS)
    assert snap.resolved.version == 7


def test_only_differing_fields_are_reported():
    snap = _snapshot(
        Widget(widget_id=1, name="mine", price=3.0),
        Widget(widget_id=1, name="theirs", price=3.0),
    )
    conflicts = ConflictResolver().resolve(snap, WIDGET_FIELDS)
    assert conflicts == [
        FieldConflict(field="name", database_value="theirs", intended_value="mine", resolved_value="mine")
    ]


def test_none_submitted_value_is_written_without_diagnostic():
    snap = _snapshot(Widget(widget_id=1, tags=None), Widget(widget_id=1, tags="persisted"))
    conflicts = ConflictResolver().resolve(snap, WIDGET_FIELDS)
    assert snap.resolved.tags is None
    assert conflicts == []


def test_database_snapshot_is_not_mutated():
    database = Widget(widget_id=1, name="theirs")
    snap = _snapshot(Widget(widget_id=1, name="mine"), database)
    ConflictResolver().resolve(snap, WIDGET_FIELDS)
    assert database.name == "theirs"


def test_database_wins_keeps_persisted_values_for_conflicts():
    snap = _snapshot(
        Widget(widget_id=1, name="mine", price=5.0),
        Widget(widget_id=1, name="theirs", price=5.0),
    )
    conflicts = DatabaseWinsResolver().resolve(snap, WIDGET_FIELDS)
    assert snap.resolved.name == "theirs"
    assert conflicts[0].resolved_value == "theirs"


def test_custom_resolver_can_override_finalize():
    class _Concatenate(ConflictResolver):
        def finalize(self, conflict, current_value):
            if conflict is None or not isinstance(current_value, str):
                return current_value
            return f"{conflict.database_value}+{current_value}"

    snap = _snapshot(Widget(widget_id=1, name="mine"), Widget(widget_id=1, name="theirs"))
    _Concatenate().resolve(snap, WIDGET_FIELDS)
    assert snap.resolved.name == "theirs+mine"
