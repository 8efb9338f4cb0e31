"""
Sync stage: origin binding, row-state tracking and slot layout.
"""
from __future__ import annotations

import ast

import pytest

from rowgen.codegen.core.emitter import SourceEmitter
from rowgen.codegen.core.generator import ModelGenerator
from rowgen.codegen.core.schema import RowSyncState, convert_entity_document
from rowgen.codegen.stages import PropertyStage, SyncStage, SYNC_RESERVED_SLOTS
from rowgen.codegen.stages.base import ImportSet
from rowgen.runtime import IntegerProperty, LongProperty


def _make_spec(syncable=True, properties=None):
    if properties is None:
        properties = [
            {"name": "title", "type": "string"},
            {"name": "body", "type": "string"},
            {"name": "pinned", "type": "boolean", "constraints": "DEFAULT 0"},
        ]
    return convert_entity_document(
        {"name": "Note", "syncable": syncable, "properties": properties}
    )


def _class_body(code: str):
    tree = ast.parse(code)
    return next(node for node in tree.body if isinstance(node, ast.ClassDef)).body


def _slot_assignments(code: str):
    """Index -> list of assigned constant names (None for placeholders)."""
    slots = {}
    for node in _class_body(code):
        if isinstance(node, ast.Assign) and isinstance(node.targets[0], ast.Subscript):
            target = node.targets[0]
            assert isinstance(target.value, ast.Name) and target.value.id == "PROPERTIES"
            value = node.value.id if isinstance(node.value, ast.Name) else None
            slots.setdefault(target.slice.value, []).append(value)
    return slots


def _declared_constants(code: str):
    return {
        node.targets[0].id
        for node in _class_body(code)
        if isinstance(node, ast.Assign) and isinstance(node.targets[0], ast.Name)
    }


def _method_constant_references(code: str):
    refs = set()
    for node in _class_body(code):
        if isinstance(node, ast.FunctionDef):
            for sub in ast.walk(node):
                if (
                    isinstance(sub, ast.Attribute)
                    and isinstance(sub.value, ast.Name)
                    and sub.value.id == "self"
                    and sub.attr.isupper()
                ):
                    refs.add(sub.attr)
    return refs


# Non-syncable entities


def test_non_syncable_output_matches_base_stage_alone():
    spec = _make_spec(syncable=False)
    base_only = ModelGenerator(spec, stages=[PropertyStage(spec)]).generate()
    assert ModelGenerator(spec).generate() == base_only
    with_sync = ModelGenerator(spec, stages=[PropertyStage(spec), SyncStage(spec)])
    assert with_sync.generate() == base_only


def test_disabled_sync_stage_contributes_nothing():
    spec = _make_spec(syncable=False)
    stage = SyncStage(spec)
    imports = ImportSet(["Table"])
    stage.collect_imports(imports)
    emitter = SourceEmitter()
    stage.emit_field_declarations(emitter)
    stage.emit_accessors(emitter)
    assert list(imports) == ["Table"]
    assert stage.properties_array_length() == 0
    assert emitter.render() == []
    assert not SyncStage.applies_to(spec)


# Slot layout


@pytest.mark.parametrize("count", [0, 1, 3, 6])
def test_array_length_is_base_plus_four(count):
    spec = _make_spec(
        properties=[{"name": f"field{i}", "type": "string"} for i in range(count)]
    )
    generator = ModelGenerator(spec)
    assert generator.properties_array_length() == count + SYNC_RESERVED_SLOTS
    assert generator.property_count() == count


@pytest.mark.parametrize("count", [0, 3])
def test_every_slot_assigned_exactly_once(count):
    spec = _make_spec(
        properties=[{"name": f"field{i}", "type": "string"} for i in range(count)]
    )
    generator = ModelGenerator(spec)
    code = generator.generate()
    slots = _slot_assignments(code)
    assert sorted(slots) == list(range(0, count + 5))
    assert all(len(values) == 1 for values in slots.values())
    assert [s.index for s in generator.allocator.assignments()] == list(
        range(1, count + 5)
    )
    assert f"PROPERTIES = [None] * {count + 5}" in code


def test_sync_columns_follow_base_slots():
    code = ModelGenerator(_make_spec()).generate()
    slots = _slot_assignments(code)
    assert slots[0] == ["ROWID"]
    assert slots[1] == ["TITLE"]
    assert slots[4] == ["ORIGIN_ID"]
    assert slots[5] == ["ROW_STATUS"]
    assert slots[6] == [None]
    assert slots[7] == [None]


# Imports


def test_sync_adds_only_integer_property_import():
    spec = _make_spec()
    base = set(ModelGenerator(spec, stages=[PropertyStage(spec)]).collect_imports())
    full = set(ModelGenerator(spec).collect_imports())
    assert "LongProperty" in base
    assert full - base == {"IntegerProperty"}


def test_sync_import_not_duplicated():
    spec = _make_spec(properties=[{"name": "count", "type": "integer"}])
    base = set(ModelGenerator(spec, stages=[PropertyStage(spec)]).collect_imports())
    full = ModelGenerator(spec).collect_imports()
    assert set(full) == base
    assert full.sorted().count("IntegerProperty") == 1


# Naming


def test_all_references_are_declared():
    code = ModelGenerator(_make_spec()).generate()
    declared = _declared_constants(code)
    assert "ROW_STATUS" in declared
    assert "ROW_STATE" not in declared
    assert _method_constant_references(code) <= declared
    for values in _slot_assignments(code).values():
        assert {v for v in values if v} <= declared


def test_sync_methods_are_emitted():
    generator = ModelGenerator(_make_spec())
    generator.generate()
    names = [m.signature.name for m in generator.emitter.methods()]
    assert names[-6:] == [
        "get_origin_id",
        "confirm_origin_insertion",
        "get_row_state",
        "mark_updating",
        "mark_deleting",
        "mark_idle",
    ]


def test_mutators_are_annotated_with_model_class():
    code = ModelGenerator(_make_spec()).generate()
    assert "def confirm_origin_insertion(self, origin_id: int) -> Note:" in code
    assert "def mark_deleting(self) -> Note:" in code
    assert "def get_row_state(self) -> int:" in code


# Behaviour of generated models


def test_confirm_origin_insertion(load_model):
    Note = load_model(ModelGenerator(_make_spec()).generate(), "Note")
    note = Note()
    assert note.confirm_origin_insertion(9_000_000_000) is note
    assert note.get_origin_id() == 9_000_000_000
    assert note.get_row_state() == RowSyncState.IDLE


def test_state_changes_are_last_write_wins(load_model):
    Note = load_model(ModelGenerator(_make_spec()).generate(), "Note")
    note = Note()
    assert note.mark_updating().get_row_state() == RowSyncState.UPDATING
    assert note.mark_deleting().get_row_state() == RowSyncState.DELETING
    assert note.mark_idle().get_row_state() == RowSyncState.IDLE

    note.mark_deleting().confirm_origin_insertion(7)
    assert note.get_row_state() == RowSyncState.IDLE
    assert note.get_origin_id() == 7


def test_fresh_row_is_pending_confirmation(load_model):
    Note = load_model(ModelGenerator(_make_spec()).generate(), "Note")
    note = Note()
    assert note.get_row_state() == RowSyncState.PENDING_ORIGIN_CONFIRMATION
    assert note.get_origin_id() == 0


def test_three_property_layout(load_model):
    generator = ModelGenerator(_make_spec())
    assert generator.properties_array_length() == 7
    Note = load_model(generator.generate(), "Note")

    assert len(Note.PROPERTIES) == 8
    assert Note.PROPERTIES[4] is Note.ORIGIN_ID
    assert Note.PROPERTIES[5] is Note.ROW_STATUS
    assert Note.PROPERTIES[6] is None and Note.PROPERTIES[7] is None

    assert isinstance(Note.ORIGIN_ID, LongProperty)
    assert Note.ORIGIN_ID.column == "origin_id"
    assert Note.ORIGIN_ID.default == 0
    assert isinstance(Note.ROW_STATUS, IntegerProperty)
    assert Note.ROW_STATUS.column == "row_status"
    assert Note.ROW_STATUS.default == 1
    assert Note.ROW_STATUS.bits == 32

    assert [p.column for p in Note.get_properties()] == [
        "_id",
        "title",
        "body",
        "pinned",
        "origin_id",
        "row_status",
    ]


def test_row_status_rejects_out_of_range_values(load_model):
    Note = load_model(ModelGenerator(_make_spec()).generate(), "Note")
    with pytest.raises(ValueError):
        Note().set(Note.ROW_STATUS, 1 << 40)
