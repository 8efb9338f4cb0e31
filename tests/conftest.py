import json
from pathlib import Path

import pytest

from rowgen.codegen.core.schema import convert_entity_document


NOTE_ENTITY = {
    "name": "Note",
    "syncable": True,
    "description": "A synced note.",
    "properties": [
        {"name": "title", "type": "string", "constraints": "NOT NULL"},
        {"name": "body", "type": "string", "constraints": "DEFAULT ''"},
        {"name": "pinned", "type": "boolean", "constraints": "DEFAULT 0 NOT NULL"},
    ],
}

TAG_ENTITY = {
    "name": "Tag",
    "properties": [{"name": "label", "type": "string", "constraints": "NOT NULL"}],
}


@pytest.fixture()
def note_spec():
    return convert_entity_document(NOTE_ENTITY)


@pytest.fixture()
def tag_spec():
    return convert_entity_document(TAG_ENTITY)


@pytest.fixture()
def entities_file(tmp_path: Path):
    """
    Writes a two-entity document and returns its path.
    """
    path = tmp_path / "entities.json"
    path.write_text(json.dumps({"entities": [NOTE_ENTITY, TAG_ENTITY]}), encoding="utf-8")
    return path


def _load_model(code: str, class_name: str):
    namespace = {}
    exec(compile(code, f"<{class_name}>", "exec"), namespace)
    return namespace[class_name]


@pytest.fixture()
def load_model():
    """Returns a loader that executes generated source and returns the model class."""
    return _load_model
