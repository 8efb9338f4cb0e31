import pytest

from rowgen.codegen.core.schema import convert_entity_document
from rowgen.codegen.registry import RegistryError, StageRegistry, get_registry, list_all_stage_info
from rowgen.codegen.stages import EmissionStage, PropertyStage, SyncStage


class _AuditStage(EmissionStage):
    """Adds audit columns."""

    name = "audit"


def _spec(syncable):
    return convert_entity_document({"name": "Note", "syncable": syncable})


def test_builtin_stages_in_order():
    registry = get_registry()
    assert registry.list_stages() == ["properties", "sync"]
    assert registry.get_stage_class("sync") is SyncStage
    assert registry.is_registered("PROPERTIES")


def test_pipeline_depends_on_syncable():
    registry = get_registry()
    assert [type(s) for s in registry.build_pipeline(_spec(False))] == [PropertyStage]
    assert [type(s) for s in registry.build_pipeline(_spec(True))] == [PropertyStage, SyncStage]


def test_order_controls_pipeline():
    registry = StageRegistry()
    registry.register("sync", SyncStage, order=100)
    registry.register("audit", _AuditStage, order=50)
    registry.register("properties", PropertyStage, order=0)
    assert registry.list_stages() == ["properties", "audit", "sync"]


def test_duplicate_name_rejected_unless_replacing():
    registry = StageRegistry()
    registry.register("audit", _AuditStage, order=1)
    with pytest.raises(RegistryError, match="already registered"):
        registry.register("audit", _AuditStage, order=2)
    registry.register("audit", _AuditStage, order=2, replace=True)
    assert registry.get_stage_info("audit")["order"] == 2


def test_order_conflict_rejected():
    registry = StageRegistry()
    registry.register("properties", PropertyStage, order=0)
    with pytest.raises(RegistryError, match="taken by 'properties'"):
        registry.register("audit", _AuditStage, order=0)


def test_non_stage_rejected():
    with pytest.raises(RegistryError):
        StageRegistry().register("bogus", dict, order=1)


def test_unregister_and_unknown_lookup():
    registry = StageRegistry()
    registry.register("audit", _AuditStage, order=1)
    registry.unregister("audit")
    registry.unregister("never-registered")
    with pytest.raises(RegistryError, match="No stage registered"):
        registry.get_stage_class("audit")


def test_stage_info():
    info = list_all_stage_info()
    assert [i["name"] for i in info] == ["properties", "sync"]
    assert info[1]["class"] == "SyncStage"
    assert info[1]["description"].startswith("Adds origin binding")
