"""
rowgen code generation.

Generates table-model classes from entity-spec documents.
"""

from .core.config import GeneratorConfig, ConfigManager, load_config
from .core.generator import (
    GenerationResult,
    ModelGenerator,
    generate_code,
    generate_from_document,
    write_results,
)
from .core.schema import EntitySpec, PropertyDescriptor, PropertyType, RowSyncState
from .registry import StageRegistry, get_registry, list_stages


# Convenience functions
def quick_generate(entity, **options):
    """
    Generate the module for a single entity.

    Args:
        entity: Entity document (dict or JSON string)
        **options: Generator configuration overrides

    Returns:
        Generated code string
    """
    from .core.schema import convert_entity_document

    if isinstance(entity, str):
        import json

        entity = json.loads(entity)

    spec = convert_entity_document(entity)
    config = load_config(options)
    result = generate_code(ModelGenerator(spec, config))

    if result.success:
        return result.code
    else:
        raise RuntimeError(f"Code generation failed: {result.error_message}")


__all__ = [
    "StageRegistry",
    "ModelGenerator",
    "GenerationResult",
    "EntitySpec",
    "PropertyDescriptor",
    "PropertyType",
    "RowSyncState",
    "GeneratorConfig",
    "ConfigManager",
    "load_config",
    "generate_code",
    "generate_from_document",
    "write_results",
    "quick_generate",
    "get_registry",
    "list_stages",
]
