"""
Core code generation components.

Entity specs, naming, the source emitter, slot allocation, configuration,
templates and the generation driver.
"""

from .errors import (
    DuplicateSymbolError,
    EmissionFailure,
    GeneratorError,
    SlotAllocationError,
    SpecInconsistency,
    UndefinedSymbolError,
)
from .schema import (
    EntitySpec,
    EntitySpecError,
    PropertyDescriptor,
    PropertyType,
    RowSyncState,
    convert_entity_document,
    extract_entity_specs,
)
from .naming import NameSanitizer, NamingCase, constant_name
from .emitter import SourceEmitter, SymbolTable
from .slots import GeneratedFieldSlot, SlotAllocator, SlotBlock
from .config import GeneratorConfig, ConfigManager, ConfigError, load_config
from .templates import TemplateEngine, TemplateError, create_template_engine
from .generator import (
    GenerationResult,
    ModelGenerator,
    generate_code,
    generate_from_document,
    write_results,
)

__all__ = [
    # Errors
    "GeneratorError",
    "EmissionFailure",
    "SpecInconsistency",
    "UndefinedSymbolError",
    "DuplicateSymbolError",
    "SlotAllocationError",
    # Entity specs
    "EntitySpec",
    "EntitySpecError",
    "PropertyDescriptor",
    "PropertyType",
    "RowSyncState",
    "convert_entity_document",
    "extract_entity_specs",
    # Naming
    "NameSanitizer",
    "NamingCase",
    "constant_name",
    # Emission
    "SourceEmitter",
    "SymbolTable",
    "GeneratedFieldSlot",
    "SlotAllocator",
    "SlotBlock",
    # Configuration system
    "GeneratorConfig",
    "ConfigManager",
    "ConfigError",
    "load_config",
    # Template system
    "TemplateEngine",
    "TemplateError",
    "create_template_engine",
    # Driver
    "GenerationResult",
    "ModelGenerator",
    "generate_code",
    "generate_from_document",
    "write_results",
]
