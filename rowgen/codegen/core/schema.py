"""
Core entity representation for code generation.

Converts entity-spec documents (plain dicts, usually loaded from JSON) into
the immutable EntitySpec / PropertyDescriptor structures the emission
stages work from.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple

from .naming import NamingCase, class_name, create_model_sanitizer, sql_name


class EntitySpecError(ValueError):
    """Raised for entity-spec documents that cannot be converted."""

    pass


class PropertyType(Enum):
    """Column types a declared property can have."""

    LONG = "long"  # 64-bit integer
    INTEGER = "integer"  # 32-bit integer
    STRING = "string"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    BLOB = "blob"


class RowSyncState(IntEnum):
    """Synchronization status stored in the ``row_status`` column."""

    IDLE = 0
    PENDING_ORIGIN_CONFIRMATION = 1  # SQL default for new rows
    UPDATING = 2
    DELETING = 3


# Runtime property class for every property type
PROPERTY_CLASSES = {
    PropertyType.LONG: "LongProperty",
    PropertyType.INTEGER: "IntegerProperty",
    PropertyType.STRING: "StringProperty",
    PropertyType.DOUBLE: "DoubleProperty",
    PropertyType.BOOLEAN: "BooleanProperty",
    PropertyType.BLOB: "BlobProperty",
}

PYTHON_TYPES = {
    PropertyType.LONG: "int",
    PropertyType.INTEGER: "int",
    PropertyType.STRING: "str",
    PropertyType.DOUBLE: "float",
    PropertyType.BOOLEAN: "bool",
    PropertyType.BLOB: "bytes",
}

# Spellings accepted in entity-spec documents
TYPE_ALIASES = {
    "long": PropertyType.LONG,
    "int64": PropertyType.LONG,
    "bigint": PropertyType.LONG,
    "integer": PropertyType.INTEGER,
    "int": PropertyType.INTEGER,
    "int32": PropertyType.INTEGER,
    "string": PropertyType.STRING,
    "str": PropertyType.STRING,
    "text": PropertyType.STRING,
    "double": PropertyType.DOUBLE,
    "float": PropertyType.DOUBLE,
    "real": PropertyType.DOUBLE,
    "boolean": PropertyType.BOOLEAN,
    "bool": PropertyType.BOOLEAN,
    "blob": PropertyType.BLOB,
    "bytes": PropertyType.BLOB,
}


@dataclass(frozen=True)
class PropertyDescriptor:
    """A declared field of an entity, typed and bound to a column."""

    name: str
    column_name: str
    type: PropertyType
    constraints: Optional[str] = None

    @property
    def property_class(self) -> str:
        """Runtime class used to declare this property."""
        return PROPERTY_CLASSES[self.type]

    @property
    def python_type(self) -> str:
        """Python type of the stored value."""
        return PYTHON_TYPES[self.type]


@dataclass(frozen=True)
class EntitySpec:
    """Per-class metadata consumed by one generation pass."""

    name: str
    table_name: str
    syncable: bool = False
    properties: Tuple[PropertyDescriptor, ...] = field(default_factory=tuple)
    description: Optional[str] = None

    def get_property(self, name: str) -> Optional[PropertyDescriptor]:
        """Get property by name."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


def _sql_identifier(value: Any, fallback: str, what: str) -> str:
    """Declared table or column name, or the snake_case default."""
    if value is None or value == "":
        return sql_name(fallback)
    if not isinstance(value, str) or not value.strip():
        raise EntitySpecError(f"{what} must be a non-empty string: {value!r}")
    if not value.isprintable():
        raise EntitySpecError(f"{what} contains control characters: {value!r}")
    return value


class PropertyDescriptorFactory:
    """Turns declared fields into typed property descriptors."""

    def __init__(self):
        self.sanitizer = create_model_sanitizer()

    def reset(self):
        """Forget names handed out for the previous entity."""
        self.sanitizer.reset_used_names()

    def create(self, declared: Dict[str, Any]) -> PropertyDescriptor:
        """
        Create a descriptor from a declared field.

        Args:
            declared: Mapping with ``name`` and ``type``, and optionally
                ``column`` and ``constraints``

        Returns:
            PropertyDescriptor for the field

        Raises:
            EntitySpecError: If the field is missing keys or has an unknown type
        """
        if not isinstance(declared, dict):
            raise EntitySpecError(f"Property declaration must be an object: {declared!r}")

        raw_name = declared.get("name")
        if not raw_name or not isinstance(raw_name, str):
            raise EntitySpecError(f"Property declaration has no name: {declared!r}")

        raw_type = declared.get("type")
        if isinstance(raw_type, PropertyType):
            prop_type = raw_type
        else:
            prop_type = TYPE_ALIASES.get(str(raw_type).lower())
        if prop_type is None:
            raise EntitySpecError(
                f"Unknown type {raw_type!r} for property '{raw_name}'. "
                f"Known types: {', '.join(sorted(TYPE_ALIASES))}"
            )

        name = self.sanitizer.sanitize_name(raw_name, NamingCase.SNAKE_CASE)
        column = _sql_identifier(
            declared.get("column"), raw_name, f"Column of property '{raw_name}'"
        )
        constraints = declared.get("constraints")
        if constraints is not None:
            constraints = str(constraints).strip() or None

        return PropertyDescriptor(
            name=name,
            column_name=column,
            type=prop_type,
            constraints=constraints,
        )


def convert_entity_document(
    document: Dict[str, Any], factory: Optional[PropertyDescriptorFactory] = None
) -> EntitySpec:
    """
    Convert one entity document into an EntitySpec.

    Args:
        document: Mapping with ``name`` and optional ``table``, ``syncable``,
            ``description`` and ``properties``
        factory: Descriptor factory to use (a fresh one by default)

    Returns:
        EntitySpec for the document
    """
    if not isinstance(document, dict):
        raise EntitySpecError(f"Entity declaration must be an object: {document!r}")

    raw_name = document.get("name")
    if not raw_name or not isinstance(raw_name, str):
        raise EntitySpecError("Entity declaration has no name")

    syncable = document.get("syncable", False)
    if not isinstance(syncable, bool):
        raise EntitySpecError(f"'syncable' of entity '{raw_name}' must be true or false")

    declared_properties = document.get("properties", [])
    if not isinstance(declared_properties, list):
        raise EntitySpecError(f"'properties' of entity '{raw_name}' must be a list")

    factory = factory or PropertyDescriptorFactory()
    factory.reset()

    try:
        properties = tuple(factory.create(prop) for prop in declared_properties)
    except EntitySpecError as e:
        raise EntitySpecError(f"Entity '{raw_name}': {e}") from e

    table_name = _sql_identifier(
        document.get("table"), raw_name, f"Table of entity '{raw_name}'"
    )

    description = document.get("description")
    if description is not None and not isinstance(description, str):
        raise EntitySpecError(f"'description' of entity '{raw_name}' must be a string")

    return EntitySpec(
        name=class_name(raw_name),
        table_name=table_name,
        syncable=syncable,
        properties=properties,
        description=description,
    )


def extract_entity_specs(data: Any) -> List[EntitySpec]:
    """
    Extract every entity declared in a loaded document.

    Accepts a single entity object, a list of entity objects, or an object
    with an ``entities`` list.
    """
    if isinstance(data, dict) and "entities" in data:
        entities = data["entities"]
    elif isinstance(data, list):
        entities = data
    else:
        entities = [data]

    if not isinstance(entities, list):
        raise EntitySpecError("'entities' must be a list")

    factory = PropertyDescriptorFactory()
    specs = [convert_entity_document(entity, factory) for entity in entities]

    seen = set()
    for spec in specs:
        if spec.name in seen:
            raise EntitySpecError(f"Entity '{spec.name}' is declared more than once")
        seen.add(spec.name)

    return specs
