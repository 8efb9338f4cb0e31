"""
Naming utilities for generated row models.

Every emission site derives identifiers through the functions at the bottom
of this module, so a constant declared by one stage and referenced by another
can only ever be spelled one way.
"""

import keyword
import re
from typing import Set, Dict
from enum import Enum


class NamingCase(Enum):
    """Different naming case styles."""

    SNAKE_CASE = "snake"  # row_status
    CAMEL_CASE = "camel"  # rowStatus
    PASCAL_CASE = "pascal"  # RowStatus
    SCREAMING_SNAKE = "screaming_snake"  # ROW_STATUS


# Names the runtime base class already defines on every model
MODEL_RESERVED_NAMES = {
    "get",
    "set",
    "has",
    "clear",
    "values",
    "as_dict",
    "get_id",
    "set_id",
    "get_properties",
}

PYTHON_BUILTIN_NAMES = {
    "bool",
    "bytes",
    "dict",
    "float",
    "id",
    "int",
    "list",
    "object",
    "property",
    "set",
    "str",
    "type",
}


class NameSanitizer:
    """Handles name sanitization and case conversion."""

    def __init__(self, reserved_words: Set[str] = None, builtin_types: Set[str] = None):
        """
        Initialize name sanitizer.

        Args:
            reserved_words: Words that must never be emitted as-is
            builtin_types: Builtin names that would be shadowed
        """
        self.reserved_words = reserved_words or set()
        self.builtin_types = builtin_types or set()
        self._name_cache: Dict[str, str] = {}
        self._used_names: Set[str] = set()

    def sanitize_name(
        self,
        name: str,
        target_case: NamingCase = NamingCase.SNAKE_CASE,
        suffix_on_conflict: str = "_",
    ) -> str:
        """
        Sanitize a name for safe use in generated Python.

        Args:
            name: Original name to sanitize
            target_case: Desired case style
            suffix_on_conflict: Suffix to add for conflicts

        Returns:
            Sanitized name safe for use
        """
        cache_key = f"{name}_{target_case.value}_{suffix_on_conflict}"
        if cache_key in self._name_cache:
            return self._name_cache[cache_key]

        cleaned = clean_identifier(name)
        converted = convert_case(cleaned, target_case)
        final_name = self._resolve_conflicts(converted, suffix_on_conflict)

        self._name_cache[cache_key] = final_name
        self._used_names.add(final_name)

        return final_name

    def _resolve_conflicts(self, name: str, suffix: str) -> str:
        """Resolve naming conflicts with reserved words and existing names."""
        original_name = name

        if name in self.reserved_words or name.lower() in self.builtin_types:
            name = f"{name}{suffix}"

        counter = 1
        while name in self._used_names:
            name = f"{original_name}{suffix}{counter}"
            counter += 1

        return name

    def reset_used_names(self):
        """Reset the tracking of used names."""
        self._used_names.clear()
        self._name_cache.clear()

    def add_used_name(self, name: str):
        """Manually add a name to the used names set."""
        self._used_names.add(name)


def clean_identifier(name: str) -> str:
    """Replace characters that cannot appear in an identifier."""
    cleaned = re.sub(r"[^a-zA-Z0-9_-]", "_", str(name))
    cleaned = cleaned.strip("_-")

    if cleaned and cleaned[0].isdigit():
        cleaned = f"_{cleaned}"

    return cleaned or "field"


def to_snake_case(name: str) -> str:
    """Convert to snake_case."""
    name = name.replace("-", "_")
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    name = re.sub(r"_+", "_", name.lower())
    return name.strip("_")


def to_camel_case(name: str) -> str:
    """Convert to camelCase."""
    parts = to_snake_case(name).split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


def to_pascal_case(name: str) -> str:
    """Convert to PascalCase."""
    return "".join(part.capitalize() for part in to_snake_case(name).split("_") if part)


def convert_case(name: str, target_case: NamingCase) -> str:
    """Convert name to target case style."""
    if target_case == NamingCase.SNAKE_CASE:
        return to_snake_case(name)
    elif target_case == NamingCase.CAMEL_CASE:
        return to_camel_case(name)
    elif target_case == NamingCase.PASCAL_CASE:
        return to_pascal_case(name)
    elif target_case == NamingCase.SCREAMING_SNAKE:
        return to_snake_case(name).upper()
    return name


def create_model_sanitizer() -> NameSanitizer:
    """Create a sanitizer for attribute names of generated models."""
    return NameSanitizer(
        set(keyword.kwlist) | MODEL_RESERVED_NAMES, PYTHON_BUILTIN_NAMES
    )


# Authoritative naming functions. Stages must not spell identifiers themselves.


def constant_name(name: str) -> str:
    """Class constant that holds the property called ``name``."""
    return convert_case(clean_identifier(name), NamingCase.SCREAMING_SNAKE)


def class_name(entity_name: str) -> str:
    """Generated model class name."""
    return _importable(to_pascal_case(clean_identifier(entity_name)))


def module_name(entity_name: str) -> str:
    """Module (file stem) that holds the generated model."""
    return _importable(to_snake_case(clean_identifier(entity_name)))


def sql_name(name: str) -> str:
    """Default table or column name for a declared entity or property."""
    return to_snake_case(clean_identifier(name))


def getter_name(property_name: str) -> str:
    """Accessor method name for a property."""
    return f"get_{_attribute_stem(property_name)}"


def setter_name(property_name: str) -> str:
    """Mutator method name for a property."""
    return f"set_{_attribute_stem(property_name)}"


def parameter_name(property_name: str) -> str:
    """Parameter name used by a property's setter."""
    name = _attribute_stem(property_name)
    if keyword.iskeyword(name) or name in PYTHON_BUILTIN_NAMES or name == "self":
        return f"{name}_"
    return name


def _attribute_stem(property_name: str) -> str:
    # keeps the trailing underscore the sanitizer adds to shadowing names
    stem = to_snake_case(clean_identifier(property_name))
    if property_name.endswith("_") and not stem.endswith("_"):
        stem = f"{stem}_"
    return stem


def _importable(name: str) -> str:
    # case conversion drops the underscore clean_identifier puts before a digit
    if not name or name[0].isdigit():
        name = f"_{name}"
    if keyword.iskeyword(name):
        name = f"{name}_"
    return name
