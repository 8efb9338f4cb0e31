"""
Runtime support for generated models.

Generated classes subclass TableModel and declare their columns as class
constants built from the property classes here. Values live in a plain
per-instance dict keyed by column name; reads of unset columns fall back to
the column's SQL ``DEFAULT``. There is no locking: a model instance is not
meant to be shared between threads while it is being written.
"""

import re
from typing import Any, Dict, List, Mapping, Optional

# Anything after DEFAULT up to the next whitespace, or a quoted/blob literal
_DEFAULT_PATTERN = re.compile(
    r"\bDEFAULT\s+([Xx]'[0-9A-Fa-f]*'|'(?:[^']|'')*'|\S+)", re.IGNORECASE
)

_NO_DEFAULT = object()

# Evaluated by the database when the row is inserted
_EXPRESSION_DEFAULTS = {"CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME"}


class ModelError(Exception):
    """Base exception for runtime model errors."""

    pass


class PropertyValueError(ModelError, ValueError):
    """A value does not fit the property it is stored in."""

    pass


class UnsetPropertyError(ModelError, LookupError):
    """A property with no default was read before being set."""

    def __init__(self, prop: "Property"):
        self.property = prop
        super().__init__(f"{prop.qualified_name} has no value and no default")


class Table:
    """A table backing one model class."""

    def __init__(self, model_name: str, name: str):
        self.model_name = model_name
        self.name = name

    def __repr__(self) -> str:
        return f"Table({self.model_name!r}, {self.name!r})"


class Property:
    """A typed column of a table.

    ``constraints`` is the column's SQL constraint text. A ``DEFAULT``
    literal in it becomes the value returned for rows where the column
    was never set.
    """

    type_name = "value"

    def __init__(self, table: Table, column: str, constraints: Optional[str] = None):
        self.table = table
        self.column = column
        self.constraints = constraints or ""
        self.not_null = bool(re.search(r"\bNOT\s+NULL\b", self.constraints, re.IGNORECASE))
        self._default = self._parse_default(self.constraints)

    @property
    def qualified_name(self) -> str:
        return f"{self.table.name}.{self.column}"

    @property
    def has_default(self) -> bool:
        return self._default is not _NO_DEFAULT

    @property
    def default(self) -> Any:
        if not self.has_default:
            raise UnsetPropertyError(self)
        return self._default

    def validate(self, value: Any) -> Any:
        """Check ``value`` for this column and return it normalized."""
        if value is None:
            if self.not_null:
                raise PropertyValueError(f"{self.qualified_name} is NOT NULL")
            return None
        return self.convert(value)

    def convert(self, value: Any) -> Any:
        return value

    def _parse_default(self, constraints: str) -> Any:
        match = _DEFAULT_PATTERN.search(constraints)
        if not match:
            return _NO_DEFAULT
        literal = match.group(1)
        if literal.upper() == "NULL":
            return None
        if literal.upper() in _EXPRESSION_DEFAULTS or literal.startswith("("):
            return _NO_DEFAULT
        try:
            return self.convert(self.parse_literal(literal))
        except (ValueError, PropertyValueError) as e:
            raise PropertyValueError(
                f"Invalid DEFAULT {literal} for {self.qualified_name}: {e}"
            ) from e

    def parse_literal(self, literal: str) -> Any:
        """Turn an SQL literal into a Python value."""
        if literal.startswith("'") and literal.endswith("'") and len(literal) >= 2:
            return literal[1:-1].replace("''", "'")
        return literal

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.qualified_name!r})"


class _IntegralProperty(Property):
    bits = 64

    def convert(self, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise PropertyValueError(
                f"{self.qualified_name} expects an int, got {type(value).__name__}"
            )
        limit = 1 << (self.bits - 1)
        if not -limit <= value < limit:
            raise PropertyValueError(
                f"{value} does not fit in {self.bits} bits ({self.qualified_name})"
            )
        return value

    def parse_literal(self, literal: str) -> int:
        return int(literal, 0)


class LongProperty(_IntegralProperty):
    """64-bit integer column."""

    type_name = "long"
    bits = 64


class IntegerProperty(_IntegralProperty):
    """32-bit integer column."""

    type_name = "integer"
    bits = 32


class StringProperty(Property):
    type_name = "string"

    def convert(self, value: Any) -> str:
        if not isinstance(value, str):
            raise PropertyValueError(
                f"{self.qualified_name} expects a str, got {type(value).__name__}"
            )
        return value


class DoubleProperty(Property):
    type_name = "double"

    def convert(self, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise PropertyValueError(
                f"{self.qualified_name} expects a float, got {type(value).__name__}"
            )
        return float(value)

    def parse_literal(self, literal: str) -> float:
        return float(literal)


class BooleanProperty(Property):
    type_name = "boolean"

    def convert(self, value: Any) -> bool:
        if not isinstance(value, bool):
            raise PropertyValueError(
                f"{self.qualified_name} expects a bool, got {type(value).__name__}"
            )
        return value

    def parse_literal(self, literal: str) -> bool:
        # SQLite stores booleans as 0/1
        text = literal.upper()
        if text in ("1", "TRUE"):
            return True
        if text in ("0", "FALSE"):
            return False
        raise ValueError(f"not a boolean literal: {literal}")


class BlobProperty(Property):
    type_name = "blob"

    def convert(self, value: Any) -> bytes:
        if not isinstance(value, (bytes, bytearray)):
            raise PropertyValueError(
                f"{self.qualified_name} expects bytes, got {type(value).__name__}"
            )
        return bytes(value)

    def parse_literal(self, literal: str) -> bytes:
        if literal[:2].upper() == "X'" and literal.endswith("'"):
            return bytes.fromhex(literal[2:-1])
        return super().parse_literal(literal).encode("utf-8")


class TableModel:
    """Base class of generated models.

    Subclasses define ``TABLE`` and ``PROPERTIES``; slot 0 of
    ``PROPERTIES`` is always the row id.
    """

    TABLE: Optional[Table] = None
    PROPERTIES: List[Optional[Property]] = []

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        """
        Create a row.

        Args:
            values: Initial values keyed by column name
        """
        self._values: Dict[str, Any] = {}
        if values:
            columns = {prop.column: prop for prop in self.get_properties()}
            for column, value in values.items():
                if column not in columns:
                    raise ModelError(f"{type(self).__name__} has no column '{column}'")
                self.set(columns[column], value)

    @classmethod
    def get_properties(cls) -> List[Property]:
        """Declared properties in slot order; reserved empty slots are skipped."""
        return [prop for prop in cls.PROPERTIES if prop is not None]

    def _check_owner(self, prop: Property):
        if self.TABLE is not None and prop.table is not self.TABLE:
            raise ModelError(f"{prop!r} does not belong to {type(self).__name__}")

    def get(self, prop: Property) -> Any:
        """Stored value of ``prop``, or its default if it was never set."""
        self._check_owner(prop)
        if prop.column in self._values:
            return self._values[prop.column]
        if prop.has_default:
            return prop.default
        raise UnsetPropertyError(prop)

    def set(self, prop: Property, value: Any) -> "TableModel":
        self._check_owner(prop)
        self._values[prop.column] = prop.validate(value)
        return self

    def has(self, prop: Property) -> bool:
        """Whether ``prop`` was set explicitly."""
        return prop.column in self._values

    def clear(self, prop: Property) -> "TableModel":
        self._values.pop(prop.column, None)
        return self

    def values(self) -> Dict[str, Any]:
        """Explicitly set values, keyed by column."""
        return dict(self._values)

    def as_dict(self) -> Dict[str, Any]:
        """Every readable column (set or defaulted), keyed by column."""
        result = {}
        for prop in self.get_properties():
            if self.has(prop) or prop.has_default:
                result[prop.column] = self.get(prop)
        return result

    def get_id(self) -> Optional[int]:
        """Row id, or None for a row that was never stored."""
        return self._values.get(self.PROPERTIES[0].column)

    def set_id(self, row_id: int) -> "TableModel":
        return self.set(self.PROPERTIES[0], row_id)

    def __eq__(self, other: Any) -> bool:
        return type(other) is type(self) and other._values == self._values

    def __repr__(self) -> str:
        columns = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"{type(self).__name__}({columns})"
