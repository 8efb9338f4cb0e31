"""
Emission stage interface and the base property stage.

A generated class is produced by an ordered pipeline of stages. The driver
calls each hook on every stage in pipeline order, so a stage always sees the
imports, constants and slots of the stages before it.
"""

from abc import ABC
from typing import Dict, Iterable, Iterator, List, Optional

from ... import runtime
from ..core.config import GeneratorConfig
from ..core.emitter import (
    Assign,
    ArrayItem,
    ConstantRef,
    ExpressionStatement,
    Literal,
    MethodSignature,
    Name,
    Parameter,
    Return,
    SourceEmitter,
    call,
)
from ..core.errors import SpecInconsistency
from ..core.naming import constant_name, getter_name, parameter_name, setter_name
from ..core.schema import EntitySpec, PropertyDescriptor, PropertyType, PROPERTY_CLASSES
from ..core.slots import SlotBlock

TABLE_CLASS = "Table"
MODEL_BASE_CLASS = "TableModel"
ROWID_CONSTANT = constant_name("rowid")
ROWID_CONSTRAINTS = "PRIMARY KEY AUTOINCREMENT"


class ImportSet:
    """Ordered set of runtime type names the generated module imports."""

    def __init__(self, names: Iterable[str] = ()):
        self._names: Dict[str, None] = dict.fromkeys(names)

    def add(self, name: str):
        self._names[name] = None

    def update(self, names: Iterable[str]):
        for name in names:
            self.add(name)

    def copy(self) -> "ImportSet":
        return ImportSet(self._names)

    def sorted(self) -> List[str]:
        return sorted(self._names)

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"ImportSet({list(self._names)!r})"


class EmissionStage(ABC):
    """One participant in the emission pipeline.

    Every hook defaults to contributing nothing.
    """

    name = "stage"

    def __init__(self, spec: EntitySpec, config: Optional[GeneratorConfig] = None):
        self.spec = spec
        self.config = config or GeneratorConfig()

    @classmethod
    def applies_to(cls, spec: EntitySpec) -> bool:
        """Whether the registry adds this stage to the pipeline for ``spec``."""
        return True

    # Hooks

    def collect_imports(self, imports: ImportSet) -> None:
        pass

    def properties_array_length(self) -> int:
        """Number of properties-array slots this stage reserves."""
        return 0

    def emit_field_declarations(self, emitter: SourceEmitter) -> None:
        pass

    def emit_array_initialization(self, emitter: SourceEmitter, block: SlotBlock) -> None:
        pass

    def emit_accessors(self, emitter: SourceEmitter) -> None:
        pass

    # Helpers shared by stages

    @property
    def model_class_name(self) -> str:
        return self.spec.name

    def property_initializer(self, prop: PropertyDescriptor):
        arguments = [
            ConstantRef(self.config.table_constant_name),
            Literal(prop.column_name),
        ]
        if prop.constraints:
            arguments.append(Literal(prop.constraints))
        return call(prop.property_class, *arguments)

    def declare_property(self, emitter: SourceEmitter, prop: PropertyDescriptor):
        self.check_default(prop)
        emitter.write_field_declaration(
            prop.property_class, constant_name(prop.name), self.property_initializer(prop)
        )

    def check_default(self, prop: PropertyDescriptor):
        """Reject a DEFAULT literal the runtime property could not load."""
        property_class = getattr(runtime, prop.property_class)
        try:
            property_class(
                runtime.Table(self.spec.name, self.spec.table_name),
                prop.column_name,
                prop.constraints,
            )
        except runtime.PropertyValueError as e:
            raise SpecInconsistency(f"{self.spec.name}.{prop.name}: {e}") from e

    def emit_getter(
        self,
        emitter: SourceEmitter,
        method_name: str,
        constant: str,
        return_type: str,
        doc: Optional[str] = None,
    ):
        signature = MethodSignature(method_name, return_type, doc=doc)
        (
            emitter.begin_method_definition(signature)
            .write_statement(Return(call("self.get", ConstantRef(constant, "self"))))
            .finish_method_definition()
        )

    def emit_setter(
        self,
        emitter: SourceEmitter,
        method_name: str,
        constant: str,
        param: Parameter,
        doc: Optional[str] = None,
    ):
        signature = MethodSignature(
            method_name, self.model_class_name, (param,), doc=doc
        )
        (
            emitter.begin_method_definition(signature)
            .write_statement(
                ExpressionStatement(
                    call("self.set", ConstantRef(constant, "self"), Name(param.name))
                )
            )
            .write_statement(Return(Name("self")))
            .finish_method_definition()
        )


class PropertyStage(EmissionStage):
    """Emits the table, the row id and one constant plus accessors per property."""

    name = "properties"

    def collect_imports(self, imports: ImportSet) -> None:
        imports.update([TABLE_CLASS, MODEL_BASE_CLASS])
        # The row id is always a 64-bit property
        imports.add(PROPERTY_CLASSES[PropertyType.LONG])
        for prop in self.spec.properties:
            imports.add(prop.property_class)

    def properties_array_length(self) -> int:
        return len(self.spec.properties)

    def emit_field_declarations(self, emitter: SourceEmitter) -> None:
        emitter.write_field_declaration(
            TABLE_CLASS,
            self.config.table_constant_name,
            call(TABLE_CLASS, Literal(self.spec.name), Literal(self.spec.table_name)),
        )
        rowid = PropertyDescriptor(
            name="rowid",
            column_name=self.config.rowid_column,
            type=PropertyType.LONG,
            constraints=ROWID_CONSTRAINTS,
        )
        emitter.write_field_declaration(
            rowid.property_class, ROWID_CONSTANT, self.property_initializer(rowid)
        )
        for prop in self.spec.properties:
            self.declare_property(emitter, prop)

    def emit_array_initialization(self, emitter: SourceEmitter, block: SlotBlock) -> None:
        # Slot 0 sits below the allocator's first index and always holds the row id
        emitter.write_statement(
            Assign(ArrayItem(block.array_name, 0), ConstantRef(ROWID_CONSTANT))
        )
        for prop in self.spec.properties:
            block.bind(emitter, constant_name(prop.name))

    def emit_accessors(self, emitter: SourceEmitter) -> None:
        for prop in self.spec.properties:
            constant = constant_name(prop.name)
            self.emit_getter(
                emitter,
                getter_name(prop.name),
                constant,
                prop.python_type,
                doc=f"Return the ``{prop.column_name}`` column.",
            )
            self.emit_setter(
                emitter,
                setter_name(prop.name),
                constant,
                Parameter(parameter_name(prop.name), prop.python_type),
                doc=f"Set the ``{prop.column_name}`` column.",
            )
