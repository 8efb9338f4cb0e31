"""
Synchronization stage.

For entities marked ``syncable`` this stage adds the two columns that track
a row's relationship with a remote origin, reserves their properties-array
slots and emits the methods that drive the row-state machine:

    PENDING_ORIGIN_CONFIRMATION  initial, set only by the column's SQL default
    IDLE                         confirm_origin_insertion() / mark_idle()
    UPDATING                     mark_updating()
    DELETING                     mark_deleting()

Transitions are unconditional and last-write-wins; nothing moves a row back
to PENDING_ORIGIN_CONFIRMATION.
"""

from typing import Optional

from ..core.config import GeneratorConfig
from ..core.emitter import (
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
from ..core.naming import constant_name, getter_name
from ..core.schema import (
    EntitySpec,
    PropertyDescriptor,
    PropertyType,
    PROPERTY_CLASSES,
    PYTHON_TYPES,
    RowSyncState,
)
from ..core.slots import SlotBlock
from .base import EmissionStage, ImportSet

# Two slots hold the sync columns; the other two are kept free for
# future sync columns and initialized to None.
SYNC_RESERVED_SLOTS = 4

ORIGIN_ID = PropertyDescriptor(
    name="origin_id",
    column_name="origin_id",
    type=PropertyType.LONG,
    constraints="DEFAULT 0 NOT NULL",
)

ROW_STATUS = PropertyDescriptor(
    name="row_status",
    column_name="row_status",
    type=PropertyType.INTEGER,
    constraints=f"DEFAULT {RowSyncState.PENDING_ORIGIN_CONFIRMATION:d} NOT NULL",
)

SYNC_PROPERTIES = (ORIGIN_ID, ROW_STATUS)

# Row-state mutators and the state each one assigns
ROW_STATE_TRANSITIONS = (
    ("mark_updating", RowSyncState.UPDATING),
    ("mark_deleting", RowSyncState.DELETING),
    ("mark_idle", RowSyncState.IDLE),
)

CONFIRM_ORIGIN_INSERTION = "confirm_origin_insertion"

SYNC_METHOD_NAMES = (
    getter_name(ORIGIN_ID.name),
    CONFIRM_ORIGIN_INSERTION,
    getter_name("row_state"),
) + tuple(name for name, _ in ROW_STATE_TRANSITIONS)


class SyncStage(EmissionStage):
    """Adds origin binding and row-state tracking to syncable entities."""

    name = "sync"

    def __init__(self, spec: EntitySpec, config: Optional[GeneratorConfig] = None):
        super().__init__(spec, config)
        self.enabled = spec.syncable

    @classmethod
    def applies_to(cls, spec: EntitySpec) -> bool:
        return spec.syncable

    def collect_imports(self, imports: ImportSet) -> None:
        if self.enabled:
            imports.add(PROPERTY_CLASSES[PropertyType.INTEGER])

    def properties_array_length(self) -> int:
        return SYNC_RESERVED_SLOTS if self.enabled else 0

    def emit_field_declarations(self, emitter: SourceEmitter) -> None:
        if not self.enabled:
            return
        for prop in SYNC_PROPERTIES:
            self.declare_property(emitter, prop)

    def emit_array_initialization(self, emitter: SourceEmitter, block: SlotBlock) -> None:
        if not self.enabled:
            return
        for prop in SYNC_PROPERTIES:
            block.bind(emitter, constant_name(prop.name))
        block.fill_remaining(emitter)

    def emit_accessors(self, emitter: SourceEmitter) -> None:
        if not self.enabled:
            return
        origin_id = constant_name(ORIGIN_ID.name)
        row_status = constant_name(ROW_STATUS.name)

        self.emit_getter(
            emitter,
            getter_name(ORIGIN_ID.name),
            origin_id,
            PYTHON_TYPES[PropertyType.LONG],
            doc="Return the id the remote origin assigned to this row.",
        )
        self._emit_confirm_origin_insertion(emitter, origin_id, row_status)
        self.emit_getter(
            emitter,
            getter_name("row_state"),
            row_status,
            PYTHON_TYPES[PropertyType.INTEGER],
            doc="Return the row's sync state (see RowSyncState).",
        )
        for method_name, state in ROW_STATE_TRANSITIONS:
            self._emit_row_state_change(emitter, method_name, state, row_status)

    def _emit_confirm_origin_insertion(
        self, emitter: SourceEmitter, origin_id: str, row_status: str
    ):
        param = Parameter("origin_id", PYTHON_TYPES[PropertyType.LONG])
        signature = MethodSignature(
            CONFIRM_ORIGIN_INSERTION,
            self.model_class_name,
            (param,),
            doc="Record the origin's id for this row and mark it idle.",
        )
        (
            emitter.begin_method_definition(signature)
            .write_statement(self._set(origin_id, Name(param.name)))
            .write_statement(self._set(row_status, Literal(int(RowSyncState.IDLE))))
            .write_statement(Return(Name("self")))
            .finish_method_definition()
        )

    def _emit_row_state_change(
        self,
        emitter: SourceEmitter,
        method_name: str,
        state: RowSyncState,
        row_status: str,
    ):
        signature = MethodSignature(
            method_name,
            self.model_class_name,
            doc=f"Set the row state to {state.name}.",
        )
        (
            emitter.begin_method_definition(signature)
            .write_statement(self._set(row_status, Literal(int(state))))
            .write_statement(Return(Name("self")))
            .finish_method_definition()
        )

    @staticmethod
    def _set(constant: str, value) -> ExpressionStatement:
        return ExpressionStatement(call("self.set", ConstantRef(constant, "self"), value))
