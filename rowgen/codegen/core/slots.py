"""
Slot allocation for the generated properties array.

Stages reserve a block of slots up front and bind constants into it during
array initialization. Indices are handed out sequentially, so the declared
array length is always the sum of the reservations, and a block that is left
partly empty is reported instead of silently producing a sparse array.
"""

from dataclasses import dataclass
from typing import List, Optional

from .emitter import ArrayItem, Assign, ConstantRef, Literal, SourceEmitter
from .errors import SlotAllocationError


@dataclass(frozen=True)
class GeneratedFieldSlot:
    """A populated slot of the properties array."""

    index: int
    constant_name: Optional[str]  # None for reserved placeholders
    owner: str

    @property
    def is_placeholder(self) -> bool:
        return self.constant_name is None


class SlotBlock:
    """Contiguous run of slots reserved by one stage."""

    def __init__(self, owner: str, first_index: int, count: int, array_name: str):
        self.owner = owner
        self.first_index = first_index
        self.count = count
        self.array_name = array_name
        self.slots: List[GeneratedFieldSlot] = []

    @property
    def last_index(self) -> int:
        return self.first_index + self.count - 1

    @property
    def remaining(self) -> int:
        return self.count - len(self.slots)

    def bind(self, emitter: SourceEmitter, constant_name: str) -> GeneratedFieldSlot:
        """Assign the next slot of this block to a declared constant."""
        index = self._next_index(constant_name)
        emitter.write_statement(
            Assign(ArrayItem(self.array_name, index), ConstantRef(constant_name))
        )
        slot = GeneratedFieldSlot(index, constant_name, self.owner)
        self.slots.append(slot)
        return slot

    def bind_placeholder(
        self, emitter: SourceEmitter, comment: Optional[str] = "reserved"
    ) -> GeneratedFieldSlot:
        """Initialize the next slot of this block to an explicit ``None``."""
        index = self._next_index("placeholder")
        emitter.write_statement(
            Assign(ArrayItem(self.array_name, index), Literal(None), comment)
        )
        slot = GeneratedFieldSlot(index, None, self.owner)
        self.slots.append(slot)
        return slot

    def fill_remaining(self, emitter: SourceEmitter) -> List[GeneratedFieldSlot]:
        """Initialize every slot not bound yet with a placeholder."""
        return [self.bind_placeholder(emitter) for _ in range(self.remaining)]

    def ensure_filled(self):
        """Raise unless every reserved slot has been initialized."""
        if self.remaining:
            missing = self.first_index + len(self.slots)
            raise SlotAllocationError(
                f"Slot {missing} of {self.array_name} reserved by '{self.owner}' "
                f"was never initialized ({self.remaining} of {self.count} slots empty)"
            )

    def _next_index(self, what: str) -> int:
        if not self.remaining:
            raise SlotAllocationError(
                f"Stage '{self.owner}' reserved {self.count} slot(s) of "
                f"{self.array_name} but tried to bind another ({what})"
            )
        return self.first_index + len(self.slots)


class SlotAllocator:
    """Hands out properties-array indices to stages in pipeline order."""

    def __init__(self, array_name: str = "PROPERTIES", first_index: int = 1):
        self.array_name = array_name
        self.first_index = first_index
        self.blocks: List[SlotBlock] = []

    def reserve(self, owner: str, count: int) -> SlotBlock:
        if count < 0:
            raise SlotAllocationError(
                f"Stage '{owner}' requested a negative slot count ({count})"
            )
        block = SlotBlock(owner, self.first_index + self.length, count, self.array_name)
        self.blocks.append(block)
        return block

    @property
    def length(self) -> int:
        """Number of reserved slots (not counting slots below first_index)."""
        return sum(block.count for block in self.blocks)

    def assignments(self) -> List[GeneratedFieldSlot]:
        return [slot for block in self.blocks for slot in block.slots]

    def ensure_filled(self):
        for block in self.blocks:
            block.ensure_filled()
