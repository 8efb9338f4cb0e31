"""
Exceptions raised while generating a model.

Every error here aborts generation of the current entity only; the driver
turns it into a failed GenerationResult naming the entity.
"""


class GeneratorError(Exception):
    """Base exception for code generation errors."""

    pass


class EmissionFailure(GeneratorError):
    """The generated source could not be written or rendered."""

    pass


class SpecInconsistency(GeneratorError):
    """The entity cannot be emitted consistently."""

    pass


class UndefinedSymbolError(SpecInconsistency):
    """A statement references a constant that was never declared."""

    def __init__(self, name: str, context: str = ""):
        self.name = name
        self.context = context
        where = f" in {context}" if context else ""
        super().__init__(f"Reference to undeclared constant '{name}'{where}")


class DuplicateSymbolError(SpecInconsistency):
    """A constant or method is declared twice in the same class."""

    def __init__(self, name: str, kind: str = "Constant"):
        self.name = name
        self.kind = kind
        super().__init__(f"{kind} '{name}' is declared more than once")


class SlotAllocationError(SpecInconsistency):
    """Properties-array slots were over-filled or left unpopulated."""

    pass
