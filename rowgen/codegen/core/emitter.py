"""
Structured source emitter for generated model classes.

Stages never write source text directly. They hand the emitter field
declarations, statements and method definitions built from the small
expression model below; the emitter keeps them in call order, checks every
constant reference against its symbol table and renders the class body.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .errors import DuplicateSymbolError, EmissionFailure, UndefinedSymbolError


# Expressions


class Expression(ABC):
    """A renderable Python expression."""

    @abstractmethod
    def render(self) -> str:
        pass

    def references(self) -> Set[str]:
        """Class constants this expression refers to."""
        return set()


@dataclass(frozen=True)
class Literal(Expression):
    value: Any

    def render(self) -> str:
        rendered = repr(self.value)
        # prefer double quotes when no escaping is involved
        if (
            isinstance(self.value, str)
            and rendered.startswith("'")
            and '"' not in self.value
            and "\\" not in rendered
        ):
            rendered = f'"{rendered[1:-1]}"'
        return rendered


@dataclass(frozen=True)
class Name(Expression):
    """A local name such as ``self`` or a method parameter."""

    identifier: str

    def render(self) -> str:
        return self.identifier


@dataclass(frozen=True)
class ConstantRef(Expression):
    """Reference to a class constant, optionally through an owner (``self``)."""

    name: str
    owner: Optional[str] = None

    def render(self) -> str:
        if self.owner:
            return f"{self.owner}.{self.name}"
        return self.name

    def references(self) -> Set[str]:
        return {self.name}


@dataclass(frozen=True)
class Call(Expression):
    function: str
    arguments: Tuple[Expression, ...] = ()

    def render(self) -> str:
        args = ", ".join(arg.render() for arg in self.arguments)
        return f"{self.function}({args})"

    def references(self) -> Set[str]:
        refs = set()
        for arg in self.arguments:
            refs |= arg.references()
        return refs


@dataclass(frozen=True)
class ArrayItem(Expression):
    array: str
    index: int

    def render(self) -> str:
        return f"{self.array}[{self.index}]"

    def references(self) -> Set[str]:
        return {self.array}


def call(function: str, *arguments: Expression) -> Call:
    """Shorthand for building a Call."""
    return Call(function, tuple(arguments))


def docstring_text(text: str) -> str:
    """Collapse ``text`` to one line that is safe inside a triple-quoted docstring."""
    text = " ".join(str(text).split())
    return text.replace("\\", "\\\\").replace('"', '\\"')


# Statements


class Statement(ABC):
    """A renderable single-line Python statement."""

    @abstractmethod
    def render(self) -> str:
        pass

    @abstractmethod
    def references(self) -> Set[str]:
        pass


@dataclass(frozen=True)
class Assign(Statement):
    target: Expression
    value: Expression
    comment: Optional[str] = None

    def render(self) -> str:
        line = f"{self.target.render()} = {self.value.render()}"
        if self.comment:
            line = f"{line}  # {self.comment}"
        return line

    def references(self) -> Set[str]:
        return self.target.references() | self.value.references()


@dataclass(frozen=True)
class Return(Statement):
    value: Expression

    def render(self) -> str:
        return f"return {self.value.render()}"

    def references(self) -> Set[str]:
        return self.value.references()


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    expression: Expression

    def render(self) -> str:
        return self.expression.render()

    def references(self) -> Set[str]:
        return self.expression.references()


# Methods


@dataclass(frozen=True)
class Parameter:
    name: str
    annotation: Optional[str] = None

    def render(self) -> str:
        if self.annotation:
            return f"{self.name}: {self.annotation}"
        return self.name


@dataclass(frozen=True)
class MethodSignature:
    """Signature of an instance method on the generated class."""

    name: str
    return_type: Optional[str] = None
    parameters: Tuple[Parameter, ...] = ()
    doc: Optional[str] = None

    def render(self) -> str:
        params = ", ".join(["self"] + [p.render() for p in self.parameters])
        returns = f" -> {self.return_type}" if self.return_type else ""
        return f"def {self.name}({params}){returns}:"


@dataclass
class FieldDeclaration:
    type_name: str
    name: str
    initializer: Expression

    def render(self) -> str:
        return f"{self.name} = {self.initializer.render()}"


@dataclass
class ArrayDeclaration:
    name: str
    length: int

    def render(self) -> str:
        return f"{self.name} = [None] * {self.length}"


@dataclass
class BodyStatement:
    statement: Statement


@dataclass
class MethodDefinition:
    signature: MethodSignature
    statements: List[Statement] = field(default_factory=list)


class SymbolTable:
    """Class constants declared so far, with their declared types."""

    def __init__(self):
        self._symbols: Dict[str, str] = {}

    def declare(self, name: str, type_name: str):
        if name in self._symbols:
            raise DuplicateSymbolError(name)
        self._symbols[name] = type_name

    def is_declared(self, name: str) -> bool:
        return name in self._symbols

    def type_of(self, name: str) -> Optional[str]:
        return self._symbols.get(name)

    def names(self) -> List[str]:
        return list(self._symbols)

    def __contains__(self, name: str) -> bool:
        return name in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)


class SourceEmitter:
    """Order-preserving writer for the body of one generated class."""

    def __init__(
        self,
        indent_size: int = 4,
        add_comments: bool = True,
        reserved_methods: Iterable[str] = (),
    ):
        self.indent = " " * indent_size
        self.add_comments = add_comments
        self.symbols = SymbolTable()
        # inherited methods a generated method must not override
        self.method_names: Set[str] = set(reserved_methods)
        self._items: List[Any] = []
        self._current_method: Optional[MethodDefinition] = None

    # Declarations

    def write_field_declaration(
        self, type_name: str, constant_name: str, initializer: Expression
    ) -> "SourceEmitter":
        """Declare a class constant initialized by ``initializer``."""
        if self._current_method is not None:
            raise EmissionFailure(
                f"Cannot declare field {constant_name} inside method "
                f"{self._current_method.signature.name}"
            )
        self._check_references(initializer.references(), constant_name)
        self.symbols.declare(constant_name, type_name)
        self._items.append(FieldDeclaration(type_name, constant_name, initializer))
        return self

    def write_array_declaration(self, name: str, length: int) -> "SourceEmitter":
        """Declare a list constant of ``length`` empty slots."""
        if self._current_method is not None:
            raise EmissionFailure(f"Cannot declare array {name} inside a method")
        if length < 0:
            raise EmissionFailure(f"Invalid length {length} for array {name}")
        self.symbols.declare(name, "list")
        self._items.append(ArrayDeclaration(name, length))
        return self

    # Statements and methods

    def write_statement(self, statement: Statement) -> "SourceEmitter":
        """Write a statement into the open method, or into the class body."""
        if self._current_method is not None:
            context = self._current_method.signature.name
        else:
            context = "class body"
        self._check_references(statement.references(), context)

        if self._current_method is not None:
            self._current_method.statements.append(statement)
        else:
            self._items.append(BodyStatement(statement))
        return self

    def begin_method_definition(self, signature: MethodSignature) -> "SourceEmitter":
        if self._current_method is not None:
            raise EmissionFailure(
                f"Cannot begin method {signature.name} while "
                f"{self._current_method.signature.name} is still open"
            )
        if signature.name in self.method_names:
            raise DuplicateSymbolError(signature.name, "Method")
        self.method_names.add(signature.name)
        self._current_method = MethodDefinition(signature)
        return self

    def finish_method_definition(self) -> "SourceEmitter":
        if self._current_method is None:
            raise EmissionFailure("finish_method_definition called with no open method")
        self._items.append(self._current_method)
        self._current_method = None
        return self

    def _check_references(self, names: Set[str], context: str):
        for name in sorted(names):
            if name not in self.symbols:
                raise UndefinedSymbolError(name, context)

    # Introspection

    def field_declarations(self) -> List[FieldDeclaration]:
        return [item for item in self._items if isinstance(item, FieldDeclaration)]

    def body_statements(self) -> List[Statement]:
        return [item.statement for item in self._items if isinstance(item, BodyStatement)]

    def methods(self) -> List[MethodDefinition]:
        return [item for item in self._items if isinstance(item, MethodDefinition)]

    # Rendering

    def render(self) -> List[str]:
        """Render the class body, one indented line per entry."""
        if self._current_method is not None:
            raise EmissionFailure(
                f"Method {self._current_method.signature.name} was never finished"
            )

        lines: List[str] = []
        previous = None

        for item in self._items:
            kind = self._kind(item)
            if previous is not None and (kind != previous or kind == "method"):
                lines.append("")
            lines.extend(self._render_item(item))
            previous = kind

        return lines

    @staticmethod
    def _kind(item: Any) -> str:
        if isinstance(item, FieldDeclaration):
            return "field"
        if isinstance(item, MethodDefinition):
            return "method"
        return "array"

    def _render_item(self, item: Any) -> List[str]:
        if isinstance(item, (FieldDeclaration, ArrayDeclaration)):
            return [self.indent + item.render()]
        if isinstance(item, BodyStatement):
            return [self.indent + item.statement.render()]

        body_indent = self.indent * 2
        lines = [self.indent + item.signature.render()]
        if self.add_comments and item.signature.doc:
            lines.append(f'{body_indent}"""{docstring_text(item.signature.doc)}"""')
        if not item.statements and not (self.add_comments and item.signature.doc):
            lines.append(f"{body_indent}pass")
        for statement in item.statements:
            lines.append(body_indent + statement.render())
        return lines
