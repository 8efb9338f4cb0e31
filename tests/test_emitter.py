import pytest

from rowgen.codegen.core.emitter import (
    ArrayItem,
    Assign,
    ConstantRef,
    ExpressionStatement,
    Literal,
    MethodSignature,
    Name,
    Parameter,
    Return,
    SourceEmitter,
    call,
    docstring_text,
)
from rowgen.codegen.core.errors import (
    DuplicateSymbolError,
    EmissionFailure,
    SpecInconsistency,
    UndefinedSymbolError,
)


def _table_emitter(**kwargs) -> SourceEmitter:
    emitter = SourceEmitter(**kwargs)
    emitter.write_field_declaration(
        "Table", "TABLE", call("Table", Literal("Note"), Literal("note"))
    )
    return emitter


def test_literal_rendering():
    assert Literal("note").render() == '"note"'
    assert Literal('say "hi"').render() == "'say \"hi\"'"
    assert Literal(3).render() == "3"
    assert Literal(None).render() == "None"


def test_expression_references():
    expr = call("StringProperty", ConstantRef("TABLE"), Literal("title"))
    assert expr.references() == {"TABLE"}
    assert ArrayItem("PROPERTIES", 2).references() == {"PROPERTIES"}
    assert Name("self").references() == set()


def test_method_signature_rendering():
    signature = MethodSignature("set_title", "Note", (Parameter("title", "str"),))
    assert signature.render() == "def set_title(self, title: str) -> Note:"
    assert MethodSignature("reset").render() == "def reset(self):"


def test_field_declaration_renders_in_order():
    emitter = _table_emitter()
    emitter.write_field_declaration(
        "StringProperty",
        "TITLE",
        call("StringProperty", ConstantRef("TABLE"), Literal("title")),
    )
    assert emitter.render() == [
        '    TABLE = Table("Note", "note")',
        '    TITLE = StringProperty(TABLE, "title")',
    ]
    assert emitter.symbols.type_of("TITLE") == "StringProperty"


def test_writers_are_fluent():
    emitter = _table_emitter()
    result = (
        emitter.begin_method_definition(MethodSignature("get_table", "Table"))
        .write_statement(Return(ConstantRef("TABLE", "self")))
        .finish_method_definition()
    )
    assert result is emitter
    assert [m.signature.name for m in emitter.methods()] == ["get_table"]


def test_undefined_reference_in_method():
    emitter = _table_emitter()
    emitter.begin_method_definition(MethodSignature("get_row_state", "int"))
    with pytest.raises(UndefinedSymbolError) as exc_info:
        emitter.write_statement(Return(call("self.get", ConstantRef("ROW_STATE", "self"))))
    assert exc_info.value.name == "ROW_STATE"
    assert "get_row_state" in str(exc_info.value)


def test_undefined_reference_in_field_initializer():
    emitter = SourceEmitter()
    with pytest.raises(UndefinedSymbolError):
        emitter.write_field_declaration(
            "StringProperty", "TITLE", call("StringProperty", ConstantRef("TABLE"))
        )


def test_undefined_array_in_body_statement():
    emitter = _table_emitter()
    with pytest.raises(UndefinedSymbolError):
        emitter.write_statement(Assign(ArrayItem("PROPERTIES", 1), ConstantRef("TABLE")))


def test_duplicate_declaration():
    emitter = _table_emitter()
    with pytest.raises(DuplicateSymbolError):
        emitter.write_field_declaration("Table", "TABLE", call("Table"))


def test_symbol_errors_are_inconsistencies():
    assert issubclass(UndefinedSymbolError, SpecInconsistency)
    assert issubclass(DuplicateSymbolError, SpecInconsistency)


def test_nested_method_rejected():
    emitter = SourceEmitter()
    emitter.begin_method_definition(MethodSignature("a"))
    with pytest.raises(EmissionFailure):
        emitter.begin_method_definition(MethodSignature("b"))


def test_finish_without_method_rejected():
    with pytest.raises(EmissionFailure):
        SourceEmitter().finish_method_definition()


def test_field_inside_method_rejected():
    emitter = SourceEmitter()
    emitter.begin_method_definition(MethodSignature("a"))
    with pytest.raises(EmissionFailure):
        emitter.write_field_declaration("Table", "TABLE", call("Table"))


def test_unfinished_method_rejected_at_render():
    emitter = SourceEmitter()
    emitter.begin_method_definition(MethodSignature("a"))
    with pytest.raises(EmissionFailure, match="never finished"):
        emitter.render()


def test_render_layout():
    emitter = _table_emitter()
    emitter.write_array_declaration("PROPERTIES", 2)
    emitter.write_statement(Assign(ArrayItem("PROPERTIES", 1), Literal(None), "reserved"))
    (
        emitter.begin_method_definition(
            MethodSignature("touch", "Note", doc="Touch the row.")
        )
        .write_statement(ExpressionStatement(call("self.set", ConstantRef("TABLE", "self"))))
        .write_statement(Return(Name("self")))
        .finish_method_definition()
    )
    emitter.begin_method_definition(MethodSignature("noop")).finish_method_definition()

    assert emitter.render() == [
        '    TABLE = Table("Note", "note")',
        "",
        "    PROPERTIES = [None] * 2",
        "    PROPERTIES[1] = None  # reserved",
        "",
        "    def touch(self) -> Note:",
        '        """Touch the row."""',
        "        self.set(self.TABLE)",
        "        return self",
        "",
        "    def noop(self):",
        "        pass",
    ]


def test_render_without_comments_and_custom_indent():
    emitter = _table_emitter(indent_size=2, add_comments=False)
    (
        emitter.begin_method_definition(MethodSignature("touch", doc="Touch the row."))
        .finish_method_definition()
    )
    assert emitter.render() == [
        '  TABLE = Table("Note", "note")',
        "",
        "  def touch(self):",
        "    pass",
    ]


def test_introspection():
    emitter = _table_emitter()
    emitter.write_array_declaration("PROPERTIES", 1)
    emitter.write_statement(Assign(ArrayItem("PROPERTIES", 0), ConstantRef("TABLE")))
    assert [f.name for f in emitter.field_declarations()] == ["TABLE"]
    assert [s.render() for s in emitter.body_statements()] == ["PROPERTIES[0] = TABLE"]
    assert emitter.symbols.names() == ["TABLE", "PROPERTIES"]


def test_duplicate_method_rejected():
    emitter = SourceEmitter()
    emitter.begin_method_definition(MethodSignature("get_title")).finish_method_definition()
    with pytest.raises(DuplicateSymbolError, match="Method 'get_title'"):
        emitter.begin_method_definition(MethodSignature("get_title"))


def test_reserved_method_rejected():
    emitter = SourceEmitter(reserved_methods={"get_properties"})
    with pytest.raises(DuplicateSymbolError, match="get_properties"):
        emitter.begin_method_definition(MethodSignature("get_properties"))


def test_docstring_text():
    assert docstring_text('ends with "quote"') == 'ends with \\"quote\\"'
    assert docstring_text("trailing \\") == "trailing \\\\"
    assert docstring_text("two\n  lines") == "two lines"
