"""
IDL Parser Test Suite
=====================

Tests for the declaration parser, run both directly on preprocessed
text (parse_source / IdlParser) and through the full pipeline
(parse_idl) where preprocessing matters.

Test Organization
-----------------
- TestTypedefs: alias and sequence typedefs
- TestStructs: fields, keys, namespaced field types
- TestModules: namespace stack handling
- TestGlobalsAndMacros: global variables and macro statements
- TestRecovery: warnings for unsupported constructs
- TestFatalErrors: structural errors and the partial model
"""

import pytest

from idlkit.idl import parse_idl
from idlkit.idl.errors import (
    DiagnosticCollector,
    TRAILING_INPUT,
    UNKNOWN_FIELD_FORM,
    UNKNOWN_SYMBOL,
    UNKNOWN_TOKEN,
    UNKNOWN_TYPEDEF_FORM,
    UNRESOLVED_TYPE,
    UnexpectedEndOfInputError,
)
from idlkit.idl.parser import IdlParser, parse_source, split_words
from idlkit.idl.types import SEQUENCE_TYPE, TypeId, TypeKind, builtin_type


def parse_with_diagnostics(text: str):
    """Parse text and return (model, diagnostic codes)."""
    diagnostics = DiagnosticCollector()
    parser = IdlParser(diagnostics=diagnostics)
    model = parser.parse(text)
    return model, diagnostics.codes()


# =============================================================================
# Typedefs
# =============================================================================

class TestTypedefs:
    """Tests for typedef declarations."""

    def test_bounded_sequence(self):
        model = parse_source("typedef sequence<int32_t,50> T_SmallInt;")
        typedef = model.typedefs[0]
        assert typedef.name == "T_SmallInt"
        assert typedef.base_name == "int32_t"
        assert typedef.kind == SEQUENCE_TYPE
        assert typedef.sequence_bound == 50

    def test_unbounded_sequence(self):
        model = parse_source("typedef sequence<char> T_Char_v;")
        typedef = model.typedefs[0]
        assert typedef.base_name == "char"
        assert typedef.sequence_bound == 0
        assert typedef.is_sequence
        assert not typedef.is_bounded

    def test_sequence_with_spaces(self):
        model = parse_source("typedef sequence < long long , 8 > T_Stamps ;")
        typedef = model.typedefs[0]
        assert typedef.name == "T_Stamps"
        assert typedef.base_name == "long long"
        assert typedef.sequence_bound == 8

    def test_hex_bound(self):
        model = parse_source("typedef sequence<octet,0x10> T_Bytes;")
        assert model.typedefs[0].sequence_bound == 16

    def test_decimal_bound_with_leading_zero(self):
        """Only a 0x prefix switches the bound to hexadecimal."""
        model, codes = parse_with_diagnostics("typedef sequence<char,050> T_Str;")
        assert model.typedefs[0].sequence_bound == 50
        assert codes == []

    def test_sequence_of_typedef(self):
        """The element is stored as its resolved base type."""
        model = parse_source(
            "typedef char T_Char;\n"
            "typedef sequence<T_Char,20> T_Name;\n"
        )
        assert model.typedefs[1].base_name == "char"

    def test_alias(self):
        model = parse_source("typedef double T_Real;")
        typedef = model.typedefs[0]
        assert typedef.name == "T_Real"
        assert typedef.base_name == "double"
        assert typedef.kind == builtin_type("double")
        assert typedef.sequence_bound == -1

    def test_alias_chain(self):
        model = parse_source(
            "typedef char T_Char;\n"
            "typedef T_Char T_Char2;\n"
            "struct S { T_Char2 c; };\n"
        )
        assert model.typedefs[1].kind == TypeId(TypeKind.USER_TYPEDEF, 0)
        assert model.structs[0].fields[0].type.name == "char"

    def test_macro_in_bound(self):
        result = parse_idl("#define SIZE 50\ntypedef sequence<char,SIZE> T_Str;\n")
        assert result.success
        assert result.model.typedefs[0].sequence_bound == 50


# =============================================================================
# Structs
# =============================================================================

class TestStructs:
    """Tests for struct declarations."""

    def test_fields_in_order(self):
        model = parse_source("struct Point { int32_t x; int32_t y; double z; };")
        struct = model.structs[0]
        assert struct.name == "Point"
        assert [f.name for f in struct.fields] == ["x", "y", "z"]
        assert [f.type.name for f in struct.fields] == ["int32_t", "int32_t", "double"]
        assert all(f.struct_name == "Point" for f in struct.fields)

    def test_key_fields(self):
        model = parse_source(
            "struct Keyed {\n"
            "    @key int32_t a;\n"
            "    @key char b;\n"
            "    double v;\n"
            "    @key int64_t c;\n"
            "};\n"
        )
        struct = model.structs[0]
        assert [f.name for f in struct.key_fields] == ["a", "b", "c"]
        assert not struct.get_field("v").is_key

    def test_sequence_typedef_field(self):
        model = parse_source(
            "typedef sequence<int32_t,50> T_SmallInt;\n"
            "struct Data { T_SmallInt values; };\n"
        )
        field = model.structs[0].fields[0]
        assert field.type.name == "int32_t"
        assert field.type.kind == SEQUENCE_TYPE
        assert field.type.sequence_bound == 50

    def test_long_long_field(self):
        model = parse_source("struct Stamp { long long when; };")
        field = model.structs[0].fields[0]
        assert field.type.name == "long long"
        assert field.name == "when"

    def test_namespaced_field_type(self):
        model = parse_source(
            "module Mod1 { struct foo_t { int32_t a; }; };\n"
            "struct User { ::Mod1::foo_t f; };\n"
        )
        field = model.get_struct("User").fields[0]
        assert field.origin_namespace == "Mod1"
        assert field.type.name == "foo_t"
        assert field.type.is_struct

    def test_struct_field(self):
        model = parse_source(
            "struct Inner { char c; };\n"
            "struct Outer { Inner inner; };\n"
        )
        field = model.structs[1].fields[0]
        assert field.type.name == "Inner"
        assert field.type.base_name == "Inner"

    def test_fields_are_also_variables(self):
        model = parse_source("struct P { int32_t x; };")
        assert model.variables == model.structs[0].fields
        assert model.global_variables == []

    def test_semicolon_after_struct_optional(self):
        model = parse_source("struct A { char a; } struct B { char b; };")
        assert [s.name for s in model.structs] == ["A", "B"]

    def test_brace_on_next_line(self):
        model, codes = parse_with_diagnostics(
            "struct Point\n{\n int32_t x;\n int32_t y;\n};\n"
        )
        assert [f.name for f in model.structs[0].fields] == ["x", "y"]
        assert codes == []

    def test_brace_on_next_line_through_pipeline(self):
        result = parse_idl("struct Point\n{\n\tint32_t x;\n};\n")
        assert result.success
        assert [f.name for f in result.model.structs[0].fields] == ["x"]

    def test_large_struct(self):
        """A struct body is not limited by the default block capacity."""
        fields = "".join(f"    int32_t field_number_{i:04d};\n" for i in range(300))
        result = parse_idl(f"struct Wide {{\n{fields}}};\n")
        assert result.success
        struct = result.model.structs[0]
        assert len(struct.fields) == 300
        assert struct.fields[-1].name == "field_number_0299"

    def test_unknown_field_type_kept(self):
        model, codes = parse_with_diagnostics("struct S { mystery_t m; };")
        field = model.structs[0].fields[0]
        assert field.type.name == "mystery_t"
        assert not field.type.is_resolved
        assert codes == [UNRESOLVED_TYPE]

    def test_declaration_order(self):
        model = parse_source(
            "typedef char T_A;\n"
            "struct S { T_A a; };\n"
            "typedef double T_B;\n"
        )
        assert [d.name for d in model.declarations] == ["T_A", "S", "T_B"]


# =============================================================================
# Modules
# =============================================================================

class TestModules:
    """Tests for module scopes and namespaces."""

    def test_struct_in_module(self):
        model = parse_source("module M { struct P { @key int32_t id; }; };")
        assert model.structs[0].namespace == "M"
        assert model.structs[0].qualified_name == "M::P"
        assert model.modules[0].name == "M"

    def test_nested_modules(self):
        model = parse_source(
            "module Outer {\n"
            "    module Inner {\n"
            "        struct S { int32_t x; };\n"
            "    };\n"
            "    struct R { int32_t y; };\n"
            "};\n"
            "struct Top { int32_t z; };\n"
        )
        assert model.get_struct("S").namespace == "Outer::Inner"
        assert model.get_struct("R").namespace == "Outer"
        assert model.get_struct("Top").namespace == ""
        assert [m.qualified_name for m in model.modules] == ["Outer", "Outer::Inner"]

    def test_typedef_in_module(self):
        model = parse_source("module Types { typedef char T_Char; };")
        assert model.typedefs[0].namespace == "Types"
        assert model.get_typedef("Types::T_Char") is model.typedefs[0]

    def test_namespace_restored_after_module(self):
        parser = IdlParser()
        parser.parse("module A { module B { }; };")
        assert parser.namespace == ""

    def test_anonymous_block_skipped(self):
        model, codes = parse_with_diagnostics("{ ; } struct A { char a; };")
        assert model.structs[0].name == "A"
        assert codes == []


# =============================================================================
# Globals and Macro Statements
# =============================================================================

class TestGlobalsAndMacros:
    """Tests for top-level variables and kept macro statements."""

    def test_global_variable(self):
        model = parse_source("int32_t counter;")
        variable = model.global_variables[0]
        assert variable.name == "counter"
        assert variable.type.name == "int32_t"
        assert variable.is_global

    def test_global_of_user_type(self):
        model = parse_source("typedef char T_Char;\nT_Char initial;\n")
        assert model.global_variables[0].type.name == "char"

    def test_macro_statement(self):
        model = parse_source("MY_MACRO(a, b);", macros={"MY_MACRO": ""})
        assert [d.line for d in model.user_defines] == ["MY_MACRO(a, b);"]

    def test_macro_statement_nested_parentheses(self):
        model = parse_source("CHECK(f(x), y);", macros={"CHECK": ""})
        assert model.user_defines[0].line == "CHECK(f(x), y);"

    def test_unknown_name_without_macro(self):
        model, codes = parse_with_diagnostics("MY_MACRO;")
        assert model.user_defines == []
        assert codes == [UNKNOWN_TOKEN]


# =============================================================================
# Recovery
# =============================================================================

class TestRecovery:
    """Tests for recoverable problems and their diagnostic codes."""

    def test_unknown_token(self):
        model, codes = parse_with_diagnostics(
            "interface Foo;\nstruct A { char a; };\n"
        )
        assert UNKNOWN_TOKEN in codes
        assert model.structs[0].name == "A"

    def test_unknown_symbol(self):
        model, codes = parse_with_diagnostics("@\nstruct A { char a; };\n")
        assert codes == [UNKNOWN_SYMBOL]
        assert len(model.structs) == 1

    def test_unknown_typedef_base(self):
        model, codes = parse_with_diagnostics("typedef foo_t bar_t;")
        assert codes == [UNKNOWN_TYPEDEF_FORM]
        assert model.typedefs == []

    def test_unknown_typedef_shape(self):
        _, codes = parse_with_diagnostics("typedef char a b;")
        assert codes == [UNKNOWN_TYPEDEF_FORM]

    def test_bad_sequence_typedef(self):
        _, codes = parse_with_diagnostics("typedef sequence<char,-1> T;")
        assert codes == [UNKNOWN_TYPEDEF_FORM]

    def test_field_with_extra_words(self):
        model, codes = parse_with_diagnostics("struct S { int32_t a b; char c; };")
        assert codes == [UNKNOWN_FIELD_FORM]
        assert [f.name for f in model.structs[0].fields] == ["c"]

    def test_array_field(self):
        model, codes = parse_with_diagnostics("struct S { char name[8]; };")
        assert codes == [UNKNOWN_FIELD_FORM]
        assert model.structs[0].fields == []

    def test_trailing_close_brace(self):
        model, codes = parse_with_diagnostics(
            "struct A { char a; };\n}\nstruct B { char b; };\n"
        )
        assert codes == [TRAILING_INPUT]
        assert [s.name for s in model.structs] == ["A"]

    def test_warnings_have_locations(self):
        diagnostics = DiagnosticCollector()
        IdlParser(diagnostics=diagnostics, filename="x.idl").parse(
            "struct A { char a; };\ninterface;\n"
        )
        location = diagnostics.diagnostics[0].location
        assert location.filename == "x.idl"
        assert location.line == 2


# =============================================================================
# Fatal Errors
# =============================================================================

class TestFatalErrors:
    """Tests for structural errors through the full pipeline."""

    def test_unterminated_module(self):
        result = parse_idl("module M {\nstruct A { int32_t x; };\n")
        assert not result.success
        assert isinstance(result.fatal_error, UnexpectedEndOfInputError)
        assert result.model.get_struct("A") is not None
        assert result.model.modules[0].name == "M"

    def test_unterminated_struct(self):
        result = parse_idl("typedef char T;\nstruct A { int32_t x;\n")
        assert not result.success
        assert isinstance(result.fatal_error, UnexpectedEndOfInputError)
        assert [t.name for t in result.model.typedefs] == ["T"]
        assert result.model.structs == []

    def test_missing_struct_name(self):
        result = parse_idl("struct { int32_t x; };")
        assert not result.success
        assert result.fatal_error is not None

    def test_raise_for_error(self):
        with pytest.raises(UnexpectedEndOfInputError):
            parse_idl("module M {").raise_for_error()


# =============================================================================
# Conditional Compilation Through the Pipeline
# =============================================================================

class TestConditionalDeclarations:
    """Tests for declarations selected by #ifdef."""

    SOURCE = (
        "#ifdef FOO\n"
        "struct WithFoo { int32_t x; };\n"
        "#else\n"
        "struct WithoutFoo { int32_t y; };\n"
        "#endif\n"
    )

    def test_defined(self):
        result = parse_idl(self.SOURCE, defines={"FOO": "1"})
        assert [s.name for s in result.model.structs] == ["WithFoo"]

    def test_not_defined(self):
        result = parse_idl(self.SOURCE)
        assert [s.name for s in result.model.structs] == ["WithoutFoo"]


class TestSplitWords:
    """Tests for split_words()."""

    def test_long_long_merged(self):
        assert split_words("@key long long stamp") == ["@key", "long long", "stamp"]

    def test_plain(self):
        assert split_words("  int32_t   x ") == ["int32_t", "x"]
