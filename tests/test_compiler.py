"""
IDL Compiler Pipeline Test Suite
================================

Tests for the front-end pipeline (IdlCompiler, ParseResult), the IDL
generator, the model printer and error/diagnostic formatting.
"""

import pytest

from idlkit import IdlError, ParseFatal, SourceLocation
from idlkit.idl import (
    CompilerOptions,
    IdlCompiler,
    IdlGenerator,
    ModelPrinter,
    parse_idl,
    parse_idl_file,
)
from idlkit.idl.errors import (
    DiagnosticCollector,
    IncludeNotFoundError,
    UNKNOWN_TOKEN,
    UNSUPPORTED_DIRECTIVE,
)
from idlkit.idl.generator import CodeGenerator, variable_to_idl
from idlkit.idl.model import Typedef, Variable
from idlkit.idl.types import builtin_type


SAMPLE = (
    "typedef sequence<int32_t,50> T_SmallInt;\n"
    "module Mod1 {\n"
    "    struct Point {\n"
    "        @key int32_t x;\n"
    "        T_SmallInt values;\n"
    "    };\n"
    "};\n"
)

SAMPLE_IDL = (
    "typedef sequence<int32_t,50> T_SmallInt;\n"
    "module Mod1 {\n"
    "    struct Point {\n"
    "        @key int32_t x;\n"
    "        sequence<int32_t,50> values;\n"
    "    };\n"
    "};\n"
)


# =============================================================================
# Pipeline
# =============================================================================

class TestCompileSource:
    """Tests for IdlCompiler.compile_source()."""

    def test_success(self):
        result = IdlCompiler().compile_source(SAMPLE, "types.idl")
        assert result.success
        assert result.fatal_error is None
        assert result.filename == "types.idl"
        assert result.model.filename == "types.idl"
        assert result.output == ""
        assert "module Mod1" in result.preprocessed_source

    def test_with_generator(self):
        compiler = IdlCompiler(generator=IdlGenerator())
        result = compiler.compile_source(SAMPLE, "types.idl")
        assert result.output == "// Generated from types.idl\n" + SAMPLE_IDL

    def test_diagnostics_collected(self):
        compiler = IdlCompiler()
        result = compiler.compile_source("#if X\ninterface Foo;\n#endif\n")
        assert result.success
        codes = [d.code for d in result.diagnostics]
        assert codes[0] == UNSUPPORTED_DIRECTIVE
        assert UNKNOWN_TOKEN in codes
        assert compiler.diagnostics.codes() == codes

    def test_diagnostics_reset_between_runs(self):
        compiler = IdlCompiler()
        compiler.compile_source("interface Foo;")
        result = compiler.compile_source("struct A { char a; };")
        assert result.diagnostics == []

    def test_strict_mode(self):
        compiler = IdlCompiler(CompilerOptions(strict=True))
        result = compiler.compile_source("interface Foo;\nstruct A { char a; };\n")
        assert not result.success
        assert result.fatal_error is None
        assert result.warnings
        assert result.model.structs[0].name == "A"

    def test_strict_mode_clean_source(self):
        compiler = IdlCompiler(CompilerOptions(strict=True))
        assert compiler.compile_source(SAMPLE).success

    def test_fatal_error_keeps_partial_model(self):
        result = parse_idl("typedef char T;\nstruct A {\n")
        assert not result.success
        assert isinstance(result.fatal_error, ParseFatal)
        assert result.model.typedefs[0].name == "T"

    def test_generator_skipped_on_fatal_error(self):
        compiler = IdlCompiler(generator=IdlGenerator())
        result = compiler.compile_source("module M {")
        assert result.output == ""

    def test_raise_for_error_returns_self(self):
        result = parse_idl(SAMPLE)
        assert result.raise_for_error() is result

    def test_predefined_macros(self):
        result = parse_idl(
            "typedef sequence<char,LEN> T_Name;\n",
            defines={"LEN": "16"},
        )
        assert result.model.typedefs[0].sequence_bound == 16


class TestCompileFile:
    """Tests for file-based compilation and include search."""

    def test_compile_file_with_include(self, tmp_path):
        (tmp_path / "common.idl").write_text("typedef char T_Char;\n")
        main = tmp_path / "main.idl"
        main.write_text('#include "common.idl"\nstruct S { T_Char c; };\n')

        result = IdlCompiler().compile_file(str(main))

        assert result.success
        assert result.model.structs[0].fields[0].type.name == "char"
        assert result.model.typedefs[0].name == "T_Char"

    def test_include_path_option(self, tmp_path):
        inc = tmp_path / "inc"
        inc.mkdir()
        (inc / "shared.idl").write_text("typedef double T_Real;\n")
        src = tmp_path / "src"
        src.mkdir()
        main = src / "main.idl"
        main.write_text("#include <shared.idl>\nstruct S { T_Real r; };\n")

        result = parse_idl_file(str(main), include_paths=[str(inc)])

        assert result.success
        assert result.model.structs[0].fields[0].type.name == "double"

    def test_missing_include_is_fatal(self, tmp_path):
        main = tmp_path / "main.idl"
        main.write_text('#include "nowhere.idl"\n')

        result = IdlCompiler().compile_file(str(main))

        assert not result.success
        assert isinstance(result.fatal_error, IncludeNotFoundError)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            IdlCompiler().compile_file(str(tmp_path / "missing.idl"))


class TestCompilerOptions:
    """Tests for CompilerOptions defaults."""

    def test_defaults(self):
        options = CompilerOptions()
        assert options.include_paths == ["."]
        assert options.defines == {}
        assert options.max_include_depth == 32
        assert not options.strict

    def test_instances_do_not_share_lists(self):
        first = CompilerOptions()
        first.include_paths.append("x")
        assert CompilerOptions().include_paths == ["."]


# =============================================================================
# Generators
# =============================================================================

class TestIdlGenerator:
    """Tests for the canonical IDL generator."""

    def test_sample_without_header(self):
        model = parse_idl(SAMPLE).model
        assert IdlGenerator(header=False).generate(model, "types.idl") == SAMPLE_IDL

    def test_sibling_modules(self):
        model = parse_idl(
            "module A { struct X { char c; }; };\n"
            "module B { struct Y { char c; }; };\n"
        ).model
        output = IdlGenerator(indent="  ", header=False).generate(model, "x.idl")
        assert output == (
            "module A {\n"
            "  struct X {\n"
            "    char c;\n"
            "  };\n"
            "};\n"
            "module B {\n"
            "  struct Y {\n"
            "    char c;\n"
            "  };\n"
            "};\n"
        )

    def test_nested_namespace_shared(self):
        model = parse_idl(
            "module O { module I { typedef char T; struct S { T t; }; }; };"
        ).model
        output = IdlGenerator(indent="  ", header=False).generate(model, "x.idl")
        assert output == (
            "module O {\n"
            "  module I {\n"
            "    typedef char T;\n"
            "    struct S {\n"
            "      char t;\n"
            "    };\n"
            "  };\n"
            "};\n"
        )

    def test_globals_and_user_defines_last(self):
        model = parse_idl("int32_t counter;\nstruct A { char a; };\n").model
        output = IdlGenerator(header=False).generate(model, "x.idl")
        assert output.endswith("};\nint32_t counter;\n")

    def test_unbounded_sequence_typedef(self):
        model = parse_idl("typedef sequence<char> T_Text;").model
        output = IdlGenerator(header=False).generate(model, "x.idl")
        assert output == "typedef sequence<char> T_Text;\n"

    def test_custom_generator(self):
        class StructNames(CodeGenerator):
            def generate(self, model, filename):
                return ",".join(s.name for s in model.structs)

        compiler = IdlCompiler(generator=StructNames())
        result = compiler.compile_source("struct A { char a; }; struct B { char b; };")
        assert result.output == "A,B"


class TestVariableToIdl:
    """Tests for variable_to_idl()."""

    def test_plain(self):
        variable = Variable(
            type=Typedef(kind=builtin_type("int32_t"), name="int32_t"), name="x"
        )
        assert variable_to_idl(variable) == "int32_t x;\n"

    def test_origin_namespace(self):
        variable = Variable(type=Typedef(name="foo_t"), name="f", origin_namespace="Mod1")
        assert variable_to_idl(variable) == "::Mod1::foo_t f;\n"


# =============================================================================
# Model Printer and Error Formatting
# =============================================================================

class TestModelPrinter:
    """Tests for the debug model dump."""

    def test_sample(self):
        model = parse_idl(SAMPLE, filename="types.idl").model
        assert ModelPrinter().print(model) == (
            "model types.idl\n"
            "  module Mod1\n"
            "  typedef T_SmallInt = sequence<int32_t,50>\n"
            "  struct Mod1::Point\n"
            "    @key int32_t x\n"
            "    sequence<int32_t,50> values"
        )

    def test_globals_and_defines(self):
        model = parse_idl("char initial;\n").model
        assert ModelPrinter().print(model).endswith("  var char initial")


class TestErrorFormatting:
    """Tests for IdlError and diagnostic formatting."""

    def test_error_with_location_and_hint(self):
        error = IdlError(
            "unterminated '{' block",
            SourceLocation("types.idl", 3, 5),
            hint="add the missing '}'",
            source_line="struct Foo {",
        )
        assert str(error) == (
            "types.idl:3:5: error: unterminated '{' block\n"
            "    struct Foo {\n"
            "        ^\n"
            "hint: add the missing '}'"
        )

    def test_error_without_location(self):
        assert str(IdlError("boom")) == "error: boom"

    def test_location_formatting(self):
        assert str(SourceLocation("a.idl")) == "a.idl"
        assert str(SourceLocation("a.idl", 4)) == "a.idl:4"

    def test_diagnostic_report(self):
        diagnostics = DiagnosticCollector()
        diagnostics.warning(UNKNOWN_TOKEN, "unknown token 'x'", SourceLocation("a.idl", 2, 1))
        report = diagnostics.report()
        assert report.splitlines() == [
            "a.idl:2:1: warning: unknown token 'x' [unknown-token]",
            "0 errors, 1 warning",
        ]
        assert diagnostics.has_warnings()
        assert not diagnostics.has_errors()
        assert len(diagnostics) == 1
