"""
IDL Front End
=============

This package implements the front end for a subset of OMG IDL: modules,
structs, typedefs (including bounded and unbounded sequences), ``@key``
field annotations and a small preprocessor dialect.

Pipeline
--------
    IDL Source → Preprocessor → Parser (+ TypeRegistry) → IdlModel → Generator

- **scanner**: cursor-advancing primitives over raw text
- **preprocessor**: #include, #define/#undef, #ifdef/#ifndef/#else/#endif,
  #pragma, and word-level macro substitution
- **types / resolver**: identifier hashing, type ids, typedef chains
- **parser**: recursive-descent driver that fills the model
- **generator**: CodeGenerator hook and the canonical IdlGenerator
- **compiler**: the pipeline, returning a ParseResult

Usage
-----
>>> from idlkit.idl import parse_idl
>>> source = '''
... typedef char T_Char;
... typedef T_Char T_Char2;
... struct Sample {
...     @key int32_t id;
...     T_Char2 tag;
... };
... '''
>>> result = parse_idl(source)
>>> [f.type.name for f in result.model.get_struct("Sample").fields]
['int32_t', 'char']

Supported Subset
----------------
- module NAME { ... }
- struct NAME { [@key] [::NS::]TYPE NAME; ... };
- typedef TYPE NAME;
- typedef sequence<TYPE[,N]> NAME;

Not supported: interfaces, unions, enums, bitsets, bitmasks, arrays and
#if expression evaluation.
"""

from idlkit.idl.compiler import (
    CompilerOptions,
    IdlCompiler,
    ParseResult,
    parse_idl,
    parse_idl_file,
)
from idlkit.idl.errors import (
    BufferOverflowError,
    CircularIncludeError,
    Diagnostic,
    DiagnosticCollector,
    IncludeDepthError,
    IncludeError,
    IncludeNotFoundError,
    InvalidNameError,
    PreprocessorError,
    ScannerError,
    Severity,
    UnbalancedConditionalError,
    UnbalancedDelimitersError,
    UnexpectedEndOfInputError,
    UnexpectedSymbolError,
    UnknownDirectiveError,
    UnterminatedConditionalError,
)
from idlkit.idl.generator import CodeGenerator, IdlGenerator, variable_to_idl
from idlkit.idl.model import (
    IdlModel,
    ModelPrinter,
    Module,
    Struct,
    Typedef,
    UserDefine,
    Variable,
)
from idlkit.idl.parser import IdlParser, parse_source
from idlkit.idl.preprocessor import Macro, Preprocessor, minify, preprocess
from idlkit.idl.resolver import TypeRegistry
from idlkit.idl.scanner import Cursor
from idlkit.idl.types import TypeId, TypeKind, identifier_hash, split_namespace

__all__ = [
    # Main API
    "IdlCompiler",
    "CompilerOptions",
    "ParseResult",
    "parse_idl",
    "parse_idl_file",
    # Stages
    "Preprocessor",
    "Macro",
    "minify",
    "preprocess",
    "IdlParser",
    "parse_source",
    "TypeRegistry",
    "Cursor",
    # Generators
    "CodeGenerator",
    "IdlGenerator",
    "variable_to_idl",
    # Model
    "IdlModel",
    "ModelPrinter",
    "Module",
    "Struct",
    "Typedef",
    "UserDefine",
    "Variable",
    "TypeId",
    "TypeKind",
    "identifier_hash",
    "split_namespace",
    # Diagnostics
    "Diagnostic",
    "DiagnosticCollector",
    "Severity",
    # Errors
    "ScannerError",
    "BufferOverflowError",
    "InvalidNameError",
    "UnbalancedDelimitersError",
    "UnexpectedEndOfInputError",
    "UnexpectedSymbolError",
    "PreprocessorError",
    "UnbalancedConditionalError",
    "UnterminatedConditionalError",
    "UnknownDirectiveError",
    "IncludeError",
    "IncludeNotFoundError",
    "CircularIncludeError",
    "IncludeDepthError",
]
