"""
idlkit - OMG IDL Subset Front End
=================================

This package parses a subset of OMG IDL into an in-memory model that
code generators turn into target-language declarations.

Main Components
---------------
- **idl**: the front end (scanner, preprocessor, type resolver, parser,
  model and generators)
- **cli**: the ``idlc`` command-line tool

Quick Start
-----------
Parse a file and inspect its structs:
    >>> from idlkit import IdlCompiler
    >>> result = IdlCompiler().compile_file("types.idl")
    >>> for struct in result.model.structs:
    ...     print(struct.qualified_name, [f.name for f in struct.key_fields])

Re-emit canonical IDL:
    >>> from idlkit import IdlCompiler, IdlGenerator
    >>> result = IdlCompiler(generator=IdlGenerator()).compile_file("types.idl")
    >>> print(result.output)

Or use the command-line tool:
    $ idlc types.idl -I include/ -D USE_KEYS
    $ idlc types.idl --model

Version History
---------------
1.0.0 - Initial release
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from idlkit.errors import IdlError, ParseFatal, SourceLocation
from idlkit.idl import (
    CodeGenerator,
    CompilerOptions,
    IdlCompiler,
    IdlGenerator,
    IdlModel,
    ParseResult,
    parse_idl,
    parse_idl_file,
)

__all__ = [
    "__version__",
    "IdlError",
    "ParseFatal",
    "SourceLocation",
    "CodeGenerator",
    "CompilerOptions",
    "IdlCompiler",
    "IdlGenerator",
    "IdlModel",
    "ParseResult",
    "parse_idl",
    "parse_idl_file",
]
