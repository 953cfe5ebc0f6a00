"""
IDL Compiler Main Module
========================

This module provides the main front-end interface. It runs the whole
pipeline for one source file:

    Source → Preprocess → Parse → Model → Generate

Usage
-----
Command line:
    $ idlc types.idl -o types.out.idl

Programmatic:
    >>> from idlkit.idl import parse_idl
    >>> result = parse_idl("typedef sequence<char> T_Char_v;")
    >>> result.model.typedefs[0].sequence_bound
    0

Error Handling
--------------
compile_source() never raises ParseFatal. A fatal condition ends the
pipeline and is stored in ParseResult.fatal_error together with the
partial model built before it. Recoverable problems are collected as
diagnostics. Callers that prefer exceptions call raise_for_error().
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from idlkit.errors import ParseFatal
from idlkit.idl.errors import Diagnostic, DiagnosticCollector, Severity
from idlkit.idl.generator import CodeGenerator
from idlkit.idl.model import IdlModel
from idlkit.idl.parser import IdlParser
from idlkit.idl.preprocessor import DEFAULT_MAX_INCLUDE_DEPTH, Preprocessor


logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    """
    Front-end configuration options.

    Attributes:
        include_paths: Directories to search for #include files
        defines: Predefined macros (name -> value)
        max_include_depth: Deepest allowed #include nesting
        strict: Treat any warning as a failed result
    """
    include_paths: list[str] = None
    defines: dict[str, str] = None
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    strict: bool = False

    def __post_init__(self):
        if self.include_paths is None:
            self.include_paths = ["."]
        if self.defines is None:
            self.defines = {}


@dataclass
class ParseResult:
    """
    Result of running the front end on one file.

    Attributes:
        filename: Source filename
        success: True when no fatal error occurred (and, in strict mode,
            no warning was reported)
        model: The parsed model, partial when a fatal error occurred
        fatal_error: The error that stopped processing, if any
        diagnostics: Recoverable problems, in the order found
        preprocessed_source: Text after preprocessing
        output: Generator output (empty without a generator)
    """
    filename: str = ""
    success: bool = False
    model: IdlModel = field(default_factory=IdlModel)
    fatal_error: Optional[ParseFatal] = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    preprocessed_source: str = ""
    output: str = ""

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    def raise_for_error(self) -> "ParseResult":
        """Re-raise the fatal error, if any; return self otherwise."""
        if self.fatal_error is not None:
            raise self.fatal_error
        return self


class IdlCompiler:
    """
    IDL front end: preprocessor, parser and an optional generator.

    Example:
        compiler = IdlCompiler(generator=IdlGenerator())
        result = compiler.compile_file("types.idl")
        if result.success:
            print(result.output)

    Attributes:
        options: Front-end configuration
        generator: Run on the model when parsing succeeds (optional)
    """

    def __init__(
        self,
        options: Optional[CompilerOptions] = None,
        generator: Optional[CodeGenerator] = None,
    ):
        self.options = options or CompilerOptions()
        self.generator = generator
        self._diagnostics = DiagnosticCollector()

    def compile_source(self, source: str, filename: str = "<input>") -> ParseResult:
        """
        Run the front end on source text.

        Args:
            source: IDL source text
            filename: Source filename for diagnostics and __FILE__

        Returns:
            ParseResult with the model, diagnostics and any fatal error
        """
        self._diagnostics.clear()
        result = ParseResult(filename=filename, model=IdlModel(filename=filename))

        try:
            # Stage 1: Preprocessing
            preprocessor = Preprocessor(
                source,
                filename,
                self.options.include_paths,
                self.options.defines,
                self.options.max_include_depth,
                self._diagnostics,
            )
            result.preprocessed_source = preprocessor.process()

            # Stage 2: Parsing
            parser = IdlParser(
                macros=preprocessor.macros,
                diagnostics=self._diagnostics,
                filename=filename,
            )
            result.model = parser.model
            parser.parse(result.preprocessed_source)

            # Stage 3: Generation
            if self.generator is not None:
                result.output = self.generator.generate(result.model, filename)

            result.success = True

        except ParseFatal as e:
            logger.debug(f"Fatal error in {filename}: {e.message}")
            result.fatal_error = e
            result.success = False

        result.diagnostics = list(self._diagnostics.diagnostics)
        if self.options.strict and result.warnings:
            result.success = False

        return result

    def compile_file(self, filepath: str) -> ParseResult:
        """
        Run the front end on a file.

        The file's directory is searched first for #include targets.

        Raises:
            FileNotFoundError: If the source file does not exist
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding="utf-8")

        source_dir = str(path.parent)
        if source_dir not in self.options.include_paths:
            self.options.include_paths.insert(0, source_dir)

        return self.compile_source(source, filepath)

    @property
    def diagnostics(self) -> DiagnosticCollector:
        """Diagnostics of the most recent compilation."""
        return self._diagnostics


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_idl(
    source: str,
    filename: str = "<input>",
    include_paths: Optional[list[str]] = None,
    defines: Optional[dict[str, str]] = None,
) -> ParseResult:
    """
    Preprocess and parse IDL source text.

    Args:
        source: IDL source text
        filename: Source filename for diagnostics
        include_paths: Directories to search for includes
        defines: Predefined macros

    Returns:
        ParseResult for the source
    """
    options = CompilerOptions(include_paths=include_paths, defines=defines)
    return IdlCompiler(options).compile_source(source, filename)


def parse_idl_file(
    filepath: str,
    include_paths: Optional[list[str]] = None,
    defines: Optional[dict[str, str]] = None,
) -> ParseResult:
    """Preprocess and parse an IDL file (see parse_idl)."""
    options = CompilerOptions(include_paths=include_paths, defines=defines)
    return IdlCompiler(options).compile_file(filepath)
