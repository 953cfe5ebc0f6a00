"""
IDL Front-End Error Hierarchy
=============================

This module defines the fatal exceptions raised by the IDL scanner and
preprocessor, and the Diagnostic records used for recoverable problems.

Exception Hierarchy
-------------------
ParseFatal (from idlkit.errors)
├── ScannerError - low-level scanning failures
│   ├── BufferOverflowError - identifier/block exceeded its capacity
│   ├── InvalidNameError - a name was required but not found
│   ├── UnbalancedDelimitersError - closing delimiter without opener
│   ├── UnexpectedEndOfInputError - input ended mid-construct
│   └── UnexpectedSymbolError - a specific symbol was required
└── PreprocessorError - directive processing failures
    ├── UnbalancedConditionalError - #else/#endif without #ifdef
    ├── UnterminatedConditionalError - #ifdef without #endif
    ├── UnknownDirectiveError - unrecognized '#' directive
    └── IncludeError - #include failures
        ├── IncludeNotFoundError - file not found
        ├── CircularIncludeError - file includes itself
        └── IncludeDepthError - nesting limit exceeded

Recoverable Diagnostics
-----------------------
Unknown tokens, unknown typedef forms, unresolved types and unsupported
directives do not abort a parse. They are recorded as Diagnostic entries
in a DiagnosticCollector and mirrored to the logging system.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List

from idlkit.errors import ParseFatal, SourceLocation


logger = logging.getLogger(__name__)


# =============================================================================
# Scanner Errors
# =============================================================================

class ScannerError(ParseFatal):
    """Base class for failures inside a scanning primitive."""
    pass


class BufferOverflowError(ScannerError):
    """
    Destination capacity exhausted.

    Raised when an identifier, number, token or block is longer than the
    capacity the caller allowed for it.
    """

    def __init__(
        self,
        primitive: str,
        size: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.primitive = primitive
        self.size = size
        super().__init__(
            f"{primitive}: buffer overflow (capacity {size})",
            location=location,
            source_line=source_line,
        )


class InvalidNameError(ScannerError):
    """
    A name was required but the next character cannot start one.

    Names start with a letter, '_' or ':'.
    """

    def __init__(
        self,
        found: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        super().__init__(
            f"bad name starting with '{found}'",
            location=location,
            hint="names start with a letter, '_' or ':'",
            source_line=source_line,
        )


class UnbalancedDelimitersError(ScannerError):
    """A closing delimiter appeared with no matching opener."""

    def __init__(
        self,
        opening: str,
        closing: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.opening = opening
        self.closing = closing
        super().__init__(
            f"unbalanced '{opening}' and '{closing}' symbols",
            location=location,
            source_line=source_line,
        )


class UnexpectedEndOfInputError(ScannerError):
    """Input ended where more text was mandatory."""

    def __init__(
        self,
        expected: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        super().__init__(
            f"unexpected end of input, expecting {expected}",
            location=location,
            source_line=source_line,
        )


class UnexpectedSymbolError(ScannerError):
    """The next symbol is not the one (or one of those) required."""

    def __init__(
        self,
        found: str,
        expected: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected
        super().__init__(
            f"bad '{found}' symbol",
            location=location,
            hint=f"expecting {expected}",
            source_line=source_line,
        )


# =============================================================================
# Preprocessor Errors
# =============================================================================

class PreprocessorError(ParseFatal):
    """Error while processing a '#' directive."""
    pass


class UnbalancedConditionalError(PreprocessorError):
    """#else or #endif with no open #ifdef/#ifndef."""

    def __init__(
        self,
        directive: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.directive = directive
        super().__init__(
            f"#{directive} without matching #ifdef or #ifndef",
            location=location,
            source_line=source_line,
        )


class UnterminatedConditionalError(PreprocessorError):
    """End of input reached with conditional blocks still open."""

    def __init__(
        self,
        depth: int,
        location: Optional[SourceLocation] = None,
    ):
        self.depth = depth
        super().__init__(
            f"unterminated #ifdef/#ifndef ({depth} block(s) still open)",
            location=location,
            hint="add the missing #endif",
        )


class UnknownDirectiveError(PreprocessorError):
    """A '#' directive the preprocessor does not know."""

    def __init__(
        self,
        directive: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.directive = directive
        super().__init__(
            f"unknown preprocessor directive '#{directive}'",
            location=location,
            source_line=source_line,
        )


class IncludeError(PreprocessorError):
    """
    Error including a file.

    Attributes:
        included_filename: The name written in the #include directive
        reason: Short reason text
        search_paths: Candidate paths that were tried
    """

    def __init__(
        self,
        filename: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        search_paths: Optional[List[str]] = None,
    ):
        self.included_filename = filename
        self.reason = reason
        self.search_paths = search_paths or []

        hint = None
        if self.search_paths:
            hint = f"searched: {', '.join(self.search_paths)}"

        super().__init__(
            f"cannot include '{filename}': {reason}",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class IncludeNotFoundError(IncludeError):
    """No candidate path for an #include target exists."""

    def __init__(
        self,
        filename: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        search_paths: Optional[List[str]] = None,
    ):
        super().__init__(
            filename,
            "file not found",
            location=location,
            source_line=source_line,
            search_paths=search_paths,
        )


class CircularIncludeError(IncludeError):
    """A file includes itself, directly or through other files."""

    def __init__(
        self,
        filename: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(
            filename,
            "circular include detected",
            location=location,
            source_line=source_line,
        )


class IncludeDepthError(IncludeError):
    """#include nesting exceeded the configured maximum depth."""

    def __init__(
        self,
        filename: str,
        max_depth: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.max_depth = max_depth
        super().__init__(
            filename,
            f"include nesting deeper than {max_depth}",
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Recoverable Diagnostics
# =============================================================================

class Severity(Enum):
    """Severity of a collected diagnostic."""
    DEBUG = "debug"
    WARNING = "warning"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


# Diagnostic codes used across the front end
UNKNOWN_SYMBOL = "unknown-symbol"
UNKNOWN_TOKEN = "unknown-token"
UNKNOWN_TYPEDEF_FORM = "unknown-typedef-form"
UNKNOWN_FIELD_FORM = "unknown-field-form"
UNRESOLVED_TYPE = "unresolved-type"
UNSUPPORTED_DIRECTIVE = "unsupported-directive"
HASH_COLLISION = "hash-collision"
TRAILING_INPUT = "trailing-input"


@dataclass(frozen=True)
class Diagnostic:
    """
    A recoverable problem found while preprocessing or parsing.

    Attributes:
        severity: How serious the problem is
        code: Stable machine-readable identifier (e.g. "unknown-token")
        message: Human-readable description
        location: Where it happened, if known
    """
    severity: Severity
    code: str
    message: str
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        prefix = f"{self.location}: " if self.location else ""
        return f"{prefix}{self.severity}: {self.message} [{self.code}]"


class DiagnosticCollector:
    """
    Collects recoverable diagnostics for batch reporting.

    The preprocessor, parser and type registry share one collector so the
    caller gets every problem from a single pass. Each entry is also
    logged through this module's logger.

    Example:
        diagnostics = DiagnosticCollector()
        diagnostics.warning(UNKNOWN_TOKEN, "unknown token 'interface'")
        if diagnostics.has_warnings():
            print(diagnostics.report())
    """

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic and mirror it to the log."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity is Severity.ERROR:
            logger.error(str(diagnostic))
        elif diagnostic.severity is Severity.WARNING:
            logger.warning(str(diagnostic))
        else:
            logger.debug(str(diagnostic))

    def warning(
        self,
        code: str,
        message: str,
        location: Optional[SourceLocation] = None,
    ) -> None:
        """Record a warning."""
        self.add(Diagnostic(Severity.WARNING, code, message, location))

    def error(
        self,
        code: str,
        message: str,
        location: Optional[SourceLocation] = None,
    ) -> None:
        """Record a non-fatal error."""
        self.add(Diagnostic(Severity.ERROR, code, message, location))

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    def has_warnings(self) -> bool:
        return any(d.severity is Severity.WARNING for d in self.diagnostics)

    def has_errors(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.diagnostics)

    def codes(self) -> List[str]:
        """Return the codes of all collected diagnostics, in order."""
        return [d.code for d in self.diagnostics]

    def report(self) -> str:
        """Format all diagnostics and a summary line for display."""
        lines = [str(d) for d in self.diagnostics]

        error_count = len(self.errors)
        warning_count = len(self.warnings)
        error_word = "error" if error_count == 1 else "errors"
        warning_word = "warning" if warning_count == 1 else "warnings"
        lines.append(f"{error_count} {error_word}, {warning_count} {warning_word}")

        return "\n".join(lines)

    def clear(self) -> None:
        self.diagnostics.clear()

    def __len__(self) -> int:
        return len(self.diagnostics)
