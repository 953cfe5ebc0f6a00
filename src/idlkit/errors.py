"""
idlkit Error Hierarchy
======================

This module defines the root of the exception hierarchy for idlkit.
All exceptions inherit from IdlError, allowing callers to catch every
toolkit error with a single except clause if desired.

Exception Hierarchy
-------------------
IdlError (base)
└── ParseFatal (abort processing of the current file)
    ├── scanner errors (see idlkit.idl.errors)
    └── preprocessor errors (see idlkit.idl.errors)

Recoverable problems are not exceptions: they are collected as
Diagnostic records (see idlkit.idl.errors) and parsing continues.

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in IDL source for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed, 0 when unknown)
        column: Column number (1-indexed, 0 when unknown)
    """
    filename: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        """Format as 'filename:line:column', dropping unknown parts."""
        if self.line <= 0:
            return self.filename
        if self.column <= 0:
            return f"{self.filename}:{self.line}"
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Base Exception Class
# =============================================================================

class IdlError(Exception):
    """
    Base exception for all idlkit errors.

    Provides source location tracking, the offending source fragment,
    and an optional hint:

        try:
            IdlCompiler().compile_file("types.idl").raise_for_error()
        except IdlError as e:
            print(f"Error: {e}")

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The source fragment at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            types.idl:12:1: error: unterminated '{' block
                struct Foo { int a;
            hint: add the missing '}'
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line:
            parts.append(f"    {self.source_line}")
            if self.location is not None and self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class ParseFatal(IdlError):
    """
    Fatal parse condition.

    Raised for structural problems the engine does not try to recover
    from: unbalanced delimiters, exhausted buffers, missing mandatory
    names, unterminated conditionals and unresolved includes. The
    current file's processing stops; whatever model was built so far is
    kept by the caller.
    """
    pass
