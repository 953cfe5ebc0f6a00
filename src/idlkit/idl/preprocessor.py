"""
IDL Preprocessor
================

This module implements the text-level macro preprocessor that runs
before the declaration parser. It works in two phases:

1. **Minification** strips ``//`` and ``/* */`` comments (string
   literals are left untouched), drops carriage returns, turns tabs
   into spaces and collapses runs of spaces and blank lines.
2. **Directive processing** is a single left-to-right scan that keeps a
   stack of conditional-compilation states and performs word-level macro
   substitution on the text it emits.

Supported Directives
--------------------
#ifdef NAME             - push "NAME is defined"
#ifndef NAME            - push "NAME is not defined"
#else                   - negate the innermost condition
#endif                  - pop the innermost condition
#if / #elif             - unsupported: warning, rest of line ignored
#define NAME [VALUE]    - define (or redefine) a macro
#undef NAME             - remove a macro
#pragma NAME VALUE      - recorded, no semantic effect
#include "file"         - splice in the preprocessed file
#include <file>         - same as the quoted form

Directives only take effect when every condition on the stack is true.
Text in inactive regions is dropped.

Macro Substitution
------------------
Whenever a delimiter character is emitted, the bare word just before it
is looked up in the macro table (exact match). A macro with a value
replaces the word; a macro whose value is empty or "0" deletes it, which
supports conditional-inclusion idioms. String literals and character
literals are copied verbatim.

Predefined Macros
-----------------
__FILE__    - "filename:line" of the text being scanned
__LINE__    - zero-based line counter of the text being scanned

Both are refreshed before every emitted character.

Example
-------
>>> from idlkit.idl.preprocessor import preprocess
>>> print(preprocess("#define SIZE 50\\ntypedef sequence<char,SIZE> T;"))
<BLANKLINE>
typedef sequence<char,50> T;
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from idlkit.errors import SourceLocation
from idlkit.idl.errors import (
    CircularIncludeError,
    DiagnosticCollector,
    IncludeDepthError,
    IncludeError,
    IncludeNotFoundError,
    UNSUPPORTED_DIRECTIVE,
    UnbalancedConditionalError,
    UnknownDirectiveError,
    UnterminatedConditionalError,
)
from idlkit.idl.scanner import (
    get_symbol,
    line_at,
    read_block,
    read_name,
    read_token,
)


logger = logging.getLogger(__name__)


# Characters that end a word for macro substitution
DELIMITERS = frozenset(" \n,.=:;()[]{}<>+-*/%!&|^\"'")

DEFAULT_MAX_INCLUDE_DEPTH = 32


@dataclass
class Macro:
    """
    A preprocessor macro.

    Attributes:
        name: Macro name
        value: Replacement text (may be empty)
        location: Where the macro was defined, if known
    """
    name: str
    value: str = ""
    location: Optional[SourceLocation] = None

    @property
    def deletes_word(self) -> bool:
        """True when substitution removes the word instead of replacing it."""
        return self.value == "" or self.value == "0"


@dataclass
class Pragma:
    """A '#pragma NAME VALUE' line, kept for generators that want it."""
    name: str
    value: str
    location: Optional[SourceLocation] = None


# =============================================================================
# Minification
# =============================================================================

def minify(code: str) -> str:
    """
    Strip comments and normalize whitespace.

    - ``//`` comments are removed up to (not including) the newline
    - ``/* */`` comments are removed entirely
    - string literals are copied unchanged
    - ``\\r`` is dropped and ``\\t`` becomes a space
    - a space following a space, or a newline following a newline, is
      dropped

    The result is stable: minify(minify(x)) == minify(x).
    """
    out: list[str] = []
    i = 0
    n = len(code)

    while i < n:
        ch = code[i]
        if code.startswith("//", i):
            end = code.find("\n", i)
            i = n if end < 0 else end
        elif code.startswith("/*", i):
            end = code.find("*/", i + 2)
            i = n if end < 0 else end + 2
        elif ch == '"':
            out.append(ch)
            i += 1
            while i < n and (code[i] != '"' or code[i - 1] == "\\"):
                out.append(code[i])
                i += 1
            if i < n:
                out.append(code[i])
                i += 1
        elif ch == "\r":
            i += 1
        elif ch in " \t":
            if not out or out[-1] != " ":
                out.append(" ")
            i += 1
        elif ch == "\n":
            if not out or out[-1] != "\n":
                out.append("\n")
            i += 1
        else:
            out.append(ch)
            i += 1

    return "".join(out)


# =============================================================================
# Preprocessor
# =============================================================================

class Preprocessor:
    """
    Macro preprocessor for IDL source.

    One instance processes one file. Included files are handled by child
    instances that share the macro table, pragma list and diagnostics,
    so a macro defined in a header is visible after the #include.

    Attributes:
        source: Original source text
        filename: Source filename for error reporting and __FILE__
        include_paths: Extra directories searched for #include targets
        macros: Macro table in definition order
        pragmas: Every #pragma seen (including in included files)
        included_files: Resolved paths of every file included
        diagnostics: Collector for warnings (unsupported directives)
    """

    def __init__(
        self,
        source: str,
        filename: str = "<input>",
        include_paths: Optional[list[str]] = None,
        defines: Optional[dict[str, str]] = None,
        max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
        diagnostics: Optional[DiagnosticCollector] = None,
    ):
        self.source = source
        self.filename = filename
        self.include_paths = include_paths or []
        self.max_include_depth = max_include_depth
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()

        self.macros: dict[str, Macro] = {}
        self.pragmas: list[Pragma] = []
        self.included_files: list[str] = []

        # Include chain of resolved paths, outermost first
        self._include_stack: list[str] = [self._resolved(filename)]

        for name, value in (defines or {}).items():
            self.define(name, value)

        # Per-pass state
        self._text = ""
        self._line = 0

    # =========================================================================
    # Macro Table
    # =========================================================================

    def define(self, name: str, value: str = "", location: Optional[SourceLocation] = None) -> None:
        self.macros[name] = Macro(name, value, location)

    def undef(self, name: str) -> None:
        self.macros.pop(name, None)

    def is_defined(self, name: str) -> bool:
        return name in self.macros

    @property
    def defines(self) -> dict[str, str]:
        """Macro names mapped to their values, in definition order."""
        return {name: macro.value for name, macro in self.macros.items()}

    # =========================================================================
    # Processing
    # =========================================================================

    def process(self) -> str:
        """
        Preprocess the source and return the expanded text.

        Raises:
            UnbalancedConditionalError: #else/#endif with nothing open
            UnterminatedConditionalError: conditions still open at the end
            UnknownDirectiveError: unrecognized directive in active text
            IncludeError: #include target missing, circular or too deep
            ScannerError: malformed directive arguments
        """
        logger.debug(f"Preprocessing {self.filename}")

        text = minify(self.source)
        self._text = text
        self._line = 0

        out: list[str] = []
        stack: list[bool] = []
        pos = 0
        n = len(text)

        while pos < n:
            ch = text[pos]
            if ch == "\n":
                self._line += 1

            if ch == "#":
                pos = self._process_directive(pos, out, stack)
                continue

            self.define("__FILE__", f'"{self.filename}:{self._line}"')
            self.define("__LINE__", str(self._line))

            if not all(stack):
                pos += 1
                continue

            if text.startswith("'\\", pos) and pos + 3 < n and text[pos + 3] == "'":
                out.extend(text[pos:pos + 4])
                pos += 4
            elif ch == "'" and pos + 2 < n and text[pos + 2] == "'":
                out.extend(text[pos:pos + 3])
                pos += 3
            else:
                out.append(ch)
                pos += 1
                if ch in DELIMITERS:
                    self._substitute(out)
                if ch == '"':
                    pos = self._copy_string(pos, out)

        if stack:
            raise UnterminatedConditionalError(len(stack), self._location())

        return "".join(out)

    def _copy_string(self, pos: int, out: list[str]) -> int:
        """Copy a string literal body and closing quote verbatim."""
        text = self._text
        n = len(text)
        while pos < n and (text[pos] != '"' or text[pos - 1] == "\\"):
            out.append(text[pos])
            pos += 1
        if pos < n:
            out.append(text[pos])
            pos += 1
        return pos

    def _substitute(self, out: list[str]) -> None:
        """
        Replace the bare word before the delimiter just emitted.

        ``out[-1]`` is the delimiter. The word runs back to the previous
        delimiter; on an exact macro-name match it is replaced by the
        macro value, or deleted when the value is empty or "0".
        """
        end = len(out) - 1
        start = end
        while start > 0 and out[start - 1] not in DELIMITERS:
            start -= 1
        if start >= end:
            return

        macro = self.macros.get("".join(out[start:end]))
        if macro is None:
            return

        if macro.deletes_word:
            del out[start:end]
        else:
            out[start:end] = macro.value

    # =========================================================================
    # Directives
    # =========================================================================

    def _process_directive(self, pos: int, out: list[str], stack: list[bool]) -> int:
        """
        Process the directive starting at the '#' at ``pos``.

        Returns the position of the end of the directive line (the newline
        itself is left for the main loop so line counting stays exact).
        """
        text = self._text
        directive_pos = pos
        pos += 1
        consumed, directive = read_token(text, pos, filename=self.filename)
        pos += consumed
        active = all(stack)

        if directive == "ifdef":
            consumed, name = read_name(text, pos, filename=self.filename)
            stack.append(self.is_defined(name))
            pos += consumed

        elif directive == "ifndef":
            consumed, name = read_name(text, pos, filename=self.filename)
            stack.append(not self.is_defined(name))
            pos += consumed

        elif directive == "else":
            if not stack:
                raise UnbalancedConditionalError("else", *self._context(directive_pos))
            stack[-1] = not stack[-1]

        elif directive == "endif":
            if not stack:
                raise UnbalancedConditionalError("endif", *self._context(directive_pos))
            stack.pop()

        elif directive in ("if", "elif"):
            self.diagnostics.warning(
                UNSUPPORTED_DIRECTIVE,
                f"directive '#{directive}' is not supported, treated as true",
                self._location(directive_pos),
            )
            if directive == "if":
                stack.append(True)

        elif directive == "define":
            consumed, name = read_name(text, pos, filename=self.filename)
            pos += consumed
            pos, value = self._read_rest_of_line(pos)
            if active:
                self.define(name, value, self._location(directive_pos))
                logger.debug(f"#define {name} '{value}'")

        elif directive == "undef":
            consumed, name = read_name(text, pos, filename=self.filename)
            pos += consumed
            if active:
                self.undef(name)

        elif directive == "pragma":
            consumed, name = read_name(text, pos, filename=self.filename)
            pos += consumed
            pos, value = self._read_rest_of_line(pos)
            if active:
                self.pragmas.append(Pragma(name, value, self._location(directive_pos)))
                if name == "keylist":
                    logger.debug(f"#pragma keylist '{value}' acknowledged, not interpreted")

        elif directive == "include":
            # arguments in an inactive region are never read
            if active:
                symbol = get_symbol(text, pos, '"<', filename=self.filename)
                closing = '"' if symbol == '"' else ">"
                consumed, name = read_block(text, pos, symbol, closing, filename=self.filename)
                pos += consumed
                out.extend(self._include(name, directive_pos))

        elif active:
            raise UnknownDirectiveError(directive, *self._context(directive_pos))

        return self._end_of_line(pos)

    def _read_rest_of_line(self, pos: int) -> tuple[int, str]:
        """Read a directive value up to the end of the line (may be empty)."""
        text = self._text
        if pos >= len(text) or text[pos] == "\n":
            return pos, ""
        consumed, value = read_block(text, pos, None, "\n", filename=self.filename)
        pos += consumed
        if text[pos - 1] == "\n":
            pos -= 1
        return pos, value.strip()

    def _end_of_line(self, pos: int) -> int:
        end = self._text.find("\n", pos)
        return len(self._text) if end < 0 else end

    # =========================================================================
    # Includes
    # =========================================================================

    def _include(self, name: str, directive_pos: int) -> str:
        """Find, preprocess and return the text of an included file."""
        location, source_line = self._context(directive_pos)

        candidates = [Path(name)]
        if self.filename and not self.filename.startswith("<"):
            candidates.append(Path(self.filename).parent / name)
        candidates.extend(Path(p) / name for p in self.include_paths)

        path = next((c for c in candidates if c.is_file()), None)
        if path is None:
            raise IncludeNotFoundError(
                name,
                location,
                source_line,
                search_paths=[str(c) for c in candidates],
            )

        resolved = self._resolved(str(path))
        if resolved in self._include_stack:
            raise CircularIncludeError(name, location, source_line)
        if len(self._include_stack) > self.max_include_depth:
            raise IncludeDepthError(name, self.max_include_depth, location, source_line)

        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            raise IncludeError(name, str(e), location, source_line)

        logger.debug(f"Including {path} from {self.filename}")
        self.included_files.append(resolved)

        child = Preprocessor(
            source,
            str(path),
            self.include_paths,
            max_include_depth=self.max_include_depth,
            diagnostics=self.diagnostics,
        )
        child.macros = self.macros
        child.pragmas = self.pragmas
        child.included_files = self.included_files
        child._include_stack = self._include_stack + [resolved]
        return child.process()

    @staticmethod
    def _resolved(filename: str) -> str:
        if filename.startswith("<"):
            return filename
        return str(Path(filename).resolve())

    # =========================================================================
    # Locations
    # =========================================================================

    def _location(self, pos: Optional[int] = None) -> SourceLocation:
        # Lines are reported 1-based against the minified text
        return SourceLocation(self.filename, self._line + 1)

    def _context(self, pos: int) -> tuple[SourceLocation, str]:
        return self._location(pos), line_at(self._text, pos)


# =============================================================================
# Convenience Function
# =============================================================================

def preprocess(
    source: str,
    filename: str = "<input>",
    include_paths: Optional[list[str]] = None,
    defines: Optional[dict[str, str]] = None,
) -> str:
    """
    Preprocess IDL source.

    Args:
        source: Source text
        filename: Source filename for error reporting
        include_paths: Extra directories to search for includes
        defines: Predefined macros

    Returns:
        Preprocessed text
    """
    return Preprocessor(source, filename, include_paths, defines).process()
