"""
IDL Declaration Parser
======================

This module implements the recursive-descent driver that walks
preprocessed IDL text and populates an IdlModel. There is no separate
token stream: the parser works directly on a Cursor and uses the
scanner primitives to read names, tokens and balanced blocks.

Grammar (Informal)
------------------
scope       ::= (';' | '{' scope '}' | declaration)*
declaration ::= 'module' IDENT '{' scope '}'
              | 'struct' IDENT '{' field* '}' ';'?
              | 'typedef' TYPE IDENT ';'
              | 'typedef' 'sequence' '<' TYPE (',' N)? '>' IDENT ';'
              | TYPE IDENT ';'
              | MACRO '(' ... ')' ';'
field       ::= '@key'? ('::' NS '::')? TYPE IDENT ';'

Recovery
--------
Structural problems (unbalanced braces, an unterminated scope, a
missing mandatory name) raise ParseFatal and stop the parse. Everything
else is reported as a Diagnostic and the offending construct is skipped
or stored with best-effort fields:

| Situation                               | Diagnostic code       |
|-----------------------------------------|-----------------------|
| character that cannot start a statement | unknown-symbol        |
| identifier that is not a type/keyword   | unknown-token         |
| typedef that is neither alias nor seq   | unknown-typedef-form  |
| field that is not [@key] type name      | unknown-field-form    |
| '}' with no open scope                  | trailing-input        |

Namespaces
----------
Entering ``module Name { ... }`` pushes Name onto a namespace stack;
leaving it pops. Structs and typedefs record the joined stack
(``Outer::Inner``) as their namespace.

Example
-------
>>> from idlkit.idl.parser import parse_source
>>> model = parse_source("module M { struct P { @key int32_t id; }; };")
>>> model.structs[0].qualified_name
'M::P'
"""

import logging
import re
from typing import Optional

from idlkit.errors import SourceLocation
from idlkit.idl.errors import (
    DiagnosticCollector,
    TRAILING_INPUT,
    UNKNOWN_FIELD_FORM,
    UNKNOWN_SYMBOL,
    UNKNOWN_TOKEN,
    UNKNOWN_TYPEDEF_FORM,
    UnexpectedEndOfInputError,
)
from idlkit.idl.model import (
    IdlModel,
    Module,
    Struct,
    Typedef,
    UNBOUNDED,
    UserDefine,
    Variable,
)
from idlkit.idl.resolver import TypeRegistry
from idlkit.idl.scanner import Cursor, NAME_START_CHARS
from idlkit.idl.types import (
    MODULE_KEYWORD,
    SEQUENCE_TYPE,
    STRUCT_KEYWORD,
    TYPEDEF_KEYWORD,
    identifier_hash,
    join_namespace,
    split_namespace,
)


logger = logging.getLogger(__name__)


KEY_ANNOTATION = "@key"

# sequence<elem> or sequence<elem,N>; elem may be "long long" or ns-qualified
SEQUENCE_PATTERN = re.compile(
    r"^sequence\s*<\s*(?P<element>[A-Za-z_:][\w:]*(?:\s+[A-Za-z_][\w]*)?)\s*"
    r"(?:,\s*(?P<bound>\w+)\s*)?>\s*(?P<name>[A-Za-z_][\w]*)$"
)


def split_words(statement: str) -> list[str]:
    """
    Split a statement on whitespace, keeping 'long long' as one word.

    >>> split_words("@key long long stamp")
    ['@key', 'long long', 'stamp']
    """
    words: list[str] = []
    for word in statement.split():
        if word == "long" and words and words[-1] == "long":
            words[-1] = "long long"
        else:
            words.append(word)
    return words


class IdlParser:
    """
    Recursive-descent parser for preprocessed IDL.

    One parser handles one source file. Its registry and model are
    appended to for the whole parse; run a new parser per file.

    Attributes:
        registry: Typedef/struct tables used to classify identifiers
        macros: Names of macros still defined after preprocessing; a
            statement starting with one is kept as a UserDefine
        diagnostics: Collector for recoverable problems
        filename: Source filename for locations
        model: The model being built
    """

    def __init__(
        self,
        registry: Optional[TypeRegistry] = None,
        macros: Optional[dict] = None,
        diagnostics: Optional[DiagnosticCollector] = None,
        filename: str = "<input>",
    ):
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self.registry = registry if registry is not None else TypeRegistry(self.diagnostics)
        self.macros = macros if macros is not None else {}
        self.filename = filename
        self.model = IdlModel(filename=filename)

        self._namespaces: list[str] = []
        self._location: Optional[SourceLocation] = None

    @property
    def namespace(self) -> str:
        """The current namespace (joined module stack)."""
        return join_namespace(*self._namespaces)

    def parse(self, text: str) -> IdlModel:
        """
        Parse preprocessed text into the model.

        Args:
            text: Preprocessed IDL source

        Returns:
            The populated IdlModel (also available as ``self.model``)

        Raises:
            ParseFatal: On structural errors; ``self.model`` keeps
                everything parsed before the error
        """
        logger.debug(f"Parsing {self.filename}")
        self.parse_scope(Cursor(text, filename=self.filename))
        logger.debug(
            f"Parsed {len(self.model.structs)} struct(s), "
            f"{len(self.model.typedefs)} typedef(s), "
            f"{len(self.model.modules)} module(s)"
        )
        return self.model

    # =========================================================================
    # Scopes
    # =========================================================================

    def parse_scope(self, cursor: Cursor, depth: int = 0) -> None:
        """
        Parse declarations until the scope's closing '}' or end of input.

        Args:
            cursor: Position in the text, advanced past the scope
            depth: Nesting level (0 for the file itself)

        Raises:
            UnexpectedEndOfInputError: A nested scope is never closed
        """
        while True:
            cursor.skip_spaces()

            if cursor.at_end:
                if depth > 0:
                    raise UnexpectedEndOfInputError(
                        "'}'",
                        location=cursor.location(),
                        source_line=cursor.current_line(),
                    )
                return

            ch = cursor.peek()
            if ch == ";":
                cursor.advance()
                continue
            if ch == "{":
                cursor.advance()
                self.parse_scope(cursor, depth + 1)
                continue
            if ch == "}":
                cursor.advance()
                if depth == 0:
                    self.diagnostics.warning(
                        TRAILING_INPUT,
                        "'}' without an open scope, rest of input ignored",
                        cursor.location(),
                    )
                return

            if ch not in NAME_START_CHARS:
                self.diagnostics.warning(
                    UNKNOWN_SYMBOL, f"unexpected symbol '{ch}'", cursor.location()
                )
                cursor.advance()
                continue

            self._location = cursor.location()
            token = cursor.read_token()
            if not token:
                return
            self._parse_declaration(cursor, token, depth)

    def _parse_declaration(self, cursor: Cursor, token: str, depth: int) -> None:
        _, local = split_namespace(token)
        type_id = self.registry.classify_name(local)

        if type_id.is_builtin_type or type_id.is_user_type:
            statement = cursor.read_block(None, ";")
            self.parse_variable(f"{token} {statement}")

        elif type_id == TYPEDEF_KEYWORD:
            self.parse_typedef(cursor.read_block(None, ";"))

        elif type_id == STRUCT_KEYWORD:
            name = cursor.read_name()
            cursor.expect_symbol("{")
            # the body can never be longer than the rest of the input
            body = cursor.read_block(
                None, "}", size=len(cursor.text) - cursor.pos + 1, require_close=True
            )
            self.parse_struct(name, body)
            if cursor.get_symbol() == ";":
                cursor.expect_symbol(";")

        elif type_id == MODULE_KEYWORD:
            name = cursor.read_name()
            cursor.expect_symbol("{")
            self.parse_module(cursor, name, depth)

        elif token in self.macros:
            block = cursor.read_block(None, ")")
            self.model.user_defines.append(UserDefine(f"{token}{block});"))
            logger.debug(f"Kept macro statement '{token}'")

        else:
            self.diagnostics.warning(
                UNKNOWN_TOKEN, f"unknown token '{token}'", self._location
            )

    def parse_module(self, cursor: Cursor, name: str, depth: int = 0) -> Module:
        """Parse a module body (cursor just past its '{')."""
        module = Module(identifier_hash(name), name, self.namespace)
        self.model.modules.append(module)
        logger.debug(f"Entering module '{module.qualified_name}'")

        self._namespaces.append(name)
        try:
            self.parse_scope(cursor, depth + 1)
        finally:
            self._namespaces.pop()
        return module

    # =========================================================================
    # Structs and Variables
    # =========================================================================

    def parse_struct(self, name: str, body: str) -> Struct:
        """
        Parse a struct body and register the struct.

        Args:
            name: Struct name
            body: Text between the braces

        Returns:
            The registered Struct
        """
        struct = Struct(
            hash=identifier_hash(name),
            kind=STRUCT_KEYWORD,
            name=name,
            namespace=self.namespace,
        )

        cursor = Cursor(body, filename=self.filename)
        while True:
            cursor.skip_spaces()
            if cursor.at_end:
                break
            statement = cursor.read_block(None, ";").strip()
            if not statement:
                continue
            variable = self._parse_field(statement, name)
            if variable is not None:
                struct.fields.append(variable)

        self.registry.add_struct(struct)
        self.model.structs.append(struct)
        self.model.declarations.append(struct)
        return struct

    def parse_variable(self, statement: str) -> Optional[Variable]:
        """Parse a top-level 'type name' declaration into a global variable."""
        return self._parse_field(statement.strip(), "")

    def _parse_field(self, statement: str, struct_name: str) -> Optional[Variable]:
        words = split_words(statement)

        is_key = False
        if len(words) == 3 and words[0] == KEY_ANNOTATION:
            is_key = True
            words = words[1:]
        elif len(words) != 2:
            self.diagnostics.warning(
                UNKNOWN_FIELD_FORM,
                f"unsupported declaration '{statement}'",
                self._location,
            )
            return None

        type_name, name = words
        if "[" in name:
            self.diagnostics.warning(
                UNKNOWN_FIELD_FORM,
                f"array declaration '{statement}' is not supported",
                self._location,
            )
            return None

        origin_namespace, local = split_namespace(type_name)
        resolved = self.registry.resolve_name(local)
        if not resolved.is_resolved:
            resolved.name = local

        variable = Variable(
            hash=identifier_hash(name),
            type=resolved,
            is_key=is_key,
            name=name,
            struct_name=struct_name,
            origin_namespace=origin_namespace,
        )
        self.model.variables.append(variable)

        owner = struct_name or "<global>"
        logger.debug(
            f"Stored {'key ' if is_key else ''}field '{owner}.{name}' "
            f"of type '{resolved.name}'"
        )
        return variable

    # =========================================================================
    # Typedefs
    # =========================================================================

    def parse_typedef(self, body: str) -> Optional[Typedef]:
        """
        Parse the text after 'typedef' (up to, not including, ';').

        Returns:
            The registered Typedef, or None if the form is not supported
        """
        text = " ".join(body.replace(", ", ",").split())
        words = split_words(text)

        typedef = None
        if words and "sequence" in words[0]:
            typedef = self._parse_sequence_typedef(text)
        elif len(words) == 2:
            typedef = self._parse_alias_typedef(words[0], words[1])

        if typedef is None:
            self.diagnostics.warning(
                UNKNOWN_TYPEDEF_FORM,
                f"unsupported typedef '{text}'",
                self._location,
            )
            return None

        self.registry.add_typedef(typedef)
        self.model.typedefs.append(typedef)
        self.model.declarations.append(typedef)
        return typedef

    def _parse_alias_typedef(self, base: str, name: str) -> Optional[Typedef]:
        _, local = split_namespace(base)
        type_id = self.registry.classify_name(local)
        if not (type_id.is_builtin_type or type_id.is_user_type):
            return None

        return Typedef(
            hash=identifier_hash(name),
            kind=type_id,
            name=name,
            base_name=local,
            namespace=self.namespace,
        )

    def _parse_sequence_typedef(self, text: str) -> Optional[Typedef]:
        match = SEQUENCE_PATTERN.match(text)
        if match is None:
            return None

        bound = UNBOUNDED
        text_bound = match.group("bound")
        if text_bound is not None:
            base = 16 if text_bound[:2].lower() == "0x" else 10
            try:
                bound = int(text_bound, base)
            except ValueError:
                return None
            if bound < 0:
                return None

        _, element = split_namespace(" ".join(match.group("element").split()))
        resolved = self.registry.resolve_name(element)
        base_name = resolved.name if resolved.is_resolved else element

        return Typedef(
            hash=identifier_hash(match.group("name")),
            kind=SEQUENCE_TYPE,
            name=match.group("name"),
            base_name=base_name,
            namespace=self.namespace,
            sequence_bound=bound,
        )


# =============================================================================
# Convenience Function
# =============================================================================

def parse_source(
    text: str,
    filename: str = "<input>",
    macros: Optional[dict] = None,
) -> IdlModel:
    """
    Parse already-preprocessed IDL text.

    Args:
        text: Preprocessed source
        filename: Source filename for locations
        macros: Macro names to treat as macro statements

    Returns:
        The parsed IdlModel
    """
    return IdlParser(macros=macros, filename=filename).parse(text)
