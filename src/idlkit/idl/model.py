"""
IDL Data Model
==============

This module defines the in-memory model produced by the declaration
parser and handed to code generators.

Entities
--------
IdlModel - everything parsed from one source file
├── typedefs      - Typedef aliases, in declaration order
├── structs       - Struct definitions, each with ordered fields
├── variables     - every Variable parsed (struct fields and globals)
├── modules       - Module scopes, in the order they were opened
├── declarations  - typedefs and structs interleaved in source order
└── user_defines  - macro-style statements kept verbatim

Typedef Representation
----------------------
A Typedef describes both stored aliases and resolved types:

    typedef sequence<int32_t,50> T_SmallInt;
            ^        ^       ^   ^
            |        |       |   name
            |        |       sequence_bound (50; 0 unbounded; -1 not a sequence)
            |        base_name
            kind (sequence)

When the resolver returns a Typedef for a field, ``name`` is the
canonical base type and ``kind``/``sequence_bound`` describe the
declared shape. A struct type resolves to a Typedef whose ``base_name``
equals its own ``name``.

Design Notes
------------
- All entities are dataclasses; tables are plain lists appended during a
  single parse pass
- Field order inside a Struct is declaration order
"""

from dataclasses import dataclass, field
from typing import Optional

from idlkit.idl.types import (
    TypeId,
    TypeKind,
    UNKNOWN_TYPE,
    join_namespace,
)


NOT_A_SEQUENCE = -1
UNBOUNDED = 0


# =============================================================================
# Entities
# =============================================================================

@dataclass
class Typedef:
    """
    A type alias, or the resolved form of a type.

    Attributes:
        hash: Hash of ``name``
        kind: Classification of the declared base (or of the type itself)
        name: New type name (resolved base name for resolved types)
        base_name: Name of the aliased type
        namespace: Namespace the typedef was declared in
        sequence_bound: -1 not a sequence, 0 unbounded, >0 maximum length
    """
    hash: int = 0
    kind: TypeId = UNKNOWN_TYPE
    name: str = ""
    base_name: str = ""
    namespace: str = ""
    sequence_bound: int = NOT_A_SEQUENCE

    @property
    def is_sequence(self) -> bool:
        return self.sequence_bound >= 0

    @property
    def is_bounded(self) -> bool:
        return self.sequence_bound > 0

    @property
    def is_struct(self) -> bool:
        return bool(self.name) and self.base_name == self.name

    @property
    def is_builtin(self) -> bool:
        return self.kind.kind is TypeKind.BUILTIN_TYPE and not self.is_struct

    @property
    def is_resolved(self) -> bool:
        return not self.kind.is_unknown

    @property
    def qualified_name(self) -> str:
        return join_namespace(self.namespace, self.name)


@dataclass
class Variable:
    """
    A struct field or a global variable.

    Attributes:
        hash: Hash of ``name``
        type: Fully resolved type of the variable
        is_key: True for fields annotated with ``@key``
        name: Field name
        struct_name: Owning struct, empty for globals
        origin_namespace: Namespace written as ``::ns::`` before the type
    """
    hash: int = 0
    type: Typedef = field(default_factory=Typedef)
    is_key: bool = False
    name: str = ""
    struct_name: str = ""
    origin_namespace: str = ""

    @property
    def is_global(self) -> bool:
        return not self.struct_name


@dataclass
class Struct:
    """
    A struct definition.

    Attributes:
        hash: Hash of ``name``
        kind: The ``struct`` keyword's TypeId
        name: Struct name
        namespace: Namespace the struct was declared in
        fields: Fields in declaration order
    """
    hash: int = 0
    kind: TypeId = UNKNOWN_TYPE
    name: str = ""
    namespace: str = ""
    fields: list[Variable] = field(default_factory=list)

    @property
    def key_fields(self) -> list[Variable]:
        return [f for f in self.fields if f.is_key]

    @property
    def qualified_name(self) -> str:
        return join_namespace(self.namespace, self.name)

    def get_field(self, name: str) -> Optional[Variable]:
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass
class Module:
    """
    A module (namespace scope).

    Attributes:
        hash: Hash of ``name``
        name: Module name
        namespace: Enclosing namespace, empty at top level
    """
    hash: int = 0
    name: str = ""
    namespace: str = ""

    @property
    def qualified_name(self) -> str:
        return join_namespace(self.namespace, self.name)


@dataclass
class UserDefine:
    """A macro-style statement such as ``MY_MACRO(a, b);`` kept verbatim."""
    line: str = ""


# =============================================================================
# Model Container
# =============================================================================

@dataclass
class IdlModel:
    """
    Everything parsed from one IDL source file.

    Attributes:
        filename: Source file the model came from
        typedefs: Typedef table
        structs: Struct table
        variables: Every variable parsed, struct fields included
        modules: Modules in the order they were opened
        declarations: Typedefs and structs in source order
        user_defines: Unrecognized macro-style statements
    """
    filename: str = "<input>"
    typedefs: list[Typedef] = field(default_factory=list)
    structs: list[Struct] = field(default_factory=list)
    variables: list[Variable] = field(default_factory=list)
    modules: list[Module] = field(default_factory=list)
    declarations: list = field(default_factory=list)
    user_defines: list[UserDefine] = field(default_factory=list)

    def get_struct(self, name: str) -> Optional[Struct]:
        """Find a struct by bare or qualified name."""
        for struct in self.structs:
            if name in (struct.name, struct.qualified_name):
                return struct
        return None

    def get_typedef(self, name: str) -> Optional[Typedef]:
        """Find a typedef by bare or qualified name."""
        for typedef in self.typedefs:
            if name in (typedef.name, typedef.qualified_name):
                return typedef
        return None

    @property
    def global_variables(self) -> list[Variable]:
        return [v for v in self.variables if v.is_global]

    def is_empty(self) -> bool:
        return not (
            self.typedefs or self.structs or self.variables
            or self.modules or self.user_defines
        )

    def clear(self) -> None:
        """Reset every table."""
        self.typedefs.clear()
        self.structs.clear()
        self.variables.clear()
        self.modules.clear()
        self.declarations.clear()
        self.user_defines.clear()


# =============================================================================
# Model Printer (for debugging)
# =============================================================================

class ModelPrinter:
    """
    Pretty-printer for an IdlModel.

    Produces an indented, human-readable dump used by ``idlc --model``.

    Example output:
        model types.idl
          typedef T_SmallInt = sequence<int32_t,50>
          struct Mod1::Point
            @key int32_t x
            double y
    """

    def __init__(self, indent: str = "  "):
        self.indent = indent

    def print(self, model: IdlModel) -> str:
        lines = [f"model {model.filename}"]

        for module in model.modules:
            lines.append(f"{self.indent}module {module.qualified_name}")

        for typedef in model.typedefs:
            lines.append(
                f"{self.indent}typedef {typedef.qualified_name} = "
                f"{self.describe_type(typedef)}"
            )

        for struct in model.structs:
            lines.append(f"{self.indent}struct {struct.qualified_name}")
            for f in struct.fields:
                lines.append(f"{self.indent * 2}{self.describe_field(f)}")

        for variable in model.global_variables:
            lines.append(f"{self.indent}var {self.describe_field(variable)}")

        for define in model.user_defines:
            lines.append(f"{self.indent}define {define.line}")

        return "\n".join(lines)

    @staticmethod
    def describe_type(typedef: Typedef) -> str:
        """Describe a stored or resolved type, e.g. 'sequence<char>'."""
        base = typedef.base_name or typedef.name or "?"
        if typedef.is_bounded:
            return f"sequence<{base},{typedef.sequence_bound}>"
        if typedef.is_sequence:
            return f"sequence<{base}>"
        return base

    def describe_field(self, variable: Variable) -> str:
        type_name = variable.type.name or "?"
        if variable.type.is_bounded:
            type_name = f"sequence<{type_name},{variable.type.sequence_bound}>"
        elif variable.type.is_sequence:
            type_name = f"sequence<{type_name}>"
        if variable.origin_namespace:
            type_name = f"::{variable.origin_namespace}::{type_name}"
        prefix = "@key " if variable.is_key else ""
        return f"{prefix}{type_name} {variable.name}"
