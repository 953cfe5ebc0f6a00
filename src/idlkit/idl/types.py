"""
IDL Type Identifiers
====================

This module defines how identifiers are classified. Every identifier is
hashed to a 64-bit key, and every classification is a TypeId: a kind
plus an index into the matching table.

Type Id Space
-------------
A TypeId also has a single integer code. Four disjoint offset bands make
the code decodable without a separate tag:

| Band             | Offset  | Index into                       |
|------------------|---------|----------------------------------|
| builtin type     | 1024    | BUILTIN_TYPES                    |
| builtin keyword  | 4096    | BUILTIN_KEYWORDS                 |
| user typedef     | 8192    | typedef table of a TypeRegistry  |
| user struct      | 16384   | struct table of a TypeRegistry   |

Unknown identifiers have code -1.

Builtin Types
-------------
void, octet, int8_t, int16_t, short, int32_t, int, long, int64_t,
long long, uint8_t, uint16_t, uint32_t, uint64_t, bool, boolean, char,
float, string, double, sequence, const

Builtin Keywords
----------------
struct, module, typedef

Hashing
-------
Identifiers are hashed with 64-bit FNV-1a. Collisions are not resolved;
the registry reports a diagnostic when two different names share a hash.
"""

from dataclasses import dataclass
from enum import Enum


# =============================================================================
# Identifier Hashing
# =============================================================================

FNV64_OFFSET = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
HASH_MASK = 0xFFFFFFFFFFFFFFFF


def identifier_hash(name: str) -> int:
    """FNV-1a 64-bit hash of an identifier."""
    h = FNV64_OFFSET
    for b in name.encode("utf-8"):
        h ^= b
        h = (h * FNV64_PRIME) & HASH_MASK
    return h


# =============================================================================
# Builtin Tables
# =============================================================================

BUILTIN_TYPES = (
    "void",
    "octet",
    "int8_t",
    "int16_t",
    "short",
    "int32_t",
    "int",
    "long",
    "int64_t",
    "long long",
    "uint8_t",
    "uint16_t",
    "uint32_t",
    "uint64_t",
    "bool",
    "boolean",
    "char",
    "float",
    "string",
    "double",
    "sequence",
    "const",
)

BUILTIN_KEYWORDS = (
    "struct",
    "module",
    "typedef",
)

# Offset bands (each band holds fewer entries than the gap to the next)
TYPE_SPACER = 1024
BASE_SPACER = 4096
USER_TYPEDEF_SPACER = 8192
USER_STRUCT_SPACER = 16384

UNKNOWN_CODE = -1

_BUILTIN_TYPE_HASHES = {identifier_hash(name): i for i, name in enumerate(BUILTIN_TYPES)}
_BUILTIN_KEYWORD_HASHES = {identifier_hash(name): i for i, name in enumerate(BUILTIN_KEYWORDS)}


# =============================================================================
# Type Identifiers
# =============================================================================

class TypeKind(Enum):
    """Classification of an identifier."""
    BUILTIN_TYPE = "builtin-type"
    BUILTIN_KEYWORD = "builtin-keyword"
    USER_TYPEDEF = "user-typedef"
    USER_STRUCT = "user-struct"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


_BAND_OFFSETS = {
    TypeKind.BUILTIN_TYPE: TYPE_SPACER,
    TypeKind.BUILTIN_KEYWORD: BASE_SPACER,
    TypeKind.USER_TYPEDEF: USER_TYPEDEF_SPACER,
    TypeKind.USER_STRUCT: USER_STRUCT_SPACER,
}

_BAND_LIMITS = {
    TypeKind.BUILTIN_TYPE: BASE_SPACER - TYPE_SPACER,
    TypeKind.BUILTIN_KEYWORD: USER_TYPEDEF_SPACER - BASE_SPACER,
    TypeKind.USER_TYPEDEF: USER_STRUCT_SPACER - USER_TYPEDEF_SPACER,
    TypeKind.USER_STRUCT: USER_STRUCT_SPACER,
}


@dataclass(frozen=True)
class TypeId:
    """
    Classification of an identifier: a kind and a table index.

    Attributes:
        kind: Which table the identifier belongs to
        index: Position in that table (-1 for UNKNOWN)

    Examples:
        - char       : TypeId(BUILTIN_TYPE, 16), code 1040
        - typedef    : TypeId(BUILTIN_KEYWORD, 2), code 4098
        - 1st struct : TypeId(USER_STRUCT, 0), code 16384
    """
    kind: TypeKind = TypeKind.UNKNOWN
    index: int = -1

    def __post_init__(self):
        if self.kind is TypeKind.UNKNOWN:
            object.__setattr__(self, "index", -1)
        elif not 0 <= self.index < _BAND_LIMITS[self.kind]:
            raise ValueError(f"index {self.index} out of range for {self.kind}")

    @property
    def code(self) -> int:
        """Integer code in the banded type id space."""
        if self.kind is TypeKind.UNKNOWN:
            return UNKNOWN_CODE
        return _BAND_OFFSETS[self.kind] + self.index

    @classmethod
    def from_code(cls, code: int) -> "TypeId":
        """Decode an integer code back into a TypeId."""
        if code >= USER_STRUCT_SPACER:
            return cls(TypeKind.USER_STRUCT, code - USER_STRUCT_SPACER)
        if code >= USER_TYPEDEF_SPACER:
            return cls(TypeKind.USER_TYPEDEF, code - USER_TYPEDEF_SPACER)
        if code >= BASE_SPACER:
            return cls(TypeKind.BUILTIN_KEYWORD, code - BASE_SPACER)
        if code >= TYPE_SPACER:
            return cls(TypeKind.BUILTIN_TYPE, code - TYPE_SPACER)
        return UNKNOWN_TYPE

    @property
    def is_unknown(self) -> bool:
        return self.kind is TypeKind.UNKNOWN

    @property
    def is_builtin_type(self) -> bool:
        return self.kind is TypeKind.BUILTIN_TYPE

    @property
    def is_builtin_keyword(self) -> bool:
        return self.kind is TypeKind.BUILTIN_KEYWORD

    @property
    def is_user_type(self) -> bool:
        return self.kind in (TypeKind.USER_TYPEDEF, TypeKind.USER_STRUCT)

    def __str__(self) -> str:
        if self.is_unknown:
            return "unknown"
        return f"{self.kind}[{self.index}]"


UNKNOWN_TYPE = TypeId()


def builtin_type(name: str) -> TypeId:
    """Return the TypeId of a builtin type name (ValueError if not builtin)."""
    return TypeId(TypeKind.BUILTIN_TYPE, BUILTIN_TYPES.index(name))


def builtin_keyword(name: str) -> TypeId:
    """Return the TypeId of a builtin keyword (ValueError if not a keyword)."""
    return TypeId(TypeKind.BUILTIN_KEYWORD, BUILTIN_KEYWORDS.index(name))


def classify_builtin(hash_value: int) -> TypeId:
    """Classify a hash against the builtin tables only."""
    index = _BUILTIN_TYPE_HASHES.get(hash_value)
    if index is not None:
        return TypeId(TypeKind.BUILTIN_TYPE, index)
    index = _BUILTIN_KEYWORD_HASHES.get(hash_value)
    if index is not None:
        return TypeId(TypeKind.BUILTIN_KEYWORD, index)
    return UNKNOWN_TYPE


SEQUENCE_TYPE = builtin_type("sequence")
STRUCT_KEYWORD = builtin_keyword("struct")
MODULE_KEYWORD = builtin_keyword("module")
TYPEDEF_KEYWORD = builtin_keyword("typedef")


# =============================================================================
# Namespaces
# =============================================================================

NAMESPACE_SEPARATOR = "::"


def split_namespace(name: str) -> tuple[str, str]:
    """
    Split a qualified name into (namespace, local name).

    Everything before the last '::' is the namespace (a leading '::' is
    dropped); the rest is the bare name.

    Examples:
        >>> split_namespace("::Mod1::foo_t")
        ('Mod1', 'foo_t')
        >>> split_namespace("A::B::c")
        ('A::B', 'c')
        >>> split_namespace("plain")
        ('', 'plain')
    """
    if NAMESPACE_SEPARATOR not in name:
        return "", name
    namespace, _, local = name.rpartition(NAMESPACE_SEPARATOR)
    if namespace.startswith(NAMESPACE_SEPARATOR):
        namespace = namespace[len(NAMESPACE_SEPARATOR):]
    return namespace, local


def join_namespace(*parts: str) -> str:
    """Join namespace segments with '::', skipping empty ones."""
    return NAMESPACE_SEPARATOR.join(p for p in parts if p)
