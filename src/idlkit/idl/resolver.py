"""
IDL Symbol/Type Resolver
========================

This module implements the TypeRegistry: the typedef and struct tables
of one parse, hash-indexed lookups over them, and typedef-chain
resolution.

Classification Order
--------------------
classify() checks, in order:
1. builtin types     (void, octet, int32_t, ..., sequence, const)
2. builtin keywords  (struct, module, typedef)
3. user typedefs
4. user structs
and returns UNKNOWN_TYPE when nothing matches.

Resolution
----------
resolve_real() turns any type hash into its canonical Typedef:

    typedef char T_Char;
    typedef T_Char T_Char2;
    resolve_real(hash("T_Char2")).name == "char"

For a typedef, the chain is followed through ``base_name`` until a
builtin or a struct is reached, then the original typedef's kind and
sequence bound are applied on top of the resolved base. Unknown hashes
give an empty Typedef and a diagnostic; resolution never aborts a parse.
"""

import logging
from typing import Optional

from idlkit.idl.errors import (
    DiagnosticCollector,
    HASH_COLLISION,
    UNRESOLVED_TYPE,
)
from idlkit.idl.model import Struct, Typedef
from idlkit.idl.types import (
    BUILTIN_KEYWORDS,
    BUILTIN_TYPES,
    TypeId,
    TypeKind,
    UNKNOWN_TYPE,
    USER_STRUCT_SPACER,
    USER_TYPEDEF_SPACER,
    classify_builtin,
    identifier_hash,
    split_namespace,
)


logger = logging.getLogger(__name__)

# Longest typedef chain followed before giving up (guards alias loops)
MAX_TYPEDEF_CHAIN = 64


class TypeRegistry:
    """
    Typedef and struct tables with hash-keyed classification.

    Tables are appended during a parse and only emptied by clear(). A
    name hashing to an already-registered hash keeps the first entry, the
    same as a front-to-back table search.

    Attributes:
        typedefs: Typedef table (index = TypeId.index for USER_TYPEDEF)
        structs: Struct table (index = TypeId.index for USER_STRUCT)
        diagnostics: Where unresolved types and collisions are reported
    """

    def __init__(self, diagnostics: Optional[DiagnosticCollector] = None):
        self.typedefs: list[Typedef] = []
        self.structs: list[Struct] = []
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self._typedef_index: dict[int, int] = {}
        self._struct_index: dict[int, int] = {}

    # =========================================================================
    # Table Maintenance
    # =========================================================================

    def add_typedef(self, typedef: Typedef) -> TypeId:
        """Append a typedef and return its TypeId."""
        index = len(self.typedefs)
        if index >= USER_STRUCT_SPACER - USER_TYPEDEF_SPACER:
            raise OverflowError("typedef table full")
        self._check_collision(typedef.hash, typedef.name)
        self.typedefs.append(typedef)
        self._typedef_index.setdefault(typedef.hash, index)
        logger.debug(
            f"Stored typedef '{typedef.name}' -> '{typedef.base_name}' "
            f"(bound {typedef.sequence_bound})"
        )
        return TypeId(TypeKind.USER_TYPEDEF, index)

    def add_struct(self, struct: Struct) -> TypeId:
        """Append a struct and return its TypeId."""
        index = len(self.structs)
        self._check_collision(struct.hash, struct.name)
        self.structs.append(struct)
        self._struct_index.setdefault(struct.hash, index)
        logger.debug(f"Stored struct '{struct.name}' with {len(struct.fields)} field(s)")
        return TypeId(TypeKind.USER_STRUCT, index)

    def clear(self) -> None:
        self.typedefs.clear()
        self.structs.clear()
        self._typedef_index.clear()
        self._struct_index.clear()

    def _check_collision(self, hash_value: int, name: str) -> None:
        existing = self.name_of(hash_value)
        if existing and existing != name:
            self.diagnostics.warning(
                HASH_COLLISION,
                f"'{name}' and '{existing}' share identifier hash {hash_value:#x}",
            )

    # =========================================================================
    # Classification
    # =========================================================================

    def is_builtin_type(self, hash_value: int) -> bool:
        return classify_builtin(hash_value).kind is TypeKind.BUILTIN_TYPE

    def is_builtin_keyword(self, hash_value: int) -> bool:
        return classify_builtin(hash_value).kind is TypeKind.BUILTIN_KEYWORD

    def is_typedef(self, hash_value: int) -> bool:
        return hash_value in self._typedef_index

    def is_struct(self, hash_value: int) -> bool:
        return hash_value in self._struct_index

    def is_user_type(self, hash_value: int) -> bool:
        return self.is_typedef(hash_value) or self.is_struct(hash_value)

    def classify(self, hash_value: int) -> TypeId:
        """Classify a hash: builtin type, keyword, typedef, struct or unknown."""
        type_id = classify_builtin(hash_value)
        if not type_id.is_unknown:
            return type_id

        index = self._typedef_index.get(hash_value)
        if index is not None:
            return TypeId(TypeKind.USER_TYPEDEF, index)

        index = self._struct_index.get(hash_value)
        if index is not None:
            return TypeId(TypeKind.USER_STRUCT, index)

        return UNKNOWN_TYPE

    def classify_name(self, name: str) -> TypeId:
        """Classify an identifier by name, verifying the stored name on a hit."""
        type_id = self.classify(identifier_hash(name))
        if not type_id.is_unknown:
            stored = self.type_name(type_id)
            if stored != name:
                self.diagnostics.warning(
                    HASH_COLLISION,
                    f"'{name}' collides with '{stored}'; treating as '{stored}'",
                )
        return type_id

    # =========================================================================
    # Names
    # =========================================================================

    def type_name(self, type_id: TypeId) -> str:
        """Return the name for any TypeId ('' for unknown)."""
        if type_id.kind is TypeKind.USER_STRUCT:
            return self.structs[type_id.index].name
        if type_id.kind is TypeKind.USER_TYPEDEF:
            return self.typedefs[type_id.index].name
        if type_id.kind is TypeKind.BUILTIN_KEYWORD:
            return BUILTIN_KEYWORDS[type_id.index]
        if type_id.kind is TypeKind.BUILTIN_TYPE:
            return BUILTIN_TYPES[type_id.index]
        return ""

    def name_of(self, hash_value: int) -> str:
        """Return the name registered for a hash ('' if none)."""
        return self.type_name(self.classify(hash_value))

    def get_struct(self, name: str) -> Optional[Struct]:
        index = self._struct_index.get(identifier_hash(name))
        return self.structs[index] if index is not None else None

    def get_typedef(self, name: str) -> Optional[Typedef]:
        index = self._typedef_index.get(identifier_hash(name))
        return self.typedefs[index] if index is not None else None

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve_real(self, hash_value: int) -> Typedef:
        """
        Resolve a type hash to its canonical Typedef.

        Args:
            hash_value: Hash of a builtin, typedef or struct name

        Returns:
            - builtin: Typedef carrying the builtin's name and TypeId
            - typedef: the chain's base with this typedef's kind and
              sequence bound applied
            - struct: Typedef whose base_name is the struct's own name
            - unknown: an empty Typedef (a diagnostic is recorded)
        """
        return self._resolve(hash_value, 0)

    def resolve_name(self, name: str) -> Typedef:
        """Resolve by name; a '::ns::' prefix is ignored."""
        _, local = split_namespace(name)
        return self._resolve(identifier_hash(local), 0, local)

    def _resolve(self, hash_value: int, depth: int, name: str = "") -> Typedef:
        type_id = classify_builtin(hash_value)
        if type_id.kind is TypeKind.BUILTIN_TYPE:
            return Typedef(
                hash=hash_value,
                kind=type_id,
                name=BUILTIN_TYPES[type_id.index],
            )

        index = self._typedef_index.get(hash_value)
        if index is not None:
            declared = self.typedefs[index]
            if not declared.base_name:
                return Typedef(**vars(declared))
            if depth >= MAX_TYPEDEF_CHAIN:
                self.diagnostics.warning(
                    UNRESOLVED_TYPE,
                    f"typedef chain through '{declared.name}' is too deep or circular",
                )
                return Typedef()
            _, base_local = split_namespace(declared.base_name)
            resolved = self._resolve(identifier_hash(base_local), depth + 1, base_local)
            resolved.kind = declared.kind
            resolved.sequence_bound = declared.sequence_bound
            return resolved

        index = self._struct_index.get(hash_value)
        if index is not None:
            struct = self.structs[index]
            return Typedef(
                hash=hash_value,
                kind=TypeId(TypeKind.USER_STRUCT, index),
                name=struct.name,
                base_name=struct.name,
                namespace=struct.namespace,
            )

        what = f"'{name}'" if name else f"hash {hash_value:#x}"
        self.diagnostics.warning(UNRESOLVED_TYPE, f"unknown type {what}")
        return Typedef()
