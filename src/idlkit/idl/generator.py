"""
IDL Code Generators
===================

Code generators turn a finished IdlModel into text. The front end never
inspects what a generator returns.

CodeGenerator is the hook for target languages; IdlGenerator is the
built-in generator that writes the model back out as canonical IDL:

    // Generated from types.idl
    typedef sequence<int32_t,50> T_SmallInt;

    module Mod1 {
        struct Point {
            @key int32_t x;
            ::Mod2::foo_t origin;
        };
    };

Declarations are written in source order. Consecutive declarations in
the same namespace share one set of module blocks.
"""

from abc import ABC, abstractmethod

from idlkit.idl.model import IdlModel, Struct, Typedef, Variable
from idlkit.idl.types import NAMESPACE_SEPARATOR


def type_to_idl(typedef: Typedef) -> str:
    """Spell a resolved type, e.g. 'int32_t' or 'sequence<char,8>'."""
    name = typedef.name or "void"
    if typedef.is_bounded:
        return f"sequence<{name},{typedef.sequence_bound}>"
    if typedef.is_sequence:
        return f"sequence<{name}>"
    return name


def variable_to_idl(variable: Variable) -> str:
    """
    Write a variable as an IDL declaration line.

    Returns ``::ns::type name;`` when the variable carries an origin
    namespace, ``type name;`` otherwise (newline included).
    """
    type_text = type_to_idl(variable.type)
    if variable.origin_namespace:
        return f"::{variable.origin_namespace}::{type_text} {variable.name};\n"
    return f"{type_text} {variable.name};\n"


def typedef_to_idl(typedef: Typedef) -> str:
    base = typedef.base_name or "void"
    if typedef.is_bounded:
        return f"typedef sequence<{base},{typedef.sequence_bound}> {typedef.name};\n"
    if typedef.is_sequence:
        return f"typedef sequence<{base}> {typedef.name};\n"
    return f"typedef {base} {typedef.name};\n"


class CodeGenerator(ABC):
    """
    Base class for generators driven by a parsed model.

    Subclasses receive the finished model and the source file name and
    return the generated text.
    """

    @abstractmethod
    def generate(self, model: IdlModel, filename: str) -> str:
        """
        Generate text for a model.

        Args:
            model: The parsed model (treat as read-only)
            filename: Name of the source the model came from

        Returns:
            Generated text
        """
        pass


class IdlGenerator(CodeGenerator):
    """
    Re-emit a model as canonical IDL.

    Attributes:
        indent: Indentation unit for nested blocks
        header: Emit a '// Generated from ...' first line
    """

    def __init__(self, indent: str = "    ", header: bool = True):
        self.indent = indent
        self.header = header

    def generate(self, model: IdlModel, filename: str) -> str:
        lines: list[str] = []
        if self.header:
            lines.append(f"// Generated from {filename}\n")

        open_modules: list[str] = []
        for declaration in model.declarations:
            target = declaration.namespace.split(NAMESPACE_SEPARATOR) if declaration.namespace else []
            open_modules = self._enter_namespace(lines, open_modules, target)
            depth = len(open_modules)
            if isinstance(declaration, Struct):
                lines.extend(self._struct_lines(declaration, depth))
            else:
                lines.append(self.indent * depth + typedef_to_idl(declaration))
        self._enter_namespace(lines, open_modules, [])

        for variable in model.global_variables:
            lines.append(variable_to_idl(variable))

        for define in model.user_defines:
            lines.append(f"{define.line}\n")

        return "".join(lines)

    def _enter_namespace(
        self,
        lines: list[str],
        current: list[str],
        target: list[str],
    ) -> list[str]:
        """Close and open module blocks to move from one namespace to another."""
        common = 0
        while common < min(len(current), len(target)) and current[common] == target[common]:
            common += 1

        for depth in range(len(current) - 1, common - 1, -1):
            lines.append(f"{self.indent * depth}}};\n")
        for depth in range(common, len(target)):
            lines.append(f"{self.indent * depth}module {target[depth]} {{\n")

        return list(target)

    def _struct_lines(self, struct: Struct, depth: int) -> list[str]:
        pad = self.indent * depth
        lines = [f"{pad}struct {struct.name} {{\n"]
        for variable in struct.fields:
            key = "@key " if variable.is_key else ""
            lines.append(f"{pad}{self.indent}{key}{variable_to_idl(variable)}")
        lines.append(f"{pad}}};\n")
        return lines
