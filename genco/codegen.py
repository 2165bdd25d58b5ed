# File: genco/codegen.py
"""
Genco - Artifact Tree & Renderer
================================
Synthesizers do not concatenate text.  They assemble a ``SourceUnit``: a
small tree of frozen dataclasses (types, signatures, parameters, method
bodies) that keeps names, types and parameter lists as values.  One
``CSharpRenderer.render`` call then turns the tree into text.

Interface members and their implementations are rendered from the *same*
``MethodSignature`` instance, so the two can never disagree.

Body lines carry their nesting as leading ``INDENT`` markers (see
``nest``); the renderer expands them with the configured indent width.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from genco.utils import indent_lines

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("genco.codegen")

INDENT: str = "\t"


def nest(lines: Sequence[str], level: int = 1) -> List[str]:
    """Push body lines *level* steps deeper; blank lines stay blank."""
    return [INDENT * level + line if line else "" for line in lines]


# ---------------------------------------------------------------------------
# Tree nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Parameter:
    type_name: str
    name: str
    attribute: str = ""

    def render(self) -> str:
        prefix: str = f"[{self.attribute}] " if self.attribute else ""
        return f"{prefix}{self.type_name} {self.name}"


@dataclass(frozen=True, slots=True)
class MethodSignature:
    """Name, return type and ordered parameters of one operation."""

    name: str
    return_type: str
    parameters: Tuple[Parameter, ...] = ()

    @property
    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]

    def declaration(self) -> str:
        params: str = ", ".join(p.render() for p in self.parameters)
        return f"{self.return_type} {self.name}({params})"


@dataclass(frozen=True, slots=True)
class Method:
    signature: MethodSignature
    body: Tuple[str, ...]
    modifiers: Tuple[str, ...] = ("public", "async")
    attributes: Tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.signature.name


@dataclass(frozen=True, slots=True)
class FieldDecl:
    type_name: str
    name: str
    modifiers: Tuple[str, ...] = ("private", "readonly")


@dataclass(frozen=True, slots=True)
class AutoProperty:
    type_name: str
    name: str


@dataclass(frozen=True, slots=True)
class Constant:
    """A ``const string`` rendered as a verbatim literal, one line per item."""

    name: str
    lines: Tuple[str, ...]
    type_name: str = "string"

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@dataclass(frozen=True, slots=True)
class Constructor:
    parameters: Tuple[Parameter, ...]
    body: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class TypeDecl:
    """One interface or class.  Members render in field order below."""

    kind: str  # "interface" | "class" | "static class"
    name: str
    bases: Tuple[str, ...] = ()
    attributes: Tuple[str, ...] = ()
    constants: Tuple[Constant, ...] = ()
    properties: Tuple[AutoProperty, ...] = ()
    fields: Tuple[FieldDecl, ...] = ()
    constructor: Optional[Constructor] = None
    signatures: Tuple[MethodSignature, ...] = ()
    methods: Tuple[Method, ...] = ()

    @property
    def member_names(self) -> List[str]:
        return [s.name for s in self.signatures] + [m.name for m in self.methods]

    def find_method(self, name: str) -> Optional[Method]:
        for method in self.methods:
            if method.name == name:
                return method
        return None

    def find_signature(self, name: str) -> Optional[MethodSignature]:
        for sig in self.signatures:
            if sig.name == name:
                return sig
        method: Optional[Method] = self.find_method(name)
        return method.signature if method else None

    def find_constant(self, name: str) -> Optional[Constant]:
        for const in self.constants:
            if const.name == name:
                return const
        return None


@dataclass(frozen=True, slots=True)
class SourceUnit:
    """One output file: usings, a namespace and its type declarations."""

    namespace: str
    usings: Tuple[str, ...] = ()
    types: Tuple[TypeDecl, ...] = ()

    def find_type(self, name: str) -> Optional[TypeDecl]:
        for decl in self.types:
            if decl.name == name:
                return decl
        return None


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class CSharpRenderer:
    """
    Deterministic ``SourceUnit`` → text pass.

    Stateless apart from the indent width; the same tree always renders to
    the same bytes.
    """

    def __init__(self, indent_size: int = 4) -> None:
        self._size: int = indent_size

    def render(self, unit: SourceUnit) -> str:
        lines: List[str] = [f"using {u};" for u in unit.usings]
        if unit.usings:
            lines.append("")
        lines.append(f"namespace {unit.namespace}")
        lines.append("{")
        for i, decl in enumerate(unit.types):
            if i:
                lines.append("")
            lines.extend(self._indent(self._render_type(decl)))
        lines.append("}")
        return "\n".join(lines) + "\n"

    # -----------------------------------------------------------------

    def _indent(self, lines: Sequence[str], level: int = 1) -> List[str]:
        return indent_lines(lines, level=level, size=self._size)

    def _expand(self, lines: Sequence[str]) -> List[str]:
        """Turn leading ``INDENT`` markers into spaces."""
        out: List[str] = []
        for line in lines:
            stripped: str = line.lstrip(INDENT)
            depth: int = len(line) - len(stripped)
            out.append(" " * (depth * self._size) + stripped if stripped else "")
        return out

    def _render_type(self, decl: TypeDecl) -> List[str]:
        lines: List[str] = [f"[{a}]" for a in decl.attributes]
        header: str = f"public {decl.kind} {decl.name}"
        if decl.bases:
            header += " : " + ", ".join(decl.bases)
        lines.append(header)
        lines.append("{")

        blocks: List[List[str]] = []
        for const in decl.constants:
            blocks.append(self._render_constant(const))
        if decl.properties:
            blocks.append(
                [f"public {p.type_name} {p.name} {{ get; set; }}" for p in decl.properties]
            )
        if decl.fields:
            blocks.append(
                [f"{' '.join(f.modifiers)} {f.type_name} {f.name};" for f in decl.fields]
            )
        if decl.constructor is not None:
            blocks.append(self._render_constructor(decl.name, decl.constructor))
        if decl.signatures:
            blocks.append([f"{s.declaration()};" for s in decl.signatures])
        for method in decl.methods:
            blocks.append(self._render_method(method))

        body: List[str] = []
        for i, block in enumerate(blocks):
            if i:
                body.append("")
            body.extend(block)

        lines.extend(self._indent(body))
        lines.append("}")
        return lines

    def _render_constant(self, const: Constant) -> List[str]:
        escaped: List[str] = [line.replace('"', '""') for line in const.lines]
        head: str = f"public const {const.type_name} {const.name} = @\""
        if len(escaped) == 1:
            return [f'{head}{escaped[0]}";']
        lines: List[str] = [head + escaped[0]]
        lines.extend(self._indent(escaped[1:-1]))
        lines.extend(self._indent([escaped[-1] + '";']))
        return lines

    def _render_constructor(self, class_name: str, ctor: Constructor) -> List[str]:
        if len(ctor.parameters) <= 1:
            params: str = ", ".join(p.render() for p in ctor.parameters)
            lines: List[str] = [f"public {class_name}({params})"]
        else:
            lines = [f"public {class_name}("]
            rendered: List[str] = [p.render() for p in ctor.parameters]
            for i, param in enumerate(rendered):
                suffix: str = ")" if i == len(rendered) - 1 else ","
                lines.extend(self._indent([param + suffix]))
        lines.append("{")
        lines.extend(self._indent(self._expand(ctor.body)))
        lines.append("}")
        return lines

    def _render_method(self, method: Method) -> List[str]:
        lines: List[str] = [f"[{a}]" for a in method.attributes]
        lines.append(" ".join(method.modifiers + (method.signature.declaration(),)))
        lines.append("{")
        lines.extend(self._indent(self._expand(method.body)))
        lines.append("}")
        return lines


__all__: List[str] = [
    "INDENT",
    "nest",
    "Parameter",
    "MethodSignature",
    "Method",
    "FieldDecl",
    "AutoProperty",
    "Constant",
    "Constructor",
    "TypeDecl",
    "SourceUnit",
    "CSharpRenderer",
]
