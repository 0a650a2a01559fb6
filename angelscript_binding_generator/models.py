#!/usr/bin/env python3
"""
Data models for the AngelScript binding generator.

This module provides strongly-typed, serializable data structures to describe:
- C++ types (lightweight parsing of pointers/references/const)
- Function parameters
- Free functions and class methods (static/instance)
- The read-only database of native declarations (classes, enums, usings)
- Generation context (paths, flags)

The models are designed to be consumed by:
- The type mapper, which decides what can cross the script boundary
- The emitters, which synthesize wrappers and registration expressions
- The manifest writer (JSON round-trip through `to_dict` / `from_dict`)

Nothing in here is mutated once the model is built; every consumer receives
the `SourceModel` explicitly.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

# --------------------------
# C++ Type model
# --------------------------

# Trailing declarator part of a spelling: pointers, references and east const.
_DECLARATOR_RE = re.compile(r"^(?P<base>.*?)\s*(?P<suffix>(?:\*|&|\s|\bconst\b)*)$")


def _normalize_type_name(name: str) -> str:
    """
    Collapse whitespace and drop the padding Doxygen puts inside template brackets:
    'Vector< SharedPtr< Node > >' -> 'Vector<SharedPtr<Node>>'
    """
    s = " ".join(name.split())
    return re.sub(r"\s*([<>,])\s*", lambda m: ", " if m.group(1) == "," else m.group(1), s)


@dataclass(frozen=True)
class NativeType:
    """
    Value-object view of a C++ type expression.

    `name` is the base name including template arguments ('Vector<String>'),
    without const and without pointer/reference declarators.
    """
    name: str
    is_const: bool = False
    is_pointer: bool = False
    is_double_pointer: bool = False
    is_reference: bool = False
    is_rvalue_reference: bool = False
    is_reference_to_pointer: bool = False

    @staticmethod
    def from_spelling(spelling: str) -> NativeType:
        """
        Parse a C++ type spelling such as 'const Vector<String>&' or 'Node *'.
        """
        s = " ".join((spelling or "").split())
        is_const = False
        if s.startswith("const "):
            is_const = True
            s = s[len("const "):]

        m = _DECLARATOR_RE.match(s)
        base = m.group("base") if m else s
        suffix = m.group("suffix") if m else ""
        if re.search(r"\bconst\b", suffix):
            is_const = True
        sigils = suffix.replace("const", "").replace(" ", "")

        return NativeType(
            name=_normalize_type_name(base),
            is_const=is_const,
            is_pointer="*" in sigils,
            is_double_pointer=sigils.startswith("**"),
            is_reference=sigils.endswith("&") and not sigils.endswith("&&"),
            is_rvalue_reference=sigils.endswith("&&"),
            is_reference_to_pointer=sigils.endswith("*&"),
        )

    @property
    def is_templated(self) -> bool:
        return "<" in self.name

    def to_string(self) -> str:
        """
        Printable C++ form, e.g. 'const String&', 'Node*', 'SharedPtr<Node>'.
        """
        out = f"const {self.name}" if self.is_const else self.name
        if self.is_double_pointer:
            out += "**"
        elif self.is_pointer:
            out += "*"
        if self.is_rvalue_reference:
            out += "&&"
        elif self.is_reference:
            out += "&"
        return out

    def __str__(self) -> str:
        return self.to_string()

    def to_dict(self) -> Dict:
        return {
            "spelling": self.to_string(),
            "name": self.name,
            "is_const": self.is_const,
            "is_pointer": self.is_pointer,
            "is_reference": self.is_reference,
        }


# --------------------------
# Function/Parameter models
# --------------------------

class MethodKind(Enum):
    STATIC = auto()
    INSTANCE = auto()


@dataclass(frozen=True)
class ParameterInfo:
    name: str
    type: NativeType
    default_value: str = ""

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> ParameterInfo:
        return ParameterInfo(
            name=data.get("name", ""),
            type=NativeType.from_spelling(data["type"]),
            default_value=data.get("default", "") or "",
        )

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "type": self.type.to_string(),
            "default": self.default_value,
        }


@dataclass(frozen=True)
class FunctionInfo:
    """
    A free (namespace-level) function.

    `specialization` maps template parameter names to concrete types for
    functions that are bound once per template instantiation.
    """
    name: str
    return_type: NativeType
    parameters: List[ParameterInfo] = field(default_factory=list)
    location: str = ""
    header_file: str = ""
    specialization: Dict[str, str] = field(default_factory=dict)

    @property
    def cpp_signature(self) -> str:
        params = ", ".join(p.type.to_string() for p in self.parameters)
        return f"{self.return_type.to_string()} {self.name}({params})"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> FunctionInfo:
        return FunctionInfo(
            name=data["name"],
            return_type=NativeType.from_spelling(data.get("return", "void")),
            parameters=[ParameterInfo.from_dict(p) for p in data.get("params", [])],
            location=data.get("location", ""),
            header_file=data.get("header", ""),
            specialization=dict(data.get("specialization", {})),
        )

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "return": self.return_type.to_string(),
            "params": [p.to_dict() for p in self.parameters],
            "location": self.location,
            "header": self.header_file,
            "specialization": dict(self.specialization),
        }


@dataclass(frozen=True)
class MethodInfo:
    """
    A class member function. Overloads are represented as separate instances.
    """
    name: str
    class_name: str
    return_type: NativeType
    parameters: List[ParameterInfo] = field(default_factory=list)
    kind: MethodKind = MethodKind.INSTANCE
    is_const: bool = False
    location: str = ""
    header_file: str = ""
    specialization: Dict[str, str] = field(default_factory=dict)

    @property
    def is_static(self) -> bool:
        return self.kind == MethodKind.STATIC

    @property
    def cpp_signature(self) -> str:
        params = ", ".join(p.type.to_string() for p in self.parameters)
        const_q = " const" if self.is_const and self.kind == MethodKind.INSTANCE else ""
        static_q = "static " if self.is_static else ""
        return f"{static_q}{self.return_type.to_string()} {self.class_name}::{self.name}({params}){const_q}"

    @staticmethod
    def from_dict(data: Mapping[str, Any], class_name: str, header_file: str = "") -> MethodInfo:
        return MethodInfo(
            name=data["name"],
            class_name=class_name,
            return_type=NativeType.from_spelling(data.get("return", "void")),
            parameters=[ParameterInfo.from_dict(p) for p in data.get("params", [])],
            kind=MethodKind.STATIC if data.get("static", False) else MethodKind.INSTANCE,
            is_const=bool(data.get("const", False)),
            location=data.get("location", ""),
            header_file=data.get("header", header_file),
            specialization=dict(data.get("specialization", {})),
        )

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "class_name": self.class_name,
            "kind": self.kind.name,
            "static": self.is_static,
            "return": self.return_type.to_string(),
            "params": [p.to_dict() for p in self.parameters],
            "const": self.is_const,
            "location": self.location,
            "header": self.header_file,
            "specialization": dict(self.specialization),
            "cpp_signature": self.cpp_signature,
        }


# --------------------------
# Declaration records
# --------------------------

@dataclass(frozen=True)
class ClassRecord:
    name: str
    id: str = ""
    header_file: str = ""
    comment: str = ""
    is_ref_counted: bool = False
    is_internal: bool = False
    methods: List[MethodInfo] = field(default_factory=list)

    def has_marker(self, marker: str) -> bool:
        """
        Documentation-comment markers such as NO_BIND or FAKE_REF.
        """
        return marker in self.comment

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> ClassRecord:
        name = data["name"]
        header = data.get("header", "")
        return ClassRecord(
            name=name,
            id=data.get("id", ""),
            header_file=header,
            comment=data.get("comment", ""),
            is_ref_counted=bool(data.get("ref_counted", False)),
            is_internal=bool(data.get("internal", False)),
            methods=[MethodInfo.from_dict(m, name, header) for m in data.get("methods", [])],
        )

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "id": self.id,
            "header": self.header_file,
            "comment": self.comment,
            "ref_counted": self.is_ref_counted,
            "internal": self.is_internal,
            "methods": [m.to_dict() for m in self.methods],
        }


@dataclass(frozen=True)
class EnumRecord:
    name: str
    header_file: str = ""


@dataclass(frozen=True)
class UsingRecord:
    name: str
    target: str = ""


# --------------------------
# Source model (read-only database)
# --------------------------

class SourceModel:
    """
    Queryable database of native declarations.

    Built once before generation begins and handed to the mapper and emitters.
    Lookups never mutate the indices.
    """

    def __init__(
        self,
        classes: Iterable[ClassRecord] = (),
        enums: Iterable[EnumRecord] = (),
        usings: Iterable[UsingRecord] = (),
        functions: Iterable[FunctionInfo] = (),
        header_defines: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.classes: List[ClassRecord] = list(classes)
        self.functions: List[FunctionInfo] = list(functions)
        self._classes_by_name: Dict[str, ClassRecord] = {c.name: c for c in self.classes}
        self._classes_by_id: Dict[str, ClassRecord] = {c.id: c for c in self.classes if c.id}
        self._enums: Dict[str, EnumRecord] = {e.name: e for e in enums}
        self._usings: Dict[str, UsingRecord] = {u.name: u for u in usings}
        self._header_defines: Dict[str, str] = dict(header_defines or {})

    # ---- Lookups ----

    def find_class_by_name(self, name: str) -> Optional[ClassRecord]:
        return self._classes_by_name.get(name)

    def find_class_by_id(self, class_id: str) -> Optional[ClassRecord]:
        return self._classes_by_id.get(class_id)

    def find_enum(self, name: str) -> Optional[EnumRecord]:
        return self._enums.get(name)

    def is_using(self, identifier: str) -> bool:
        return identifier in self._usings

    def inside_define(self, header_file: str) -> str:
        """
        Preprocessor symbol required to compile `header_file`, or '' if none.
        Keys may be full paths or path suffixes ('Graphics/Graphics.h').
        """
        if not header_file:
            return ""
        define = self._header_defines.get(header_file)
        if define is not None:
            return define
        normalized = header_file.replace("\\", "/")
        for header, define in self._header_defines.items():
            if normalized.endswith("/" + header.lstrip("/")):
                return define
        return ""

    # ---- Serialization ----

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> SourceModel:
        return SourceModel(
            classes=[ClassRecord.from_dict(c) for c in data.get("classes", [])],
            enums=[EnumRecord(name=e["name"], header_file=e.get("header", "")) if isinstance(e, dict) else EnumRecord(name=e)
                   for e in data.get("enums", [])],
            usings=[UsingRecord(name=u["name"], target=u.get("target", "")) if isinstance(u, dict) else UsingRecord(name=u)
                    for u in data.get("usings", [])],
            functions=[FunctionInfo.from_dict(f) for f in data.get("functions", [])],
            header_defines=data.get("header_defines", {}),
        )

    def to_dict(self) -> Dict:
        return {
            "classes": [c.to_dict() for c in self.classes],
            "enums": [{"name": e.name, "header": e.header_file} for e in self._enums.values()],
            "usings": [{"name": u.name, "target": u.target} for u in self._usings.values()],
            "functions": [f.to_dict() for f in self.functions],
            "header_defines": dict(self._header_defines),
        }


def load_model(path: Path) -> SourceModel:
    """
    Load a SourceModel from a JSON description produced by the parsing stage.
    """
    with open(path, "r", encoding="utf-8") as f:
        return SourceModel.from_dict(json.load(f))


# --------------------------
# Generation context
# --------------------------

@dataclass
class GenerationContext:
    """
    Parameters for a single generation run.

    Paths are absolute. Emitters should rely on these rather than guessing.
    """
    output_file: Path
    templates_dir: Optional[Path] = None
    dry_run: bool = False

    @property
    def output_dir(self) -> Path:
        return self.output_file.parent

    def to_dict(self) -> Dict:
        return {
            "output_file": str(self.output_file),
            "templates_dir": str(self.templates_dir) if self.templates_dir else None,
            "dry_run": self.dry_run,
        }


__all__ = [
    "NativeType",
    "MethodKind",
    "ParameterInfo",
    "FunctionInfo",
    "MethodInfo",
    "ClassRecord",
    "EnumRecord",
    "UsingRecord",
    "SourceModel",
    "load_model",
    "GenerationContext",
]
