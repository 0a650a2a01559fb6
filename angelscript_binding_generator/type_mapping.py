#!/usr/bin/env python3
"""
Type mapping for AngelScript bindings.

This module analyzes parsed C++ types (from `models.py`) and computes how to
expose them to AngelScript. It provides:

- The primitive type table (C++ spelling -> AngelScript primitive)
- A closed-world classifier deciding whether a type name is bindable at all
- Per-variable translation (parameter or return) into a script declaration,
  plus an optional replacement C++ declaration and glue statements for the
  wrapper body
- Translation of C++ default values into script literals

Typical usage (high level):

    from .models import SourceModel
    from .type_mapping import TypeMapper, VariableUsage, BindingError

    mapper = TypeMapper(model)
    try:
        ret = mapper.map_variable(fn.return_type, "", VariableUsage.RETURN)
        params = [mapper.map_variable(p.type, p.name, VariableUsage.PARAMETER, p.default_value)
                  for p in fn.parameters]
    except BindingError as e:
        # skip this function; str(e) explains why
        ...

Design notes:
- Translation is an ordered rule table; the first matching rule wins and later
  rules assume earlier ones did not match.
- Template shapes (Vector<SharedPtr<X>>, PODVector<X*>, ...) are parsed into
  `TypeShape` values rather than matched with regular expressions.
- Glue text is complete C++ statements ending in a newline, ready to be pasted
  into the wrapper body verbatim.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from .models import ClassRecord, NativeType, SourceModel

logger = logging.getLogger(__name__)


# --------------------------
# Errors
# --------------------------

class BindingError(Exception):
    """
    A type or signature can not be bound automatically.
    The message says why; the caller skips the affected function.
    """


class NotPrimitiveError(BindingError):
    pass


class UnsupportedDefaultValueError(BindingError):
    """
    A default value was given for a parameter shape that does not support one yet.
    """


# --------------------------
# Primitive types
# --------------------------

# https://www.angelcode.com/angelscript/sdk/docs/manual/doc_datatypes_primitives.html
PRIMITIVE_TYPES: Dict[str, str] = {
    "bool": "bool",
    "char": "int8",
    "signed char": "int8",
    "unsigned char": "uint8",
    "short": "int16",
    "unsigned short": "uint16",
    "int": "int",
    "unsigned": "uint",
    "unsigned int": "uint",
    "long long": "int64",
    "unsigned long long": "uint64",
    "float": "float",
    "double": "double",
    # Registered manually on the script side
    "long": "long",
    "unsigned long": "ulong",
    "size_t": "size_t",
    "SDL_JoystickID": "SDL_JoystickID",
}


def cpp_primitive_to_script(cpp_type: str) -> str:
    """
    Exact lookup in the primitive table. Pointer/reference/template spellings
    must be stripped by the caller.
    """
    try:
        return PRIMITIVE_TYPES[cpp_type]
    except KeyError:
        raise NotPrimitiveError(f"{cpp_type} not a primitive type") from None


def try_cpp_primitive_to_script(cpp_type: str) -> Optional[str]:
    return PRIMITIVE_TYPES.get(cpp_type)


def _script_name(cpp_type: str) -> str:
    mapped = try_cpp_primitive_to_script(cpp_type)
    return mapped if mapped is not None else cpp_type


# --------------------------
# Default values
# --------------------------

_SCRIPT_VALUES: Dict[str, str] = {
    "nullptr": "null",
    "Variant::emptyVariantMap": "VariantMap()",
    "NPOS": "String::NPOS",
}


def cpp_value_to_script(cpp_value: str) -> str:
    return _SCRIPT_VALUES.get(cpp_value, cpp_value)


def _escaped_default(cpp_value: str) -> str:
    """
    Default value ready to be embedded in a quoted declaration string.
    """
    return cpp_value_to_script(cpp_value).replace('"', '\\"')


# --------------------------
# Type shapes
# --------------------------

@dataclass(frozen=True)
class TypeShape:
    """
    Structural view of a type name: 'Vector<SharedPtr<Node>>' becomes
    TypeShape('Vector', args=(TypeShape('SharedPtr', args=(TypeShape('Node'),)),)).
    """
    name: str
    is_pointer: bool = False
    args: Tuple["TypeShape", ...] = ()

    @property
    def is_identifier(self) -> bool:
        """
        A bare identifier: no template arguments, no pointer, no scope.
        """
        return not self.args and not self.is_pointer and _is_identifier(self.name)

    def single_arg(self, container: str) -> Optional["TypeShape"]:
        if self.name == container and not self.is_pointer and len(self.args) == 1:
            return self.args[0]
        return None


def _is_identifier(s: str) -> bool:
    return bool(s) and (s[0].isalpha() or s[0] == "_") and all(ch.isalnum() or ch == "_" for ch in s)


def _split_template_args(body: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(body):
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(body[start:i])
            start = i + 1
    parts.append(body[start:])
    return parts


def parse_type_shape(spelling: str) -> TypeShape:
    """
    Parse a type name (with template arguments) into a TypeShape.
    Unbalanced input yields a shape whose name is the raw text, which then
    matches none of the container rules.
    """
    s = spelling.strip()
    is_pointer = False
    if s.endswith("*"):
        is_pointer = True
        s = s[:-1].rstrip()

    lt = s.find("<")
    if lt < 0 or not s.endswith(">"):
        return TypeShape(name=s, is_pointer=is_pointer)

    body = s[lt + 1:-1]
    if body.count("<") != body.count(">"):
        return TypeShape(name=spelling.strip())
    args = tuple(parse_type_shape(a) for a in _split_template_args(body))
    return TypeShape(name=s[:lt].strip(), is_pointer=is_pointer, args=args)


def _element(shape: TypeShape, container: str, *, pointer: bool) -> Optional[str]:
    """
    Element type name of 'container<X>' (pointer=False) or 'container<X*>'
    (pointer=True), where X is a bare identifier.
    """
    arg = shape.single_arg(container)
    if arg is None or arg.args or arg.is_pointer != pointer or not _is_identifier(arg.name):
        return None
    return arg.name


def _shared_ptr_element(shape: TypeShape) -> Optional[str]:
    return _element(shape, "SharedPtr", pointer=False)


def _vector_of_shared_ptr_element(shape: TypeShape) -> Optional[str]:
    arg = shape.single_arg("Vector")
    if arg is None:
        return None
    return _shared_ptr_element(arg)


# --------------------------
# Mapping model
# --------------------------

class VariableUsage(Enum):
    PARAMETER = auto()
    RETURN = auto()


@dataclass
class ConvertedVariable:
    """
    Result of translating one parameter or return value.

    A default-constructed instance means "pass through unchanged" apart from
    the script declaration. `cpp_declaration` replaces the native declaration
    in the wrapper signature; `glue` converts between the two.
    """
    script_declaration: str = ""
    cpp_declaration: str = ""
    glue: str = ""

    @property
    def needs_wrapper(self) -> bool:
        return bool(self.cpp_declaration or self.glue)


# --------------------------
# Configuration
# --------------------------

@dataclass
class MappingConfig:
    """
    Settings for the type mapper.
    """
    # Engine context type; only valid as the first parameter of constructors
    context_type: str = "Context"
    # Smart-pointer element types whose ownership model needs a manual binding
    ownership_excluded: FrozenSet[str] = frozenset({"WorkItem"})
    # `using` aliases that are nevertheless bindable
    allowed_usings: FrozenSet[str] = frozenset({"VariantMap"})
    # Names accepted by the classifier in addition to primitives and void
    extra_known_types: FrozenSet[str] = frozenset({"VariantMap"})
    # Native spellings of a vector of strings
    string_vector_types: FrozenSet[str] = frozenset({"Vector<String>", "StringVector"})
    # Default-construction expressions of a string vector, mapped to script null
    string_vector_defaults: FrozenSet[str] = frozenset({"Vector< String >()", "Vector<String>()", "StringVector()"})
    no_bind_marker: str = "NO_BIND"
    fake_ref_marker: str = "FAKE_REF"
    flags_suffix: str = "Flags"


# --------------------------
# Rule table
# --------------------------

@dataclass(frozen=True)
class _Request:
    type: NativeType
    name: str
    usage: VariableUsage
    default_value: str
    shape: TypeShape

    @property
    def is_param(self) -> bool:
        return self.usage == VariableUsage.PARAMETER

    @property
    def is_return(self) -> bool:
        return self.usage == VariableUsage.RETURN

    @property
    def is_const_ref_param(self) -> bool:
        return self.is_param and self.type.is_const and self.type.is_reference


@dataclass(frozen=True)
class TranslationRule:
    name: str
    matches: Callable[[_Request], bool]
    apply: Callable[[_Request], ConvertedVariable]


# --------------------------
# Mapper
# --------------------------

class TypeMapper:
    """
    Decides whether native types can cross the script boundary and how.

    Build with the read-only SourceModel of the code base being bound:
      mapper = TypeMapper(model, config=MappingConfig())
    """

    def __init__(self, model: SourceModel, config: Optional[MappingConfig] = None) -> None:
        self.model = model
        self.config = config or MappingConfig()
        self._known_types: FrozenSet[str] = frozenset({"void"} | set(PRIMITIVE_TYPES) | set(self.config.extra_known_types))
        self.rules: List[TranslationRule] = [
            TranslationRule("void return", self._is_void_return, self._void_return),
            TranslationRule("string vector return", self._is_string_vector_return, self._string_vector_return),
            TranslationRule("shared pointer return", self._is_shared_ptr_return, self._shared_ptr_return),
            TranslationRule("vector of shared pointers return", self._is_handle_vector_return, self._handle_array_return),
            TranslationRule("POD vector of pointers return", self._is_pod_pointer_vector_return, self._handle_array_return),
            TranslationRule("POD vector return", self._is_pod_vector_return, self._pod_vector_return),
            TranslationRule("context", self._is_context, self._reject_context),
            TranslationRule("string vector parameter", self._is_string_vector_param, self._string_vector_param),
            TranslationRule("POD vector parameter", self._is_pod_vector_param, self._pod_vector_param),
            TranslationRule("POD vector of pointers parameter", self._is_pod_pointer_vector_param, self._pod_pointer_vector_param),
            TranslationRule("vector of shared pointers parameter", self._is_handle_vector_param, self._handle_vector_param),
        ]

    # ---- Public API ----

    def is_known_type(self, name: str) -> bool:
        if name in self._known_types:
            return True
        if self.model.find_class_by_name(name) is not None:
            return True
        if self.model.find_enum(name) is not None:
            return True
        return name.endswith(self.config.flags_suffix)

    def map_variable(
        self,
        t: NativeType,
        name: str = "",
        usage: VariableUsage = VariableUsage.PARAMETER,
        default_value: str = "",
    ) -> ConvertedVariable:
        """
        Translate a parameter or return value. `name` is empty for return values.
        Raises BindingError if the type can not be bound automatically.
        """
        self._reject_unsupported_shape(t)
        req = _Request(type=t, name=name, usage=usage, default_value=default_value, shape=parse_type_shape(t.name))
        for rule in self.rules:
            if rule.matches(req):
                logger.debug("%s '%s': %s", usage.name.lower(), t.to_string(), rule.name)
                return rule.apply(req)
        return self._fallback(req)

    def map_type(self, t: NativeType, usage: VariableUsage = VariableUsage.PARAMETER) -> str:
        """
        Declaration-only translation (no containers, no glue, no default value),
        used where a plain script type name is needed, e.g. for properties.
        """
        self._reject_unsupported_shape(t)
        if t.name == self.config.context_type and usage == VariableUsage.RETURN:
            raise BindingError(f'Error: type "{t.to_string()}" can not be returned')
        return self._plain_declaration(t, usage)

    # ---- Shared checks ----

    def _reject_unsupported_shape(self, t: NativeType) -> None:
        if t.is_rvalue_reference or t.is_double_pointer or t.is_reference_to_pointer:
            raise BindingError(f'Error: type "{t.to_string()}" can not automatically bind')

    def _class(self, name: str) -> Optional[ClassRecord]:
        return self.model.find_class_by_name(name)

    def _reject_excluded_subtype(self, req: _Request, subtype: str) -> None:
        if subtype in self.config.ownership_excluded:
            raise BindingError(
                f'Error: type "{req.type.to_string()}" can not automatically bind '
                f'because ownership of "{subtype}" needs a manual binding'
            )

    def _reject_default_value(self, req: _Request) -> None:
        if req.default_value:
            raise UnsupportedDefaultValueError(
                f'Default value "{req.default_value}" for parameter "{req.name}" of type '
                f'"{req.type.to_string()}" is not supported yet'
            )

    # ---- Return rules ----

    def _is_void_return(self, req: _Request) -> bool:
        return req.is_return and req.type.name == "void" and not req.type.is_pointer

    def _void_return(self, req: _Request) -> ConvertedVariable:
        return ConvertedVariable(script_declaration="void")

    def _is_string_vector_return(self, req: _Request) -> bool:
        # Works with both Vector<String> and Vector<String>&
        return req.is_return and req.type.name in self.config.string_vector_types and not req.type.is_pointer

    def _string_vector_return(self, req: _Request) -> ConvertedVariable:
        return ConvertedVariable(
            script_declaration="Array<String>@",
            cpp_declaration="CScriptArray*",
            glue='return VectorToArray<String>(result, "Array<String>");\n',
        )

    def _is_shared_ptr_return(self, req: _Request) -> bool:
        return req.is_return and _shared_ptr_element(req.shape) is not None

    def _shared_ptr_return(self, req: _Request) -> ConvertedVariable:
        subtype = _shared_ptr_element(req.shape)
        self._reject_excluded_subtype(req, subtype)
        return ConvertedVariable(
            script_declaration=_script_name(subtype) + "@+",
            cpp_declaration=subtype + "*",
            glue="return result.Detach();\n",
        )

    def _is_handle_vector_return(self, req: _Request) -> bool:
        return req.is_return and _vector_of_shared_ptr_element(req.shape) is not None

    def _is_pod_pointer_vector_return(self, req: _Request) -> bool:
        return req.is_return and _element(req.shape, "PODVector", pointer=True) is not None

    def _handle_array_return(self, req: _Request) -> ConvertedVariable:
        subtype = _vector_of_shared_ptr_element(req.shape) or _element(req.shape, "PODVector", pointer=True)
        script_subtype = _script_name(subtype)
        return ConvertedVariable(
            script_declaration=f"Array<{script_subtype}@>@",
            cpp_declaration="CScriptArray*",
            glue=f'return VectorToHandleArray(result, "Array<{script_subtype}@>");\n',
        )

    def _is_pod_vector_return(self, req: _Request) -> bool:
        # Reject const-by-value and mutable references
        return (
            req.is_return
            and req.type.is_const == req.type.is_reference
            and _element(req.shape, "PODVector", pointer=False) is not None
        )

    def _pod_vector_return(self, req: _Request) -> ConvertedVariable:
        script_subtype = _script_name(_element(req.shape, "PODVector", pointer=False))
        return ConvertedVariable(
            script_declaration=f"Array<{script_subtype}>@",
            cpp_declaration="CScriptArray*",
            glue=f'return VectorToArray(result, "Array<{script_subtype}>");\n',
        )

    # ---- Context ----

    def _is_context(self, req: _Request) -> bool:
        return req.type.name == self.config.context_type

    def _reject_context(self, req: _Request) -> ConvertedVariable:
        if req.is_param:
            raise BindingError(f"{self.config.context_type} can be used as first parameter of constructors only")
        raise BindingError(f'Error: type "{req.type.to_string()}" can not be returned')

    # ---- Parameter rules ----

    def _is_string_vector_param(self, req: _Request) -> bool:
        return req.is_const_ref_param and req.type.name in self.config.string_vector_types

    def _string_vector_param(self, req: _Request) -> ConvertedVariable:
        conv_name = req.name + "_conv"
        result = ConvertedVariable(
            script_declaration="Array<String>@+",
            cpp_declaration=f"CScriptArray* {conv_name}",
            glue=f"    {req.type.name} {req.name} = ArrayToVector<String>({conv_name});\n",
        )
        if req.default_value:
            if req.default_value not in self.config.string_vector_defaults:
                raise UnsupportedDefaultValueError(
                    f'Default value "{req.default_value}" for parameter "{req.name}" of type '
                    f'"{req.type.to_string()}" is not supported yet'
                )
            result.script_declaration += " = null"
        return result

    def _is_pod_vector_param(self, req: _Request) -> bool:
        return req.is_const_ref_param and _element(req.shape, "PODVector", pointer=False) is not None

    def _pod_vector_param(self, req: _Request) -> ConvertedVariable:
        self._reject_default_value(req)
        subtype = _element(req.shape, "PODVector", pointer=False)
        conv_name = req.name + "_conv"
        return ConvertedVariable(
            script_declaration=f"Array<{_script_name(subtype)}>@+",
            cpp_declaration=f"CScriptArray* {conv_name}",
            glue=f"    {req.type.name} {req.name} = ArrayToPODVector<{subtype}>({conv_name});\n",
        )

    def _is_pod_pointer_vector_param(self, req: _Request) -> bool:
        return req.is_const_ref_param and _element(req.shape, "PODVector", pointer=True) is not None

    def _pod_pointer_vector_param(self, req: _Request) -> ConvertedVariable:
        # TODO: check that the element type is reference counted
        self._reject_default_value(req)
        subtype = _element(req.shape, "PODVector", pointer=True)
        conv_name = req.name + "_conv"
        return ConvertedVariable(
            script_declaration=f"Array<{_script_name(subtype)}@>@",
            cpp_declaration=f"CScriptArray* {conv_name}",
            glue=f"    {req.type.name} {req.name} = ArrayToPODVector<{subtype}*>({conv_name});\n",
        )

    def _is_handle_vector_param(self, req: _Request) -> bool:
        return req.is_const_ref_param and _vector_of_shared_ptr_element(req.shape) is not None

    def _handle_vector_param(self, req: _Request) -> ConvertedVariable:
        subtype = _vector_of_shared_ptr_element(req.shape)
        self._reject_excluded_subtype(req, subtype)
        self._reject_default_value(req)
        conv_name = req.name + "_conv"
        return ConvertedVariable(
            script_declaration=f"Array<{_script_name(subtype)}@>@+",
            cpp_declaration=f"CScriptArray* {conv_name}",
            glue=f"    {req.type.name} {req.name} = HandleArrayToVector<{subtype}>({conv_name});\n",
        )

    # ---- Fallback ----

    def _fallback(self, req: _Request) -> ConvertedVariable:
        declaration = self._plain_declaration(req.type, req.usage)
        if req.default_value:
            declaration += " = " + _escaped_default(req.default_value)
        return ConvertedVariable(script_declaration=declaration)

    def _plain_declaration(self, t: NativeType, usage: VariableUsage) -> str:
        cpp_name = t.name
        spelling = t.to_string()

        if not self.is_known_type(cpp_name):
            raise BindingError(f'Error: type "{spelling}" can not automatically bind')

        cls = self._class(cpp_name)
        if cls is not None and cls.is_internal:
            raise BindingError(f'Error: type "{spelling}" can not automatically bind because internal')
        if cls is not None and cls.has_marker(self.config.no_bind_marker):
            raise BindingError(f'Error: type "{cpp_name}" can not automatically bind because have @nobind mark')

        if self.model.is_using(cpp_name) and cpp_name not in self.config.allowed_usings:
            raise BindingError(f'Using "{cpp_name}" can not automatically bind')

        script_name = _script_name(cpp_name)

        if script_name == "void" and t.is_pointer:
            raise BindingError('Error: type "void*" can not automatically bind')
        if "<" in script_name:
            raise BindingError(f'Error: type "{spelling}" can not automatically bind')
        if "::" in spelling:
            raise BindingError(f'Error: type "{spelling}" can not automatically bind because internal')

        if usage == VariableUsage.PARAMETER and t.is_const and t.is_reference:
            return f"const {script_name}&in"

        declaration = script_name
        if t.is_reference:
            declaration += "&"
        elif t.is_pointer:
            if cls is None or not (cls.is_ref_counted or cls.has_marker(self.config.fake_ref_marker)):
                raise BindingError(f'Error: type "{spelling}" can not automatically bind')
            declaration += "@+"

        if usage == VariableUsage.RETURN and t.is_const and not t.is_pointer:
            declaration = "const " + declaration

        return declaration


__all__ = [
    "BindingError",
    "NotPrimitiveError",
    "UnsupportedDefaultValueError",
    "PRIMITIVE_TYPES",
    "cpp_primitive_to_script",
    "try_cpp_primitive_to_script",
    "cpp_value_to_script",
    "TypeShape",
    "parse_type_shape",
    "VariableUsage",
    "ConvertedVariable",
    "MappingConfig",
    "TranslationRule",
    "TypeMapper",
]
