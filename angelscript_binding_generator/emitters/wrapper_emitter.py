#!/usr/bin/env python3
"""
Wrapper (trampoline) and registration-expression synthesis.

Given a function descriptor and the ConvertedVariables computed by the
TypeMapper for its parameters and return value, this module emits:

- the C++ source of a static wrapper function that converts script-side
  arguments (e.g. CScriptArray*) to native ones, calls the native function and
  converts the result back
- the asFUNCTIONPR / asMETHODPR expression used to register the native
  function directly when no wrapper is needed

Three call kinds are supported: free functions, static methods and instance
methods. Instance-method wrappers take the object pointer as first argument
(asCALL_CDECL_OBJFIRST).
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence, Union

from ..models import FunctionInfo, MethodInfo, MethodKind, ParameterInfo, SourceModel
from ..type_mapping import ConvertedVariable

logger = logging.getLogger(__name__)

CallableInfo = Union[FunctionInfo, MethodInfo]


# --------------------------
# Naming
# --------------------------

def _type_name_fragment(type_name: str) -> str:
    """
    'Vector<SharedPtr<Node>>' -> 'VectorSharedPtrNode', usable inside an identifier.
    """
    for token in (" ", "::", "<", ">", "*"):
        type_name = type_name.replace(token, "")
    return type_name


def _function_wrapper_name(name: str, params: Sequence[ParameterInfo]) -> str:
    if not params:
        return name + "_void"
    return name + "".join("_" + _type_name_fragment(p.type.name) for p in params)


def generate_wrapper_name(fn: CallableInfo, template_version: bool = False) -> str:
    """
    Unique wrapper name per overload:
      Clamp(int, int, int)        -> Clamp_int_int_int
      static Foo::Bar()           -> Foo_Bar_void
      Node::SetName(const String&) (template) -> Node_SetName_String_template
    """
    base = _function_wrapper_name(fn.name, fn.parameters)
    if isinstance(fn, MethodInfo):
        base = f"{fn.class_name}_{base}"
        if template_version and fn.kind == MethodKind.INSTANCE:
            base += "_template"
    return base


# --------------------------
# Parameter type lists
# --------------------------

def _specialize(type_spelling: str, specialization: dict) -> str:
    for template_param, concrete in specialization.items():
        type_spelling = re.sub(rf"\b{re.escape(template_param)}\b", concrete, type_spelling)
    return type_spelling


def join_param_types(fn: CallableInfo) -> str:
    """
    Comma-separated native parameter types with the function's template
    specialization applied.
    """
    return ", ".join(_specialize(p.type.to_string(), fn.specialization) for p in fn.parameters)


# --------------------------
# Emitter
# --------------------------

class WrapperEmitter:
    """
    Emit wrapper function sources and registration expressions.

    Usage:
        emitter = WrapperEmitter(model)
        source = emitter.generate_wrapper(fn, converted_params, converted_return)
        expr = emitter.function_pr(fn)
    """

    def __init__(self, model: SourceModel) -> None:
        self.model = model

    # ---- Wrappers ----

    def generate_wrapper(
        self,
        fn: CallableInfo,
        converted_params: Sequence[ConvertedVariable],
        converted_return: ConvertedVariable,
        template_version: bool = False,
    ) -> str:
        """
        Dispatch on the call kind of `fn`.
        """
        if isinstance(fn, FunctionInfo):
            return self.generate_function_wrapper(fn, converted_params, converted_return)
        if fn.kind == MethodKind.STATIC:
            return self.generate_static_wrapper(fn, converted_params, converted_return)
        return self.generate_method_wrapper(fn, converted_params, converted_return, template_version)

    def generate_function_wrapper(
        self,
        fn: FunctionInfo,
        converted_params: Sequence[ConvertedVariable],
        converted_return: ConvertedVariable,
    ) -> str:
        return self._render(
            fn,
            wrapper_name=generate_wrapper_name(fn),
            self_param=None,
            callee=fn.name,
            header_file=fn.header_file,
            converted_params=converted_params,
            converted_return=converted_return,
        )

    def generate_static_wrapper(
        self,
        fn: MethodInfo,
        converted_params: Sequence[ConvertedVariable],
        converted_return: ConvertedVariable,
    ) -> str:
        return self._render(
            fn,
            wrapper_name=generate_wrapper_name(fn),
            self_param=None,
            callee=f"{fn.class_name}::{fn.name}",
            header_file=fn.header_file,
            converted_params=converted_params,
            converted_return=converted_return,
        )

    def generate_method_wrapper(
        self,
        fn: MethodInfo,
        converted_params: Sequence[ConvertedVariable],
        converted_return: ConvertedVariable,
        template_version: bool = False,
    ) -> str:
        # The guard comes from the class header, which may differ from where the method is declared
        cls = self.model.find_class_by_name(fn.class_name)
        header_file = cls.header_file if cls is not None and cls.header_file else fn.header_file
        return self._render(
            fn,
            wrapper_name=generate_wrapper_name(fn, template_version),
            self_param=f"{fn.class_name}* ptr",
            callee=f"ptr->{fn.name}",
            header_file=header_file,
            converted_params=converted_params,
            converted_return=converted_return,
        )

    def _render(
        self,
        fn: CallableInfo,
        wrapper_name: str,
        self_param: Optional[str],
        callee: str,
        header_file: str,
        converted_params: Sequence[ConvertedVariable],
        converted_return: ConvertedVariable,
    ) -> str:
        params = fn.parameters
        if len(converted_params) != len(params):
            raise ValueError(
                f"{fn.name}: got {len(converted_params)} converted parameters for {len(params)} parameters"
            )

        native_return = fn.return_type.to_string()
        glue_return_type = converted_return.cpp_declaration or native_return

        param_decls: List[str] = [self_param] if self_param else []
        for param, conv in zip(params, converted_params):
            param_decls.append(conv.cpp_declaration or f"{param.type.to_string()} {param.name}")

        lines: List[str] = []
        define = self.model.inside_define(header_file)
        if define:
            lines.append(f"#ifdef {define}\n")
        if fn.location:
            lines.append(f"// {fn.location}\n")
        lines.append(f"static {glue_return_type} {wrapper_name}({', '.join(param_decls)})\n")
        lines.append("{\n")

        for conv in converted_params:
            lines.append(conv.glue)

        call = f"{callee}({', '.join(p.name for p in params)});\n"
        if glue_return_type != "void":
            lines.append(f"    {native_return} result = {call}")
        else:
            lines.append(f"    {call}")

        if converted_return.glue:
            lines.append("    " + converted_return.glue)
        elif glue_return_type != "void":
            lines.append("    return result;\n")

        lines.append("}\n")
        if define:
            lines.append("#endif\n")

        logger.debug("Synthesized wrapper %s for %s", wrapper_name, fn.cpp_signature)
        return "".join(lines)

    # ---- Registration expressions ----

    def function_pr(self, fn: CallableInfo) -> str:
        """
        asFUNCTIONPR(...) for a free function or a static method.
        """
        name = f"{fn.class_name}::{fn.name}" if isinstance(fn, MethodInfo) else fn.name
        params = f"({join_param_types(fn)})"
        return f"asFUNCTIONPR({name}, {params}, {fn.return_type.to_string()})"

    def method_pr(self, fn: MethodInfo, template_version: bool = False) -> str:
        """
        asMETHODPR(...) for an instance method. The template version is used
        inside `template <class T>` registration helpers shared by subclasses.
        """
        params = f"({join_param_types(fn)})"
        if fn.is_const:
            params += " const"
        class_name = "T" if template_version else fn.class_name
        return f"asMETHODPR({class_name}, {fn.name}, {params}, {fn.return_type.to_string()})"

    def registration_expression(self, fn: CallableInfo, template_version: bool = False) -> str:
        if isinstance(fn, MethodInfo) and fn.kind == MethodKind.INSTANCE:
            return self.method_pr(fn, template_version)
        return self.function_pr(fn)


__all__ = [
    "WrapperEmitter",
    "generate_wrapper_name",
    "join_param_types",
]
