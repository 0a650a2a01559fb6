#!/usr/bin/env python3
"""
AngelScript registration emitter.

This emitter uses the TypeMapper and the WrapperEmitter to:
- Only expose functions whose parameter and return types can cross the script
  boundary, either directly or through generated wrappers.
- Skip (and report) every signature that raises BindingError, without
  aborting the run.
- Render a single C++ source file holding all wrappers and a
  RegisterGenerated(asIScriptEngine*) function.

Outputs:
- <output_file> (rendered from the angelscript_bindings.cpp.j2 template)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from ..models import ClassRecord, FunctionInfo, GenerationContext, MethodInfo, MethodKind, SourceModel
from ..type_mapping import BindingError, ConvertedVariable, MappingConfig, TypeMapper, VariableUsage
from ..utils import TemplateRenderer, write_text
from .wrapper_emitter import WrapperEmitter, generate_wrapper_name

logger = logging.getLogger(__name__)

CallableInfo = Union[FunctionInfo, MethodInfo]


# --------------------------
# Configuration
# --------------------------

@dataclass(frozen=True)
class GeneratorConfig:
    """
    Configuration for the AngelScript emitter.
    """
    template_name: str = "angelscript_bindings.cpp.j2"
    # Namespace wrapping the generated code
    namespace: str = "Urho3D"
    # Emit instance-method wrappers/expressions in `template <class T>` form
    template_methods: bool = False
    # Skip methods of classes marked internal or NO_BIND
    skip_excluded_classes: bool = True
    # Whether to include static methods
    emit_static_methods: bool = True


# --------------------------
# Binding records
# --------------------------

@dataclass
class FunctionBinding:
    """
    Everything needed to register one native function with the script engine.
    """
    kind: str  # "function" / "static" / "method"
    name: str
    class_name: str
    cpp_signature: str
    script_declaration: str
    registration_expression: str
    call_convention: str
    wrapper_source: str = ""
    define: str = ""
    header_file: str = ""
    # Registered from a `template <class T>` helper that receives the object type name
    template_member: bool = False

    @property
    def register_statement(self) -> str:
        decl = f'"{self.script_declaration}"'
        if self.kind == "method":
            object_type = "className" if self.template_member else f'"{self.class_name}"'
            return f'engine->RegisterObjectMethod({object_type}, {decl}, {self.registration_expression}, {self.call_convention});'
        if self.kind == "static":
            return (
                f'engine->SetDefaultNamespace("{self.class_name}");\n'
                f"    engine->RegisterGlobalFunction({decl}, {self.registration_expression}, {self.call_convention});\n"
                '    engine->SetDefaultNamespace("");'
            )
        return f"engine->RegisterGlobalFunction({decl}, {self.registration_expression}, {self.call_convention});"

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "name": self.name,
            "class_name": self.class_name,
            "cpp_signature": self.cpp_signature,
            "script_declaration": self.script_declaration,
            "registration_expression": self.registration_expression,
            "call_convention": self.call_convention,
            "has_wrapper": bool(self.wrapper_source),
            "define": self.define,
            "template_member": self.template_member,
        }


@dataclass
class SkippedBinding:
    cpp_signature: str
    reason: str

    def to_dict(self) -> Dict:
        return {"cpp_signature": self.cpp_signature, "reason": self.reason}


@dataclass
class MemberGroup:
    """
    Instance methods of one class, rendered into
    `template <class T> void RegisterMembers_<Class>(asIScriptEngine*, const char* className)`
    so subclasses can reuse the registrations.
    """
    class_name: str
    define: str = ""
    bindings: List[FunctionBinding] = field(default_factory=list)


@dataclass
class GenerationResult:
    bindings: List[FunctionBinding] = field(default_factory=list)
    skipped: List[SkippedBinding] = field(default_factory=list)

    @property
    def includes(self) -> List[str]:
        return sorted({b.header_file for b in self.bindings if b.header_file})

    @property
    def registrations(self) -> List[FunctionBinding]:
        """Bindings registered directly from RegisterGenerated."""
        return [b for b in self.bindings if not b.template_member]

    @property
    def member_groups(self) -> List[MemberGroup]:
        groups: Dict[str, MemberGroup] = {}
        for b in self.bindings:
            if not b.template_member:
                continue
            group = groups.get(b.class_name)
            if group is None:
                group = groups[b.class_name] = MemberGroup(class_name=b.class_name, define=b.define)
            group.bindings.append(b)
        return list(groups.values())

    def to_dict(self) -> Dict:
        return {
            "generated_count": len(self.bindings),
            "skipped_count": len(self.skipped),
            "bindings": [b.to_dict() for b in self.bindings],
            "skipped": [s.to_dict() for s in self.skipped],
        }


# --------------------------
# Emitter
# --------------------------

class AngelScriptEmitter:
    """
    Emit AngelScript registration code for every bindable function in a model.

    Usage:
        emitter = AngelScriptEmitter(ctx, renderer, config=config)
        result = emitter.emit(model)
    """

    def __init__(
        self,
        ctx: GenerationContext,
        renderer: TemplateRenderer,
        config: Optional[GeneratorConfig] = None,
        mapping_config: Optional[MappingConfig] = None,
    ) -> None:
        self.ctx = ctx
        self.renderer = renderer
        self.config = config or GeneratorConfig()
        self.mapping_config = mapping_config or MappingConfig()

    # ---- Public API ----

    def emit(self, model: SourceModel) -> GenerationResult:
        """
        Collect bindings for the whole model, render them and write the output file.
        """
        result = self.collect(model)
        text = self.render(result)
        write_text(self.ctx.output_file, text, dry_run=self.ctx.dry_run)
        logger.info(
            "Generated %d binding(s), skipped %d, into %s",
            len(result.bindings), len(result.skipped), self.ctx.output_file,
        )
        return result

    def collect(self, model: SourceModel) -> GenerationResult:
        mapper = TypeMapper(model, config=self.mapping_config)
        wrappers = WrapperEmitter(model)
        result = GenerationResult()

        for fn in model.functions:
            self._bind(fn, mapper, wrappers, result)

        for cls in model.classes:
            if self.config.skip_excluded_classes and self._is_excluded(cls):
                logger.debug("Skipping excluded class %s", cls.name)
                continue
            for m in cls.methods:
                if m.kind == MethodKind.STATIC and not self.config.emit_static_methods:
                    continue
                self._bind(m, mapper, wrappers, result)

        return result

    def render(self, result: GenerationResult) -> str:
        context = {
            "namespace": self.config.namespace,
            "includes": result.includes,
            "bindings": result.bindings,
            "registrations": result.registrations,
            "member_groups": result.member_groups,
            "skipped": result.skipped,
        }
        return self.renderer.render(self.config.template_name, context)

    # ---- Internals ----

    def _is_excluded(self, cls: ClassRecord) -> bool:
        return cls.is_internal or cls.has_marker(self.mapping_config.no_bind_marker)

    def _bind(self, fn: CallableInfo, mapper: TypeMapper, wrappers: WrapperEmitter, result: GenerationResult) -> None:
        try:
            result.bindings.append(self.bind_function(fn, mapper, wrappers))
        except BindingError as e:
            logger.debug("Skipping %s: %s", fn.cpp_signature, e)
            result.skipped.append(SkippedBinding(cpp_signature=fn.cpp_signature, reason=str(e)))

    def bind_function(self, fn: CallableInfo, mapper: TypeMapper, wrappers: WrapperEmitter) -> FunctionBinding:
        """
        Translate one function. Raises BindingError if any part can not be bound.
        """
        converted_params: List[ConvertedVariable] = [
            mapper.map_variable(p.type, p.name, VariableUsage.PARAMETER, p.default_value)
            for p in fn.parameters
        ]
        converted_return = mapper.map_variable(fn.return_type, "", VariableUsage.RETURN)

        is_method = isinstance(fn, MethodInfo) and fn.kind == MethodKind.INSTANCE
        is_static = isinstance(fn, MethodInfo) and fn.kind == MethodKind.STATIC
        template_version = is_method and self.config.template_methods

        script_decl = self._script_declaration(fn, converted_params, converted_return)
        needs_wrapper = converted_return.needs_wrapper or any(c.needs_wrapper for c in converted_params)

        wrapper_source = ""
        if needs_wrapper:
            wrapper_source = wrappers.generate_wrapper(fn, converted_params, converted_return, template_version)
            expression = f"asFUNCTION({generate_wrapper_name(fn, template_version)})"
            call_convention = "asCALL_CDECL_OBJFIRST" if is_method else "asCALL_CDECL"
        else:
            expression = wrappers.registration_expression(fn, template_version)
            call_convention = "asCALL_THISCALL" if is_method else "asCALL_CDECL"

        header_file = fn.header_file
        if isinstance(fn, MethodInfo):
            cls = wrappers.model.find_class_by_name(fn.class_name)
            if cls is not None and cls.header_file:
                header_file = cls.header_file

        return FunctionBinding(
            kind="method" if is_method else ("static" if is_static else "function"),
            name=fn.name,
            class_name=fn.class_name if isinstance(fn, MethodInfo) else "",
            cpp_signature=fn.cpp_signature,
            script_declaration=script_decl,
            registration_expression=expression,
            call_convention=call_convention,
            wrapper_source=wrapper_source,
            define=wrappers.model.inside_define(header_file),
            header_file=header_file,
            template_member=template_version,
        )

    def _script_declaration(
        self,
        fn: CallableInfo,
        converted_params: Sequence[ConvertedVariable],
        converted_return: ConvertedVariable,
    ) -> str:
        params = ", ".join(c.script_declaration for c in converted_params)
        decl = f"{converted_return.script_declaration} {fn.name}({params})"
        if isinstance(fn, MethodInfo) and fn.kind == MethodKind.INSTANCE and fn.is_const:
            decl += " const"
        return decl


__all__ = [
    "GeneratorConfig",
    "FunctionBinding",
    "SkippedBinding",
    "MemberGroup",
    "GenerationResult",
    "AngelScriptEmitter",
]
