#!/usr/bin/env python3
"""
AngelScript C++ binding generator.

This entrypoint wires together:
- Loading the native declaration model (JSON produced by the parsing stage)
- Type mapping and wrapper synthesis for every free function and class method
- Emitting (Jinja2-based) a single C++ source with wrappers and registrations

Outputs:
- <output_file> (e.g. src/generated/GeneratedBindings.cpp)
- <optional> <output_dir>/manifest.json (generated and skipped functions)

Usage (example):
  python -m angelscript_binding_generator.generate_bindings \
    --model build/urho3d_model.json \
    --output-file src/generated/GeneratedBindings.cpp \
    --namespace Urho3D

Notes:
- Functions that can not be bound automatically are skipped and listed at the
  end of the generated file (and in the manifest).
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence
import logging

logger = logging.getLogger(__name__)

# Local modules
from .models import GenerationContext, load_model
from .utils import TemplateRenderer, configure_logging
from .manifest import emit_manifest
from .emitters.angelscript_emitter import AngelScriptEmitter, GeneratorConfig
from .type_mapping import MappingConfig


# --------------------------
# CLI
# --------------------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate AngelScript bindings from a native declaration model")

    p.add_argument(
        "--model",
        required=True,
        help="JSON description of classes, enums, usings and functions to bind.",
    )
    p.add_argument(
        "--output-file",
        default="generated/GeneratedBindings.cpp",
        help="Path of the generated C++ source.",
    )
    p.add_argument(
        "--templates-dir",
        default=None,
        help="Optional templates directory overriding the package templates.",
    )
    p.add_argument(
        "--namespace",
        default="Urho3D",
        help="C++ namespace wrapping the generated code.",
    )
    p.add_argument(
        "--template-methods",
        action="store_true",
        help="Register instance methods from per-class template <class T> RegisterMembers_<Class>(engine, className) helpers shared by subclasses.",
    )
    p.add_argument(
        "--context-type",
        default="Context",
        help="Engine context type that may only appear as the first constructor parameter.",
    )
    p.add_argument(
        "--exclude-subtype",
        action="append",
        default=[],
        help="SharedPtr element type whose ownership needs a manual binding (repeatable). Defaults to WorkItem.",
    )
    p.add_argument(
        "--no-manifest",
        action="store_true",
        help="Do not emit the JSON manifest alongside generated sources.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Run type mapping and report bindings without writing files.",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for DEBUG, which also lists every skipped function)."
    )
    p.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease verbosity (-q for WARNING, -qq for ERROR)."
    )
    p.add_argument(
        "--log-level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET", "critical", "error", "warning", "info", "debug", "notset"],
        default=None,
        help="Explicit log level (overrides -v/-q)."
    )
    p.add_argument(
        "--log-format",
        default="%(levelname)s: %(message)s",
        help="Logging format string."
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Optional file to write logs to."
    )

    return p.parse_args(argv)


def _resolve_log_level(ns: argparse.Namespace) -> int:
    if ns.log_level:
        return getattr(logging, str(ns.log_level).upper(), logging.INFO)
    if ns.verbose >= 1:
        return logging.DEBUG
    if ns.quiet >= 2:
        return logging.ERROR
    if ns.quiet == 1:
        return logging.WARNING
    return logging.INFO


# --------------------------
# Main
# --------------------------

def main(argv: Optional[Sequence[str]] = None) -> int:
    ns = parse_args(argv)

    configure_logging(
        level=_resolve_log_level(ns),
        to_file=ns.log_file,
        fmt=ns.log_format,
    )

    ctx = GenerationContext(
        output_file=Path(ns.output_file).resolve(),
        templates_dir=Path(ns.templates_dir).resolve() if ns.templates_dir else None,
        dry_run=ns.dry_run,
    )

    try:
        renderer = TemplateRenderer(ctx.templates_dir)
    except Exception:
        logger.exception("Failed to initialize templating")
        return 1

    try:
        model = load_model(Path(ns.model))
    except (OSError, ValueError, KeyError):
        logger.exception("Failed to load model from %s", ns.model)
        return 2

    logger.info(
        "Loaded %d class(es) and %d free function(s) from %s",
        len(model.classes), len(model.functions), ns.model,
    )

    mapping_config = MappingConfig(context_type=ns.context_type)
    if ns.exclude_subtype:
        mapping_config.ownership_excluded = frozenset(ns.exclude_subtype)

    emitter = AngelScriptEmitter(
        ctx=ctx,
        renderer=renderer,
        config=GeneratorConfig(namespace=ns.namespace, template_methods=ns.template_methods),
        mapping_config=mapping_config,
    )

    try:
        result = emitter.emit(model)
    except Exception:
        logger.exception("Failed to generate bindings")
        return 3

    if result.skipped:
        logger.info("%d function(s) need manual bindings (run with -v for details)", len(result.skipped))

    if not ns.no_manifest:
        try:
            emit_manifest(ctx, result)
        except Exception:
            logger.exception("Failed to emit generation manifest")
            return 4

    return 0


if __name__ == "__main__":
    sys.exit(main())
