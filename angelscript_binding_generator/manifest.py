import sys
import os
import platform
import shlex
from datetime import datetime, timezone
from importlib import metadata as importlib_metadata

import json
from pathlib import Path
from typing import Optional
from .emitters.angelscript_emitter import GenerationResult
from .models import GenerationContext
from .utils import write_text

import logging
logger = logging.getLogger(__name__)

DIST_NAME = "angelscript-binding-generator"


def _generator_version() -> Optional[str]:
    try:
        return importlib_metadata.version(DIST_NAME)
    except importlib_metadata.PackageNotFoundError:
        return None


def build_manifest(ctx: GenerationContext, result: GenerationResult) -> dict:
    """
    Collect generator metadata, invocation details and the per-function outcome
    (generated bindings and skip reasons) into a JSON-serializable dict.
    """
    argv = list(getattr(sys, "argv", []) or [])
    command_line = " ".join(shlex.quote(a) for a in argv) if argv else ""

    env_info = {
        "python_version": sys.version,
        "python_executable": sys.executable,
        "platform": platform.platform(),
        "system": platform.system(),
        "machine": platform.machine(),
        "cwd": os.getcwd(),
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
    }

    return {
        "generator": {
            "name": DIST_NAME,
            "version": _generator_version() or "unknown",
        },
        "invocation": {
            "argv": argv,
            "command_line": command_line,
        },
        "environment": env_info,
        "context": ctx.to_dict(),
        **result.to_dict(),
    }


def emit_manifest(ctx: GenerationContext, result: GenerationResult) -> Path:
    """
    Emit manifest.json next to the generated source. Useful for debugging and
    for tracking which signatures still need manual bindings.
    """
    manifest_path = ctx.output_dir / "manifest.json"
    content = json.dumps(build_manifest(ctx, result), indent=2)
    write_text(manifest_path, content, dry_run=ctx.dry_run)
    return manifest_path
