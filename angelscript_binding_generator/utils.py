#!/usr/bin/env python3
"""
Logging setup, the Jinja2 renderer for the generated bindings, and the writer
that puts the rendered C++ on disk.
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union
import logging

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    TemplateNotFound,
)

logger = logging.getLogger(__name__)

PACKAGE_NAME = "angelscript_binding_generator"


def configure_logging(
    level: Optional[Union[int, str]] = None,
    *,
    to_file: Optional[Union[str, Path]] = None,
    fmt: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure logging for a generator run.

    Skipped bindings are reported at DEBUG, written files at INFO, so `-v`
    lists every signature that still needs a manual binding.
    """
    if level is None:
        resolved_level = logging.INFO
    elif isinstance(level, str):
        resolved_level = getattr(logging, level.upper(), logging.INFO)
    else:
        resolved_level = int(level)

    formatter = logging.Formatter(fmt or "%(levelname)s: %(message)s")

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(resolved_level)

    handlers: List[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if to_file:
        handlers.append(logging.FileHandler(str(to_file), mode="w"))
    for h in handlers:
        h.setLevel(resolved_level)
        h.setFormatter(formatter)
        root.addHandler(h)

    logging.getLogger(PACKAGE_NAME).setLevel(resolved_level)


# ----------------------------------------
# Jinja environment helpers
# ----------------------------------------

class TemplateRenderer:
    """
    Renders the bindings template. A user templates directory, when given,
    takes precedence over the templates shipped in the package.
    """

    def __init__(self, templates_dir: Optional[Path] = None) -> None:
        loaders: List[Any] = []

        if templates_dir:
            p = Path(templates_dir)
            if p.is_dir():
                loaders.append(FileSystemLoader(str(p)))
            else:
                logger.warning("Templates directory %s does not exist; using package templates", p)

        try:
            loaders.append(PackageLoader(PACKAGE_NAME, "templates"))
        except Exception:
            # Namespace package run from a source checkout
            loaders.append(FileSystemLoader(str(Path(__file__).parent / "templates")))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self.env.filters["cpp_comment"] = _filter_cpp_comment
        self.env.globals["len"] = len

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound as e:
            raise RuntimeError(f"Template not found: {template_name}") from e
        return template.render(**context)


def _filter_cpp_comment(text: Any) -> str:
    """
    Turn arbitrary (possibly multi-line) text into C++ line comments.
    """
    return "\n".join(f"// {line}".rstrip() for line in str(text).splitlines() or [""])


# ----------------------------------------
# File I/O helpers
# ----------------------------------------

def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _read_text_if_exists(path: Path, encoding: str) -> Optional[str]:
    try:
        with open(path, "r", encoding=encoding, newline="") as f:
            return f.read()
    except FileNotFoundError:
        return None


def write_text(
    path: Path,
    content: str,
    encoding: str = "utf-8",
    dry_run: bool = False,
) -> bool:
    """
    Write generated text atomically, with Unix newlines.

    The file is left untouched when its content is unchanged, so rebuilds that
    depend on the generated bindings only trigger on real changes. Returns True
    if a write occurred.
    """
    path = Path(path)
    if dry_run:
        logger.info("[dry-run] write %s", path)
        return False

    content = _normalize_newlines(content)
    old = _read_text_if_exists(path, encoding)
    if old is not None and _normalize_newlines(old) == content:
        logger.debug("[skip] %s (unchanged)", path)
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="\n") as f:
            f.write(content)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
    logger.info("[write] %s", path)
    return True


__all__ = [
    "TemplateRenderer",
    "configure_logging",
    "write_text",
]
