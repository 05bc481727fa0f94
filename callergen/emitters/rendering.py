"""Shared Jinja environment for the emitters."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

TEMPLATES_DIR = Path(__file__).with_name("templates")


def template_environment(templates_dir: Path | None = None) -> Environment:
    """Return the Jinja environment used by every emitter.

    A custom ``templates_dir`` takes precedence over the bundled templates.
    """
    directories = [str(templates_dir)] if templates_dir else []
    directories.append(str(TEMPLATES_DIR))
    return Environment(
        loader=FileSystemLoader(directories),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


__all__ = ["TEMPLATES_DIR", "template_environment"]
