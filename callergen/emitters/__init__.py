"""Renderers for the generated WIT interfaces and Rust caller stubs."""

from __future__ import annotations

from .rendering import TEMPLATES_DIR, template_environment
from .stubs import CallerUtilsGenerator
from .wit import WitEmitter

__all__ = ["CallerUtilsGenerator", "TEMPLATES_DIR", "WitEmitter", "template_environment"]
