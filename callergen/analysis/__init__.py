"""Rust source analysis: process discovery, signatures and type mapping."""

from __future__ import annotations

from .indexer import ProjectIndex, SourceIndexer
from .signatures import SignatureExtractor
from .typemap import TypeMapper

__all__ = ["ProjectIndex", "SignatureExtractor", "SourceIndexer", "TypeMapper"]
