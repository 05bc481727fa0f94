"""Identifier case conversion shared by the WIT and stub emitters.

Both artifacts derive every name through these helpers so that a record
emitted as ``get-file-info-signature-remote`` and the stub
``get_file_info_remote_rpc`` sending the ``GetFileInfo`` tag always agree.
"""

from __future__ import annotations

import re
from typing import List

_WORD_PATTERN = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")

# Identifiers that must be written as %name when used as WIT identifiers.
WIT_KEYWORDS = frozenset(
    {
        "as",
        "async",
        "bool",
        "borrow",
        "char",
        "constructor",
        "enum",
        "export",
        "f32",
        "f64",
        "flags",
        "float32",
        "float64",
        "from",
        "func",
        "future",
        "import",
        "include",
        "interface",
        "list",
        "option",
        "own",
        "package",
        "record",
        "resource",
        "result",
        "s16",
        "s32",
        "s64",
        "s8",
        "static",
        "stream",
        "string",
        "tuple",
        "type",
        "u16",
        "u32",
        "u64",
        "u8",
        "use",
        "variant",
        "with",
        "world",
    }
)


RUST_KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else",
        "enum", "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop",
        "match", "mod", "move", "mut", "pub", "ref", "return", "self", "static",
        "struct", "super", "trait", "true", "type", "unsafe", "use", "where", "while",
        "abstract", "become", "box", "do", "final", "gen", "macro", "override", "priv",
        "try", "typeof", "unsized", "virtual", "yield",
    }
)


def split_words(identifier: str) -> List[str]:
    """Split a Rust or WIT identifier into lowercase words.

    Words break on ``_``/``-``, lower-to-upper transitions and acronym
    boundaries. A word starting with a digit is glued to the previous word.
    """
    words: List[str] = []
    for chunk in re.split(r"[_\-\s]+", identifier):
        for match in _WORD_PATTERN.finditer(chunk):
            word = match.group(0).lower()
            if word[0].isdigit() and words:
                words[-1] += word
            else:
                words.append(word)
    return words


def to_kebab_case(identifier: str) -> str:
    return "-".join(split_words(identifier))


def to_snake_case(identifier: str) -> str:
    return to_kebab_case(identifier).replace("-", "_")


def to_pascal_case(identifier: str) -> str:
    """Upper-case the first character of every kebab word (``get-info`` -> ``GetInfo``)."""
    return "".join(word[:1].upper() + word[1:] for word in split_words(identifier))


def wit_identifier(name: str) -> str:
    """Return ``name`` escaped for use as a WIT identifier."""
    return f"%{name}" if name in WIT_KEYWORDS else name


def rust_identifier(name: str) -> str:
    """Return ``name`` as a raw identifier when it is a Rust keyword."""
    return f"r#{name}" if name in RUST_KEYWORDS else name


__all__ = [
    "RUST_KEYWORDS",
    "WIT_KEYWORDS",
    "rust_identifier",
    "split_words",
    "to_kebab_case",
    "to_pascal_case",
    "to_snake_case",
    "wit_identifier",
]
