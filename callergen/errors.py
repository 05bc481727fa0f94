"""Error taxonomy for the analysis and code generation pipeline."""

from __future__ import annotations

from typing import Sequence


class CallerGenError(RuntimeError):
    """Base class for every error raised by the pipeline."""

    kind = "error"


# Discovery


class DiscoveryError(CallerGenError):
    """Raised when the annotated process block cannot be located."""

    kind = "discovery"


class MissingAnnotationError(DiscoveryError):
    """No annotated process implementation exists in a process project."""

    kind = "missing-annotation"


class AmbiguousDefinitionError(DiscoveryError):
    """More than one candidate definition was found where exactly one is allowed."""

    kind = "ambiguous-definition"


# Signatures


class SignatureError(CallerGenError):
    """Raised when an exposed method cannot be turned into a signature."""

    kind = "signature"


class UnsupportedReceiverError(SignatureError):
    """The exposed method does not take the process state as ``&mut self``."""

    kind = "unsupported-receiver"


# Type mapping


class TypeMappingError(CallerGenError):
    """Raised when a Rust type cannot be expressed in the interface grammar."""

    kind = "type-mapping"


class UnsupportedTypeError(TypeMappingError):
    kind = "unsupported-type"


class UnresolvedTypeError(TypeMappingError):
    kind = "unresolved-type"


class CyclicTypeError(TypeMappingError):
    """A named type references itself, directly or through other named types."""

    kind = "cyclic-type"

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = tuple(cycle)
        super().__init__(f"Cyclic type reference: {' -> '.join(self.cycle)}")


class TypeNameCollisionError(TypeMappingError):
    """Two different declarations resolved to the same interface name."""

    kind = "type-name-collision"


# Wiring


class WiringError(CallerGenError):
    kind = "wiring"


class ManifestConflictError(WiringError):
    """An existing manifest entry has a shape the generator must not overwrite."""

    kind = "manifest-conflict"


# Worlds


class WorldSelectionError(CallerGenError):
    """The configured aggregator world is not used by any generated process."""

    kind = "unknown-world"


class WorldMismatchError(WorldSelectionError):
    """A process targets a world other than the one the aggregator binds."""

    kind = "world-mismatch"


__all__ = [
    "AmbiguousDefinitionError",
    "CallerGenError",
    "CyclicTypeError",
    "DiscoveryError",
    "ManifestConflictError",
    "MissingAnnotationError",
    "SignatureError",
    "TypeMappingError",
    "TypeNameCollisionError",
    "UnresolvedTypeError",
    "UnsupportedReceiverError",
    "UnsupportedTypeError",
    "WiringError",
    "WorldMismatchError",
    "WorldSelectionError",
]
