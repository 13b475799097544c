"""Sequence registry and discovery (Tier 1 API)."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType

from boxflow.box_modules.actions import (
    ActionTag,
    DestroyAction,
    ExportAction,
    ImportAction,
    MessageAction,
    PackageAction,
)
from boxflow.box_modules.engine.builder import SequenceBuilder
from boxflow.box_modules.engine.hooks import HookPoint


class SequenceName:
    """Registry of valid sequence names."""

    PACKAGE = "package"
    IMPORT = "import"
    DESTROY = "destroy"


@dataclass(frozen=True)
class SequenceSpec:
    """A named sequence: its hook point and how to build its actions."""

    name: str
    description: str
    hook_point: str
    factory: Callable[[], SequenceBuilder]

    def build(self) -> SequenceBuilder:
        """Return a fresh builder; callers may mutate it freely."""
        return self.factory()


def _package_sequence() -> SequenceBuilder:
    # The packaging action wraps the export: it validates, lets the
    # export fill package.directory, then compresses the result.
    return (
        SequenceBuilder(name=SequenceName.PACKAGE)
        .use_action(ActionTag.PACKAGE, PackageAction)
        .use_action(ActionTag.EXPORT, ExportAction)
    )


def _import_sequence() -> SequenceBuilder:
    return SequenceBuilder(name=SequenceName.IMPORT).use_action(
        ActionTag.IMPORT, ImportAction,
    )


def _destroy_sequence() -> SequenceBuilder:
    return (
        SequenceBuilder(name=SequenceName.DESTROY)
        .use_action(
            ActionTag.MESSAGE,
            MessageAction,
            message="Destroying the machine...",
        )
        .use_action(ActionTag.DESTROY, DestroyAction)
    )


# --- Registered sequences ---

_PACKAGE = SequenceSpec(
    name=SequenceName.PACKAGE,
    description="Export the machine and compress it into a box",
    hook_point=HookPoint.PACKAGE,
    factory=_package_sequence,
)

_IMPORT = SequenceSpec(
    name=SequenceName.IMPORT,
    description="Register a box's machine with the backend",
    hook_point=HookPoint.IMPORT,
    factory=_import_sequence,
)

_DESTROY = SequenceSpec(
    name=SequenceName.DESTROY,
    description="Delete the machine from the backend",
    hook_point=HookPoint.DESTROY,
    factory=_destroy_sequence,
)

_REGISTRY: MappingProxyType[str, SequenceSpec] = MappingProxyType({
    s.name: s for s in (_PACKAGE, _IMPORT, _DESTROY)
})


def load_sequence(name: str) -> SequenceSpec | None:
    """Pure lookup -- find a sequence by name."""
    return _REGISTRY.get(name)


def list_sequences() -> list[SequenceSpec]:
    """Return every registered sequence."""
    return list(_REGISTRY.values())


__all__ = [
    "SequenceName",
    "SequenceSpec",
    "list_sequences",
    "load_sequence",
]
