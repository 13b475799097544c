"""Extension hook surface.

Extensions register a hook against a stable point name. Before a
sequence compiles, every hook registered for its point receives the
builder, in registration order. Hooks never see each other; they only
reference action tags.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from returns.result import Failure, Result, Success

from boxflow.box_modules.errors import FaultKind, PipelineError

if TYPE_CHECKING:
    from boxflow.box_modules.engine.builder import SequenceBuilder

HookFunction = Callable[
    ["SequenceBuilder"],
    "Result[SequenceBuilder, PipelineError] | None",
]


class HookPoint:
    """Stable hook point names, one per operation kind."""

    PACKAGE = "package"
    IMPORT = "import"
    DESTROY = "destroy"


@dataclass(frozen=True)
class HookRegistration:
    """One extension's hook at one point."""

    point: str
    extension: str
    hook: HookFunction


class HookRegistry:
    """Hooks keyed by point name, kept in registration order."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[HookRegistration]] = {}

    def register(
        self,
        point: str,
        extension: str,
        hook: HookFunction,
    ) -> HookRegistration:
        """Register ``hook`` for ``point`` on behalf of ``extension``."""
        if not isinstance(point, str) or not point.strip():
            msg = "Hook point must be a non-empty string"
            raise ValueError(msg)
        if not isinstance(extension, str) or not extension.strip():
            msg = "Extension name must be a non-empty string"
            raise ValueError(msg)
        if not callable(hook):
            msg = f"Hook for '{point}' from '{extension}' must be callable"
            raise TypeError(msg)
        registration = HookRegistration(
            point=point.strip(), extension=extension.strip(), hook=hook,
        )
        self._hooks.setdefault(registration.point, []).append(registration)
        return registration

    def points(self) -> tuple[str, ...]:
        """Point names with at least one registered hook."""
        return tuple(sorted(self._hooks))

    def list_hooks(self, point: str) -> tuple[HookRegistration, ...]:
        """Hooks registered for point, in registration order."""
        return tuple(self._hooks.get(point, ()))

    def apply(
        self,
        point: str,
        builder: SequenceBuilder,
    ) -> Result[SequenceBuilder, PipelineError]:
        """Run every hook for point against a copy of builder.

        Stops at the first failing hook; the returned error names
        the extension and point, and builder keeps its original
        actions. On success the edited copy is returned. A hook
        returning None counts as success.
        """
        working = builder.copy()
        for registration in self.list_hooks(point):
            try:
                outcome = registration.hook(working)
            except Exception as exc:  # noqa: BLE001
                outcome = Failure(
                    PipelineError(
                        step_name=f"hook.{registration.extension}",
                        error_type=type(exc).__name__,
                        message=str(exc),
                        context={"exception": repr(exc)},
                        kind=FaultKind.UNEXPECTED,
                    ),
                )
            if isinstance(outcome, Failure):
                error = outcome.failure()
                return Failure(
                    PipelineError(
                        step_name=f"hook.{registration.extension}",
                        error_type=error.error_type,
                        message=(
                            f"Extension '{registration.extension}'"
                            f" failed at hook point '{point}':"
                            f" {error.message}"
                        ),
                        context={
                            **error.context,
                            "extension": registration.extension,
                            "hook_point": point,
                        },
                        kind=error.kind,
                    ),
                )
        return Success(working)
