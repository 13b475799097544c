"""Public API types for action authors (Tier 1).

An action is an object with a forward ``call(ctx)`` and, optionally,
a compensating ``recover(ctx)``. Actions are constructed by a factory
that receives the continuation (``app``) for the rest of the chain
plus the descriptor's parameters.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from returns.io import IOResult

    from boxflow.box_modules.errors import PipelineError
    from boxflow.box_modules.types import ActionContext


class App(Protocol):
    """Continuation for the remainder of a compiled chain."""

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]: ...


class Action(Protocol):
    """Forward step of a pipeline action."""

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]: ...


@runtime_checkable
class Recoverable(Protocol):
    """Action that defines a compensating step.

    Actions without ``recover`` are skipped during the unwind.
    """

    def recover(
        self,
        ctx: ActionContext,
    ) -> IOResult[None, PipelineError] | None: ...


ActionFactory = Callable[..., Action]


@dataclass(frozen=True)
class ActionDescriptor:
    """Stable identity tag plus how to construct the action.

    Builders look actions up by ``tag`` only. ``factory`` is called
    as ``factory(app, **params)`` once per compilation.
    """

    tag: str
    factory: ActionFactory
    params: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.tag, str) or not self.tag.strip():
            msg = "ActionDescriptor.tag must be a non-empty string"
            raise TypeError(msg)
        if not callable(self.factory):
            msg = (
                f"ActionDescriptor.factory for '{self.tag}' must be"
                f" callable (type={type(self.factory).__name__})"
            )
            raise TypeError(msg)
        object.__setattr__(self, "tag", self.tag.strip())
        object.__setattr__(
            self, "params", MappingProxyType(dict(self.params)),
        )

    def build(self, app: App) -> Action:
        """Construct the action bound to the given continuation."""
        return self.factory(app, **self.params)


def descriptor(
    tag: str,
    factory: ActionFactory,
    **params: object,
) -> ActionDescriptor:
    """Shorthand for ActionDescriptor(tag, factory, params)."""
    return ActionDescriptor(tag=tag, factory=factory, params=params)
