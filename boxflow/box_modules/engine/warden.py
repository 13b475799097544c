"""Warden -- drives a compiled action chain (Tier 2).

Forward steps run top to bottom, each action delegating to the
rest of the chain through its continuation. On the first failure
the Warden records it in the context, then runs compensating steps
for the started actions in strict reverse start order, once each.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from returns.io import IOFailure, IOResult, IOSuccess
from returns.unsafe import unsafe_perform_io

from boxflow.box_modules.engine.types import Recoverable
from boxflow.box_modules.errors import FaultKind, PipelineError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from boxflow.box_modules.engine.types import Action, ActionDescriptor
    from boxflow.box_modules.types import ActionContext

logger = logging.getLogger(__name__)


class WardenState:
    """Execution states of a Warden."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    UNWINDING = "unwinding"
    FAILED = "failed"


class _Continuation:
    """The ``app`` handed to the action at index - 1."""

    __slots__ = ("_index", "_warden")

    def __init__(self, warden: Warden, index: int) -> None:
        self._warden = warden
        self._index = index

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        return self._warden._forward(self._index, ctx)  # noqa: SLF001


class Warden:
    """Single-use executor for one compiled chain.

    Compilation happens in __init__: one action per descriptor,
    each bound to the continuation for the next index (the last
    one is bound to the terminal no-op).
    """

    def __init__(self, descriptors: Sequence[ActionDescriptor]) -> None:
        self._tags: tuple[str, ...] = tuple(d.tag for d in descriptors)
        self._chain: tuple[Action, ...] = tuple(
            d.build(_Continuation(self, index + 1))
            for index, d in enumerate(descriptors)
        )
        self._state = WardenState.IDLE
        self._started: list[int] = []
        self._delegated: set[int] = set()
        self._recovered: list[int] = []
        self._origin: int | None = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def tags(self) -> tuple[str, ...]:
        return self._tags

    @property
    def chain(self) -> tuple[Action, ...]:
        return self._chain

    @property
    def started(self) -> tuple[str, ...]:
        """Tags of started actions, in start order."""
        return tuple(self._tags[i] for i in self._started)

    @property
    def recovered(self) -> tuple[str, ...]:
        """Tags of unwound actions, in unwind order."""
        return tuple(self._tags[i] for i in self._recovered)

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        """Run the chain against ctx.

        Returns IOSuccess(ctx) when every action succeeded, or
        IOFailure carrying the original failure after the unwind.
        """
        if self._state != WardenState.IDLE:
            return IOFailure(
                PipelineError(
                    step_name="warden",
                    error_type="WardenReused",
                    message=(
                        "A Warden runs exactly once;"
                        " compile the builder again"
                    ),
                    context={"state": self._state},
                    kind=FaultKind.INTEGRITY,
                ),
            )

        self._state = WardenState.RUNNING
        result = self._forward(0, ctx)
        if isinstance(result, IOSuccess):
            self._state = WardenState.SUCCEEDED
            return result

        error = unsafe_perform_io(result.failure())
        if not ctx.record_failure(error):
            logger.warning(
                "Context already carries a failure; keeping %s",
                ctx.error,
            )
        logger.error("Action failed: %s", error)

        self._state = WardenState.UNWINDING
        self._unwind(ctx)
        self._state = WardenState.FAILED
        return IOFailure(error)

    def _forward(
        self,
        index: int,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        if index > 0:
            self._delegated.add(index - 1)
        if index >= len(self._chain):
            return IOSuccess(ctx)

        tag = self._tags[index]
        if index in self._started:
            return IOFailure(
                PipelineError(
                    step_name=tag,
                    error_type="ActionReentered",
                    message=(
                        f"Action '{self._tags[index - 1]}' delegated"
                        f" to '{tag}' more than once"
                    ),
                    context={"index": index},
                    kind=FaultKind.INTEGRITY,
                ),
            )

        self._started.append(index)
        logger.debug("Starting action %s (%d/%d)", tag, index + 1, len(self._chain))
        try:
            result = self._chain[index].call(ctx)
        except Exception as exc:  # noqa: BLE001
            result = IOFailure(
                PipelineError(
                    step_name=tag,
                    error_type=type(exc).__name__,
                    message=f"Action '{tag}' raised: {exc}",
                    context={"exception": repr(exc)},
                    kind=FaultKind.UNEXPECTED,
                ),
            )

        if not isinstance(result, IOResult):
            result = IOFailure(
                PipelineError(
                    step_name=tag,
                    error_type="InvalidActionResult",
                    message=(
                        f"Action '{tag}' returned"
                        f" {type(result).__name__}, expected IOResult"
                    ),
                    kind=FaultKind.INTEGRITY,
                ),
            )

        if isinstance(result, IOFailure) and self._origin is None:
            self._origin = index
        return result

    def _must_unwind(self, index: int) -> bool:
        # The action that produced the failure without ever handing
        # control to the rest of the chain has nothing to compensate.
        return index != self._origin or index in self._delegated

    def _unwind(self, ctx: ActionContext) -> None:
        for index in reversed(self._started):
            if not self._must_unwind(index):
                logger.debug(
                    "Not recovering %s: it failed before delegating",
                    self._tags[index],
                )
                continue

            self._recovered.append(index)
            action = self._chain[index]
            if not isinstance(action, Recoverable):
                continue

            tag = self._tags[index]
            logger.debug("Recovering action %s", tag)
            try:
                outcome = action.recover(ctx)
            except Exception as exc:  # noqa: BLE001
                outcome = IOFailure(
                    PipelineError(
                        step_name=tag,
                        error_type=type(exc).__name__,
                        message=f"Recover of '{tag}' raised: {exc}",
                        context={"exception": repr(exc)},
                        kind=FaultKind.UNEXPECTED,
                    ),
                )

            if isinstance(outcome, IOFailure):
                secondary = unsafe_perform_io(outcome.failure())
                ctx.record_recovery_error(secondary)
                logger.error("Recover of %s failed: %s", tag, secondary)
