"""Provider-independent helper actions."""
from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from returns.io import IOFailure, IOResult

from boxflow.box_modules.errors import FaultKind, PipelineError

if TYPE_CHECKING:
    from boxflow.box_modules.engine.types import App
    from boxflow.box_modules.types import ActionContext

MESSAGE_LEVELS = ("info", "detail", "output", "error")


class MessageAction:
    """Print a fixed message to the ui, then continue."""

    def __init__(self, app: App, message: str, level: str = "info") -> None:
        if level not in MESSAGE_LEVELS:
            msg = f"Unknown message level '{level}'. Valid: {MESSAGE_LEVELS}"
            raise ValueError(msg)
        self._app = app
        self._message = message
        self._level = level

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        getattr(ctx.ui, self._level)(self._message)
        return self._app.call(ctx)


class SetContextAction:
    """Seed namespaced context values, then continue.

    Existing values are overwritten unless ``only_missing`` is set.
    """

    def __init__(
        self,
        app: App,
        values: Mapping[str, object],
        only_missing: bool = False,  # noqa: FBT001, FBT002
    ) -> None:
        self._app = app
        self._values = dict(values)
        self._only_missing = only_missing

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        try:
            for key, value in self._values.items():
                if self._only_missing:
                    ctx.setdefault(key, value)
                else:
                    ctx[key] = value
        except ValueError as exc:
            return IOFailure(
                PipelineError(
                    step_name="set_context",
                    error_type="InvalidContextKey",
                    message=str(exc),
                    context={"keys": sorted(self._values)},
                    kind=FaultKind.VALIDATION,
                ),
            )
        return self._app.call(ctx)
