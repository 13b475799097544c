"""Thin actions that forward one machine operation to the driver."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from returns.io import IOFailure, IOResult, IOSuccess

from boxflow.box_modules.errors import FaultKind, PipelineError

if TYPE_CHECKING:
    from boxflow.box_modules.engine.types import App
    from boxflow.box_modules.types import ActionContext, BackendDriver


def _require_driver(
    ctx: ActionContext,
    step_name: str,
) -> IOResult[BackendDriver, PipelineError]:
    if ctx.provider is None or ctx.provider.driver is None:
        return IOFailure(
            PipelineError(
                step_name=step_name,
                error_type="MissingContextError",
                message=f"{step_name} requires a provider driver",
                context={"missing": "provider driver"},
                kind=FaultKind.VALIDATION,
            ),
        )
    return IOSuccess(ctx.provider.driver)


class ExportAction:
    """Export the machine into ``package.directory``.

    Runs inside the packaging action, which compresses whatever
    the export leaves in the directory.
    """

    def __init__(self, app: App) -> None:
        self._app = app

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        directory = ctx.get("package.directory")
        if not isinstance(directory, (str, Path)) or not str(directory).strip():
            return IOFailure(
                PipelineError(
                    step_name="export",
                    error_type="MissingContextError",
                    message="export requires 'package.directory'",
                    context={"missing": "package.directory"},
                    kind=FaultKind.VALIDATION,
                ),
            )

        def _export(
            driver: BackendDriver,
        ) -> IOResult[None, PipelineError]:
            ctx.ui.info("Exporting VM...")
            return driver.export(str(directory))

        return (
            _require_driver(ctx, "export")
            .bind(_export)
            .bind(lambda _: self._app.call(ctx))
        )


class DestroyAction:
    """Delete the machine from the backend and forget its id."""

    def __init__(self, app: App) -> None:
        self._app = app

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        def _destroy(
            driver: BackendDriver,
        ) -> IOResult[None, PipelineError]:
            ctx.ui.info("Deleting the machine...")
            return driver.delete_vm()

        def _forget(_: None) -> IOResult[ActionContext, PipelineError]:
            if ctx.machine is not None:
                ctx.machine.id = None
            return self._app.call(ctx)

        return _require_driver(ctx, "destroy").bind(_destroy).bind(_forget)
