"""Runner -- assemble, hook, compile and execute a named sequence."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from returns.io import IOFailure, IOResult
from returns.result import Failure, Result, Success

from boxflow.box_modules.errors import FaultKind, PipelineError

if TYPE_CHECKING:
    from boxflow.box_modules.engine.builder import SequenceBuilder
    from boxflow.box_modules.engine.hooks import HookRegistry
    from boxflow.box_modules.types import ActionContext

logger = logging.getLogger(__name__)


def build_sequence(
    name: str,
    *,
    hooks: HookRegistry | None = None,
) -> Result[SequenceBuilder, PipelineError]:
    """Return the named sequence's builder with all hooks applied."""
    from boxflow.sequences import (  # noqa: PLC0415
        list_sequences,
        load_sequence,
    )

    sequence = load_sequence(name)
    if sequence is None:
        available = sorted(s.name for s in list_sequences())
        return Failure(
            PipelineError(
                step_name="runner",
                error_type="UnknownSequence",
                message=(
                    f"Unknown sequence '{name}'."
                    f" Available: {available}"
                ),
                context={"name": name, "available": available},
                kind=FaultKind.REFERENCE,
            ),
        )

    builder = sequence.build()
    if hooks is None:
        return Success(builder)

    logger.debug(
        "Applying %d hook(s) at point %s",
        len(hooks.list_hooks(sequence.hook_point)),
        sequence.hook_point,
    )
    return hooks.apply(sequence.hook_point, builder)


def run_sequence(
    name: str,
    ctx: ActionContext,
    *,
    hooks: HookRegistry | None = None,
) -> IOResult[ActionContext, PipelineError]:
    """Run the named sequence against ctx.

    Hook failures are reported without running anything. Once the
    chain starts, the Warden owns failure handling and unwinding.
    """
    built = build_sequence(name, hooks=hooks)
    if isinstance(built, Failure):
        return IOFailure(built.failure())

    warden = built.unwrap().compile()
    logger.info("Running sequence %s: %s", name, ", ".join(warden.tags))
    return warden.call(ctx)
