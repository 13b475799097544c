"""Package a local directory into a box archive.

Runs the registered ``package`` sequence with a directory-only
provider: a hook drops the export step and seeds the packaging
options from the command line instead.

Usage:
    boxflow-package --directory ./machine                  # -> package.box
    boxflow-package --directory ./machine --output out/my.box
    boxflow-package --directory ./machine --include Vagrantfile
    boxflow-package --directory ./machine --include scripts:tools/scripts
    boxflow-package --directory ./machine --info info.json --provider hyperv

Examples:
    # Verbose diagnostics while packaging
    BOXFLOW_LOG_LEVEL=DEBUG boxflow-package --directory ./machine
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from returns.io import IOFailure
from returns.unsafe import unsafe_perform_io

from boxflow.box_modules import io_ops
from boxflow.box_modules.actions import ActionTag, SetContextAction
from boxflow.box_modules.actions.package import DEFAULT_OUTPUT
from boxflow.box_modules.engine import (
    HookPoint,
    HookRegistry,
    descriptor,
    run_sequence,
)
from boxflow.box_modules.log_setup import configure_logging
from boxflow.box_modules.types import ActionContext, ProviderHandle
from boxflow.box_modules.ui import StderrUI
from boxflow.sequences import SequenceName

if TYPE_CHECKING:
    from collections.abc import Mapping

    from returns.result import Result

    from boxflow.box_modules.engine import SequenceBuilder
    from boxflow.box_modules.engine.hooks import HookFunction
    from boxflow.box_modules.errors import PipelineError
    from boxflow.box_modules.types import UserInterface

LOCAL_EXTENSION = "local_directory"


def parse_include(value: str) -> tuple[str, str]:
    """Split ``SRC[:DEST]``; DEST defaults to SRC's base name.

    Pure function -- no I/O.
    """
    source, sep, dest = value.partition(":")
    if not source:
        msg = f"Invalid --include value {value!r}: missing source"
        raise click.BadParameter(msg)
    if not sep or not dest:
        dest = Path(source).name
    return source, dest


def package_options(
    *,
    directory: str,
    output: str,
    includes: tuple[str, ...],
    info: str,
) -> dict[str, object]:
    """Build the package.* context values from CLI arguments."""
    files: dict[str, str] = {}
    for value in includes:
        source, dest = parse_include(value)
        files[source] = dest
    return {
        "package.directory": directory,
        "package.output": output,
        "package.files": files,
        "package.info": info,
    }


def local_directory_hook(
    values: Mapping[str, object],
) -> HookFunction:
    """Return a package-point hook for packaging an existing directory.

    The hook removes the provider export and seeds ``values``
    just before the packaging action runs.
    """

    def _hook(
        builder: SequenceBuilder,
    ) -> Result[SequenceBuilder, PipelineError]:
        seed = descriptor(
            ActionTag.SET_CONTEXT, SetContextAction, values=dict(values),
        )
        return builder.delete(ActionTag.EXPORT).bind(
            lambda b: b.insert_before(ActionTag.PACKAGE, seed),
        )

    return _hook


def package_directory(
    options: Mapping[str, object],
    *,
    provider: str | None = None,
    ui: UserInterface | None = None,
) -> tuple[ActionContext, PipelineError | None]:
    """Run the package sequence for a local directory.

    The directory is packaged from a temporary copy, so include
    files and metadata.json never land in the source directory.
    A value that is not a directory is passed through untouched
    and reported by the packaging pre-flight.

    Returns the final context and the failure, if any.
    """
    ctx = ActionContext(
        ui=ui or StderrUI(),
        provider=ProviderHandle(name=provider) if provider else None,
    )
    source = options.get("package.directory")
    with io_ops.staging_directory() as workspace:
        values = dict(options)
        if isinstance(source, str) and source and io_ops.is_directory(Path(source)):
            staged = Path(workspace) / "box"
            copied = io_ops.copy_tree(Path(source), staged)
            if isinstance(copied, IOFailure):
                return ctx, unsafe_perform_io(copied.failure())
            values["package.directory"] = str(staged)
        hooks = HookRegistry()
        hooks.register(
            HookPoint.PACKAGE, LOCAL_EXTENSION, local_directory_hook(values),
        )
        result = run_sequence(SequenceName.PACKAGE, ctx, hooks=hooks)
    if isinstance(result, IOFailure):
        return ctx, unsafe_perform_io(result.failure())
    return ctx, None


# --- CLI Entry Point ---


@click.command()
@click.option(
    "--directory",
    required=True,
    help=(
        "Directory whose contents become the box; it is packaged"
        " from a temporary copy and left unchanged"
    ),
)
@click.option(
    "--output",
    default=DEFAULT_OUTPUT,
    show_default=True,
    help="Box file to create, relative to the working directory",
)
@click.option(
    "--include",
    "includes",
    multiple=True,
    metavar="SRC[:DEST]",
    help="Extra file or directory to ship under include/ (repeatable)",
)
@click.option("--info", default="", help="Path to an info.json to ship")
@click.option(
    "--provider",
    default=None,
    help="Provider name recorded in metadata.json",
)
@click.option(
    "--log-level",
    default=None,
    envvar="BOXFLOW_LOG_LEVEL",
    help="Diagnostics log level (default: WARNING)",
)
def main(
    *,
    directory: str,
    output: str,
    includes: tuple[str, ...],
    info: str,
    provider: str | None,
    log_level: str | None,
) -> None:
    """Package a directory into a box archive."""
    configure_logging(log_level)
    options = package_options(
        directory=directory,
        output=output,
        includes=includes,
        info=info,
    )
    ctx, error = package_directory(options, provider=provider)
    if error is not None:
        ctx.ui.error(error.message)
        for secondary in ctx.recovery_errors:
            io_ops.write_stderr(f"  cleanup failed: {secondary.message}\n")
        sys.exit(1)
    ctx.ui.info(f"Box created: {ctx['package.output']}")


if __name__ == "__main__":  # pragma: no cover
    main()
