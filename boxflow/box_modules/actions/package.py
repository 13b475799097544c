"""General packaging action: turn a directory into a box archive.

Context keys (defaults filled in on entry):

- ``package.output``: archive path, relative to the working directory
  (default ``package.box``)
- ``package.directory``: directory whose contents become the box
- ``package.files``: mapping of source path to destination path under
  the box's ``include/`` folder (default empty)
- ``package.info``: path to an ``info.json`` to ship with the box
  (default ``""``)

The action validates, delegates to the rest of the chain (which fills
``package.directory``, e.g. a provider export), then copies extra
files, embeds the private key, writes ``metadata.json`` and
compresses.
"""
from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from returns.io import IOFailure, IOResult, IOSuccess
from returns.unsafe import unsafe_perform_io

from boxflow.box_modules import io_ops
from boxflow.box_modules.errors import (
    BENIGN_ERROR_TYPES,
    FaultKind,
    PipelineError,
)

if TYPE_CHECKING:
    from boxflow.box_modules.engine.types import App
    from boxflow.box_modules.types import ActionContext

DEFAULT_OUTPUT = "package.box"
INFO_FILENAME = "info.json"
METADATA_FILENAME = "metadata.json"
PRIVATE_KEY_FILENAME = "vagrant_private_key"
INCLUDE_DIRNAME = "include"

PRIVATE_KEY_STANZA = (
    "\n"
    'Vagrant.configure("2") do |config|\n'
    '  config.ssh.private_key_path = File.expand_path("../vagrant_private_key", __FILE__)\n'
    "end\n"
)

_STEP = "package"


def fullpath(output: str) -> Path:
    """Absolute path of output, relative to the working directory."""
    joined = io_ops.current_directory() / Path(output).expanduser()
    return Path(os.path.normpath(joined))


def _validation_failure(
    error_type: str,
    message: str,
    **context: object,
) -> IOFailure[PipelineError]:
    return IOFailure(
        PipelineError(
            step_name=_STEP,
            error_type=error_type,
            message=message,
            context=context,
            kind=FaultKind.VALIDATION,
        ),
    )


def validate(
    output: str,
    directory: object,
) -> IOResult[Path, PipelineError]:
    """Check the output path and source directory before packaging.

    - the output must not be a directory
    - nothing may exist at the output path yet
    - a source directory must be given and exist

    Returns the resolved output path.
    """
    filename = Path(output).name
    target = fullpath(output)

    if io_ops.is_directory(target):
        return _validation_failure(
            "PackageOutputDirectory",
            (
                "The specified output is a directory. Please"
                " specify a path including a filename."
            ),
            output=str(target),
        )

    if io_ops.path_exists(target):
        return _validation_failure(
            "PackageOutputExists",
            (
                f"The box file '{filename}' already exists."
                " Please remove it or choose another filename."
            ),
            output=str(target),
            filename=filename,
        )

    if (
        not isinstance(directory, (str, Path))
        or not str(directory).strip()
        or not io_ops.is_directory(Path(directory))
    ):
        return _validation_failure(
            "PackageRequiresDirectory",
            "A directory was not specified to package.",
            directory=str(directory),
        )

    return IOSuccess(target)


def invalid_info(info: str) -> bool:
    """True when info is set but is not a file named info.json."""
    if not info:
        return False
    info_path = Path(info)
    return not io_ops.is_file(info_path) or info_path.name != INFO_FILENAME


class PackageAction:
    """Validate, delegate, then assemble and compress the box."""

    def __init__(self, app: App) -> None:
        self._app = app
        self._fullpath: Path | None = None

    @property
    def output_path(self) -> Path | None:
        return self._fullpath

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        ctx.setdefault("package.files", {})
        ctx.setdefault("package.info", "")
        ctx.setdefault("package.output", DEFAULT_OUTPUT)

        output = str(ctx["package.output"])
        validated = validate(output, ctx.get("package.directory"))
        if isinstance(validated, IOFailure):
            return validated

        self._fullpath = unsafe_perform_io(validated.unwrap())

        if os.sep in output or "/" in output:
            folder = self._ensure_box_folder(ctx, self._fullpath.parent)
            if isinstance(folder, IOFailure):
                return folder

        info = str(ctx["package.info"])
        if invalid_info(info):
            return _validation_failure(
                "PackageInvalidInfo",
                (
                    f"The information file '{info}' is invalid."
                    f" Please provide a file named {INFO_FILENAME}."
                ),
                info=info,
            )

        return self._app.call(ctx).bind(self._assemble)

    def recover(
        self,
        ctx: ActionContext,
    ) -> IOResult[None, PipelineError]:
        """Delete a partially written archive.

        Skipped for the benign pre-flight failures, where the file at
        the output path was never ours.
        """
        error = ctx.error
        if error is not None and error.error_type in BENIGN_ERROR_TYPES:
            return IOSuccess(None)

        target = self._fullpath
        if target is None:
            target = fullpath(str(ctx.get("package.output", DEFAULT_OUTPUT)))
        if io_ops.is_file(target):
            return io_ops.delete_file(target)
        return IOSuccess(None)

    # --- Forward helpers ---

    def _ensure_box_folder(
        self,
        ctx: ActionContext,
        folder: Path,
    ) -> IOResult[None, PipelineError]:
        if io_ops.is_directory(folder):
            return IOSuccess(None)
        ctx.ui.info(f"Creating box folder: {folder}")
        return io_ops.make_directories(folder)

    def _assemble(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        ctx.ui.info(f"Compressing package to: {self._fullpath}")
        directory = Path(str(ctx["package.directory"]))

        return (
            self._copy_include_files(ctx, directory)
            .bind(lambda _: self._copy_info(ctx, directory))
            .bind(lambda _: self._setup_private_key(ctx, directory))
            .bind(lambda _: self._write_metadata_json(ctx, directory))
            .bind(lambda _: self._compress(directory))
            .map(lambda _: ctx)
        )

    def _copy_include_files(
        self,
        ctx: ActionContext,
        directory: Path,
    ) -> IOResult[None, PipelineError]:
        """Copy package.files into <directory>/include.

        Directories are copied recursively under the destination's
        parent; files are copied to the destination itself.
        """
        files = ctx["package.files"]
        if not isinstance(files, Mapping):
            return _validation_failure(
                "PackageInvalidFiles",
                "package.files must map source paths to destinations",
                files_type=type(files).__name__,
            )

        include_directory = directory / INCLUDE_DIRNAME
        for source, dest in files.items():
            source_path = Path(str(source))
            to = include_directory / str(dest)
            ctx.ui.info(f"Packaging additional file: {source}")

            parent = io_ops.make_directories(to.parent)
            if isinstance(parent, IOFailure):
                return parent

            if io_ops.is_directory(source_path):
                copied = io_ops.copy_tree(
                    source_path, to.parent / source_path.name,
                )
            else:
                copied = io_ops.copy_file(source_path, to)

            if isinstance(copied, IOFailure):
                return copied.lash(_translate_symlink_collision)
        return IOSuccess(None)

    def _copy_info(
        self,
        ctx: ActionContext,
        directory: Path,
    ) -> IOResult[None, PipelineError]:
        info = str(ctx["package.info"])
        if not info:
            return IOSuccess(None)
        info_path = Path(info)
        if not io_ops.is_file(info_path):
            return IOSuccess(None)
        return io_ops.copy_file(info_path, directory / info_path.name)

    def _setup_private_key(
        self,
        ctx: ActionContext,
        directory: Path,
    ) -> IOResult[None, PipelineError]:
        """Ship the machine's generated key and point the box at it.

        Boxes get a fresh keypair on first boot, so a packaged box
        must carry the key it was last provisioned with.
        """
        machine = ctx.machine
        if machine is None or machine.data_dir is None:
            return IOSuccess(None)

        key_path = Path(machine.data_dir) / "private_key"
        if not io_ops.is_file(key_path):
            for candidate in machine.private_key_paths:
                if Path(candidate).name == PRIVATE_KEY_FILENAME:
                    key_path = Path(candidate)
                    break

        if not io_ops.is_file(key_path):
            return IOSuccess(None)

        vagrantfile = directory / "Vagrantfile"
        append = io_ops.is_file(vagrantfile)
        return io_ops.copy_file(
            key_path, directory / PRIVATE_KEY_FILENAME,
        ).bind(
            lambda _: io_ops.write_text(
                vagrantfile, PRIVATE_KEY_STANZA, append=append,
            ),
        )

    def _write_metadata_json(
        self,
        ctx: ActionContext,
        directory: Path,
    ) -> IOResult[None, PipelineError]:
        meta_path = directory / METADATA_FILENAME
        if io_ops.path_exists(meta_path):
            return IOSuccess(None)

        provider_name: str | None = None
        if ctx.machine is not None and ctx.machine.provider_name:
            provider_name = ctx.machine.provider_name
        elif ctx.provider is not None:
            provider_name = ctx.provider.name
        if not provider_name:
            return IOSuccess(None)

        body = json.dumps({"provider": provider_name}, separators=(",", ":"))
        return io_ops.write_text(meta_path, body)

    def _compress(self, directory: Path) -> IOResult[None, PipelineError]:
        assert self._fullpath is not None  # noqa: S101
        return io_ops.create_tar_gz(directory, self._fullpath)


def _translate_symlink_collision(
    error: PipelineError,
) -> IOResult[None, PipelineError]:
    """Turn a symlink collision into a user-legible fault.

    Any other filesystem error is passed through unchanged.
    """
    if error.error_type != "FileExistsError" or not error.context.get("symlink"):
        return IOFailure(error)
    return IOFailure(
        PipelineError(
            step_name=_STEP,
            error_type="PackageIncludeSymlink",
            message=(
                "A file or directory you're attempting to include"
                " with your packaged box has symlinks in it. Symlinks"
                " cannot be included in the package. Please remove"
                " the symlinks and try again."
            ),
            context=error.context,
            kind=FaultKind.COLLISION,
        ),
    )
