"""I/O boundary module -- ALL filesystem and process I/O goes through here.

This is the single mock point for the test suite. Actions never
touch the filesystem or spawn processes directly; they call
io_ops functions, which return IOResult and never raise.
"""
from __future__ import annotations

import platform
import shutil
import subprocess
import sys
import tarfile
import tempfile
from pathlib import Path

from returns.io import IOFailure, IOResult, IOSuccess

from boxflow.box_modules.errors import FaultKind, PipelineError
from boxflow.box_modules.types import ShellResult


def _os_failure(
    step_name: str,
    exc: OSError,
    message: str,
    **context: object,
) -> IOFailure[PipelineError]:
    """Wrap an OSError into an io-kind PipelineError."""
    return IOFailure(
        PipelineError(
            step_name=step_name,
            error_type=type(exc).__name__,
            message=f"{message}: {exc}",
            context={
                **context,
                "errno": exc.errno,
            },
            kind=FaultKind.IO,
        ),
    )


# --- Path queries (pure reads, no IOResult) ---


def current_directory() -> Path:
    """Return the process working directory."""
    return Path.cwd()


def path_exists(path: Path) -> bool:
    """True if anything (file, directory, dangling symlink) is at path."""
    return path.exists() or path.is_symlink()


def is_directory(path: Path) -> bool:
    """True if path is a directory."""
    return path.is_dir()


def is_file(path: Path) -> bool:
    """True if path is a regular file."""
    return path.is_file()


def list_directory(path: Path) -> IOResult[list[Path], PipelineError]:
    """List directory children sorted by name. Returns IOResult, never raises."""
    try:
        children = sorted(path.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        return _os_failure(
            "io_ops.list_directory", exc,
            f"Cannot list {path}", path=str(path),
        )
    return IOSuccess(children)


# --- Filesystem mutations ---


def make_directories(path: Path) -> IOResult[None, PipelineError]:
    """Create path and any missing parents (mkdir -p)."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return _os_failure(
            "io_ops.make_directories", exc,
            f"Cannot create directory {path}", path=str(path),
        )
    return IOSuccess(None)


def copy_file(
    source: Path,
    destination: Path,
) -> IOResult[None, PipelineError]:
    """Copy a file preserving mode and timestamps."""
    try:
        shutil.copy2(source, destination)
    except OSError as exc:
        return _os_failure(
            "io_ops.copy_file", exc,
            f"Cannot copy {source} to {destination}",
            source=str(source), destination=str(destination),
        )
    return IOSuccess(None)


def copy_tree(
    source: Path,
    destination: Path,
) -> IOResult[None, PipelineError]:
    """Copy a directory tree into destination, keeping symlinks as links.

    Existing directories at the destination are merged. A symlink
    in the source whose destination entry already exists is reported
    as a FileExistsError failure with ``symlink`` set in its context.
    """
    try:
        shutil.copytree(
            source, destination, symlinks=True, dirs_exist_ok=True,
        )
    except shutil.Error as exc:
        failures = exc.args[0] if exc.args else []
        collisions = [
            str(dst) for src, dst, why in failures
            if Path(src).is_symlink() and "exists" in str(why).lower()
        ]
        if collisions:
            return IOFailure(
                PipelineError(
                    step_name="io_ops.copy_tree",
                    error_type="FileExistsError",
                    message=(
                        "Cannot create symlink, destination"
                        f" already exists: {', '.join(collisions)}"
                    ),
                    context={
                        "source": str(source),
                        "destination": str(destination),
                        "symlink": True,
                        "collisions": collisions,
                    },
                    kind=FaultKind.IO,
                ),
            )
        return IOFailure(
            PipelineError(
                step_name="io_ops.copy_tree",
                error_type="CopyTreeError",
                message=f"Cannot copy {source} to {destination}: {exc}",
                context={
                    "source": str(source),
                    "destination": str(destination),
                },
                kind=FaultKind.IO,
            ),
        )
    except OSError as exc:
        return _os_failure(
            "io_ops.copy_tree", exc,
            f"Cannot copy {source} to {destination}",
            source=str(source), destination=str(destination),
        )
    return IOSuccess(None)


def staging_directory(prefix: str = "boxflow-") -> tempfile.TemporaryDirectory[str]:
    """Return a temporary directory context manager, removed on exit."""
    return tempfile.TemporaryDirectory(prefix=prefix)


def write_text(
    path: Path,
    content: str,
    *,
    append: bool = False,
) -> IOResult[None, PipelineError]:
    """Write (or append) text to path."""
    mode = "a" if append else "w"
    try:
        with path.open(mode, encoding="utf-8", newline="\n") as handle:
            handle.write(content)
    except OSError as exc:
        return _os_failure(
            "io_ops.write_text", exc,
            f"Cannot write {path}", path=str(path),
        )
    return IOSuccess(None)


def delete_file(path: Path) -> IOResult[None, PipelineError]:
    """Delete a file. A missing file is not an error."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        return _os_failure(
            "io_ops.delete_file", exc,
            f"Cannot delete {path}", path=str(path),
        )
    return IOSuccess(None)


def create_tar_gz(
    source_dir: Path,
    output_path: Path,
) -> IOResult[None, PipelineError]:
    """Compress the immediate children of source_dir into a .tar.gz.

    Archive member names are relative to source_dir, so extraction
    reproduces the directory's top level.
    """
    try:
        children = sorted(source_dir.iterdir(), key=lambda p: p.name)
        with tarfile.open(output_path, "w:gz") as archive:
            for child in children:
                archive.add(child, arcname=child.name)
    except (OSError, tarfile.TarError) as exc:
        return IOFailure(
            PipelineError(
                step_name="io_ops.create_tar_gz",
                error_type=type(exc).__name__,
                message=f"Cannot create archive {output_path}: {exc}",
                context={
                    "source_dir": str(source_dir),
                    "output_path": str(output_path),
                },
                kind=FaultKind.IO,
            ),
        )
    return IOSuccess(None)


# --- Processes ---


def run_command(
    args: list[str],
    *,
    timeout: int | None = None,
) -> IOResult[ShellResult, PipelineError]:
    """Run a command without a shell. Returns IOResult, never raises.

    Nonzero exit codes are valid results, not errors. The caller
    decides the policy for nonzero return codes.
    """
    command = " ".join(args)
    try:
        result = subprocess.run(  # noqa: S603
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return IOFailure(
            PipelineError(
                step_name="io_ops.run_command",
                error_type="TimeoutError",
                message=f"Command timed out after {timeout}s: {command}",
                context={"command": command, "timeout": timeout},
                kind=FaultKind.IO,
            ),
        )
    except FileNotFoundError:
        return IOFailure(
            PipelineError(
                step_name="io_ops.run_command",
                error_type="FileNotFoundError",
                message=f"Command not found: {command}",
                context={"command": command},
                kind=FaultKind.IO,
            ),
        )
    except OSError as exc:
        return _os_failure(
            "io_ops.run_command", exc,
            "OS error running command", command=command,
        )
    return IOSuccess(
        ShellResult(
            return_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            command=command,
        ),
    )


def is_wsl() -> bool:
    """True when running inside Windows Subsystem for Linux."""
    return "microsoft" in platform.uname().release.lower()


def windows_path(path: Path | str) -> IOResult[str, PipelineError]:
    """Translate a local path into the Windows host's path syntax.

    Under WSL the path is resolved with ``wslpath -w``. Elsewhere
    the path is returned unchanged; separators are the caller's
    concern.
    """
    if not is_wsl():
        return IOSuccess(str(path))

    result = run_command(["wslpath", "-w", str(path)])

    def _check_exit(
        sr: ShellResult,
    ) -> IOResult[str, PipelineError]:
        if sr.return_code != 0:
            return IOFailure(
                PipelineError(
                    step_name="io_ops.windows_path",
                    error_type="PathTranslationError",
                    message=(
                        f"wslpath failed for {path}: {sr.stderr.strip()}"
                    ),
                    context={
                        "path": str(path),
                        "exit_code": sr.return_code,
                    },
                    kind=FaultKind.IO,
                ),
            )
        return IOSuccess(sr.stdout.strip())

    return result.bind(_check_exit)


def write_stderr(
    message: str,
) -> IOResult[None, PipelineError]:
    """Write message to stderr.

    Returns IOSuccess(None) or IOFailure on error.
    """
    try:
        sys.stderr.write(message)
    except OSError as exc:
        return IOFailure(
            PipelineError(
                step_name="io_ops.write_stderr",
                error_type="StderrWriteError",
                message=(
                    f"Failed to write to stderr: {exc}"
                ),
                context={
                    "original_message": message,
                },
                kind=FaultKind.IO,
            ),
        )
    return IOSuccess(None)
