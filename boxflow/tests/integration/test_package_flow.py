"""End-to-end packaging through the registered package sequence."""
from __future__ import annotations

import tarfile
from pathlib import Path
from typing import TYPE_CHECKING

from returns.io import IOFailure, IOResult, IOSuccess
from returns.unsafe import unsafe_perform_io

from boxflow.box_modules.actions import ActionTag, MessageAction
from boxflow.box_modules.engine import (
    HookPoint,
    HookRegistry,
    descriptor,
    run_sequence,
)
from boxflow.box_modules.errors import PipelineError
from boxflow.box_modules.types import (
    ActionContext,
    MachineHandle,
    ProviderHandle,
)
from boxflow.sequences import SequenceName

if TYPE_CHECKING:
    from boxflow.tests.conftest import RecordingUI


class _ExportingDriver:
    """Driver whose export writes a disk image into the directory."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.exported: list[str] = []

    def has_vmcx_support(self) -> bool:
        return False

    def import_vm(
        self,
        options: dict[str, object],
    ) -> IOResult[dict[str, object], PipelineError]:
        return IOSuccess({"id": "unused"})

    def export(self, directory: str) -> IOResult[None, PipelineError]:
        self.exported.append(directory)
        if self.fail:
            return IOFailure(
                PipelineError(
                    step_name="driver",
                    error_type="ExportError",
                    message="VM is running",
                ),
            )
        (Path(directory) / "disk.vhdx").write_bytes(b"DISK")
        return IOSuccess(None)

    def delete_vm(self) -> IOResult[None, PipelineError]:
        return IOSuccess(None)


def _context(
    workdir: Path,
    driver: _ExportingDriver,
    ui: RecordingUI,
) -> ActionContext:
    export_dir = workdir / "export"
    export_dir.mkdir()
    return ActionContext(
        ui=ui,
        machine=MachineHandle(
            name="default",
            data_dir=workdir / "data",
            provider_name="hyperv",
        ),
        provider=ProviderHandle(name="hyperv", driver=driver),
        extensions={"package.directory": str(export_dir)},
    )


class TestPackageSequence:
    """The package sequence with a provider export."""

    def test_export_then_compress(
        self,
        in_tmp_cwd: Path,
        recording_ui: RecordingUI,
    ) -> None:
        """The exported image and metadata end up in the box."""
        driver = _ExportingDriver()
        ctx = _context(in_tmp_cwd, driver, recording_ui)

        result = run_sequence(SequenceName.PACKAGE, ctx)

        assert isinstance(result, IOSuccess)
        assert driver.exported == [str(in_tmp_cwd / "export")]
        with tarfile.open(in_tmp_cwd / "package.box", "r:gz") as archive:
            names = set(archive.getnames())
        assert names == {"disk.vhdx", "metadata.json"}
        assert "Exporting VM..." in recording_ui.texts("info")

    def test_path_directory(
        self,
        in_tmp_cwd: Path,
        recording_ui: RecordingUI,
    ) -> None:
        """A Path package.directory works for both package and export."""
        driver = _ExportingDriver()
        ctx = _context(in_tmp_cwd, driver, recording_ui)
        ctx["package.directory"] = in_tmp_cwd / "export"
        (in_tmp_cwd / "export" / "notes.txt").write_text("n")

        result = run_sequence(SequenceName.PACKAGE, ctx)

        assert isinstance(result, IOSuccess), result
        assert driver.exported == [str(in_tmp_cwd / "export")]
        with tarfile.open(in_tmp_cwd / "package.box", "r:gz") as archive:
            names = set(archive.getnames())
        assert names == {"disk.vhdx", "metadata.json", "notes.txt"}

    def test_export_failure_unwinds(
        self,
        in_tmp_cwd: Path,
        recording_ui: RecordingUI,
    ) -> None:
        """A failed export leaves no archive and keeps the error."""
        driver = _ExportingDriver(fail=True)
        ctx = _context(in_tmp_cwd, driver, recording_ui)

        result = run_sequence(SequenceName.PACKAGE, ctx)

        error = unsafe_perform_io(result.failure())
        assert error.error_type == "ExportError"
        assert ctx.error is error
        assert ctx.recovery_errors == []
        assert not (in_tmp_cwd / "package.box").exists()

    def test_existing_output_skips_export(
        self,
        in_tmp_cwd: Path,
        recording_ui: RecordingUI,
    ) -> None:
        """Pre-flight failure: the provider is never asked to export."""
        (in_tmp_cwd / "package.box").write_text("keep me")
        driver = _ExportingDriver()
        ctx = _context(in_tmp_cwd, driver, recording_ui)

        result = run_sequence(SequenceName.PACKAGE, ctx)

        error = unsafe_perform_io(result.failure())
        assert error.error_type == "PackageOutputExists"
        assert driver.exported == []
        assert (in_tmp_cwd / "package.box").read_text() == "keep me"

    def test_extension_inserts_action(
        self,
        in_tmp_cwd: Path,
        recording_ui: RecordingUI,
    ) -> None:
        """A hook-inserted action runs right before the export."""
        hooks = HookRegistry()
        hooks.register(
            HookPoint.PACKAGE,
            "announcer",
            lambda b: b.insert_before(
                ActionTag.EXPORT,
                descriptor("announce", MessageAction, message="Stopping VM"),
            ),
        )
        driver = _ExportingDriver()
        ctx = _context(in_tmp_cwd, driver, recording_ui)

        result = run_sequence(SequenceName.PACKAGE, ctx, hooks=hooks)

        assert isinstance(result, IOSuccess)
        infos = recording_ui.texts("info")
        assert infos.index("Stopping VM") < infos.index("Exporting VM...")
