"""Shared test fixtures for the boxflow test suite."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from returns.io import IOSuccess

from boxflow.box_modules.types import (
    ActionContext,
    MachineHandle,
    ProviderHandle,
)

if TYPE_CHECKING:
    from pathlib import Path

    from returns.io import IOResult

    from boxflow.box_modules.errors import PipelineError


@dataclass
class RecordingUI:
    """UserInterface that keeps every message as (level, text)."""

    messages: list[tuple[str, str]] = field(default_factory=list)

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def detail(self, message: str) -> None:
        self.messages.append(("detail", message))

    def output(self, message: str) -> None:
        self.messages.append(("output", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def texts(self, level: str | None = None) -> list[str]:
        return [
            text for lvl, text in self.messages
            if level is None or lvl == level
        ]


@dataclass
class FakeDriver:
    """BackendDriver double with scripted responses."""

    vmcx: bool = False
    import_response: IOResult[dict[str, object], PipelineError] = field(
        default_factory=lambda: IOSuccess({"id": "vm-1234"}),
    )
    export_result: IOResult[None, PipelineError] = field(
        default_factory=lambda: IOSuccess(None),
    )
    delete_result: IOResult[None, PipelineError] = field(
        default_factory=lambda: IOSuccess(None),
    )
    import_calls: list[dict[str, object]] = field(default_factory=list)
    export_calls: list[str] = field(default_factory=list)
    delete_calls: int = 0

    def has_vmcx_support(self) -> bool:
        return self.vmcx

    def import_vm(
        self,
        options: dict[str, object],
    ) -> IOResult[dict[str, object], PipelineError]:
        self.import_calls.append(options)
        return self.import_response

    def export(self, directory: str) -> IOResult[None, PipelineError]:
        self.export_calls.append(directory)
        return self.export_result

    def delete_vm(self) -> IOResult[None, PipelineError]:
        self.delete_calls += 1
        return self.delete_result


@pytest.fixture
def recording_ui() -> RecordingUI:
    """Return a fresh RecordingUI."""
    return RecordingUI()


@pytest.fixture
def fake_driver() -> FakeDriver:
    """Return a FakeDriver that succeeds at everything."""
    return FakeDriver()


@pytest.fixture
def action_context(
    recording_ui: RecordingUI,
    fake_driver: FakeDriver,
    tmp_path: Path,
) -> ActionContext:
    """Return an ActionContext wired to a machine and a fake driver."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return ActionContext(
        ui=recording_ui,
        machine=MachineHandle(
            name="default",
            data_dir=data_dir,
            provider_name="hyperv",
        ),
        provider=ProviderHandle(name="hyperv", driver=fake_driver),
    )


@pytest.fixture
def in_tmp_cwd(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Path:
    """Run the test with tmp_path as the working directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
