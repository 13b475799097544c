"""Tests for the message, set_context, export and destroy actions."""
from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from returns.io import IOFailure, IOSuccess
from returns.unsafe import unsafe_perform_io

from boxflow.box_modules.actions import (
    ActionTag,
    DestroyAction,
    ExportAction,
    MessageAction,
    SetContextAction,
)
from boxflow.box_modules.engine import SequenceBuilder, descriptor
from boxflow.box_modules.errors import FaultKind, PipelineError
from boxflow.box_modules.types import ActionContext

if TYPE_CHECKING:
    from pathlib import Path

    from boxflow.box_modules.engine import ActionDescriptor
    from boxflow.tests.conftest import FakeDriver, RecordingUI


def _run_one(d: ActionDescriptor, ctx: ActionContext) -> object:
    return SequenceBuilder().use(d).compile().call(ctx)


class TestMessageAction:
    """Tests for MessageAction."""

    def test_prints_at_level(
        self,
        action_context: ActionContext,
        recording_ui: RecordingUI,
    ) -> None:
        """The message goes to the chosen ui level."""
        d = descriptor(
            ActionTag.MESSAGE, MessageAction, message="hi", level="detail",
        )
        result = _run_one(d, action_context)
        assert isinstance(result, IOSuccess)
        assert recording_ui.messages == [("detail", "hi")]

    def test_unknown_level_rejected(self) -> None:
        """Only ui levels are accepted."""
        with pytest.raises(ValueError, match="Unknown message level"):
            MessageAction(app=None, message="x", level="shout")  # type: ignore[arg-type]


class TestSetContextAction:
    """Tests for SetContextAction."""

    def test_sets_values(self) -> None:
        """Values are written before the rest of the chain runs."""
        ctx = ActionContext(extensions={"package.output": "old.box"})
        d = descriptor(
            ActionTag.SET_CONTEXT,
            SetContextAction,
            values={"package.output": "new.box", "package.info": ""},
        )
        assert isinstance(_run_one(d, ctx), IOSuccess)
        assert ctx["package.output"] == "new.box"
        assert ctx["package.info"] == ""

    def test_only_missing(self) -> None:
        """only_missing keeps existing values."""
        ctx = ActionContext(extensions={"package.output": "old.box"})
        d = descriptor(
            ActionTag.SET_CONTEXT,
            SetContextAction,
            values={"package.output": "new.box"},
            only_missing=True,
        )
        _run_one(d, ctx)
        assert ctx["package.output"] == "old.box"

    def test_reserved_key_is_validation_fault(self) -> None:
        """Reserved or flat keys fail the run."""
        ctx = ActionContext()
        d = descriptor(
            ActionTag.SET_CONTEXT, SetContextAction, values={"ui": "x"},
        )
        result = _run_one(d, ctx)
        assert isinstance(result, IOFailure)
        error = unsafe_perform_io(result.failure())
        assert error.error_type == "InvalidContextKey"
        assert error.kind == FaultKind.VALIDATION


class TestExportAction:
    """Tests for ExportAction."""

    def test_exports_into_package_directory(
        self,
        action_context: ActionContext,
        fake_driver: FakeDriver,
    ) -> None:
        """The driver exports into package.directory."""
        action_context["package.directory"] = "/tmp/export"  # noqa: S108
        result = _run_one(descriptor(ActionTag.EXPORT, ExportAction), action_context)
        assert isinstance(result, IOSuccess)
        assert fake_driver.export_calls == ["/tmp/export"]  # noqa: S108

    def test_accepts_path_directory(
        self,
        action_context: ActionContext,
        fake_driver: FakeDriver,
        tmp_path: Path,
    ) -> None:
        """A Path directory is handed to the driver as a string."""
        action_context["package.directory"] = tmp_path
        result = _run_one(descriptor(ActionTag.EXPORT, ExportAction), action_context)
        assert isinstance(result, IOSuccess)
        assert fake_driver.export_calls == [str(tmp_path)]

    def test_blank_directory_rejected(
        self,
        action_context: ActionContext,
        fake_driver: FakeDriver,
    ) -> None:
        """A whitespace-only directory counts as missing."""
        action_context["package.directory"] = "  "
        result = _run_one(descriptor(ActionTag.EXPORT, ExportAction), action_context)
        error = unsafe_perform_io(result.failure())
        assert error.error_type == "MissingContextError"
        assert fake_driver.export_calls == []

    def test_requires_directory(
        self,
        action_context: ActionContext,
        fake_driver: FakeDriver,
    ) -> None:
        """Without package.directory the driver is not called."""
        result = _run_one(descriptor(ActionTag.EXPORT, ExportAction), action_context)
        error = unsafe_perform_io(result.failure())
        assert error.error_type == "MissingContextError"
        assert fake_driver.export_calls == []

    def test_requires_driver(self) -> None:
        """Export without a provider driver fails."""
        ctx = ActionContext(extensions={"package.directory": "/x"})
        result = _run_one(descriptor(ActionTag.EXPORT, ExportAction), ctx)
        error = unsafe_perform_io(result.failure())
        assert error.error_type == "MissingContextError"
        assert error.context["missing"] == "provider driver"


class TestDestroyAction:
    """Tests for DestroyAction."""

    def test_deletes_and_clears_id(
        self,
        action_context: ActionContext,
        fake_driver: FakeDriver,
    ) -> None:
        """The machine is deleted and its id forgotten."""
        assert action_context.machine is not None
        action_context.machine.id = "vm-9"
        result = _run_one(
            descriptor(ActionTag.DESTROY, DestroyAction), action_context,
        )
        assert isinstance(result, IOSuccess)
        assert fake_driver.delete_calls == 1
        assert action_context.machine.id is None

    def test_driver_failure_keeps_id(
        self,
        action_context: ActionContext,
        fake_driver: FakeDriver,
    ) -> None:
        """A failed delete leaves the id in place."""
        assert action_context.machine is not None
        action_context.machine.id = "vm-9"
        fake_driver.delete_result = IOFailure(
            PipelineError(
                step_name="driver",
                error_type="DriverError",
                message="locked",
            ),
        )
        result = _run_one(
            descriptor(ActionTag.DESTROY, DestroyAction), action_context,
        )
        assert isinstance(result, IOFailure)
        assert action_context.machine.id == "vm-9"
        assert action_context.error is not None
