"""Hyper-V style box import.

Expects the box directory to contain ``Virtual Machines/`` (machine
definition) and ``Virtual Hard Disks/`` (disk image), hands both to the
backend driver and stores the identifier it returns on the machine.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from returns.io import IOFailure, IOResult, IOSuccess
from returns.result import Failure, Result, Success
from returns.unsafe import unsafe_perform_io

from boxflow.box_modules import io_ops
from boxflow.box_modules.errors import FaultKind, PipelineError
from boxflow.box_modules.types import ImportOptions

if TYPE_CHECKING:
    from boxflow.box_modules.engine.types import App
    from boxflow.box_modules.types import (
        ActionContext,
        BackendDriver,
        MachineHandle,
    )

logger = logging.getLogger(__name__)

VM_DIRNAME = "Virtual Machines"
HD_DIRNAME = "Virtual Hard Disks"
CONFIG_EXTENSIONS: tuple[str, ...] = (".xml",)
VMCX_EXTENSION = ".vmcx"
VALID_HD_EXTENSIONS: tuple[str, ...] = (".vhd", ".vhdx")

_STEP = "import"


def accepted_config_extensions(driver: BackendDriver) -> tuple[str, ...]:
    """Machine-definition extensions the driver can import."""
    if driver.has_vmcx_support():
        return (*CONFIG_EXTENSIONS, VMCX_EXTENSION)
    return CONFIG_EXTENSIONS


def normalize_identifier(response: object) -> Result[str, PipelineError]:
    """Extract the machine id from a driver import response (pure).

    A string id is used as is; a non-empty list or tuple yields its
    first element, which must itself be a string. Anything else means
    the driver broke its contract.
    """
    raw = response.get("id") if isinstance(response, Mapping) else response
    if isinstance(raw, str):
        return Success(raw)
    if isinstance(raw, (list, tuple)) and raw and isinstance(raw[0], str):
        return Success(raw[0])
    return Failure(
        PipelineError(
            step_name=_STEP,
            error_type="ImportIdentifierShape",
            message=(
                "Expected String or Array value for the imported"
                f" machine id, received: {type(raw).__name__}"
            ),
            context={"id": repr(raw)},
            kind=FaultKind.INTEGRITY,
        ),
    )


def backend_path(path: Path | str) -> IOResult[str, PipelineError]:
    """Local path in the backend's (Windows) path syntax."""
    return io_ops.windows_path(path).map(
        lambda translated: translated.replace("/", "\\"),
    )


def _box_invalid(machine: MachineHandle, reason: str) -> IOFailure[PipelineError]:
    return IOFailure(
        PipelineError(
            step_name=_STEP,
            error_type="BoxInvalid",
            message=(
                f"The box you're using with the machine '{machine.name}'"
                f" is invalid: {reason}"
            ),
            context={"name": machine.name, "reason": reason},
            kind=FaultKind.STRUCTURAL,
        ),
    )


def _missing_context(what: str) -> IOFailure[PipelineError]:
    return IOFailure(
        PipelineError(
            step_name=_STEP,
            error_type="MissingContextError",
            message=f"Import requires {what} in the action context",
            context={"missing": what},
            kind=FaultKind.VALIDATION,
        ),
    )


def find_first(
    directory: Path,
    extensions: tuple[str, ...],
) -> IOResult[Path | None, PipelineError]:
    """First file (by name) in directory with an accepted extension."""

    def _pick(children: list[Path]) -> IOResult[Path | None, PipelineError]:
        for child in children:
            if child.suffix.lower() in extensions and io_ops.is_file(child):
                return IOSuccess(child)
        return IOSuccess(None)

    return io_ops.list_directory(directory).bind(_pick)


class ImportAction:
    """Register the box's machine with the backend.

    Defines no compensating step: nothing is left behind when the
    driver call itself fails.
    """

    def __init__(self, app: App) -> None:
        self._app = app

    def call(
        self,
        ctx: ActionContext,
    ) -> IOResult[ActionContext, PipelineError]:
        machine = ctx.machine
        if machine is None:
            return _missing_context("a machine")
        if ctx.provider is None or ctx.provider.driver is None:
            return _missing_context("a provider driver")
        if machine.data_dir is None:
            return _missing_context("a machine data directory")
        if machine.box_directory is None:
            return _box_invalid(machine, "no box directory")

        driver = ctx.provider.driver
        box_dir = Path(machine.box_directory)
        vm_dir = box_dir / VM_DIRNAME
        hd_dir = box_dir / HD_DIRNAME

        if not io_ops.is_directory(vm_dir) or not io_ops.is_directory(hd_dir):
            logger.error("Required virtual machine directory not found!")
            return _box_invalid(
                machine, f"missing '{VM_DIRNAME}' or '{HD_DIRNAME}'",
            )

        found_config = find_first(vm_dir, accepted_config_extensions(driver))
        if isinstance(found_config, IOFailure):
            return found_config
        config_path = unsafe_perform_io(found_config.unwrap())
        if config_path is None:
            logger.error("Failed to locate box configuration path")
            return _box_invalid(machine, "no machine configuration file")
        logger.info("Found box configuration path: %s", config_path)

        found_image = find_first(hd_dir, VALID_HD_EXTENSIONS)
        if isinstance(found_image, IOFailure):
            return found_image
        image_path = unsafe_perform_io(found_image.unwrap())
        if image_path is None:
            logger.error("Failed to locate box image path")
            return _box_invalid(machine, "no disk image file")
        logger.info("Found box image path: %s", image_path)

        ctx.ui.output("Importing a Hyper-V instance")
        data_dir = Path(machine.data_dir)
        dest_path = data_dir / HD_DIRNAME / image_path.name

        translated: list[str] = []
        for local in (config_path, dest_path, data_dir, image_path):
            converted = backend_path(local)
            if isinstance(converted, IOFailure):
                return converted
            translated.append(unsafe_perform_io(converted.unwrap()))
        config_file, destination, data_path, source = translated

        cfg = machine.provider_config
        options = ImportOptions(
            vm_config_file=config_file,
            destination_path=destination,
            data_path=data_path,
            linked_clone=bool(cfg.linked_clone),
            source_path=source,
            vm_name=cfg.vmname,
            memory=cfg.memory,
            max_memory=cfg.maxmemory,
            processors=cfg.cpus,
        )

        ctx.ui.detail("Creating and registering the VM...")
        imported = driver.import_vm(options.to_driver_options())

        def _register(
            response: dict[str, object],
        ) -> IOResult[ActionContext, PipelineError]:
            logger.debug("import result value: %r", response)
            identifier = normalize_identifier(response)
            if isinstance(identifier, Failure):
                return IOFailure(identifier.failure())
            machine.id = identifier.unwrap()
            ctx.ui.detail("Successfully imported VM")
            return self._app.call(ctx)

        return imported.bind(_register)
