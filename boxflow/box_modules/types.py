"""Shared type definitions for the boxflow action pipeline."""
from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from pathlib import Path

    from returns.io import IOResult

    from boxflow.box_modules.errors import PipelineError

# Collaborator-owned context keys: "<feature>.<key>", e.g. "package.output".
_EXTENSION_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z0-9_]+)+$")

RESERVED_KEYS: frozenset[str] = frozenset(
    {"ui", "machine", "provider", "error"},
)


@dataclass(frozen=True)
class ShellResult:
    """Result of a subprocess execution."""

    return_code: int
    stdout: str
    stderr: str
    command: str


class UserInterface(Protocol):
    """Output sink for user-facing progress messages."""

    def info(self, message: str) -> None: ...

    def detail(self, message: str) -> None: ...

    def output(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class NullUI:
    """Output sink that discards everything."""

    def info(self, message: str) -> None:
        return

    def detail(self, message: str) -> None:
        return

    def output(self, message: str) -> None:
        return

    def error(self, message: str) -> None:
        return


class BackendDriver(Protocol):
    """Hypervisor or cloud API driver used by provider actions."""

    def has_vmcx_support(self) -> bool: ...

    def import_vm(
        self,
        options: dict[str, object],
    ) -> IOResult[dict[str, object], PipelineError]: ...

    def export(
        self,
        directory: str,
    ) -> IOResult[None, PipelineError]: ...

    def delete_vm(self) -> IOResult[None, PipelineError]: ...


class ProviderConfig(BaseModel):
    """Provider-specific machine settings."""

    model_config = ConfigDict(frozen=True)

    linked_clone: bool = False
    vmname: str | None = None
    memory: int | None = None
    maxmemory: int | None = None
    cpus: int | None = None


class ImportOptions(BaseModel):
    """Parameter set handed to BackendDriver.import_vm.

    Serialized by alias so the driver receives its own
    parameter names (VMConfigFile, DestinationPath, ...).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    vm_config_file: str = Field(alias="VMConfigFile")
    destination_path: str = Field(alias="DestinationPath")
    data_path: str = Field(alias="DataPath")
    linked_clone: bool = Field(alias="LinkedClone")
    source_path: str = Field(alias="SourcePath")
    vm_name: str | None = Field(default=None, alias="VMName")
    memory: int | None = Field(default=None, alias="Memory")
    max_memory: int | None = Field(default=None, alias="MaxMemory")
    processors: int | None = Field(default=None, alias="Processors")

    def to_driver_options(self) -> dict[str, object]:
        """Return the options keyed by the driver's parameter names."""
        return self.model_dump(by_alias=True)


@dataclass
class MachineHandle:
    """Target machine an action sequence operates on.

    Mutable: the import action assigns ``id`` once the
    backend has registered the machine.
    """

    name: str
    data_dir: Path | None = None
    box_directory: Path | None = None
    provider_name: str | None = None
    provider_config: ProviderConfig = field(
        default_factory=ProviderConfig,
    )
    private_key_paths: list[str] = field(default_factory=list)
    id: str | None = None


@dataclass(frozen=True)
class ProviderHandle:
    """Provider name plus the driver that talks to its backend.

    ``driver`` is None for local-only sequences (packaging an
    existing directory) that never reach a backend.
    """

    name: str
    driver: BackendDriver | None = None


@dataclass
class ActionContext:
    """Mutable state shared by every action of one pipeline run.

    Reserved handles are typed attributes. Collaborator-owned
    values live in the extension map under dotted keys
    (``"package.output"``) and are reached with item access.
    The recorded failure is written once through
    record_failure() and is read-only afterwards.
    """

    ui: UserInterface = field(default_factory=NullUI)
    machine: MachineHandle | None = None
    provider: ProviderHandle | None = None
    recovery_errors: list[PipelineError] = field(default_factory=list)
    extensions: dict[str, object] = field(default_factory=dict)
    _error: PipelineError | None = field(
        default=None, init=False, repr=False,
    )

    def __post_init__(self) -> None:
        for key in self.extensions:
            _check_extension_key(key)

    @property
    def error(self) -> PipelineError | None:
        """Failure that ended this run, if any."""
        return self._error

    def record_failure(self, error: PipelineError) -> bool:
        """Record the run's failure. Returns False if one is already set."""
        if self._error is not None:
            return False
        self._error = error
        return True

    def record_recovery_error(self, error: PipelineError) -> None:
        """Record a fault raised by a compensating step."""
        self.recovery_errors.append(error)

    def get(self, key: str, default: object = None) -> object:
        """Return an extension value, or default when unset."""
        return self.extensions.get(key, default)

    def setdefault(self, key: str, default: object) -> object:
        """Set key to default when unset and return the stored value."""
        _check_extension_key(key)
        return self.extensions.setdefault(key, default)

    def update(self, values: Mapping[str, object]) -> None:
        """Store several extension values at once."""
        for key in values:
            _check_extension_key(key)
        self.extensions.update(values)

    def namespace(self, prefix: str) -> dict[str, object]:
        """Return the extension values under ``prefix.``, keys stripped."""
        marker = f"{prefix}."
        return {
            key[len(marker):]: value
            for key, value in self.extensions.items()
            if key.startswith(marker)
        }

    def __getitem__(self, key: str) -> object:
        return self.extensions[key]

    def __setitem__(self, key: str, value: object) -> None:
        _check_extension_key(key)
        self.extensions[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self.extensions

    def __iter__(self) -> Iterator[str]:
        return iter(self.extensions)


def _check_extension_key(key: str) -> None:
    """Reject reserved and non-namespaced extension keys."""
    if key in RESERVED_KEYS:
        msg = f"Context key '{key}' is reserved; use the typed attribute"
        raise ValueError(msg)
    if not isinstance(key, str) or not _EXTENSION_KEY_PATTERN.match(key):
        msg = (
            f"Context key {key!r} must be namespaced"
            " as '<feature>.<key>'"
        )
        raise ValueError(msg)
