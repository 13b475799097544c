"""User-facing output sinks backed by io_ops.write_stderr."""
from __future__ import annotations

from boxflow.box_modules import io_ops


class StderrUI:
    """Writes progress messages to stderr.

    ``info`` and ``output`` lines are prefixed with the machine
    name the way Vagrant prints them (``==> default: ...``);
    ``detail`` lines are indented under the previous one.
    """

    def __init__(self, resource: str | None = None) -> None:
        self._resource = resource

    def _prefix(self) -> str:
        if self._resource:
            return f"==> {self._resource}: "
        return "==> "

    def info(self, message: str) -> None:
        io_ops.write_stderr(f"{self._prefix()}{message}\n")

    def output(self, message: str) -> None:
        io_ops.write_stderr(f"{self._prefix()}{message}\n")

    def detail(self, message: str) -> None:
        io_ops.write_stderr(f"    {message}\n")

    def error(self, message: str) -> None:
        io_ops.write_stderr(f"{self._prefix()}ERROR: {message}\n")
