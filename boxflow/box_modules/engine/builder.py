"""SequenceBuilder -- ordered, mutable list of action descriptors.

Mutations locate their target by tag (first match) and return
Result so that extensions can chain them with ``bind``. A missing
tag is a ReferenceNotFound failure and leaves the builder unchanged.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from returns.result import Failure, Result, Success

from boxflow.box_modules.engine.types import ActionDescriptor
from boxflow.box_modules.engine.warden import Warden
from boxflow.box_modules.errors import FaultKind, PipelineError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from boxflow.box_modules.engine.types import ActionFactory


class SequenceBuilder:
    """Assemble the actions of one command before compiling them."""

    def __init__(
        self,
        descriptors: Iterable[ActionDescriptor] = (),
        *,
        name: str = "sequence",
    ) -> None:
        self.name = name
        self._stack: list[ActionDescriptor] = list(descriptors)

    def __len__(self) -> int:
        return len(self._stack)

    def __iter__(self) -> Iterator[ActionDescriptor]:
        return iter(tuple(self._stack))

    def __repr__(self) -> str:
        return f"SequenceBuilder(name={self.name!r}, tags={list(self.tags)!r})"

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(d.tag for d in self._stack)

    @property
    def descriptors(self) -> tuple[ActionDescriptor, ...]:
        return tuple(self._stack)

    def copy(self, *, name: str | None = None) -> SequenceBuilder:
        """Return an independent builder with the same descriptors."""
        return SequenceBuilder(self._stack, name=name or self.name)

    # --- Appending (never fails) ---

    def use(self, descriptor: ActionDescriptor) -> SequenceBuilder:
        """Append a descriptor. Returns self for chaining."""
        self._stack.append(descriptor)
        return self

    def use_action(
        self,
        tag: str,
        factory: ActionFactory,
        **params: object,
    ) -> SequenceBuilder:
        """Append ``factory`` under ``tag`` with construction params."""
        return self.use(
            ActionDescriptor(tag=tag, factory=factory, params=params),
        )

    # --- Tag-addressed mutations ---

    def index_of(self, ref: str) -> Result[int, PipelineError]:
        """Position of the first descriptor tagged ``ref``."""
        for index, existing in enumerate(self._stack):
            if existing.tag == ref:
                return Success(index)
        return Failure(
            PipelineError(
                step_name=f"builder.{self.name}",
                error_type="ReferenceNotFound",
                message=(
                    f"No action tagged '{ref}' in sequence"
                    f" '{self.name}'. Available: {list(self.tags)}"
                ),
                context={"ref": ref, "available": list(self.tags)},
                kind=FaultKind.REFERENCE,
            ),
        )

    def insert_before(
        self,
        ref: str,
        descriptor: ActionDescriptor,
    ) -> Result[SequenceBuilder, PipelineError]:
        """Insert descriptor immediately before the first ``ref``."""

        def _insert(index: int) -> Result[SequenceBuilder, PipelineError]:
            self._stack.insert(index, descriptor)
            return Success(self)

        return self.index_of(ref).bind(_insert)

    def insert_after(
        self,
        ref: str,
        descriptor: ActionDescriptor,
    ) -> Result[SequenceBuilder, PipelineError]:
        """Insert descriptor immediately after the first ``ref``."""

        def _insert(index: int) -> Result[SequenceBuilder, PipelineError]:
            self._stack.insert(index + 1, descriptor)
            return Success(self)

        return self.index_of(ref).bind(_insert)

    def replace(
        self,
        ref: str,
        descriptor: ActionDescriptor,
    ) -> Result[SequenceBuilder, PipelineError]:
        """Swap the first ``ref`` for descriptor, keeping its position."""

        def _swap(index: int) -> Result[SequenceBuilder, PipelineError]:
            self._stack[index] = descriptor
            return Success(self)

        return self.index_of(ref).bind(_swap)

    def delete(self, ref: str) -> Result[SequenceBuilder, PipelineError]:
        """Remove the first descriptor tagged ``ref``."""

        def _remove(index: int) -> Result[SequenceBuilder, PipelineError]:
            del self._stack[index]
            return Success(self)

        return self.index_of(ref).bind(_remove)

    def merge(
        self,
        other: SequenceBuilder,
    ) -> Result[SequenceBuilder, PipelineError]:
        """Append all of other's descriptors, order preserved."""
        if other is self:
            self._stack.extend(list(self._stack))
        else:
            self._stack.extend(other.descriptors)
        return Success(self)

    # --- Compilation ---

    def compile(self) -> Warden:
        """Build a fresh Warden over a snapshot of the descriptors.

        Pure: the builder is not modified, and compiling the same
        descriptors again yields an equivalent, independent chain.
        """
        return Warden(tuple(self._stack))
