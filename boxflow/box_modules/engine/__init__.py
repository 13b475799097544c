"""Engine package -- sequence building, hooks and warded execution."""
from boxflow.box_modules.engine.builder import SequenceBuilder
from boxflow.box_modules.engine.hooks import (
    HookPoint,
    HookRegistration,
    HookRegistry,
)
from boxflow.box_modules.engine.runner import build_sequence, run_sequence
from boxflow.box_modules.engine.types import (
    Action,
    ActionDescriptor,
    App,
    Recoverable,
    descriptor,
)
from boxflow.box_modules.engine.warden import Warden, WardenState

__all__ = [
    "Action",
    "ActionDescriptor",
    "App",
    "HookPoint",
    "HookRegistration",
    "HookRegistry",
    "Recoverable",
    "SequenceBuilder",
    "Warden",
    "WardenState",
    "build_sequence",
    "descriptor",
    "run_sequence",
]
