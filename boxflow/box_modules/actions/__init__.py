"""Concrete pipeline actions and their stable tags."""
from boxflow.box_modules.actions.builtin import MessageAction, SetContextAction
from boxflow.box_modules.actions.import_box import ImportAction
from boxflow.box_modules.actions.machine_ops import DestroyAction, ExportAction
from boxflow.box_modules.actions.package import PackageAction


class ActionTag:
    """Tags that extensions use to address built-in actions."""

    PACKAGE = "package"
    IMPORT = "import"
    EXPORT = "export"
    DESTROY = "destroy"
    MESSAGE = "message"
    SET_CONTEXT = "set_context"


__all__ = [
    "ActionTag",
    "DestroyAction",
    "ExportAction",
    "ImportAction",
    "MessageAction",
    "PackageAction",
    "SetContextAction",
]
