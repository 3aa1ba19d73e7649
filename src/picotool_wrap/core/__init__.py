"""Core / service layer — request validation and flag assembly.

Rules
-----
* No ``print()`` calls.
* No subprocess spawning; processes run only through a
  :class:`~picotool_wrap.core.protocols.ProcessRunner`.
* No imports from ``cli`` or ``infra``.
"""

from picotool_wrap.core.models import (
    AddressRange,
    AllFlashData,
    CommandInvocation,
    CommandResult,
    ConnectionSelector,
    EntireProgram,
    InfoKind,
    OverwritePolicy,
    ProcessResult,
    RebootTarget,
    SaveSelector,
    SemanticVersion,
)
from picotool_wrap.core.picotool_service import PicotoolService
from picotool_wrap.core.protocols import ProcessRunner, ToolLocator
from picotool_wrap.core.udev_installer import InstallState, UdevInstallReport, UdevRuleInstaller

__all__: list[str] = [
    "AddressRange",
    "AllFlashData",
    "CommandInvocation",
    "CommandResult",
    "ConnectionSelector",
    "EntireProgram",
    "InfoKind",
    "InstallState",
    "OverwritePolicy",
    "PicotoolService",
    "ProcessResult",
    "ProcessRunner",
    "RebootTarget",
    "SaveSelector",
    "SemanticVersion",
    "ToolLocator",
    "UdevInstallReport",
    "UdevRuleInstaller",
]
