"""Core extraction, erase and detection logic."""

from plugndump.core.detection import DetectionLoop
from plugndump.core.drives import DriveLocator
from plugndump.core.eraser import LogEraser
from plugndump.core.extractor import DumpExtractor
from plugndump.core.presenter import HeadlessPresenter, Presenter, WorkflowEvent
from plugndump.core.progress import ProgressReporter
from plugndump.core.registry import DeviceRegistry
from plugndump.core.service import PlugNDumpService
from plugndump.core.session import CliSession, SessionGuard
from plugndump.core.workflow import WorkflowCoordinator, WorkflowPhase, WorkflowState

__all__ = [
    "CliSession",
    "DetectionLoop",
    "DeviceRegistry",
    "DriveLocator",
    "DumpExtractor",
    "HeadlessPresenter",
    "LogEraser",
    "PlugNDumpService",
    "Presenter",
    "ProgressReporter",
    "SessionGuard",
    "WorkflowCoordinator",
    "WorkflowEvent",
    "WorkflowPhase",
    "WorkflowState",
]
