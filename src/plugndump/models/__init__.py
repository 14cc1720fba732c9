"""Pydantic data models."""

from plugndump.models.device import FC_VENDOR_ID, DeviceDescriptor, DeviceSnapshot
from plugndump.models.dialog import Dialog, DialogKind
from plugndump.models.progress import ProgressEvent, Status, Step
from plugndump.models.results import EraseResult, ExtractionResult, ExtractionState

__all__ = [
    "FC_VENDOR_ID",
    "DeviceDescriptor",
    "DeviceSnapshot",
    "Dialog",
    "DialogKind",
    "EraseResult",
    "ExtractionResult",
    "ExtractionState",
    "ProgressEvent",
    "Status",
    "Step",
]
