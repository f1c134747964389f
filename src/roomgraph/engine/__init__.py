"""Engine module for room detection and plan edits.

This module provides the detection pipeline, the nested room hierarchy, the
room validator and the operation API.
"""

from .api import EditResult, apply, apply_operations, apply_strict, detect, validate
from .rooms import detect_rooms, detect_rooms_incremental
from .validators import InvalidOperation, RoomValidationError, validate_nested_rooms

__all__ = [
    "EditResult",
    "InvalidOperation",
    "RoomValidationError",
    "apply",
    "apply_operations",
    "apply_strict",
    "detect",
    "detect_rooms",
    "detect_rooms_incremental",
    "validate",
    "validate_nested_rooms",
]
