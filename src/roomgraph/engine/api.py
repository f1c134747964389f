"""Core API for plan edits.

This module provides the main interface for applying operations to a plan:
an operation edits the walls (or room metadata), rooms are re-derived from
the new walls, and the result is validated. Nothing here mutates its input;
callers commit ``EditResult.plan`` or fall back with ``EditResult.resolve``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..assembly.wall_types import BUILT_IN_WALL_TYPES, WallTypeRegistry
from ..config import DEFAULT_SETTINGS, DetectionSettings
from ..core.model import Plan
from .ops import get_operation
from .rooms import detect_rooms, detect_rooms_incremental
from .validators import (
    RoomValidationError,
    ValidationResult,
    derive_nested_relation_warnings,
    validate_nested_rooms,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditResult:
    """Outcome of one operation.

    Attributes:
        plan: The edited plan with re-derived rooms.
        warnings: Non-blocking messages for the user.
        errors: Blocking validation errors; the edit must not be committed.
    """

    plan: Plan
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def resolve(self, previous_plan: Plan) -> Plan:
        """Return the plan to commit: the edit, or the previous plan on error."""
        return self.plan if self.ok else previous_plan


def _split_operation(operation: Mapping[str, Any]) -> Tuple[str, dict]:
    if not isinstance(operation, Mapping):
        raise ValueError(f"Operation must be a JSON object, got {type(operation).__name__}")
    operation_type = operation.get("op") or operation.get("type")
    if operation_type is None:
        raise ValueError("Operation must have an 'op' or 'type' field")
    params = {k: v for k, v in operation.items() if k not in ("op", "type")}
    return operation_type, params


def apply(
    plan: Plan,
    operation: Mapping[str, Any],
    registry: Optional[WallTypeRegistry] = None,
    settings: Optional[DetectionSettings] = None,
) -> EditResult:
    """Apply an operation to a plan and re-derive its rooms.

    Args:
        plan: The plan to edit.
        operation: Dictionary describing the operation ("op" plus payload).
        registry: Wall type registry for assembly operations.
        settings: Detection settings.

    Returns:
        EditResult carrying the new plan, warnings and validation errors.

    Raises:
        ValueError: If the operation type is unknown or its payload is
            invalid for this plan.
    """
    settings = settings or DEFAULT_SETTINGS
    operation_type, params = _split_operation(operation)

    try:
        op = get_operation(operation_type)
    except KeyError:
        raise ValueError(f"Unknown operation type: {operation_type}")

    params["registry"] = registry or BUILT_IN_WALL_TYPES
    op.precheck(plan, **params)
    edited, warnings = op.apply(plan, **params)

    rooms = detect_rooms_incremental(plan.walls, edited.walls, edited.rooms, settings)
    warnings = list(warnings) + derive_nested_relation_warnings(plan.rooms, rooms)
    validation = validate_nested_rooms(rooms)
    warnings.extend(validation.warnings)

    if validation.errors:
        LOGGER.warning("Operation %s rejected: %s", operation_type, "; ".join(validation.errors))
    else:
        LOGGER.debug("Operation %s applied: %d walls, %d rooms", operation_type, len(edited.walls), len(rooms))

    return EditResult(plan=Plan(walls=edited.walls, rooms=tuple(rooms)), warnings=warnings, errors=list(validation.errors))


def apply_strict(
    plan: Plan,
    operation: Mapping[str, Any],
    registry: Optional[WallTypeRegistry] = None,
    settings: Optional[DetectionSettings] = None,
) -> EditResult:
    """Like ``apply`` but raise when the validator reports errors.

    Raises:
        RoomValidationError: If the edit breaks a room invariant.
    """
    result = apply(plan, operation, registry, settings)
    if not result.ok:
        raise RoomValidationError(result.errors, result.warnings)
    return result


def apply_operations(
    plan: Plan,
    operations: Sequence[Mapping[str, Any]],
    registry: Optional[WallTypeRegistry] = None,
    settings: Optional[DetectionSettings] = None,
) -> Tuple[Plan, List[EditResult]]:
    """Apply operations in sequence, skipping any that fail validation.

    Each operation builds on the last committed plan; a rejected operation
    leaves the plan as it was.

    Returns:
        The final plan and one EditResult per operation.
    """
    current = plan
    results = []
    for operation in operations:
        result = apply(current, operation, registry, settings)
        results.append(result)
        current = result.resolve(current)
    return current, results


def detect(plan: Plan, settings: Optional[DetectionSettings] = None) -> Plan:
    """Re-derive every room of a plan from its walls."""
    return Plan(walls=plan.walls, rooms=tuple(detect_rooms(plan.walls, plan.rooms, settings)))


def validate(plan: Plan) -> ValidationResult:
    return validate_nested_rooms(plan.rooms)
