"""Post-detection validation of the nested room hierarchy.

Validation never raises on its own: it returns blocking errors and
informational warnings. Callers decide whether an error means reverting to
the pre-edit plan (``EditResult.resolve``) or raising (``apply_strict``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..config import AREA_EPSILON
from ..core.model import Room
from ..geom.polygon import overlap_area, polygons_overlap_with_area

LOGGER = logging.getLogger(__name__)

NET_AREA_EPSILON = 1e-6


class InvalidOperation(Exception):
    """Raised when an operation violates plan invariants."""

    pass


class RoomValidationError(InvalidOperation):
    """Raised by the strict API when the room validator reports errors."""

    def __init__(self, errors: Sequence[str], warnings: Sequence[str] = ()):
        self.errors = list(errors)
        self.warnings = list(warnings)
        super().__init__("; ".join(self.errors) or "Room validation failed")


@dataclass(frozen=True)
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _sibling_groups(rooms: Sequence[Room]) -> Dict[Optional[str], List[Room]]:
    """Group rooms by parent id; top-level rooms share the None group."""
    known = {room.id for room in rooms}
    groups: Dict[Optional[str], List[Room]] = {}
    for room in rooms:
        parent_id = room.parent_room_id if room.parent_room_id in known else None
        groups.setdefault(parent_id, []).append(room)
    return groups


def validate_containment(rooms: Sequence[Room], result: ValidationResult) -> None:
    """Check that no child is larger than, or nearly as large as, its parent."""
    rooms_by_id = {room.id: room for room in rooms}
    for room in rooms:
        if not room.parent_room_id:
            continue
        parent = rooms_by_id.get(room.parent_room_id)
        if parent is None:
            continue

        if room.gross_area > parent.gross_area + AREA_EPSILON:
            result.errors.append(f'"{room.name}" cannot be larger than parent "{parent.name}".')
        elif room.gross_area >= parent.gross_area - AREA_EPSILON:
            result.warnings.append(
                f'"{room.name}" nearly fills "{parent.name}" (remaining area approaches zero).'
            )


def validate_sibling_overlap(rooms: Sequence[Room], result: ValidationResult) -> None:
    """Report every pair of siblings that share a positive-area region."""
    rooms_by_id = {room.id: room for room in rooms}
    for parent_id, siblings in _sibling_groups(rooms).items():
        for i, room_a in enumerate(siblings):
            for room_b in siblings[i + 1 :]:
                if not polygons_overlap_with_area(room_a.vertices, room_b.vertices):
                    continue
                LOGGER.debug(
                    "Rooms %s and %s overlap by %.4f units²",
                    room_a.id,
                    room_b.id,
                    overlap_area(room_a.vertices, room_b.vertices),
                )
                if parent_id is None:
                    result.errors.append(f'Rooms "{room_a.name}" and "{room_b.name}" overlap.')
                else:
                    parent_name = rooms_by_id[parent_id].name
                    result.errors.append(
                        f'Child rooms "{room_a.name}" and "{room_b.name}" overlap inside "{parent_name}".'
                    )


def validate_net_area(rooms: Sequence[Room], result: ValidationResult) -> None:
    for room in rooms:
        if room.child_room_ids and room.net_area <= NET_AREA_EPSILON:
            result.warnings.append(f'"{room.name}" has zero remaining net area.')


def validate_nested_rooms(rooms: Sequence[Room]) -> ValidationResult:
    """Run all room validators on a detected room list.

    Args:
        rooms: Rooms with resolved hierarchy.

    Returns:
        ValidationResult; ``ok`` is False when any blocking error was found.
    """
    result = ValidationResult()
    validate_containment(rooms, result)
    validate_sibling_overlap(rooms, result)
    validate_net_area(rooms, result)

    if result.errors:
        LOGGER.warning("Room validation found %d error(s)", len(result.errors))
    return result


def derive_nested_relation_warnings(previous_rooms: Sequence[Room], next_rooms: Sequence[Room]) -> List[str]:
    """Describe rooms that left or switched their parent across an edit."""
    previous_by_id = {room.id: room for room in previous_rooms}
    warnings = []
    for room in next_rooms:
        previous = previous_by_id.get(room.id)
        if previous is None or not previous.parent_room_id:
            continue
        if not room.parent_room_id:
            warnings.append(
                f'"{room.name}" moved outside its parent and is now treated as an adjacent/top-level room.'
            )
        elif room.parent_room_id != previous.parent_room_id:
            warnings.append(f'"{room.name}" changed parent room relationship.')
    return warnings
