"""Wall type registry and per-wall layer override operations.

A wall either follows its wall type (``wall_layers is None``) or carries its
own layer stack. Every mutating operation here returns the updated wall and
a list of non-fatal warnings, and recomputes ``is_wall_type_override`` by
comparing layer fingerprints with the referenced type.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import DEFAULT_WALL_HEIGHT_MM
from ..core.model import Wall, WallLayer, WallTypeDefinition, generate_id
from .materials import (
    CORE_THICKNESS_RULES,
    INSULATION_MATERIALS,
    PLASTER_MATERIAL,
    LayerSeed,
    apply_layer_thickness_rule,
    create_layer,
    get_material,
    r_value,
    snap_core_thickness,
    total_thickness,
    u_value,
)

LOGGER = logging.getLogger(__name__)

WallTypeRegistry = Tuple[WallTypeDefinition, ...]


def create_wall_type(
    type_id: str,
    name: str,
    category: str,
    plan_texture_id: str,
    section_texture_id: str,
    core_color: str,
    seeds: Sequence[LayerSeed],
    default_height: float = DEFAULT_WALL_HEIGHT_MM,
) -> WallTypeDefinition:
    """Build a wall type with derived thickness and U-value.

    Layer ids are ``<type_id>-<index>`` so type stacks are reproducible.
    """
    layers = tuple(create_layer(seed, index, f"{type_id}-{index}") for index, seed in enumerate(seeds))
    return WallTypeDefinition(
        id=type_id,
        name=name,
        category=category,
        layers=layers,
        total_thickness=total_thickness(layers),
        u_value=u_value(layers),
        default_height=default_height,
        plan_texture_id=plan_texture_id,
        section_texture_id=section_texture_id,
        core_color=core_color,
    )


_EXTERNAL_PLASTER = LayerSeed("External Plaster", "plaster", 15, "#D8D8D8", "plaster-fine")
_INTERNAL_PLASTER = LayerSeed("Internal Plaster", "plaster", 12, "#E0E0E0", "plaster-fine")
_PUTTY = LayerSeed("Putty", "putty-skim", 3, "#EFEFEF", "putty-fine")

BUILT_IN_WALL_TYPES: WallTypeRegistry = (
    create_wall_type(
        "cement-block-wall",
        "Cement Block Wall",
        "structural",
        "block-diagonal-crosshatch",
        "block-section",
        "#B8B8B8",
        [
            _EXTERNAL_PLASTER,
            LayerSeed("Cement Block", "cement-block", 150, "#B8B8B8", "block-diagonal-crosshatch", is_core=True),
            _INTERNAL_PLASTER,
            LayerSeed("Putty/Skim Coat", "putty-skim", 3, "#EFEFEF", "putty-fine"),
        ],
    ),
    create_wall_type(
        "brick-wall",
        "Brick Wall",
        "structural",
        "brick-staggered",
        "brick-section",
        "#C4714A",
        [
            _EXTERNAL_PLASTER,
            LayerSeed("Clay Brick", "clay-brick", 230, "#C4714A", "brick-staggered", is_core=True),
            _INTERNAL_PLASTER,
            _PUTTY,
        ],
    ),
    create_wall_type(
        "concrete-wall-cast-insitu",
        "Concrete Wall (Cast in-situ)",
        "structural",
        "concrete-stipple",
        "concrete-section",
        "#A0A0A0",
        [
            LayerSeed("External Render", "plaster", 15, "#D8D8D8", "render-fine"),
            LayerSeed("Reinforced Concrete", "concrete", 200, "#A0A0A0", "concrete-stipple", is_core=True),
            _INTERNAL_PLASTER,
            _PUTTY,
        ],
    ),
    create_wall_type(
        "concrete-block-wall",
        "Concrete Block Wall",
        "structural",
        "block-diagonal-dots",
        "block-section",
        "#9E9E9E",
        [
            _EXTERNAL_PLASTER,
            LayerSeed("Concrete Block", "concrete-block", 190, "#9E9E9E", "block-diagonal-dots", is_core=True),
            _INTERNAL_PLASTER,
            _PUTTY,
        ],
    ),
    create_wall_type(
        "partition-wall-lightweight",
        "Partition Wall (Lightweight)",
        "partition",
        "partition-parallel-lines",
        "partition-section",
        "#D9D2C5",
        [
            LayerSeed("Gypsum Board", "gypsum-board", 12.5, "#E6DFD4", "gypsum-lines"),
            LayerSeed("Stud Air Gap", "stud-air-gap", 75, "#D9D2C5", "partition-parallel-lines", is_core=True),
            LayerSeed("Gypsum Board", "gypsum-board", 12.5, "#E6DFD4", "gypsum-lines"),
        ],
    ),
    create_wall_type(
        "insulated-cavity-wall",
        "Insulated Cavity Wall",
        "structural",
        "cavity-block-insulation",
        "cavity-section",
        "#B8B8B8",
        [
            _EXTERNAL_PLASTER,
            LayerSeed("Outer Block", "cement-block", 100, "#B8B8B8", "block-diagonal-crosshatch", is_core=True),
            LayerSeed("Insulation", "eps-insulation", 50, "#FFE066", "insulation-zigzag"),
            LayerSeed("Air Cavity", "air-cavity", 25, "#F5F5F5", "air-gap-dots"),
            LayerSeed("Inner Block", "cement-block", 100, "#B8B8B8", "block-diagonal-crosshatch", is_core=True),
            _INTERNAL_PLASTER,
            _PUTTY,
        ],
    ),
)

BUILT_IN_WALL_TYPE_IDS = tuple(wall_type.id for wall_type in BUILT_IN_WALL_TYPES)
DEFAULT_WALL_TYPE_ID = BUILT_IN_WALL_TYPE_IDS[0]

FALLBACK_WALL_TYPE = create_wall_type(
    "fallback-wall-type",
    "Fallback Wall",
    "structural",
    "block-diagonal-crosshatch",
    "block-section",
    "#9E9E9E",
    [LayerSeed("Generic Core", "generic", 150, "#9E9E9E", "generic-core", is_core=True)],
)


@dataclass(frozen=True)
class WallLayerOperationResult:
    wall: Wall
    warnings: List[str] = field(default_factory=list)


def _indexed(layers: Sequence[WallLayer]) -> Tuple[WallLayer, ...]:
    return tuple(layer if layer.order == index else replace(layer, order=index) for index, layer in enumerate(layers))


def get_wall_type_registry(custom_wall_types: Sequence[WallTypeDefinition] = ()) -> WallTypeRegistry:
    """Built-in types followed by custom ones, with derived fields recomputed."""
    registry = []
    for wall_type in tuple(BUILT_IN_WALL_TYPES) + tuple(custom_wall_types):
        layers = _indexed(wall_type.layers)
        registry.append(
            replace(wall_type, layers=layers, total_thickness=total_thickness(layers), u_value=u_value(layers))
        )
    return tuple(registry)


def get_wall_type_by_id(
    wall_type_id: Optional[str], registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> WallTypeDefinition:
    """Find a wall type, falling back to the first registry entry."""
    fallback = registry[0] if registry else FALLBACK_WALL_TYPE
    if not wall_type_id:
        return fallback
    for wall_type in registry:
        if wall_type.id == wall_type_id:
            return wall_type
    return fallback


def wall_layers_for_type(
    wall_type_id: Optional[str], registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> Tuple[WallLayer, ...]:
    """Clone a type's layer stack with fresh layer ids."""
    wall_type = get_wall_type_by_id(wall_type_id, registry)
    return _indexed([replace(layer, id=generate_id()) for layer in wall_type.layers])


def layer_fingerprint(layer: WallLayer) -> str:
    return "|".join(
        [
            layer.name,
            layer.material,
            f"{float(layer.thickness):.4f}",
            "core" if layer.is_core else "finish",
            layer.hatch_pattern,
        ]
    )


def layers_fingerprint(layers: Sequence[WallLayer]) -> str:
    return "::".join(layer_fingerprint(layer) for layer in layers)


def resolve_wall_layers(wall: Wall, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES) -> Tuple[WallLayer, ...]:
    """Effective layers: the wall's own override, else a clone of its type's."""
    if wall.wall_layers:
        return _indexed(wall.wall_layers)
    return wall_layers_for_type(wall.wall_type_id, registry)


def is_wall_using_type_default(wall: Wall, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES) -> bool:
    wall_type = get_wall_type_by_id(wall.wall_type_id, registry)
    return layers_fingerprint(resolve_wall_layers(wall, registry)) == layers_fingerprint(wall_type.layers)


def _primary_core_index(layers: Sequence[WallLayer]) -> int:
    return next((index for index, layer in enumerate(layers) if layer.is_core), 0)


def _with_layers(wall: Wall, layers: Sequence[WallLayer], registry: WallTypeRegistry) -> Wall:
    indexed = _indexed(layers)
    updated = replace(wall, wall_layers=indexed, thickness=total_thickness(indexed))
    return replace(updated, is_wall_type_override=not is_wall_using_type_default(updated, registry))


def validate_layer_stack(layers: Sequence[WallLayer]) -> List[str]:
    """Warn about plaster plies that are neither outermost nor next to the core."""
    warnings = []
    core_index = _primary_core_index(layers)
    for index, layer in enumerate(layers):
        if layer.material != PLASTER_MATERIAL:
            continue
        outermost = index == 0 or index == len(layers) - 1
        adjacent_to_core = abs(index - core_index) == 1
        if not outermost and not adjacent_to_core:
            warnings.append(f'Layer "{layer.name}" is plaster/render but is not outermost or adjacent to core.')
    return warnings


def resize_wall_total_thickness(
    wall: Wall, requested_total: float, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> WallLayerOperationResult:
    """Resize a wall by changing only its primary core ply.

    The core absorbs the difference between the requested total and the
    finish layers, then snaps to its material's size rule, so the resulting
    total is the nearest achievable one rather than the requested value.
    """
    layers = resolve_wall_layers(wall, registry)
    if not layers:
        return WallLayerOperationResult(
            wall=replace(wall, thickness=max(1.0, requested_total)),
            warnings=["Wall has no valid core layer."],
        )

    core_index = _primary_core_index(layers)
    core = layers[core_index]
    finish = sum(max(layer.thickness, 0.0) for index, layer in enumerate(layers) if index != core_index)
    snapped = snap_core_thickness(core.material, max(0.0, requested_total - finish))
    next_layers = [replace(layer, thickness=snapped) if index == core_index else layer for index, layer in enumerate(layers)]
    LOGGER.debug("Resized wall %s core %s to %.4f mm", wall.id, core.material, snapped)
    return WallLayerOperationResult(wall=_with_layers(wall, next_layers, registry))


def add_wall_layer(
    wall: Wall, layer: WallLayer, index: int, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> WallLayerOperationResult:
    layers = list(resolve_wall_layers(wall, registry))
    bounded = max(0, min(index, len(layers)))
    before = layers[bounded - 1] if bounded > 0 else None
    after = layers[bounded] if bounded < len(layers) else None
    if before is not None and after is not None and before.is_core and after.is_core:
        return WallLayerOperationResult(wall=wall, warnings=["Cannot add a layer inside the structural core stack."])

    layers.insert(bounded, replace(layer, id=generate_id()))
    indexed = _indexed(layers)
    return WallLayerOperationResult(wall=_with_layers(wall, indexed, registry), warnings=validate_layer_stack(indexed))


def remove_wall_layer(
    wall: Wall, layer_id: str, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> WallLayerOperationResult:
    """Remove a finish layer; the core can never be removed."""
    layers = resolve_wall_layers(wall, registry)
    target = next((layer for layer in layers if layer.id == layer_id), None)
    if target is None:
        return WallLayerOperationResult(wall=wall)
    if target.is_core:
        return WallLayerOperationResult(wall=wall, warnings=["Core layer cannot be removed."])

    warnings = []
    if target.material in INSULATION_MATERIALS:
        warnings.append("Removing insulation will affect thermal performance.")
    remaining = [layer for layer in layers if layer.id != layer_id]
    return WallLayerOperationResult(wall=_with_layers(wall, remaining, registry), warnings=warnings)


def reorder_wall_layers(
    wall: Wall, from_index: int, to_index: int, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> WallLayerOperationResult:
    layers = list(resolve_wall_layers(wall, registry))
    if not (0 <= from_index < len(layers) and 0 <= to_index < len(layers)):
        return WallLayerOperationResult(wall=wall)
    moved = layers.pop(from_index)
    layers.insert(to_index, moved)
    indexed = _indexed(layers)
    return WallLayerOperationResult(wall=_with_layers(wall, indexed, registry), warnings=validate_layer_stack(indexed))


def update_wall_layer_thickness(
    wall: Wall, layer_id: str, requested: float, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> WallLayerOperationResult:
    """Set one layer's thickness through its core or finish rule."""
    next_layers = []
    for layer in resolve_wall_layers(wall, registry):
        if layer.id != layer_id:
            next_layers.append(layer)
        elif layer.is_core:
            next_layers.append(replace(layer, thickness=snap_core_thickness(layer.material, requested)))
        else:
            next_layers.append(replace(layer, thickness=apply_layer_thickness_rule(layer, requested)))
    indexed = _indexed(next_layers)
    return WallLayerOperationResult(wall=_with_layers(wall, indexed, registry), warnings=validate_layer_stack(indexed))


def convert_wall_core_material(
    wall: Wall, core_material: str, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> WallLayerOperationResult:
    """Swap the primary core to another material at that material's default size."""
    layers = resolve_wall_layers(wall, registry)
    if not layers:
        return WallLayerOperationResult(wall=wall, warnings=["Wall has no core layer."])

    core_index = _primary_core_index(layers)
    core = layers[core_index]
    material = get_material(core_material)
    rule = CORE_THICKNESS_RULES.get(core_material)
    default_thickness = rule.default_thickness if rule is not None else core.thickness

    next_core = replace(
        core,
        material=core_material,
        name=material.name,
        thickness=snap_core_thickness(core_material, default_thickness),
        thermal_conductivity=material.thermal_conductivity,
        density=material.density,
        specific_heat_capacity=material.specific_heat_capacity,
        hatch_pattern=f"{core_material}-core",
    )
    next_layers = [next_core if index == core_index else layer for index, layer in enumerate(layers)]
    return WallLayerOperationResult(wall=_with_layers(wall, next_layers, registry))


def _core_name(layers: Sequence[WallLayer]) -> Optional[str]:
    return next((layer.name for layer in layers if layer.is_core), None)


def reset_wall_to_type_default(wall: Wall, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES) -> Wall:
    """Discard a wall's layer override and restore its type's stack."""
    wall_type = get_wall_type_by_id(wall.wall_type_id, registry)
    layers = wall_layers_for_type(wall_type.id, registry)
    return replace(
        wall,
        wall_type_id=wall_type.id,
        wall_layers=layers,
        thickness=wall_type.total_thickness,
        material=_core_name(layers) or wall.material,
        color=wall_type.core_color,
        height=wall.height or wall_type.default_height,
        is_wall_type_override=False,
    )


def create_wall_from_type_defaults(
    wall_type_id: str, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> Dict[str, Any]:
    """Wall field defaults for a new wall of the given type.

    The result is meant to be passed as keyword defaults to
    ``create_wall_segment`` or ``add_edge_with_wall_reuse``.
    """
    wall_type = get_wall_type_by_id(wall_type_id, registry)
    layers = wall_layers_for_type(wall_type.id, registry)
    return {
        "wall_type_id": wall_type.id,
        "wall_layers": layers,
        "thickness": wall_type.total_thickness,
        "height": wall_type.default_height,
        "material": _core_name(layers) or wall_type.name,
        "color": wall_type.core_color,
        "is_wall_type_override": False,
    }


def normalize_wall_for_type_system(wall: Wall, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES) -> Wall:
    """Give a wall an explicit type reference and layer stack.

    Used on walls loaded from data that predates wall types.
    """
    wall_type = get_wall_type_by_id(wall.wall_type_id or DEFAULT_WALL_TYPE_ID, registry)
    wall_type_id = wall.wall_type_id or wall_type.id
    layers = resolve_wall_layers(replace(wall, wall_type_id=wall_type_id), registry)
    normalized = replace(
        wall,
        wall_type_id=wall_type_id,
        wall_layers=layers,
        thickness=wall.thickness if wall.thickness > 0 else total_thickness(layers),
        height=wall.height if wall.height > 0 else wall_type.default_height,
        color=wall.color or wall_type.core_color,
        material=wall.material or _core_name(layers) or wall_type.name,
    )
    return replace(normalized, is_wall_type_override=not is_wall_using_type_default(normalized, registry))


def wall_total_thickness(wall: Wall, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES) -> float:
    return total_thickness(resolve_wall_layers(wall, registry))


def wall_r_value(wall: Wall, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES) -> float:
    return r_value(resolve_wall_layers(wall, registry))


def wall_u_value(wall: Wall, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES) -> float:
    return u_value(resolve_wall_layers(wall, registry))


def wall_core_thickness(wall: Wall, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES) -> float:
    return sum(layer.thickness for layer in resolve_wall_layers(wall, registry) if layer.is_core)


def wall_finish_thickness(wall: Wall, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES) -> float:
    return wall_total_thickness(wall, registry) - wall_core_thickness(wall, registry)


def wall_layer_at_depth(
    wall: Wall, depth_mm: float, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES
) -> Optional[WallLayer]:
    """Return the layer found at a depth measured from the first face."""
    if not math.isfinite(depth_mm) or depth_mm < 0:
        return None
    cursor = 0.0
    for layer in resolve_wall_layers(wall, registry):
        next_cursor = cursor + layer.thickness
        if cursor <= depth_mm <= next_cursor + 1e-6:
            return layer
        cursor = next_cursor
    return None
