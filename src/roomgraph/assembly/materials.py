"""Material library, thickness rules and thermal arithmetic for wall layers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from ..config import R_SE, R_SI
from ..core.model import MaterialProperties, WallLayer, generate_id

GENERIC_MATERIAL = "generic"
INSULATION_MATERIALS = frozenset({"eps-insulation", "xps-insulation", "mineral-wool"})
PLASTER_MATERIAL = "plaster"


def _material(material: str, name: str, conductivity: float, density: float, heat: float) -> MaterialProperties:
    return MaterialProperties(
        material=material,
        name=name,
        thermal_conductivity=conductivity,
        density=density,
        specific_heat_capacity=heat,
    )


# Conductivity W/mK, density kg/m³, specific heat J/kgK
MATERIAL_LIBRARY: Dict[str, MaterialProperties] = {
    m.material: m
    for m in (
        _material("cement-block", "Cement Block", 0.72, 1900, 840),
        _material("clay-brick", "Clay Brick", 0.84, 1700, 800),
        _material("concrete", "Concrete", 1.63, 2400, 880),
        _material("concrete-block", "Concrete Block", 1.2, 2000, 880),
        _material("gypsum-board", "Gypsum Board", 0.17, 800, 1090),
        _material("plaster", "Plaster", 0.72, 1680, 840),
        _material("putty-skim", "Putty / Skim Coat", 0.72, 1600, 840),
        _material("eps-insulation", "EPS Insulation", 0.035, 20, 1450),
        _material("xps-insulation", "XPS Insulation", 0.034, 35, 1450),
        _material("mineral-wool", "Mineral Wool", 0.038, 100, 840),
        _material("air-cavity", "Air Cavity", 0.025, 1.2, 1005),
        _material("stud-air-gap", "Stud Air Gap", 0.025, 1.2, 1005),
        _material("vapor-barrier", "Vapor Barrier", 0.19, 940, 1900),
        _material("waterproofing", "Waterproofing", 0.2, 1200, 1400),
        _material(GENERIC_MATERIAL, "Generic", 0.5, 1200, 900),
    )
}


@dataclass(frozen=True)
class CoreThicknessRule:
    min: float
    step: float
    snap: str
    default_thickness: float


@dataclass(frozen=True)
class LayerThicknessRule:
    min: float
    max: float
    step: float


CORE_THICKNESS_RULES: Dict[str, CoreThicknessRule] = {
    "cement-block": CoreThicknessRule(min=100, step=50, snap="linear", default_thickness=150),
    "clay-brick": CoreThicknessRule(min=115, step=115, snap="linear", default_thickness=230),
    "concrete": CoreThicknessRule(min=100, step=25, snap="linear", default_thickness=200),
    "concrete-block": CoreThicknessRule(min=90, step=90, snap="concrete-block", default_thickness=190),
    "gypsum-board": CoreThicknessRule(min=12.5, step=12.5, snap="linear", default_thickness=12.5),
}

LAYER_THICKNESS_RULES: Dict[str, LayerThicknessRule] = {
    "plaster": LayerThicknessRule(min=5, max=25, step=1),
    "putty-skim": LayerThicknessRule(min=1, max=5, step=0.5),
    "eps-insulation": LayerThicknessRule(min=25, max=200, step=5),
    "xps-insulation": LayerThicknessRule(min=25, max=200, step=5),
    "mineral-wool": LayerThicknessRule(min=25, max=200, step=5),
    "air-cavity": LayerThicknessRule(min=10, max=100, step=5),
    "stud-air-gap": LayerThicknessRule(min=10, max=100, step=5),
}


def get_material(material: str) -> MaterialProperties:
    """Look up a material, falling back to the generic one."""
    return MATERIAL_LIBRARY.get(material, MATERIAL_LIBRARY[GENERIC_MATERIAL])


def round_to_step(value: float, step: float) -> float:
    """Round to the nearest multiple of step, halves rounding up."""
    if not math.isfinite(step) or step <= 0:
        return value
    return math.floor(value / step + 0.5) * step


def snap_concrete_block_thickness(value: float) -> float:
    # 90 and 190 blocks, then 190 plus whole 90 courses
    if value <= 140:
        return 90
    if value <= 235:
        return 190
    return max(190, 190 + round_to_step(value - 190, 90))


def snap_core_thickness(material: str, raw_thickness: float) -> float:
    """Snap a core ply thickness to the material's manufacturing sizes.

    Args:
        material: Material key of the core layer.
        raw_thickness: Requested thickness in mm.

    Returns:
        The nearest valid size, never below the rule minimum. Materials
        without a rule only get clamped to 1 mm.
    """
    rule = CORE_THICKNESS_RULES.get(material)
    if rule is None:
        return max(1.0, raw_thickness)
    normalized = max(rule.min, raw_thickness)
    if rule.snap == "concrete-block":
        return snap_concrete_block_thickness(normalized)
    return round(round_to_step(normalized - rule.min, rule.step) + rule.min, 4)


def apply_layer_thickness_rule(layer: WallLayer, requested: float) -> float:
    """Clamp and step a finish layer thickness by its material rule."""
    rule = LAYER_THICKNESS_RULES.get(layer.material)
    value = requested
    if rule is not None:
        value = min(rule.max, max(rule.min, value))
        if rule.step > 0:
            value = round_to_step(value - rule.min, rule.step) + rule.min
    return round(value, 4)


def total_thickness(layers: Sequence[WallLayer]) -> float:
    return sum(max(layer.thickness, 0.0) for layer in layers)


def r_value(layers: Sequence[WallLayer]) -> float:
    """Thermal resistance in m²K/W including both surface films."""
    conductive = sum(
        (max(layer.thickness, 0.0) / 1000.0) / max(layer.thermal_conductivity, 0.0001) for layer in layers
    )
    return R_SI + conductive + R_SE


def u_value(layers: Sequence[WallLayer]) -> float:
    resistance = r_value(layers)
    return 0.0 if resistance <= 0 else 1.0 / resistance


@dataclass(frozen=True)
class LayerSeed:
    name: str
    material: str
    thickness: float
    color: str
    hatch_pattern: str
    is_core: bool = False


def create_layer(seed: LayerSeed, order: int = 0, layer_id: Optional[str] = None) -> WallLayer:
    """Build a WallLayer from a seed, pulling thermal data from the library."""
    material = get_material(seed.material)
    return WallLayer(
        id=layer_id or generate_id(),
        name=seed.name,
        material=seed.material,
        thickness=seed.thickness,
        is_core=seed.is_core,
        color=seed.color,
        hatch_pattern=seed.hatch_pattern,
        thermal_conductivity=material.thermal_conductivity,
        density=material.density,
        specific_heat_capacity=material.specific_heat_capacity,
        order=order,
    )


LAYER_PRESETS: Dict[str, LayerSeed] = {
    "insulation": LayerSeed("Insulation", "eps-insulation", 50, "#FFE066", "insulation-zigzag"),
    "plaster": LayerSeed("Plaster", "plaster", 12, "#E0E0E0", "plaster-fine"),
    "vapor-barrier": LayerSeed("Vapor Barrier", "vapor-barrier", 0.2, "#93C5FD", "vapor-line"),
    "air-gap": LayerSeed("Air Gap", "air-cavity", 25, "#F5F5F5", "air-gap-dots"),
    "waterproofing": LayerSeed("Waterproofing", "waterproofing", 3, "#60A5FA", "waterproof-wave"),
}


def get_default_layer_preset(preset: str, order: int = 0) -> WallLayer:
    """Create a fresh layer from a named preset.

    Raises:
        ValueError: If the preset name is unknown.
    """
    seed = LAYER_PRESETS.get(preset)
    if seed is None:
        raise ValueError(f"Unknown layer preset: {preset}")
    return create_layer(seed, order)
