"""Phong materials for Whitted-style shading.

A material describes how a surface responds to direct light and how much of
the incoming ray is continued as reflection or transmission:

    ambient       constant base color (RGB in [0, 1])
    diffuse       Lambertian color scaled by max(0, N.L)
    specular      Phong highlight color scaled by max(0, R.V)^(shininess * 128)
    shininess     highlight exponent (before the x128 scale)
    reflectivity  fraction of the color taken from the mirror ray, in [0, 1]
    transparency  fraction of the color taken from the transmitted ray, in [0, 1]

Reflectivity and transparency are clamped to [0, 1] on construction; color
components outside [0, 1] are rejected.

Material properties are mirrored into Structure-of-Arrays Taichi fields so
the tracer can look them up by material id inside kernels.

Example:
    >>> from src.whitted.materials.phong import Material, MaterialPreset, add_material
    >>> gold = Material.from_preset(MaterialPreset.GOLD, reflectivity=0.3)
    >>> glass = Material(diffuse=(0.9, 0.9, 0.9), shininess=0.8, transparency=0.9)
    >>> gold_id = add_material(gold)  # requires ti.init()
"""

import dataclasses
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

Color = tuple[float, float, float]


class MaterialPreset(IntEnum):
    """Named Phong coefficient sets."""

    DEFAULT = 0
    EMERALD = 1
    JADE = 2
    RUBY = 3
    GOLD = 4
    RED_PLASTIC = 5


# (ambient, diffuse, specular, shininess)
_PRESET_COEFFICIENTS: dict[MaterialPreset, tuple[Color, Color, Color, float]] = {
    MaterialPreset.DEFAULT: ((0.05, 0.05, 0.05), (0.5, 0.5, 0.5), (0.7, 0.7, 0.7), 0.078125),
    MaterialPreset.EMERALD: (
        (0.0215, 0.1745, 0.0215),
        (0.07568, 0.61424, 0.07568),
        (0.633, 0.727811, 0.633),
        0.6,
    ),
    MaterialPreset.JADE: (
        (0.135, 0.2225, 0.1575),
        (0.54, 0.89, 0.63),
        (0.316228, 0.316228, 0.316228),
        0.1,
    ),
    MaterialPreset.RUBY: (
        (0.1745, 0.01175, 0.01175),
        (0.61424, 0.04136, 0.04136),
        (0.727811, 0.626959, 0.626959),
        0.6,
    ),
    MaterialPreset.GOLD: (
        (0.24725, 0.1995, 0.0745),
        (0.75164, 0.60648, 0.22648),
        (0.628281, 0.555802, 0.366065),
        0.4,
    ),
    MaterialPreset.RED_PLASTIC: ((0.0, 0.0, 0.0), (0.5, 0.0, 0.0), (0.7, 0.6, 0.6), 0.25),
}


def _validate_color(name: str, color) -> Color:
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        if component < 0.0 or component > 1.0:
            raise ValueError(f"{name} component {i} = {component} is outside [0, 1]")
    return (float(color[0]), float(color[1]), float(color[2]))


def _clamp01(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


@dataclass(frozen=True)
class Material:
    """Phong material with reflection and transparency fractions.

    Instances are immutable and hashable, so the scene can register each
    distinct material once.
    """

    ambient: Color = (0.05, 0.05, 0.05)
    diffuse: Color = (0.5, 0.5, 0.5)
    specular: Color = (0.7, 0.7, 0.7)
    shininess: float = 0.078125
    reflectivity: float = 0.0
    transparency: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "ambient", _validate_color("ambient", self.ambient))
        object.__setattr__(self, "diffuse", _validate_color("diffuse", self.diffuse))
        object.__setattr__(self, "specular", _validate_color("specular", self.specular))
        if self.shininess < 0.0:
            raise ValueError(f"shininess must be non-negative, got {self.shininess}")
        object.__setattr__(self, "shininess", float(self.shininess))
        object.__setattr__(self, "reflectivity", _clamp01(self.reflectivity))
        object.__setattr__(self, "transparency", _clamp01(self.transparency))

    @classmethod
    def from_preset(
        cls,
        preset: MaterialPreset | str,
        reflectivity: float = 0.0,
        transparency: float = 0.0,
    ) -> "Material":
        """Create a material from a named coefficient set.

        Args:
            preset: A MaterialPreset or its name (case-insensitive).
            reflectivity: Mirror fraction, clamped to [0, 1].
            transparency: Transmission fraction, clamped to [0, 1].

        Raises:
            ValueError: If the preset name is unknown.
        """
        if isinstance(preset, str):
            try:
                preset = MaterialPreset[preset.upper()]
            except KeyError as err:
                raise ValueError(f"Unknown material preset: {preset}") from err
        ambient, diffuse, specular, shininess = _PRESET_COEFFICIENTS[preset]
        return cls(
            ambient=ambient,
            diffuse=diffuse,
            specular=specular,
            shininess=shininess,
            reflectivity=reflectivity,
            transparency=transparency,
        )

    def with_diffuse(self, color: Color) -> "Material":
        """Copy of this material with a different diffuse color."""
        return dataclasses.replace(self, diffuse=tuple(color))

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Material":
        return cls(
            ambient=tuple(data["ambient"]),
            diffuse=tuple(data["diffuse"]),
            specular=tuple(data["specular"]),
            shininess=data["shininess"],
            reflectivity=data.get("reflectivity", 0.0),
            transparency=data.get("transparency", 0.0),
        )


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of materials in the scene
MAX_MATERIALS = 1024

material_ambient = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_specular = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_shininess = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_reflectivity = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_transparency = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all materials.

    Resets the material count to zero. Existing data in the fields will be
    overwritten when new materials are added.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Add a material to the registry.

    Args:
        material: The material to store.

    Returns:
        The material id (index into the material fields).

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_ambient[idx] = vec3(*material.ambient)
    material_diffuse[idx] = vec3(*material.diffuse)
    material_specular[idx] = vec3(*material.specular)
    material_shininess[idx] = material.shininess
    material_reflectivity[idx] = material.reflectivity
    material_transparency[idx] = material.transparency
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the registry."""
    return int(num_materials[None])


@ti.func
def get_material_transparency(material_id: ti.i32) -> ti.f32:
    """Transparency of a material by id (used by shadow rays)."""
    return material_transparency[material_id]
