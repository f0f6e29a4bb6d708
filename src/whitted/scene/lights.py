"""Point lights.

A light is a position, an RGB color and a scalar intensity clamped to
[0, 1]. Every light contributes Lambertian diffuse and Phong specular terms
at each shaded point it can reach; shadow rays decide how much of it does.

Lights are mirrored into Taichi fields so the shader can loop over them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

# Maximum number of lights in the scene
MAX_LIGHTS = 64


@dataclass
class Light:
    """A point light.

    Attributes:
        position: World-space position.
        color: RGB color with components in [0, 1].
        intensity: Brightness multiplier, clamped to [0, 1].
    """

    position: tuple[float, float, float]
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    intensity: float = 1.0

    def __post_init__(self) -> None:
        self.position = tuple(float(c) for c in self.position)
        if len(self.position) != 3:
            raise ValueError(f"position must have 3 components, got {len(self.position)}")
        if len(self.color) != 3:
            raise ValueError(f"color must have 3 components, got {len(self.color)}")
        for i, component in enumerate(self.color):
            if component < 0.0 or component > 1.0:
                raise ValueError(f"Light color component {i} = {component} is outside [0, 1]")
        self.color = tuple(float(c) for c in self.color)
        self.intensity = min(max(float(self.intensity), 0.0), 1.0)

    def radiance(self) -> tuple[float, float, float]:
        """Color scaled by intensity."""
        return tuple(c * self.intensity for c in self.color)

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": list(self.position),
            "color": list(self.color),
            "intensity": self.intensity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Light:
        return cls(
            position=tuple(data["position"]),
            color=tuple(data.get("color", (1.0, 1.0, 1.0))),
            intensity=data.get("intensity", 1.0),
        )


# =============================================================================
# Light Field Storage
# =============================================================================

light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_radiance = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove all lights."""
    num_lights[None] = 0


def add_light(light: Light) -> int:
    """Store a light for the shader.

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
    """
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    light_positions[idx] = vec3(*light.position)
    light_radiance[idx] = vec3(*light.radiance())
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of lights in the scene."""
    return int(num_lights[None])
