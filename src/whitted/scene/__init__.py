"""Scene module: primitives, lights, storage and the Scene registry.

Components:
    primitives: Host-side primitive variants tagged by PrimitiveKind
    lights: Point lights and their Taichi storage
    intersection: Primitive storage fields, nearest-hit and shadow queries
    manager: Scene class (object ids, BVH management, tracing entry points)
    presets: Demo scenes

manager and presets are not imported here because they depend on the
tracer, which itself imports this package's storage modules.
"""

from .lights import MAX_LIGHTS, Light
from .primitives import (
    Box,
    DielectricSphere,
    Plane,
    Primitive,
    PrimitiveKind,
    Sphere,
    ThinFilmSphere,
    Triangle,
    primitive_from_dict,
    primitive_to_dict,
)

__all__ = [
    "Light",
    "MAX_LIGHTS",
    "Primitive",
    "PrimitiveKind",
    "Sphere",
    "DielectricSphere",
    "ThinFilmSphere",
    "Triangle",
    "Plane",
    "Box",
    "primitive_to_dict",
    "primitive_from_dict",
]
