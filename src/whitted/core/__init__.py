"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure and vector utilities
    tracer: Whitted-style recursive shading (iterative work list) and render kernels
    settings: Render settings with presets and validation
    renderer: High-level render loop with timing and progress reporting

The tracer evaluates local Phong illumination with shadow rays at every hit
and spawns reflection and refraction rays until the configured depth bound.

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    Ray,
    clamp_color,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    normalize,
    ray_at,
    reflect,
    refract,
    schlick_fresnel,
    vec3,
)

# Note: tracer and renderer are NOT imported here to avoid circular imports.
# Import directly from src.whitted.core.tracer or src.whitted.core.renderer when needed.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_fresnel",
    "clamp_color",
]
