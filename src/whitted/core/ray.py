"""Ray data structure and vector utilities for the Whitted ray tracer.

This module provides the fundamental Ray dataclass and the vector helpers used
by every intersection and shading routine. All operations are designed to run
inside Taichi kernels.

Rays built with make_ray() always carry a unit-length direction; the
intersection routines rely on that when they report distances.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, 2.0)
    >>> # Inside a kernel:
    >>> # ray = make_ray(origin, direction)  # direction becomes (0, 0, 1)
    >>> # point = ray_at(ray, 5.0)           # (0, 0, 5)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Vectors shorter than this normalize to the zero vector
NORMALIZE_EPSILON = 1e-8


@ti.dataclass
class Ray:
    """A ray with an origin point and a unit direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (vec3), unit length when the ray
            is built with make_ray().
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray, normalizing its direction.

    Args:
        origin: The starting point of the ray.
        direction: Any non-zero direction vector. A near-zero direction
            yields a zero direction, which every intersection routine
            reports as a miss.

    Returns:
        A new Ray whose direction has unit length.
    """
    return Ray(origin=origin, direction=normalize(direction))


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    Unlike tm.normalize, a vector shorter than NORMALIZE_EPSILON maps to the
    zero vector instead of producing NaN components.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v, or the zero vector.
    """
    len2 = tm.dot(v, v)
    result = vec3(0.0, 0.0, 0.0)
    if len2 > NORMALIZE_EPSILON * NORMALIZE_EPSILON:
        result = v / ti.sqrt(len2)
    return result


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Works for either orientation of the normal since the result only depends
    on the normal's line.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (unit length).

    Returns:
        The mirror-reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract an incident vector through a surface.

    Computes the refracted direction using Snell's law. If total internal
    reflection occurs, returns a zero vector.

    Args:
        incident: The incoming direction vector (unit length).
        normal: The surface normal facing against the incident ray.
        eta: The ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction vector, or zero vector if total internal
        reflection occurs.
    """
    cos_i = -tm.dot(incident, normal)
    sin2_t = eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        result = eta * incident + (eta * cos_i - cos_t) * normal
    return result


@ti.func
def schlick_fresnel(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        The approximate Fresnel reflectance coefficient in [0, 1].
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    c = tm.clamp(cosine, 0.0, 1.0)
    return r0 + (1.0 - r0) * ((1.0 - c) ** 5)


@ti.func
def clamp_color(color: vec3) -> vec3:
    """Clamp every channel of a color to [0, 1].

    NaN channels become 0 and infinities saturate, so a single bad sample
    can never poison the accumulated color.
    """
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]):
            result[c] = 0.0
    return tm.clamp(result, 0.0, 1.0)
