"""Sphere primitive with robust ray-sphere intersection.

This module provides a Sphere dataclass, the shared HitRecord struct and the
ray-sphere intersection routine. The quadratic is solved with the robust
formulation from Ray Tracing Gems to avoid catastrophic cancellation when
b^2 is nearly equal to 4ac.

The reported normal is always the geometric outward normal
(point - center) / radius. Whether the ray arrived from outside is recorded
separately in front_face, which the shader uses to pick the refraction
indices.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, 0), radius=1.0)
    >>> # Inside a kernel, a ray from (0, 0, -5) along +z:
    >>> # rec = hit_sphere(origin, direction, sphere, 1e-4, 1e10)
    >>> # rec.t == 4.0, rec.normal == (0, 0, -1)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Roots at or below this distance are ignored
SPHERE_EPSILON = 1e-4


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: Distance along the ray to the intersection. Only valid if hit == 1.
        point: The 3D point where the ray intersected the surface.
        normal: The geometric unit normal at the intersection point. Not
            flipped toward the ray.
        front_face: 1 if the ray arrived against the normal (from outside),
            0 if it arrived along it (from inside or from the back side).
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 with the numerically stable formula.

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Tangent or degenerate case, fall back to the textbook formula
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    Solves |origin + t * direction - center|^2 = radius^2 written as
    a*t^2 + 2*h*t + c = 0 with
        a = dot(direction, direction)
        h = dot(direction, origin - center)
        c = |origin - center|^2 - radius^2

    A negative discriminant is a miss. Otherwise the smaller root is used if
    it lies in (t_min, t_max), else the larger root if it alone does.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        sphere: The sphere to test intersection against.
        t_min: Roots at or below this value are rejected.
        t_max: Roots at or above this value are rejected.

    Returns:
        A HitRecord; check the hit field to determine if an intersection
        occurred.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if discriminant >= 0.0 and a > 0.0 and sphere.radius > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)

        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            hit_normal = (hit_point - sphere.center) / sphere.radius
            if tm.dot(ray_direction, hit_normal) > 0.0:
                is_front_face = 0
            else:
                is_front_face = 1

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )


@ti.func
def sphere_normal(center: vec3, radius: ti.f32, point: vec3) -> vec3:
    """Outward unit normal of a sphere at a surface point."""
    return (point - center) / radius


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius inside a Taichi kernel."""
    return Sphere(center=center, radius=radius)
