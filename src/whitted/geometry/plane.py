"""Infinite plane primitive with ray-plane intersection.

A plane is given by a point on it and a unit normal. Walls, floors and
ceilings of the room scenes are planes; they are cheap enough that they are
always tested by brute force instead of going through the BVH.

The intersection distance is

    t = dot(point - origin, normal) / dot(direction, normal)

Rays (nearly) parallel to the plane and hits behind or at the origin are
misses.
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# |dot(direction, normal)| below this counts as parallel
PLANE_PARALLEL_EPSILON = 1e-6


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        point: Any point on the plane (vec3).
        normal: Unit normal of the plane (vec3).
    """

    point: vec3
    normal: vec3


@ti.func
def hit_plane(
    ray_origin: vec3,
    ray_direction: vec3,
    plane: Plane,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-plane intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        plane: The plane to test.
        t_min: Distances at or below this value are rejected.
        t_max: Distances at or above this value are rejected.

    Returns:
        A HitRecord whose normal is the plane's own normal.
    """
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    denom = tm.dot(ray_direction, plane.normal)
    if ti.abs(denom) > PLANE_PARALLEL_EPSILON:
        t = tm.dot(plane.point - ray_origin, plane.normal) / denom
        if t > t_min and t < t_max:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            is_front_face = ti.select(denom < 0.0, 1, 0)

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=plane.normal,
        front_face=is_front_face,
    )


@ti.func
def make_plane(point: vec3, normal: vec3) -> Plane:
    """Create a plane inside a Taichi kernel, normalizing the normal."""
    return Plane(point=point, normal=tm.normalize(normal))
