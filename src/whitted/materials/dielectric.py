"""Dielectric (glass/water) interface helpers.

This module computes what happens when a ray meets the boundary of a
transparent medium: the mirror direction, the refracted direction and the
Fresnel reflectance that weighs one against the other. The Whitted tracer
follows both branches (it never picks one at random), so everything here is
deterministic.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when sin(theta_t) > 1, in which case the
      refracted branch continues along the mirror direction instead

Normals passed in are geometric outward normals. Whether the ray enters or
leaves the medium is read from the sign of dot(direction, normal), and the
index ratio is swapped accordingly.

Example:
    >>> # Inside a Taichi kernel:
    >>> # refl_dir, refr_dir, fresnel, tir = split_dielectric(1.5, direction, normal)
"""

import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import (
    normalize,
    reflect,
    refract,
    schlick_fresnel,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# Index of refraction of the surrounding medium
AIR_IOR = 1.0


def validate_ior(ior: float) -> float:
    """Check an index of refraction on the host side.

    Args:
        ior: Index of refraction. Common values: water 1.33, glass 1.5,
            diamond 2.4.

    Returns:
        The index as a float.

    Raises:
        ValueError: If IOR is less than 1.0.
    """
    if ior < 1.0:
        raise ValueError(
            f"Index of refraction = {ior} is less than 1.0. "
            "IOR must be >= 1.0 for physically meaningful materials."
        )
    return float(ior)


@ti.func
def _facing_normal_and_ratio(ior: ti.f32, incident_direction: vec3, normal: vec3):
    """Orient the normal against the ray and pick n_incident / n_transmitted.

    Returns:
        A tuple (facing_normal, refraction_ratio, entering).
    """
    facing = normal
    ratio = AIR_IOR / ior
    entering = 1
    if tm.dot(incident_direction, normal) > 0.0:
        facing = -normal
        ratio = ior / AIR_IOR
        entering = 0
    return facing, ratio, entering


@ti.func
def will_reflect(ior: ti.f32, incident_direction: vec3, normal: vec3) -> ti.i32:
    """Determine if total internal reflection will occur.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (unit length).
        normal: The geometric outward normal.

    Returns:
        1 if total internal reflection will occur, 0 otherwise.
    """
    facing, ratio, _ = _facing_normal_and_ratio(ior, incident_direction, normal)
    cos_theta = tm.min(-tm.dot(incident_direction, facing), 1.0)
    sin_theta = tm.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    return 1 if ratio * sin_theta > 1.0 else 0


@ti.func
def fresnel_reflectance(ior: ti.f32, incident_direction: vec3, normal: vec3) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation.

    An index-matched boundary (ior == 1) reflects nothing.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (unit length).
        normal: The geometric outward normal.

    Returns:
        The Fresnel reflectance coefficient in [0, 1].
    """
    result = 0.0
    if ior != AIR_IOR:
        cos_theta = ti.abs(tm.dot(incident_direction, normal))
        result = schlick_fresnel(cos_theta, AIR_IOR / ior)
    return result


@ti.func
def split_dielectric(ior: ti.f32, incident_direction: vec3, normal: vec3):
    """Compute both continuation directions at a dielectric boundary.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (unit length).
        normal: The geometric outward normal.

    Returns:
        A tuple of (reflected_direction, refracted_direction, fresnel, tir):
        - reflected_direction: Mirror direction (unit length).
        - refracted_direction: Snell direction (unit length), equal to the
          mirror direction under total internal reflection.
        - fresnel: Schlick reflectance, 1.0 under total internal reflection.
        - tir: 1 if total internal reflection occurred.
    """
    facing, ratio, _ = _facing_normal_and_ratio(ior, incident_direction, normal)

    reflected = normalize(reflect(incident_direction, facing))
    refracted = refract(incident_direction, facing, ratio)
    fresnel = fresnel_reflectance(ior, incident_direction, normal)
    tir = 0

    if tm.dot(refracted, refracted) == 0.0:
        refracted = reflected
        fresnel = 1.0
        tir = 1
    else:
        refracted = normalize(refracted)

    return reflected, refracted, fresnel, tir
