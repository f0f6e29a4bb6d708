"""Whitted-style recursive ray tracer.

This module implements the shading kernel: for every ray it finds the
nearest hit, evaluates local Phong illumination with shadow rays and
continues along mirror and refraction directions until the configured
depth bound.

Shading of one hit:
    1. Miss: the background color.
    2. Local color: material ambient, plus for every light that the surface
       faces, Lambertian diffuse max(0, N.L) and Phong specular
       max(0, R.V)^(shininess * 128), both scaled by the light's
       transmittance along the shadow ray.
    3. Reflection (reflectivity r > 0) and transmission (transparency t > 0)
       while depth < max_depth. Transmission splits into a Fresnel-weighted
       mirror part and a refracted part; under total internal reflection
       the refracted part follows the mirror direction.

    color = (1 - t) * ((1 - r) * local + r * R) + t * (F * R + (1 - F) * T)

Taichi functions cannot recurse, so the recursion is unrolled into a work
list: every pending ray carries the product of the blend weights along its
path, and each shaded hit adds weight * (1 - r) * (1 - t) * local to the
pixel. The accumulated color is clamped after every addition. The list
lives in fixed-size local vectors; at most max_depth + 1 entries are
pending at any time.

Key features:
    - Explicit depth bound, always checked (0 disables secondary rays)
    - Adaptive shadow-ray offset against self-shadowing and light leaks
    - Transparency-weighted partial shadows
    - Thin-film interference color for soap-bubble spheres
    - Counters for the number of shaded rays and the deepest level reached

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.camera.pinhole import setup_camera
    >>> from src.whitted.core.tracer import setup_render_target, render_image
    >>> from src.whitted.scene.presets import create_room_scene
    >>> scene, camera = create_room_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(320, 180)
    >>> render_image()
"""

import taichi as ti
import taichi.math as tm

from src.whitted.camera.pinhole import get_pixel_ray
from src.whitted.core.ray import clamp_color, normalize, reflect
from src.whitted.core.settings import (
    DEFAULT_MAX_DEPTH,
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    MAX_TRACE_DEPTH,
)
from src.whitted.materials.dielectric import fresnel_reflectance, split_dielectric
from src.whitted.materials.phong import (
    material_ambient,
    material_diffuse,
    material_reflectivity,
    material_shininess,
    material_specular,
    material_transparency,
)
from src.whitted.materials.thin_film import thin_film_color
from src.whitted.scene.intersection import (
    KIND_DIELECTRIC_SPHERE,
    KIND_THIN_FILM_SPHERE,
    SceneHitRecord,
    intersect_scene,
    shadow_transmittance,
    sphere_centers,
    sphere_films,
    sphere_iors,
)
from src.whitted.scene.lights import light_positions, light_radiance, num_lights

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Work-list capacity (deepest path plus one pending sibling per level)
_STACK_SIZE = MAX_TRACE_DEPTH + 2

# Hits at or below this distance are ignored (self-intersection guard)
T_MIN = 1e-3
T_MAX = 1e10

# Offset of secondary ray origins along the normal
RAY_EPSILON = 1e-4

# Shadow ray origin offset: SHADOW_BIAS / max(SHADOW_MIN_COS, N.L), capped
SHADOW_BIAS = 1e-3
SHADOW_BIAS_MAX = 1e-2
SHADOW_MIN_COS = 0.01
# Extra step toward the light
SHADOW_LIGHT_STEP = 1e-3

# Phong exponent scale: exponent = shininess * SPECULAR_EXPONENT_SCALE
SPECULAR_EXPONENT_SCALE = 128.0

# =============================================================================
# Tracer Configuration and Diagnostics
# =============================================================================

_max_depth = ti.field(dtype=ti.i32, shape=())
_background = ti.Vector.field(3, dtype=ti.f32, shape=())

# Number of rays shaded (hit or miss) since the last reset
_shaded_rays = ti.field(dtype=ti.i32, shape=())
# Deepest recursion level reached since the last reset
_deepest_level = ti.field(dtype=ti.i32, shape=())


def set_max_depth(depth: int) -> None:
    """Set the reflection/refraction depth bound.

    Args:
        depth: Number of secondary bounces allowed, in [0, MAX_TRACE_DEPTH].
            0 shades only primary hits.

    Raises:
        ValueError: If depth is outside the supported range.
    """
    if not 0 <= depth <= MAX_TRACE_DEPTH:
        raise ValueError(f"Reflection depth must be in [0, {MAX_TRACE_DEPTH}], got {depth}")
    _max_depth[None] = int(depth)


def get_max_depth() -> int:
    """Get the current reflection depth bound."""
    return int(_max_depth[None])


def set_background(color: tuple[float, float, float]) -> None:
    """Set the color returned for rays that hit nothing.

    Raises:
        ValueError: If any component is outside [0, 1].
    """
    for i, component in enumerate(color):
        if component < 0.0 or component > 1.0:
            raise ValueError(f"Background component {i} = {component} is outside [0, 1]")
    _background[None] = vec3(color[0], color[1], color[2])


def get_background() -> tuple[float, float, float]:
    c = _background[None]
    return (float(c[0]), float(c[1]), float(c[2]))


def reset_trace_stats() -> None:
    """Zero the shaded-ray counter and the deepest-level marker."""
    _shaded_rays[None] = 0
    _deepest_level[None] = 0


def get_trace_stats() -> dict[str, int]:
    """Counters collected since the last reset.

    Returns:
        Dictionary with "shaded_rays" and "deepest_level".
    """
    return {
        "shaded_rays": int(_shaded_rays[None]),
        "deepest_level": int(_deepest_level[None]),
    }


def reset_tracer() -> None:
    """Restore default depth, black background and zero counters."""
    _max_depth[None] = DEFAULT_MAX_DEPTH
    _background[None] = vec3(0.0, 0.0, 0.0)
    reset_trace_stats()


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Buffers are preallocated at MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT to avoid kernel recompilation
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Color buffer (preallocated to max size)
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffer.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffer to zero."""
    _color_buffer.fill(0.0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Shading
# =============================================================================


@ti.func
def _offset_ray_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Offset ray origin to avoid self-intersection.

    Pushes the point slightly along the geometric normal toward the side the
    new ray travels into (outside for reflection, inside for refraction).
    """
    offset_dir = normal
    if tm.dot(direction, normal) < 0.0:
        offset_dir = -normal
    return point + RAY_EPSILON * offset_dir


@ti.func
def _surface_diffuse(hit: SceneHitRecord, direction: vec3) -> vec3:
    """Diffuse color at a hit; thin-film spheres compute it from interference."""
    diffuse = material_diffuse[hit.material_id]
    if hit.kind == KIND_THIN_FILM_SPHERE:
        film = sphere_films[hit.index]
        local_point = normalize(hit.point - sphere_centers[hit.index])
        diffuse = thin_film_color(
            local_point, hit.normal, direction, film[0], film[1], film[2], film[3], film[4]
        )
    return diffuse


@ti.func
def shade_local(hit: SceneHitRecord, direction: vec3) -> vec3:
    """Ambient plus shadowed diffuse and specular light at a hit.

    Args:
        hit: The hit being shaded.
        direction: Direction of the ray that produced the hit.

    Returns:
        The local color, clamped to [0, 1].
    """
    mat = hit.material_id
    normal = hit.normal
    diffuse = _surface_diffuse(hit, direction)
    specular = material_specular[mat]
    exponent = material_shininess[mat] * SPECULAR_EXPONENT_SCALE

    color = material_ambient[mat]

    for li in range(num_lights[None]):
        to_light = light_positions[li] - hit.point
        distance = tm.length(to_light)
        if distance > 1e-6:
            light_dir = to_light / distance
            cos_theta = tm.dot(normal, light_dir)
            if cos_theta > 0.0:
                bias = tm.min(SHADOW_BIAS / tm.max(SHADOW_MIN_COS, cos_theta), SHADOW_BIAS_MAX)
                shadow_origin = hit.point + normal * bias + light_dir * SHADOW_LIGHT_STEP
                shadow_t_max = distance - bias - SHADOW_LIGHT_STEP
                transmittance = shadow_transmittance(
                    shadow_origin, light_dir, T_MIN, shadow_t_max, hit.object_id
                )
                if transmittance > 0.0:
                    light = light_radiance[li] * transmittance
                    color += diffuse * light * cos_theta
                    if exponent > 0.0:
                        mirrored = reflect(-light_dir, normal)
                        highlight = tm.max(0.0, tm.dot(mirrored, -direction))
                        color += specular * light * (highlight**exponent)
                    color = clamp_color(color)

    return clamp_color(color)


@ti.func
def _continuation(hit: SceneHitRecord, direction: vec3, depth: ti.i32, max_depth: ti.i32):
    """Blend weights and directions of the secondary rays of a hit.

    Returns:
        A tuple (reflect_weight, reflect_dir, refract_weight, refract_dir).
        Both weights are 0 once depth reaches max_depth.
    """
    reflectivity = material_reflectivity[hit.material_id]
    transparency = material_transparency[hit.material_id]

    reflect_weight = 0.0
    refract_weight = 0.0
    reflect_dir = normalize(reflect(direction, hit.normal))
    refract_dir = direction

    if depth < max_depth:
        if reflectivity > 0.0:
            reflect_weight = reflectivity

        if transparency > 0.0:
            fresnel = 0.0
            if hit.kind == KIND_THIN_FILM_SPHERE:
                # Thin shell: transmitted light leaves undeviated
                fresnel = fresnel_reflectance(sphere_films[hit.index][1], direction, hit.normal)
            else:
                ior = 1.0
                if hit.kind == KIND_DIELECTRIC_SPHERE:
                    ior = sphere_iors[hit.index]
                mirrored, refracted, split_fresnel, tir = split_dielectric(ior, direction, hit.normal)
                refract_dir = refracted
                fresnel = split_fresnel

            reflect_weight = reflect_weight * (1.0 - transparency) + transparency * fresnel
            refract_weight = transparency * (1.0 - fresnel)

    return reflect_weight, reflect_dir, refract_weight, refract_dir


@ti.func
def _record_visit(depth: ti.i32):
    ti.atomic_add(_shaded_rays[None], 1)
    ti.atomic_max(_deepest_level[None], depth)


@ti.func
def trace_ray(ray_origin: vec3, ray_direction: vec3) -> vec3:
    """Trace a ray and return its color.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The ray direction (normalized here).

    Returns:
        The color (RGB in [0, 1]) seen along the ray.
    """
    # Pending rays, one vector per component
    stack_ox = ti.Vector.zero(ti.f32, _STACK_SIZE)
    stack_oy = ti.Vector.zero(ti.f32, _STACK_SIZE)
    stack_oz = ti.Vector.zero(ti.f32, _STACK_SIZE)
    stack_dx = ti.Vector.zero(ti.f32, _STACK_SIZE)
    stack_dy = ti.Vector.zero(ti.f32, _STACK_SIZE)
    stack_dz = ti.Vector.zero(ti.f32, _STACK_SIZE)
    stack_weight = ti.Vector.zero(ti.f32, _STACK_SIZE)
    stack_depth = ti.Vector.zero(ti.i32, _STACK_SIZE)

    first_dir = normalize(ray_direction)
    stack_ox[0] = ray_origin.x
    stack_oy[0] = ray_origin.y
    stack_oz[0] = ray_origin.z
    stack_dx[0] = first_dir.x
    stack_dy[0] = first_dir.y
    stack_dz[0] = first_dir.z
    stack_weight[0] = 1.0
    stack_depth[0] = 0
    top = 1

    max_depth = _max_depth[None]
    background = _background[None]
    color = vec3(0.0, 0.0, 0.0)

    while top > 0:
        top -= 1
        origin = vec3(stack_ox[top], stack_oy[top], stack_oz[top])
        direction = vec3(stack_dx[top], stack_dy[top], stack_dz[top])
        weight = stack_weight[top]
        depth = stack_depth[top]
        _record_visit(depth)

        hit = intersect_scene(origin, direction, T_MIN, T_MAX)

        if hit.hit == 0:
            color = clamp_color(color + weight * background)
        else:
            local = shade_local(hit, direction)
            reflect_weight, reflect_dir, refract_weight, refract_dir = _continuation(
                hit, direction, depth, max_depth
            )

            local_weight = tm.max(0.0, 1.0 - reflect_weight - refract_weight)
            color = clamp_color(color + weight * local_weight * local)

            if refract_weight > 0.0 and top < _STACK_SIZE:
                child_origin = _offset_ray_origin(hit.point, hit.normal, refract_dir)
                stack_ox[top] = child_origin.x
                stack_oy[top] = child_origin.y
                stack_oz[top] = child_origin.z
                stack_dx[top] = refract_dir.x
                stack_dy[top] = refract_dir.y
                stack_dz[top] = refract_dir.z
                stack_weight[top] = weight * refract_weight
                stack_depth[top] = depth + 1
                top += 1

            if reflect_weight > 0.0 and top < _STACK_SIZE:
                child_origin = _offset_ray_origin(hit.point, hit.normal, reflect_dir)
                stack_ox[top] = child_origin.x
                stack_oy[top] = child_origin.y
                stack_oz[top] = child_origin.z
                stack_dx[top] = reflect_dir.x
                stack_dy[top] = reflect_dir.y
                stack_dz[top] = reflect_dir.z
                stack_weight[top] = weight * reflect_weight
                stack_depth[top] = depth + 1
                top += 1

    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows(width: ti.i32, height: ti.i32, row_start: ti.i32, row_end: ti.i32):
    """Trace one ray through the center of every pixel in a band of rows.

    Rows are indexed bottom-up (j = 0 is the bottom row). Every pixel writes
    only its own buffer cell.
    """
    for i, j in ti.ndrange(width, (row_start, row_end)):
        ray = get_pixel_ray(i, j, width, height)
        _color_buffer[i, j] = trace_ray(ray.origin, ray.direction)


_probe_color = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _trace_single(ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32):
    ti.loop_config(serialize=True)
    for _ in range(1):
        _probe_color[None] = trace_ray(vec3(ox, oy, oz), vec3(dx, dy, dz))


# Nearest-hit probe results
_probe_hit = ti.field(dtype=ti.i32, shape=())
_probe_t = ti.field(dtype=ti.f32, shape=())
_probe_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_front_face = ti.field(dtype=ti.i32, shape=())
_probe_ids = ti.Vector.field(4, dtype=ti.i32, shape=())  # object, material, kind, index


@ti.kernel
def _nearest_single(ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32):
    ti.loop_config(serialize=True)
    for _ in range(1):
        hit = intersect_scene(vec3(ox, oy, oz), normalize(vec3(dx, dy, dz)), T_MIN, T_MAX)
        _probe_hit[None] = hit.hit
        _probe_t[None] = hit.t
        _probe_point[None] = hit.point
        _probe_normal[None] = hit.normal
        _probe_front_face[None] = hit.front_face
        _probe_ids[None] = ti.Vector([hit.object_id, hit.material_id, hit.kind, hit.index])


# =============================================================================
# Public Rendering API
# =============================================================================


def trace(origin, direction) -> tuple[float, float, float]:
    """Trace a single ray from Python.

    Args:
        origin: Ray origin (x, y, z).
        direction: Ray direction (x, y, z), normalized internally.

    Returns:
        Tuple of (R, G, B) color values in [0, 1].
    """
    _trace_single(
        float(origin[0]),
        float(origin[1]),
        float(origin[2]),
        float(direction[0]),
        float(direction[1]),
        float(direction[2]),
    )
    c = _probe_color[None]
    return (float(c[0]), float(c[1]), float(c[2]))


def find_nearest(origin, direction) -> dict | None:
    """Nearest hit of a single ray, or None on a miss.

    Returns:
        Dictionary with t, point, normal, front_face, object_id,
        material_id, kind and index.
    """
    _nearest_single(
        float(origin[0]),
        float(origin[1]),
        float(origin[2]),
        float(direction[0]),
        float(direction[1]),
        float(direction[2]),
    )
    if _probe_hit[None] == 0:
        return None
    point = _probe_point[None]
    normal = _probe_normal[None]
    ids = _probe_ids[None]
    return {
        "t": float(_probe_t[None]),
        "point": (float(point[0]), float(point[1]), float(point[2])),
        "normal": (float(normal[0]), float(normal[1]), float(normal[2])),
        "front_face": bool(_probe_front_face[None]),
        "object_id": int(ids[0]),
        "material_id": int(ids[1]),
        "kind": int(ids[2]),
        "index": int(ids[3]),
    }


def render_rows(row_start: int, row_end: int) -> None:
    """Render the rows [row_start, row_end) of the current render target.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If the row range is invalid.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    if not 0 <= row_start <= row_end <= height:
        raise ValueError(f"Invalid row range [{row_start}, {row_end}) for height {height}")
    if row_end > row_start:
        _render_rows(width, height, row_start, row_end)


def render_image() -> None:
    """Render every pixel of the current render target.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    _, height = get_image_dimensions()
    render_rows(0, height)
    ti.sync()


def get_normalized_image_numpy():
    """Get the rendered image as a NumPy array.

    Returns:
        Float32 array of shape (height, width, 3), values in [0, 1], first
        row at the top of the image.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    import numpy as np

    _check_render_target_initialized()

    width, height = get_image_dimensions()
    full_image = _color_buffer.to_numpy()
    image = full_image[:width, :height, :]

    # (width, height, 3) -> (height, width, 3), then flip so row 0 is the top
    image = np.transpose(image, (1, 0, 2))
    image = np.flipud(image)
    image = np.clip(image, 0.0, 1.0)

    return image.astype(np.float32)
