"""Scene-level primitive storage and ray queries.

This module stores every primitive in Structure-of-Arrays Taichi fields and
answers the two queries the tracer needs:

    intersect_scene()       nearest hit over all primitives
    shadow_transmittance()  fraction of light that passes a segment

Triangles (including tessellated boxes and meshes) are looked up through the
BVH when one is active; otherwise they are scanned by brute force. Spheres
and planes are always scanned by brute force. The BVH result is computed
first and later primitives only replace it when strictly closer, so on an
exact distance tie the triangle wins.

Each primitive slot records the owning object id (shared by all triangles of
a box or mesh) and the material id.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.scene.intersection import add_sphere, clear_scene
    >>> clear_scene()
    >>> add_sphere((0, 0, 5), 1.0, object_id=0, material_id=0)
    >>> # Use intersect_scene within a Taichi kernel
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from src.whitted.geometry.bvh import (
    MAX_BVH_TRIANGLES,
    bvh_node_count,
    bvh_step,
    bvh_triangle_order,
    clear_bvh,
)
from src.whitted.geometry.plane import Plane, hit_plane
from src.whitted.geometry.sphere import HitRecord, Sphere, hit_sphere
from src.whitted.geometry.triangle import Triangle, hit_triangle
from src.whitted.materials.phong import get_material_transparency
from src.whitted.scene.primitives import PrimitiveKind

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

KIND_SPHERE = int(PrimitiveKind.SPHERE)
KIND_DIELECTRIC_SPHERE = int(PrimitiveKind.DIELECTRIC_SPHERE)
KIND_THIN_FILM_SPHERE = int(PrimitiveKind.THIN_FILM_SPHERE)
KIND_TRIANGLE = int(PrimitiveKind.TRIANGLE)
KIND_PLANE = int(PrimitiveKind.PLANE)


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: Distance along the ray. Only valid if hit == 1.
        point: World-space hit point.
        normal: Geometric unit normal (outward for spheres, winding normal
            for triangles, the plane normal for planes).
        front_face: 1 if the ray arrived against the normal.
        object_id: Scene object id of the hit primitive, -1 on a miss.
        material_id: Material id of the hit primitive, -1 on a miss.
        kind: PrimitiveKind value of the storage slot that was hit.
        index: Slot index within the storage for that kind.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    object_id: ti.i32
    material_id: ti.i32
    kind: ti.i32
    index: ti.i32


# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024
MAX_PLANES = 64
MAX_TRIANGLES = MAX_BVH_TRIANGLES

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_kinds = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
sphere_object_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
# Refractive index of dielectric spheres (1.0 for the others)
sphere_iors = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
# Thin-film parameters: (thickness_nm, film_ior, variation, age, iridescence)
sphere_films = ti.Vector.field(5, dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage
plane_points = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_object_ids = ti.field(dtype=ti.i32, shape=MAX_PLANES)
plane_material_ids = ti.field(dtype=ti.i32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Triangle storage
triangle_v0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_object_ids = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
triangle_material_ids = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# 1 while the loaded BVH covers exactly the stored triangles
bvh_active = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all primitives from the scene and unload the BVH.

    Resets the primitive counts to zero. The actual field data is not
    cleared but will be overwritten when new primitives are added.
    """
    num_spheres[None] = 0
    num_planes[None] = 0
    num_triangles[None] = 0
    bvh_active[None] = 0
    clear_bvh()


def add_sphere(
    center,
    radius: float,
    object_id: int,
    material_id: int,
    kind: int = KIND_SPHERE,
    ior: float = 1.0,
    film: tuple[float, float, float, float, float] = (0.0, 1.0, 0.0, 0.0, 0.0),
) -> int:
    """Add a sphere to the scene storage.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere.
        object_id: Scene object id.
        material_id: Material id.
        kind: PrimitiveKind of the sphere variant.
        ior: Refractive index used by dielectric spheres.
        film: Thin-film parameters (thickness_nm, film_ior, variation, age,
            iridescence) used by thin-film spheres.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(center[0], center[1], center[2])
    sphere_radii[idx] = radius
    sphere_kinds[idx] = kind
    sphere_object_ids[idx] = object_id
    sphere_material_ids[idx] = material_id
    sphere_iors[idx] = ior
    sphere_films[idx] = ti.Vector([float(v) for v in film])
    num_spheres[None] = idx + 1
    return idx


def add_plane(point, normal, object_id: int, material_id: int) -> int:
    """Add an infinite plane to the scene storage.

    Returns:
        The index of the added plane.

    Raises:
        RuntimeError: If the maximum number of planes is exceeded.
    """
    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    plane_points[idx] = vec3(point[0], point[1], point[2])
    plane_normals[idx] = vec3(normal[0], normal[1], normal[2])
    plane_object_ids[idx] = object_id
    plane_material_ids[idx] = material_id
    num_planes[None] = idx + 1
    return idx


@ti.kernel
def _upload_triangles(
    vertices: ti.types.ndarray(),
    object_id: ti.i32,
    material_id: ti.i32,
    offset: ti.i32,
    n: ti.i32,
):
    for k in range(n):
        i = offset + k
        triangle_v0[i] = vec3(vertices[k, 0, 0], vertices[k, 0, 1], vertices[k, 0, 2])
        triangle_v1[i] = vec3(vertices[k, 1, 0], vertices[k, 1, 1], vertices[k, 1, 2])
        triangle_v2[i] = vec3(vertices[k, 2, 0], vertices[k, 2, 1], vertices[k, 2, 2])
        triangle_object_ids[i] = object_id
        triangle_material_ids[i] = material_id


def add_triangles(vertices, object_id: int, material_id: int) -> int:
    """Add a batch of triangles that share one object id and material.

    Adding triangles deactivates the BVH until it is rebuilt.

    Args:
        vertices: (n, 3, 3) array of triangle vertices.
        object_id: Scene object id shared by all triangles.
        material_id: Material id shared by all triangles.

    Returns:
        The index of the first added triangle.

    Raises:
        RuntimeError: If the maximum number of triangles is exceeded.
    """
    verts = np.ascontiguousarray(np.asarray(vertices, dtype=np.float32).reshape(-1, 3, 3))
    start = num_triangles[None]
    n = verts.shape[0]
    if start + n > MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
    if n > 0:
        _upload_triangles(verts, object_id, material_id, start, n)
    num_triangles[None] = start + n
    bvh_active[None] = 0
    return start


def get_triangle_vertices() -> np.ndarray:
    """Vertices of all stored triangles as an (n, 3, 3) float32 array."""
    n = int(num_triangles[None])
    return np.stack(
        [
            triangle_v0.to_numpy()[:n],
            triangle_v1.to_numpy()[:n],
            triangle_v2.to_numpy()[:n],
        ],
        axis=1,
    ).astype(np.float32)


def set_bvh_active(active: bool) -> None:
    """Route triangle queries through the loaded BVH (or brute force)."""
    bvh_active[None] = 1 if active else 0


def is_bvh_active() -> bool:
    return bool(bvh_active[None])


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_plane_count() -> int:
    """Get the number of planes in the scene."""
    return int(num_planes[None])


def get_triangle_count() -> int:
    """Get the number of triangles in the scene."""
    return int(num_triangles[None])


# =============================================================================
# Taichi Query Functions
# =============================================================================


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        object_id=-1,
        material_id=-1,
        kind=-1,
        index=-1,
    )


@ti.func
def _to_scene_record(
    rec: HitRecord,
    object_id: ti.i32,
    material_id: ti.i32,
    kind: ti.i32,
    index: ti.i32,
) -> SceneHitRecord:
    """Attach scene identity to a primitive HitRecord."""
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        object_id=object_id,
        material_id=material_id,
        kind=kind,
        index=index,
    )


@ti.func
def _triangle_at(i: ti.i32) -> Triangle:
    return Triangle(v0=triangle_v0[i], v1=triangle_v1[i], v2=triangle_v2[i])


@ti.func
def _sphere_at(i: ti.i32) -> Sphere:
    return Sphere(center=sphere_centers[i], radius=sphere_radii[i])


@ti.func
def _plane_at(i: ti.i32) -> Plane:
    return Plane(point=plane_points[i], normal=plane_normals[i])


@ti.func
def _triangle_record(rec: HitRecord, i: ti.i32) -> SceneHitRecord:
    return _to_scene_record(rec, triangle_object_ids[i], triangle_material_ids[i], KIND_TRIANGLE, i)


@ti.func
def intersect_triangles_bvh(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Nearest triangle hit through the BVH.

    Every leaf keeps its own closest hit (strictly closer replaces). A leaf
    result replaces the running best when it is closer or equally close, so
    on a tie the leaf visited later (the right subtree) wins.
    """
    result = _make_miss_record()
    best_t = t_max
    node = 0
    n_nodes = bvh_node_count[None]

    while node < n_nodes:
        next_node, start, count = bvh_step(node, ray_origin, ray_direction)
        if count > 0:
            leaf_t = t_max
            leaf_index = -1
            leaf_rec = HitRecord(
                hit=0,
                t=0.0,
                point=vec3(0.0, 0.0, 0.0),
                normal=vec3(0.0, 0.0, 0.0),
                front_face=0,
            )
            for k in range(count):
                tri_index = bvh_triangle_order[start + k]
                rec = hit_triangle(ray_origin, ray_direction, _triangle_at(tri_index), t_min, leaf_t)
                if rec.hit == 1:
                    leaf_t = rec.t
                    leaf_rec = rec
                    leaf_index = tri_index
            if leaf_index >= 0 and leaf_t <= best_t:
                best_t = leaf_t
                result = _triangle_record(leaf_rec, leaf_index)
        node = next_node

    return result


@ti.func
def intersect_triangles_brute_force(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Nearest triangle hit by testing every stored triangle."""
    result = _make_miss_record()
    closest_t = t_max
    for i in range(num_triangles[None]):
        rec = hit_triangle(ray_origin, ray_direction, _triangle_at(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _triangle_record(rec, i)
    return result


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Test a ray against every primitive in the scene.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        t_min: Hits at or below this distance are ignored.
        t_max: Hits at or beyond this distance are ignored.

    Returns:
        A SceneHitRecord for the closest intersection, or a miss record.
    """
    result = _make_miss_record()
    if bvh_active[None] == 1:
        result = intersect_triangles_bvh(ray_origin, ray_direction, t_min, t_max)
    else:
        result = intersect_triangles_brute_force(ray_origin, ray_direction, t_min, t_max)

    closest_t = t_max
    if result.hit == 1:
        closest_t = result.t

    for i in range(num_spheres[None]):
        rec = hit_sphere(ray_origin, ray_direction, _sphere_at(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _to_scene_record(rec, sphere_object_ids[i], sphere_material_ids[i], sphere_kinds[i], i)

    for i in range(num_planes[None]):
        rec = hit_plane(ray_origin, ray_direction, _plane_at(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _to_scene_record(rec, plane_object_ids[i], plane_material_ids[i], KIND_PLANE, i)

    return result


@ti.func
def shadow_transmittance(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
    exclude_object_id: ti.i32,
) -> ti.f32:
    """Fraction of light that travels along a segment unblocked.

    Every primitive hit inside (t_min, t_max) multiplies the result by its
    material's transparency, so an opaque occluder blocks the light fully
    and a fully transparent one not at all. Primitives that belong to
    exclude_object_id are ignored, which prevents an object from shadowing
    itself.

    Args:
        ray_origin: Shadow ray origin (already offset from the surface).
        ray_direction: Unit direction toward the light.
        t_min: Hits at or below this distance are ignored.
        t_max: Distance to the light (minus the origin offset).
        exclude_object_id: Object id of the surface being shaded.

    Returns:
        Transmittance in [0, 1].
    """
    transmittance = 1.0

    if bvh_active[None] == 1:
        node = 0
        n_nodes = bvh_node_count[None]
        while node < n_nodes and transmittance > 0.0:
            next_node, start, count = bvh_step(node, ray_origin, ray_direction)
            for k in range(count):
                tri_index = bvh_triangle_order[start + k]
                if triangle_object_ids[tri_index] != exclude_object_id:
                    rec = hit_triangle(ray_origin, ray_direction, _triangle_at(tri_index), t_min, t_max)
                    if rec.hit == 1:
                        transmittance *= get_material_transparency(triangle_material_ids[tri_index])
            node = next_node
    else:
        for i in range(num_triangles[None]):
            if transmittance > 0.0 and triangle_object_ids[i] != exclude_object_id:
                rec = hit_triangle(ray_origin, ray_direction, _triangle_at(i), t_min, t_max)
                if rec.hit == 1:
                    transmittance *= get_material_transparency(triangle_material_ids[i])

    for i in range(num_spheres[None]):
        if transmittance > 0.0 and sphere_object_ids[i] != exclude_object_id:
            rec = hit_sphere(ray_origin, ray_direction, _sphere_at(i), t_min, t_max)
            if rec.hit == 1:
                transmittance *= get_material_transparency(sphere_material_ids[i])

    for i in range(num_planes[None]):
        if transmittance > 0.0 and plane_object_ids[i] != exclude_object_id:
            rec = hit_plane(ray_origin, ray_direction, _plane_at(i), t_min, t_max)
            if rec.hit == 1:
                transmittance *= get_material_transparency(plane_material_ids[i])

    return transmittance
