"""Scene manager: object registry, lights, acceleration structure and tracing.

The Scene is the public entry point of the tracer. It hands out object ids,
registers each distinct material once, routes every primitive to its
storage (spheres and planes directly, triangles and boxes into the triangle
soup covered by the BVH), and forwards tracing calls to the kernels.

Object ids start at 0 and increase by one per added object; they are never
reused within a Scene, and every triangle of a box or mesh shares the id of
its object, so an object never shadows itself.

Adding geometry invalidates the BVH. Until build_acceleration_structure()
runs again, triangles are intersected by brute force, which gives the same
nearest hits, only slower.

Primitive, material and light storage are module-level Taichi fields, so
only one Scene is live at a time: creating a Scene (or calling clear())
resets that storage.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.scene.manager import Scene
    >>> from src.whitted.scene.primitives import Sphere, Box
    >>> from src.whitted.scene.lights import Light
    >>> scene = Scene()
    >>> ball = scene.add_object(Sphere(center=(0, 0, 5), radius=1.0))
    >>> crate = scene.add_object(Box(center=(2, 0, 6), size=1.0, rotation_deg=(0, 30, 0)))
    >>> scene.add_light(Light(position=(0, 5, 0)))
    >>> scene.build_acceleration_structure()
    >>> scene.set_max_reflection_depth(5)
    >>> color = scene.trace((0, 0, 0), (0, 0, 1))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from src.whitted.core import tracer
from src.whitted.geometry.bvh import BVHNode, build_bvh, flatten_bvh, upload_bvh
from src.whitted.materials.phong import Material, add_material, clear_materials
from src.whitted.scene import intersection
from src.whitted.scene.intersection import (
    add_plane,
    add_sphere,
    add_triangles,
    clear_scene,
    get_plane_count,
    get_sphere_count,
    get_triangle_count,
    get_triangle_vertices,
    set_bvh_active,
)
from src.whitted.scene.lights import Light, add_light, clear_lights
from src.whitted.scene.primitives import (
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

logger = logging.getLogger(__name__)

_PRIMITIVE_TYPES = (Sphere, Triangle, Plane, Box)


@dataclass
class HitInfo:
    """Nearest intersection of a ray with the scene.

    Attributes:
        t: Distance along the (normalized) ray.
        point: World-space hit point.
        normal: Geometric unit normal of the surface.
        front_face: True if the ray arrived against the normal.
        object_id: Id of the hit object.
        kind: Storage kind of the hit slot (boxes report TRIANGLE).
        primitive: The object that was hit.
    """

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    front_face: bool
    object_id: int
    kind: PrimitiveKind
    primitive: Primitive


class Scene:
    """Registry of objects and lights plus the tracing entry points.

    Attributes:
        objects: Added primitives in insertion order.
        lights: Added lights in insertion order.
        use_acceleration: Whether triangle queries use the BVH once built.
    """

    def __init__(self) -> None:
        """Initialize an empty scene (resets the shared storage)."""
        self.objects: list[Primitive] = []
        self.lights: list[Light] = []
        self.use_acceleration = True
        self._next_object_id = 0
        self._objects_by_id: dict[int, Primitive] = {}
        self._material_ids: dict[Material, int] = {}
        self._bvh: BVHNode | None = None
        self._bvh_valid = False
        self._clear_storage()

    def _clear_storage(self) -> None:
        clear_scene()
        clear_materials()
        clear_lights()
        tracer.reset_tracer()

    def clear(self) -> None:
        """Remove all objects and lights and restore default settings.

        Object ids keep increasing after a clear.
        """
        self.objects.clear()
        self.lights.clear()
        self._objects_by_id.clear()
        self._material_ids.clear()
        self._bvh = None
        self._bvh_valid = False
        self.use_acceleration = True
        self._clear_storage()

    # =========================================================================
    # Objects
    # =========================================================================

    @staticmethod
    def _check_capacity(primitive: Primitive) -> None:
        """Raise before anything is stored if the primitive does not fit."""
        if isinstance(primitive, Sphere):
            kind, used, needed, limit = "spheres", get_sphere_count(), 1, intersection.MAX_SPHERES
        elif isinstance(primitive, Plane):
            kind, used, needed, limit = "planes", get_plane_count(), 1, intersection.MAX_PLANES
        else:
            needed = 1 if isinstance(primitive, Triangle) else primitive.triangles().shape[0]
            kind, used, limit = "triangles", get_triangle_count(), intersection.MAX_TRIANGLES
        if used + needed > limit:
            raise RuntimeError(f"Maximum number of {kind} ({limit}) exceeded")

    def _register_material(self, material: Material) -> int:
        material_id = self._material_ids.get(material)
        if material_id is None:
            material_id = add_material(material)
            self._material_ids[material] = material_id
        return material_id

    def add_object(self, primitive: Primitive) -> int:
        """Add a primitive and return its object id.

        Args:
            primitive: Any Sphere, DielectricSphere, ThinFilmSphere,
                Triangle, Plane or Box.

        Returns:
            The new object id (also stored in primitive.object_id).

        Raises:
            TypeError: If primitive is not a supported primitive type.
            RuntimeError: If a storage capacity is exceeded.
        """
        if not isinstance(primitive, _PRIMITIVE_TYPES):
            raise TypeError(f"Unsupported primitive type: {type(primitive).__name__}")

        object_id = self._next_object_id
        self._check_capacity(primitive)
        material_id = self._register_material(primitive.surface_material())

        if isinstance(primitive, ThinFilmSphere):
            add_sphere(
                primitive.center,
                primitive.radius,
                object_id,
                material_id,
                kind=int(PrimitiveKind.THIN_FILM_SPHERE),
                film=(
                    primitive.film_thickness_nm,
                    primitive.film_ior,
                    primitive.variation,
                    primitive.age,
                    primitive.iridescence,
                ),
            )
        elif isinstance(primitive, DielectricSphere):
            add_sphere(
                primitive.center,
                primitive.radius,
                object_id,
                material_id,
                kind=int(PrimitiveKind.DIELECTRIC_SPHERE),
                ior=primitive.ior,
            )
        elif isinstance(primitive, Sphere):
            add_sphere(primitive.center, primitive.radius, object_id, material_id)
        elif isinstance(primitive, Triangle):
            add_triangles(primitive.vertices(), object_id, material_id)
        elif isinstance(primitive, Box):
            add_triangles(primitive.triangles(), object_id, material_id)
        else:
            add_plane(primitive.point, primitive.normal, object_id, material_id)

        primitive.object_id = object_id
        self._next_object_id += 1
        self.objects.append(primitive)
        self._objects_by_id[object_id] = primitive
        self._invalidate_acceleration()

        logger.debug("Added %s as object %d", type(primitive).__name__, object_id)
        return object_id

    def add_objects(self, primitives: Iterable[Primitive]) -> list[int]:
        """Add several primitives; returns their ids in order."""
        return [self.add_object(p) for p in primitives]

    def get_object(self, object_id: int) -> Primitive:
        """Look up an object by id.

        Raises:
            KeyError: If no object has this id.
        """
        return self._objects_by_id[object_id]

    @property
    def object_count(self) -> int:
        return len(self.objects)

    def primitive_counts(self) -> dict[str, int]:
        """Number of stored spheres, planes and triangles."""
        return {
            "spheres": get_sphere_count(),
            "planes": get_plane_count(),
            "triangles": get_triangle_count(),
        }

    # =========================================================================
    # Lights
    # =========================================================================

    def add_light(self, light: Light) -> int:
        """Add a point light; returns its index.

        Raises:
            RuntimeError: If the maximum number of lights is exceeded.
        """
        index = add_light(light)
        self.lights.append(light)
        return index

    @property
    def light_count(self) -> int:
        return len(self.lights)

    # =========================================================================
    # Acceleration Structure
    # =========================================================================

    def _invalidate_acceleration(self) -> None:
        if self._bvh_valid:
            logger.debug("Scene geometry changed; BVH invalidated")
        self._bvh_valid = False
        set_bvh_active(False)

    def build_acceleration_structure(self) -> BVHNode | None:
        """Build the BVH over all triangles and load it for tracing.

        Returns:
            The root node, or None when the scene has no triangles. An
            empty scene still counts as built until geometry changes.
        """
        vertices = get_triangle_vertices()
        if vertices.shape[0] == 0:
            logger.info("No triangles in scene; skipping BVH build")
            self._bvh = None
            self._bvh_valid = True
            set_bvh_active(False)
            return None

        root = build_bvh(vertices)
        upload_bvh(flatten_bvh(root))
        self._bvh = root
        self._bvh_valid = True
        set_bvh_active(self.use_acceleration)
        return root

    @property
    def bvh(self) -> BVHNode | None:
        """Root of the last built BVH, or None if invalid or never built."""
        return self._bvh if self._bvh_valid else None

    @property
    def has_valid_bvh(self) -> bool:
        """True once the acceleration state matches the current geometry."""
        return self._bvh_valid

    def set_acceleration(self, enabled: bool) -> None:
        """Use the BVH (when valid) or force brute-force triangle tests."""
        self.use_acceleration = bool(enabled)
        set_bvh_active(self.use_acceleration and self._bvh is not None and self._bvh_valid)

    # =========================================================================
    # Tracing
    # =========================================================================

    def set_max_reflection_depth(self, depth: int) -> None:
        """Bound the number of reflection/refraction bounces.

        Raises:
            ValueError: If depth is outside [0, MAX_TRACE_DEPTH].
        """
        tracer.set_max_depth(depth)

    def get_max_reflection_depth(self) -> int:
        return tracer.get_max_depth()

    def set_background(self, color: tuple[float, float, float]) -> None:
        """Color of rays that escape the scene (default black)."""
        tracer.set_background(color)

    def trace(self, origin, direction) -> tuple[float, float, float]:
        """Color seen along a ray; the direction need not be normalized."""
        return tracer.trace(origin, direction)

    def find_nearest(self, origin, direction) -> HitInfo | None:
        """Nearest hit along a ray, or None if the ray escapes."""
        hit = tracer.find_nearest(origin, direction)
        if hit is None:
            return None
        return HitInfo(
            t=hit["t"],
            point=hit["point"],
            normal=hit["normal"],
            front_face=hit["front_face"],
            object_id=hit["object_id"],
            kind=PrimitiveKind(hit["kind"]),
            primitive=self._objects_by_id[hit["object_id"]],
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Describe the scene with plain Python types."""
        return {
            "objects": [primitive_to_dict(p) for p in self.objects],
            "lights": [light.to_dict() for light in self.lights],
            "max_reflection_depth": self.get_max_reflection_depth(),
            "background": list(tracer.get_background()),
            "use_acceleration": self.use_acceleration,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Scene:
        """Build a scene from to_dict() output (the BVH is not built)."""
        scene = cls()
        scene.add_objects(primitive_from_dict(obj) for obj in data.get("objects", []))
        for light in data.get("lights", []):
            scene.add_light(Light.from_dict(light))
        scene.set_max_reflection_depth(data.get("max_reflection_depth", tracer.DEFAULT_MAX_DEPTH))
        scene.set_background(tuple(data.get("background", (0.0, 0.0, 0.0))))
        scene.set_acceleration(data.get("use_acceleration", True))
        return scene
