"""Host-side description of the primitives a scene can hold.

Primitives form a closed set of variants, tagged by PrimitiveKind:

    Sphere            plain sphere
    DielectricSphere  sphere that refracts with its own index of refraction
    ThinFilmSphere    soap bubble whose diffuse color comes from thin-film
                      interference
    Triangle          single triangle (stored in the BVH)
    Plane             infinite plane
    Box               box tessellated into 12 triangles (stored in the BVH)

Each primitive carries a Material, an optional color that overrides the
material's diffuse color, and an object_id that the Scene assigns on
insertion. The Taichi side dispatches on the kind tag; these dataclasses
only describe the geometry, validate it and provide host-side helpers
(normal_at, bounds, serialization).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import IntEnum
from typing import Any, ClassVar, Union

import numpy as np

from src.whitted.geometry.aabb import BoundingBox
from src.whitted.geometry.box import box_corners, box_triangles, rotation_matrix
from src.whitted.materials.dielectric import validate_ior
from src.whitted.materials.phong import Material

Vec3 = tuple[float, float, float]


class PrimitiveKind(IntEnum):
    """Tag of each primitive variant, shared with the Taichi dispatch."""

    SPHERE = 0
    DIELECTRIC_SPHERE = 1
    THIN_FILM_SPHERE = 2
    TRIANGLE = 3
    PLANE = 4
    BOX = 5


def _as_vec3(value, name: str) -> Vec3:
    arr = np.asarray(value, dtype=np.float64).reshape(-1)
    if arr.shape[0] != 3:
        raise ValueError(f"{name} must have 3 components, got {arr.shape[0]}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} must be finite, got {value}")
    return (float(arr[0]), float(arr[1]), float(arr[2]))


def _unit(v: np.ndarray) -> np.ndarray:
    n = float(np.linalg.norm(v))
    if n < 1e-12:
        return np.zeros(3)
    return v / n


@dataclass
class _PrimitiveBase:
    """Fields shared by every variant (declared last by each subclass)."""

    def surface_material(self) -> Material:
        """Material with the color override folded into its diffuse color."""
        if self.color is None:
            return self.material
        return self.material.with_diffuse(self.color)


@dataclass
class Sphere(_PrimitiveBase):
    """A sphere given by center and radius."""

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.SPHERE

    center: Vec3
    radius: float
    material: Material = field(default_factory=Material)
    color: Vec3 | None = None
    object_id: int = field(default=-1, compare=False)

    def __post_init__(self) -> None:
        self.center = _as_vec3(self.center, "center")
        if not self.radius > 0.0:
            raise ValueError(f"Sphere radius must be positive, got {self.radius}")
        self.radius = float(self.radius)
        if self.color is not None:
            self.color = _as_vec3(self.color, "color")

    def normal_at(self, point) -> np.ndarray:
        """Outward unit normal at a surface point."""
        return _unit(np.asarray(point, dtype=np.float64) - np.asarray(self.center))

    def bounds(self) -> BoundingBox:
        c = np.asarray(self.center)
        return BoundingBox.from_points([c - self.radius, c + self.radius])


@dataclass
class DielectricSphere(Sphere):
    """A transparent sphere that bends rays by Snell's law.

    The material's transparency decides how much of the color comes from
    the transmitted ray; ior sets the refraction and the Fresnel weight.
    """

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.DIELECTRIC_SPHERE

    ior: float = 1.5

    def __post_init__(self) -> None:
        super().__post_init__()
        self.ior = validate_ior(self.ior)


@dataclass
class ThinFilmSphere(Sphere):
    """A soap bubble: a thin film shell with interference colors.

    Attributes:
        film_thickness_nm: Mean film thickness in nanometers.
        film_ior: Refractive index of the film (soapy water is about 1.33).
        variation: Relative thickness variation across the surface in [0, 1].
        age: Phase of the swirl pattern; different ages give different bands.
        iridescence: Blend between a plain whitish film (0) and the full
            interference color (1).
    """

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.THIN_FILM_SPHERE

    film_thickness_nm: float = 380.0
    film_ior: float = 1.33
    variation: float = 0.7
    age: float = 0.5
    iridescence: float = 0.8

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.film_thickness_nm <= 0.0:
            raise ValueError(f"Film thickness must be positive, got {self.film_thickness_nm}")
        self.film_ior = validate_ior(self.film_ior)
        for name in ("variation", "iridescence"):
            value = getattr(self, name)
            if value < 0.0 or value > 1.0:
                raise ValueError(f"{name} = {value} is outside [0, 1]")


@dataclass
class Triangle(_PrimitiveBase):
    """A single triangle; counter-clockwise winding faces the viewer."""

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.TRIANGLE

    v0: Vec3
    v1: Vec3
    v2: Vec3
    material: Material = field(default_factory=Material)
    color: Vec3 | None = None
    object_id: int = field(default=-1, compare=False)

    def __post_init__(self) -> None:
        self.v0 = _as_vec3(self.v0, "v0")
        self.v1 = _as_vec3(self.v1, "v1")
        self.v2 = _as_vec3(self.v2, "v2")
        if self.color is not None:
            self.color = _as_vec3(self.color, "color")

    def vertices(self) -> np.ndarray:
        """Float32 array of shape (1, 3, 3)."""
        return np.asarray([[self.v0, self.v1, self.v2]], dtype=np.float32)

    def centroid(self) -> np.ndarray:
        return self.vertices()[0].mean(axis=0)

    def normal_at(self, point=None) -> np.ndarray:
        """Constant unit normal; zero for a degenerate triangle."""
        v = np.asarray([self.v0, self.v1, self.v2], dtype=np.float64)
        return _unit(np.cross(v[1] - v[0], v[2] - v[0]))

    def bounds(self) -> BoundingBox:
        return BoundingBox.from_triangles(self.vertices())


@dataclass
class Plane(_PrimitiveBase):
    """An infinite plane through point with the given normal."""

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.PLANE

    point: Vec3
    normal: Vec3
    material: Material = field(default_factory=Material)
    color: Vec3 | None = None
    object_id: int = field(default=-1, compare=False)

    def __post_init__(self) -> None:
        self.point = _as_vec3(self.point, "point")
        n = np.asarray(_as_vec3(self.normal, "normal"))
        length = float(np.linalg.norm(n))
        if length < 1e-12:
            raise ValueError("Plane normal must be non-zero")
        n = n / length
        self.normal = (float(n[0]), float(n[1]), float(n[2]))
        if self.color is not None:
            self.color = _as_vec3(self.color, "color")

    def normal_at(self, point=None) -> np.ndarray:
        return np.asarray(self.normal)


@dataclass
class Box(_PrimitiveBase):
    """A box rotated about its center, rendered as 12 triangles.

    Attributes:
        center: Box center.
        size: Edge length, scalar for a cube or per-axis (sx, sy, sz).
        rotation_deg: Rotation in degrees, applied X then Y then Z.
    """

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.BOX

    center: Vec3
    size: float | Vec3
    material: Material = field(default_factory=Material)
    color: Vec3 | None = None
    rotation_deg: Vec3 = (0.0, 0.0, 0.0)
    object_id: int = field(default=-1, compare=False)

    def __post_init__(self) -> None:
        self.center = _as_vec3(self.center, "center")
        self.rotation_deg = _as_vec3(self.rotation_deg, "rotation_deg")
        if np.ndim(self.size) == 0:
            self.size = float(self.size)
        else:
            self.size = _as_vec3(self.size, "size")
        if np.any(np.asarray(self.size) <= 0.0):
            raise ValueError(f"Box size must be positive, got {self.size}")
        if self.color is not None:
            self.color = _as_vec3(self.color, "color")

    def triangles(self) -> np.ndarray:
        """Float32 array of shape (12, 3, 3)."""
        return box_triangles(self.center, self.size, self.rotation_deg)

    def corners(self) -> np.ndarray:
        return box_corners(self.center, self.size, self.rotation_deg)

    def normal_at(self, point) -> np.ndarray:
        """Unit normal of the face nearest to a surface point."""
        rot = rotation_matrix(self.rotation_deg)
        half = np.broadcast_to(np.asarray(self.size, dtype=np.float64), (3,)) * 0.5
        local = rot.T @ (np.asarray(point, dtype=np.float64) - np.asarray(self.center))
        scaled = np.abs(local) / half
        axis = int(np.argmax(scaled))
        n = np.zeros(3)
        n[axis] = 1.0 if local[axis] >= 0.0 else -1.0
        return rot @ n

    def bounds(self) -> BoundingBox:
        return BoundingBox.from_points(self.corners())


Primitive = Union[Sphere, DielectricSphere, ThinFilmSphere, Triangle, Plane, Box]

_KIND_TO_CLASS: dict[PrimitiveKind, type] = {
    PrimitiveKind.SPHERE: Sphere,
    PrimitiveKind.DIELECTRIC_SPHERE: DielectricSphere,
    PrimitiveKind.THIN_FILM_SPHERE: ThinFilmSphere,
    PrimitiveKind.TRIANGLE: Triangle,
    PrimitiveKind.PLANE: Plane,
    PrimitiveKind.BOX: Box,
}

# Fields that are not part of a primitive's serialized description
_RUNTIME_FIELDS = ("object_id",)


def primitive_to_dict(primitive: Primitive) -> dict[str, Any]:
    """Serialize a primitive to plain Python types."""
    data: dict[str, Any] = {"type": primitive.kind.name.lower()}
    for f in fields(primitive):
        name = f.name
        if name in _RUNTIME_FIELDS:
            continue
        value = getattr(primitive, name)
        if isinstance(value, Material):
            value = value.to_dict()
        elif isinstance(value, tuple):
            value = list(value)
        data[name] = value
    return data


def primitive_from_dict(data: dict[str, Any]) -> Primitive:
    """Inverse of primitive_to_dict().

    Raises:
        ValueError: If the type tag is unknown.
    """
    kwargs = dict(data)
    type_name = kwargs.pop("type")
    try:
        kind = PrimitiveKind[type_name.upper()]
    except KeyError as err:
        raise ValueError(f"Unknown primitive type: {type_name}") from err

    if "material" in kwargs:
        kwargs["material"] = Material.from_dict(kwargs["material"])
    for name, value in kwargs.items():
        if isinstance(value, list):
            kwargs[name] = tuple(value)
    return _KIND_TO_CLASS[kind](**kwargs)
