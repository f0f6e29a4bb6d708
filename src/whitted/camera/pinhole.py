"""Look-at pinhole camera producing one primary ray per pixel.

Camera frame, built in setup_camera() from lookfrom, lookat and vup:
- w = normalize(lookfrom - lookat), so the camera looks along -w
- u = normalize(vup x w), the image's right direction
- v = w x u, the image's up direction

The image plane sits one unit in front of lookfrom. Its height is
2 * tan(vfov / 2) and its width is that times the aspect ratio. Pixel
(i, j) maps to the plane point ((i + 0.5) / width, (j + 0.5) / height)
measured from the lower-left corner, with j = 0 the bottom row. There is no
jitter, so a camera always yields the same rays.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.camera.pinhole import PinholeCamera, setup_camera
    >>>
    >>> camera = PinholeCamera.looking_forward((0.0, 0.0, -3.0), aspect_ratio=16.0 / 9.0)
    >>> setup_camera(camera)
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from src.whitted.core.ray import Ray, make_ray, vec3

# =============================================================================
# Camera Description
# =============================================================================


@dataclass
class PinholeCamera:
    """Where the camera stands, what it looks at and how wide it sees.

    Attributes:
        lookfrom: Eye position.
        lookat: Point at the center of the image.
        vup: World direction that appears as "up" in the image.
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Image width over image height.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    aspect_ratio: float = 16.0 / 9.0

    def __post_init__(self) -> None:
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        view = np.subtract(self.lookfrom, self.lookat)
        if np.linalg.norm(view) < 1e-8:
            raise ValueError("lookfrom and lookat must differ")
        if np.linalg.norm(np.cross(self.vup, view)) < 1e-8:
            raise ValueError("vup must not be parallel to the view direction")

    @classmethod
    def looking_forward(
        cls,
        position: tuple[float, float, float],
        aspect_ratio: float = 16.0 / 9.0,
        vfov: float = 90.0,
    ) -> "PinholeCamera":
        """Camera at position looking along +z with +y up."""
        lookat = (position[0], position[1], position[2] + 1.0)
        return cls(
            lookfrom=tuple(position),
            lookat=lookat,
            vup=(0.0, 1.0, 0.0),
            vfov=vfov,
            aspect_ratio=aspect_ratio,
        )

    def with_aspect_ratio(self, aspect_ratio: float) -> "PinholeCamera":
        return PinholeCamera(
            lookfrom=self.lookfrom,
            lookat=self.lookat,
            vup=self.vup,
            vfov=self.vfov,
            aspect_ratio=aspect_ratio,
        )

    def to_dict(self) -> dict:
        return {
            "lookfrom": list(self.lookfrom),
            "lookat": list(self.lookat),
            "vup": list(self.vup),
            "vfov": self.vfov,
            "aspect_ratio": self.aspect_ratio,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PinholeCamera":
        return cls(
            lookfrom=tuple(data["lookfrom"]),
            lookat=tuple(data["lookat"]),
            vup=tuple(data.get("vup", (0.0, 1.0, 0.0))),
            vfov=data.get("vfov", 90.0),
            aspect_ratio=data.get("aspect_ratio", 16.0 / 9.0),
        )


# =============================================================================
# Image Plane State
# =============================================================================

_eye = ti.Vector.field(3, dtype=ti.f32, shape=())
_plane_right = ti.Vector.field(3, dtype=ti.f32, shape=())
_plane_up = ti.Vector.field(3, dtype=ti.f32, shape=())
_plane_corner = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_camera(camera: PinholeCamera) -> None:
    """Upload the image plane of a camera for the render kernels."""
    plane_height = 2.0 * math.tan(math.radians(camera.vfov) / 2.0)
    plane_width = camera.aspect_ratio * plane_height

    eye = np.array(camera.lookfrom, dtype=np.float64)
    w = eye - np.array(camera.lookat, dtype=np.float64)
    w /= np.linalg.norm(w)
    u = np.cross(np.array(camera.vup, dtype=np.float64), w)
    u /= np.linalg.norm(u)
    v = np.cross(w, u)

    right = plane_width * u
    up = plane_height * v
    corner = eye - w - 0.5 * right - 0.5 * up

    _eye[None] = eye.tolist()
    _plane_right[None] = right.tolist()
    _plane_up[None] = up.tolist()
    _plane_corner[None] = corner.tolist()


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Current image plane: origin, horizontal, vertical and lower_left."""
    info = {}
    for name, fld in (
        ("origin", _eye),
        ("horizontal", _plane_right),
        ("vertical", _plane_up),
        ("lower_left", _plane_corner),
    ):
        value = fld[None]
        info[name] = (float(value[0]), float(value[1]), float(value[2]))
    return info


# =============================================================================
# Primary Rays
# =============================================================================


@ti.func
def get_pixel_ray(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32) -> Ray:
    """Ray from the eye through the center of pixel (i, j); j = 0 is the bottom row."""
    s = (ti.cast(pixel_i, ti.f32) + 0.5) / ti.cast(width, ti.f32)
    t = (ti.cast(pixel_j, ti.f32) + 0.5) / ti.cast(height, ti.f32)
    target = _plane_corner[None] + s * _plane_right[None] + t * _plane_up[None]
    return make_ray(_eye[None], target - _eye[None])


@ti.kernel
def _probe_pixel_direction(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32) -> vec3:
    return get_pixel_ray(pixel_i, pixel_j, width, height).direction


def pixel_direction(pixel_i: int, pixel_j: int, width: int, height: int) -> tuple[float, float, float]:
    """Unit direction of the ray through a pixel center."""
    d = _probe_pixel_direction(pixel_i, pixel_j, width, height)
    return (float(d[0]), float(d[1]), float(d[2]))
