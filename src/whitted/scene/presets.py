"""Ready-made demo scenes.

Every builder returns a populated Scene together with a PinholeCamera that
frames it. The camera's aspect ratio defaults to 16:9; the renderer adapts
it to the output size.

Scenes:
    end_to_end      unit sphere in front of the origin, one light above
    room            six-wall room with mirror spheres and a rotated box
    soap_bubbles    ring of thin-film bubbles placed with a seeded RNG
    sculpture       cluster of overlapping colored spheres
    mirror_cavity   two facing mirrors around a sphere (bounce stress test)
    sphere_cavity   closed mirror sphere around the camera and two balls

Example:
    >>> from src.whitted.scene.presets import build_scene
    >>> scene, camera = build_scene("room")
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from src.whitted.camera.pinhole import PinholeCamera
from src.whitted.materials.phong import Material, MaterialPreset
from src.whitted.scene.lights import Light
from src.whitted.scene.manager import Scene
from src.whitted.scene.primitives import Box, DielectricSphere, Plane, Sphere, ThinFilmSphere

# =============================================================================
# Shared Materials
# =============================================================================

MIRROR = Material(
    ambient=(0.12, 0.12, 0.12),
    diffuse=(0.78, 0.78, 0.78),
    specular=(1.0, 1.0, 1.0),
    shininess=0.9,
    reflectivity=0.8,
)

PEARL = Material(
    ambient=(0.16, 0.16, 0.16),
    diffuse=(0.86, 0.7, 0.86),
    specular=(1.0, 1.0, 1.0),
    shininess=0.8,
    reflectivity=0.7,
)

GLASS = Material(
    ambient=(0.0, 0.0, 0.0),
    diffuse=(0.9, 0.9, 0.9),
    specular=(1.0, 1.0, 1.0),
    shininess=0.9,
    reflectivity=0.05,
    transparency=0.9,
)

BUBBLE = Material(
    ambient=(0.2, 0.2, 0.2),
    diffuse=(1.0, 1.0, 1.0),
    specular=(1.0, 1.0, 1.0),
    shininess=1.0,
    reflectivity=0.3,
    transparency=0.5,
)


def _wall(diffuse: tuple[float, float, float], reflectivity: float = 0.1) -> Material:
    return Material(
        ambient=tuple(c * 0.18 for c in diffuse),
        diffuse=diffuse,
        specular=(0.24, 0.24, 0.24),
        shininess=0.1,
        reflectivity=reflectivity,
    )


# =============================================================================
# Building Blocks
# =============================================================================


def add_room(
    scene: Scene,
    center: tuple[float, float, float],
    width: float,
    height: float,
    depth: float,
    material: Material | dict[str, Material],
) -> list[int]:
    """Add six inward-facing planes enclosing a box-shaped room.

    Args:
        scene: Scene to add the walls to.
        center: Room center.
        width, height, depth: Room extent along x, y and z.
        material: One material for every wall, or a dict keyed by floor,
            ceiling, back, front, left and right.

    Returns:
        Object ids of the walls in that order.
    """
    cx, cy, cz = center
    hw, hh, hd = width / 2.0, height / 2.0, depth / 2.0
    walls = {
        "floor": ((cx, cy - hh, cz), (0.0, 1.0, 0.0)),
        "ceiling": ((cx, cy + hh, cz), (0.0, -1.0, 0.0)),
        "back": ((cx, cy, cz + hd), (0.0, 0.0, -1.0)),
        "front": ((cx, cy, cz - hd), (0.0, 0.0, 1.0)),
        "left": ((cx - hw, cy, cz), (1.0, 0.0, 0.0)),
        "right": ((cx + hw, cy, cz), (-1.0, 0.0, 0.0)),
    }
    ids = []
    for name, (point, normal) in walls.items():
        wall_material = material[name] if isinstance(material, dict) else material
        ids.append(scene.add_object(Plane(point=point, normal=normal, material=wall_material)))
    return ids


# =============================================================================
# Scene Builders
# =============================================================================


def create_end_to_end_scene() -> tuple[Scene, PinholeCamera]:
    """Unit sphere at (0, 0, 5) lit by a white light at (0, 5, 0)."""
    scene = Scene()
    scene.add_object(Sphere(center=(0.0, 0.0, 5.0), radius=1.0))
    scene.add_light(Light(position=(0.0, 5.0, 0.0)))
    camera = PinholeCamera.looking_forward((0.0, 0.0, 0.0))
    return scene, camera


def create_room_scene() -> tuple[Scene, PinholeCamera]:
    """Colored room with two mirror spheres, a glass ball and a floating box."""
    scene = Scene()

    add_room(
        scene,
        center=(0.0, 0.0, 0.0),
        width=6.0,
        height=6.0,
        depth=6.0,
        material={
            "floor": _wall((0.12, 0.12, 0.12), reflectivity=0.2),
            "ceiling": _wall((0.0, 0.86, 0.86)),
            "back": _wall((0.0, 0.86, 0.86)),
            "front": _wall((0.3, 0.3, 0.3)),
            "left": _wall((0.7, 0.0, 0.7)),
            "right": _wall((0.86, 0.86, 0.0)),
        },
    )

    scene.add_object(Sphere(center=(-1.0, -0.6, 0.5), radius=0.8, material=MIRROR))
    scene.add_object(Sphere(center=(1.0, -0.6, 0.5), radius=0.8, material=MIRROR))
    scene.add_object(DielectricSphere(center=(0.0, -1.1, -0.9), radius=0.4, material=GLASS, ior=1.5))
    scene.add_object(
        Box(center=(0.0, 0.9, 0.2), size=0.6, material=PEARL, rotation_deg=(30.0, 45.0, 15.0))
    )

    scene.add_light(Light(position=(0.0, 2.5, -2.0), intensity=0.9))
    scene.add_light(Light(position=(-2.0, 1.0, -2.5), color=(1.0, 0.94, 0.86), intensity=0.4))
    scene.add_light(Light(position=(2.0, 1.0, -2.5), color=(0.86, 0.94, 1.0), intensity=0.4))

    camera = PinholeCamera.looking_forward((0.0, 0.0, -2.8), vfov=75.0)
    return scene, camera


def create_soap_bubble_scene(seed: int = 42, count: int = 12) -> tuple[Scene, PinholeCamera]:
    """Ring of thin-film bubbles with randomized depth, size and film age.

    The same seed always yields the same scene.

    Args:
        seed: Seed for numpy.random.default_rng.
        count: Number of bubbles.
    """
    rng = np.random.default_rng(seed)
    scene = Scene()

    for i in range(count):
        angle = 2.0 * np.pi * i / count
        distance = 2.0 + (i % 4) * 1.5
        x = distance * np.cos(angle)
        y = distance * np.sin(angle)
        z = rng.uniform(-2.5, 2.5)
        radius = rng.uniform(1.0, 2.5)
        age = rng.uniform(0.0, 1.0)
        scene.add_object(
            ThinFilmSphere(
                center=(x, y, z),
                radius=radius,
                material=BUBBLE,
                age=age,
                variation=1.0,
                iridescence=1.0,
            )
        )

    scene.add_light(Light(position=(0.0, 0.0, -6.0)))
    scene.add_light(Light(position=(-5.0, 3.0, -6.0), color=(1.0, 0.94, 0.86), intensity=0.8))
    scene.add_light(Light(position=(5.0, 3.0, -6.0), color=(0.86, 0.94, 1.0), intensity=0.8))
    scene.add_light(Light(position=(-5.0, -2.0, -3.0), color=(1.0, 0.2, 0.78), intensity=0.6))
    scene.add_light(Light(position=(5.0, -2.0, -3.0), color=(0.2, 0.86, 1.0), intensity=0.6))
    scene.add_light(Light(position=(0.0, 0.0, 6.0), color=(1.0, 1.0, 0.78), intensity=0.5))

    camera = PinholeCamera.looking_forward((0.0, 0.0, -5.5), vfov=100.0)
    return scene, camera


def create_sculpture_scene() -> tuple[Scene, PinholeCamera]:
    """Overlapping spheres arranged like a small sculpture on a floor."""
    scene = Scene()

    body = Material.from_preset(MaterialPreset.DEFAULT)
    spheres = [
        ((0.0, 0.0, 5.0), 2.0, (0.0, 0.0, 1.0)),
        ((-0.9, -0.9, 4.2), 1.0, (0.0, 1.0, 1.0)),
        ((0.9, -0.9, 4.2), 1.0, (0.0, 1.0, 1.0)),
        ((-0.9, -0.9, 3.6), 0.6, (0.0, 1.0, 0.0)),
        ((0.9, -0.9, 3.6), 0.6, (0.0, 1.0, 0.0)),
        ((0.0, 0.5, 3.4), 0.7, (1.0, 0.0, 0.0)),
    ]
    for center, radius, color in spheres:
        scene.add_object(Sphere(center=center, radius=radius, material=body, color=color))

    scene.add_object(
        Plane(
            point=(0.0, -2.0, 0.0),
            normal=(0.0, 1.0, 0.0),
            material=Material.from_preset(MaterialPreset.JADE, reflectivity=0.25),
        )
    )
    scene.add_light(Light(position=(0.0, 0.0, -10.0)))
    scene.add_light(Light(position=(4.0, 6.0, 0.0), intensity=0.5))

    camera = PinholeCamera.looking_forward((0.0, 0.0, -3.0), vfov=60.0)
    return scene, camera


def create_mirror_cavity_scene() -> tuple[Scene, PinholeCamera]:
    """Two perfect mirrors facing each other with a sphere between them.

    Rays bounce between the mirrors until the depth bound stops them.
    """
    scene = Scene()
    mirror = Material(
        ambient=(0.0, 0.0, 0.0),
        diffuse=(0.1, 0.1, 0.1),
        specular=(0.0, 0.0, 0.0),
        shininess=0.0,
        reflectivity=1.0,
    )
    scene.add_object(Plane(point=(0.0, 0.0, -1.0), normal=(0.0, 0.0, 1.0), material=mirror))
    scene.add_object(Plane(point=(0.0, 0.0, 1.0), normal=(0.0, 0.0, -1.0), material=mirror))
    scene.add_object(Sphere(center=(0.0, 0.6, 0.0), radius=0.3, material=Material.from_preset("ruby")))
    scene.add_light(Light(position=(0.0, 0.0, 0.0)))

    camera = PinholeCamera(lookfrom=(0.0, 0.0, -0.9), lookat=(0.0, 0.0, 0.0))
    return scene, camera


def create_sphere_cavity_scene() -> tuple[Scene, PinholeCamera]:
    """A closed mirror sphere with the camera, the light and two balls inside.

    Every ray leaving the camera stays trapped, so only the depth bound ends
    the bounces. Rays along the z axis shuttle between the poles at z = -2
    and z = 2 and miss both inner balls. The shell's outward normals face
    away from the light, so its inside shows only the ambient term.
    """
    scene = Scene()
    shell = Material(
        ambient=(0.1, 0.1, 0.1),
        diffuse=(0.1, 0.1, 0.1),
        specular=(0.0, 0.0, 0.0),
        shininess=0.0,
        reflectivity=1.0,
    )
    scene.add_object(Sphere(center=(0.0, 0.0, 0.0), radius=2.0, material=shell))
    scene.add_object(Sphere(center=(0.0, 1.2, 0.4), radius=0.4, material=PEARL))
    emerald = Material.from_preset(MaterialPreset.EMERALD, reflectivity=0.5)
    scene.add_object(Sphere(center=(0.0, -1.2, 0.4), radius=0.4, material=emerald))
    scene.add_light(Light(position=(0.0, 0.0, 0.0)))

    camera = PinholeCamera(lookfrom=(0.0, 0.0, -1.5), lookat=(0.0, 0.0, 0.0))
    return scene, camera


SCENE_BUILDERS: dict[str, Callable[..., tuple[Scene, PinholeCamera]]] = {
    "end_to_end": create_end_to_end_scene,
    "room": create_room_scene,
    "soap_bubbles": create_soap_bubble_scene,
    "sculpture": create_sculpture_scene,
    "mirror_cavity": create_mirror_cavity_scene,
    "sphere_cavity": create_sphere_cavity_scene,
}


def build_scene(name: str, seed: int | None = None) -> tuple[Scene, PinholeCamera]:
    """Build a demo scene by name.

    Args:
        name: One of SCENE_BUILDERS.
        seed: Seed for scenes with random placement (ignored by the others).

    Raises:
        ValueError: If the name is unknown.
    """
    try:
        builder = SCENE_BUILDERS[name]
    except KeyError as err:
        choices = ", ".join(sorted(SCENE_BUILDERS))
        raise ValueError(f"Unknown scene '{name}'. Choose one of: {choices}") from err
    if name == "soap_bubbles" and seed is not None:
        return builder(seed=seed)
    return builder()
