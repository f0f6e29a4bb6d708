"""Wavefront OBJ import.

Only geometry is read: vertex positions (v) and faces (f). Texture
coordinates (vt) and normals (vn) are parsed and kept on the mesh but not
used for shading. Faces may reference vertices as v, v/vt, v//vn or v/vt/vn;
negative indices count back from the latest vertex. Polygons with more than
three corners are fan-triangulated around their first corner. Material
libraries (mtllib / usemtl) are ignored; every triangle gets the material
passed to import_obj().

Example:
    >>> from src.whitted.loader.obj import import_obj
    >>> from src.whitted.materials.phong import Material, MaterialPreset
    >>> triangles = import_obj(
    ...     "teapot.obj",
    ...     material=Material.from_preset(MaterialPreset.GOLD),
    ...     position=(0.0, -1.0, 4.0),
    ...     scale=0.5,
    ...     rotation_deg=(0.0, 30.0, 0.0),
    ... )
    >>> scene.add_objects(triangles)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np

from src.whitted.geometry.box import rotation_matrix
from src.whitted.materials.phong import Material
from src.whitted.scene.primitives import Triangle

logger = logging.getLogger(__name__)


@dataclass
class ObjMesh:
    """Parsed contents of an OBJ file.

    Attributes:
        vertices: (n, 3) float64 vertex positions.
        faces: Triangles as (i0, i1, i2) zero-based vertex indices.
        normals: (m, 3) float64 vertex normals (unused by the tracer).
        texcoords: (k, 2) float64 texture coordinates (unused by the tracer).
    """

    vertices: np.ndarray
    faces: list[tuple[int, int, int]] = field(default_factory=list)
    normals: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    texcoords: np.ndarray = field(default_factory=lambda: np.zeros((0, 2)))

    @property
    def triangle_count(self) -> int:
        return len(self.faces)

    def triangles(self) -> np.ndarray:
        """Face vertices as an (n, 3, 3) float64 array."""
        if not self.faces:
            return np.zeros((0, 3, 3))
        return self.vertices[np.asarray(self.faces, dtype=np.int64)]


def _parse_floats(values: list[str], count: int, line_no: int, keyword: str) -> list[float]:
    if len(values) < count:
        raise ValueError(f"Line {line_no}: '{keyword}' needs {count} values, got {len(values)}")
    try:
        return [float(x) for x in values[:count]]
    except ValueError as err:
        raise ValueError(f"Line {line_no}: invalid number in '{keyword}' statement") from err


def _resolve_index(token: str, vertex_count: int, line_no: int) -> int:
    """Zero-based vertex index of one face corner (v, v/vt, v//vn or v/vt/vn)."""
    head = token.split("/")[0]
    try:
        index = int(head)
    except ValueError as err:
        raise ValueError(f"Line {line_no}: invalid face index '{token}'") from err

    if index > 0:
        resolved = index - 1
    elif index < 0:
        resolved = vertex_count + index
    else:
        raise ValueError(f"Line {line_no}: face index 0 is not valid (OBJ indices start at 1)")

    if not 0 <= resolved < vertex_count:
        raise ValueError(
            f"Line {line_no}: face index {index} out of range ({vertex_count} vertices defined)"
        )
    return resolved


def parse_obj(lines: Iterable[str], swap_yz: bool = False) -> ObjMesh:
    """Parse OBJ text.

    Args:
        lines: Lines of an OBJ file.
        swap_yz: Swap the y and z coordinates of vertices and normals.

    Returns:
        The parsed mesh.

    Raises:
        ValueError: On malformed vertex or face statements.
    """
    vertices: list[list[float]] = []
    normals: list[list[float]] = []
    texcoords: list[list[float]] = []
    faces: list[tuple[int, int, int]] = []

    for line_no, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        values = line.split()
        keyword, args = values[0].lower(), values[1:]

        if keyword == "v":
            v = _parse_floats(args, 3, line_no, keyword)
            if swap_yz:
                v = [v[0], v[2], v[1]]
            vertices.append(v)
        elif keyword == "vn":
            n = _parse_floats(args, 3, line_no, keyword)
            if swap_yz:
                n = [n[0], n[2], n[1]]
            normals.append(n)
        elif keyword == "vt":
            texcoords.append(_parse_floats(args, 2, line_no, keyword))
        elif keyword == "f":
            if len(args) < 3:
                raise ValueError(f"Line {line_no}: a face needs at least 3 vertices, got {len(args)}")
            corners = [_resolve_index(token, len(vertices), line_no) for token in args]
            # Fan triangulation around the first corner
            for k in range(1, len(corners) - 1):
                faces.append((corners[0], corners[k], corners[k + 1]))

    return ObjMesh(
        vertices=np.asarray(vertices, dtype=np.float64).reshape(-1, 3),
        faces=faces,
        normals=np.asarray(normals, dtype=np.float64).reshape(-1, 3),
        texcoords=np.asarray(texcoords, dtype=np.float64).reshape(-1, 2),
    )


def load_obj(filepath: str, swap_yz: bool = False) -> ObjMesh:
    """Read and parse an OBJ file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: On malformed content.
    """
    if not os.path.isfile(filepath):
        raise FileNotFoundError(f"OBJ file not found: {filepath}")
    with open(filepath, encoding="utf-8") as f:
        mesh = parse_obj(f, swap_yz=swap_yz)
    logger.info(
        "Loaded %s: %d vertices, %d triangles",
        filepath,
        mesh.vertices.shape[0],
        mesh.triangle_count,
    )
    return mesh


def transform_triangles(
    triangles: np.ndarray,
    position=(0.0, 0.0, 0.0),
    scale: float = 1.0,
    rotation_deg=(0.0, 0.0, 0.0),
) -> np.ndarray:
    """Scale, rotate (X then Y then Z, degrees) and translate triangle vertices.

    Raises:
        ValueError: If scale is not positive.
    """
    if scale <= 0.0:
        raise ValueError(f"scale must be positive, got {scale}")
    rot = rotation_matrix(rotation_deg)
    scaled = np.asarray(triangles, dtype=np.float64) * scale
    return scaled @ rot.T + np.asarray(position, dtype=np.float64)


def import_obj(
    filepath: str,
    material: Material | None = None,
    position=(0.0, 0.0, 0.0),
    scale: float = 1.0,
    rotation_deg=(0.0, 0.0, 0.0),
    color=None,
    swap_yz: bool = False,
) -> list[Triangle]:
    """Load an OBJ file as Triangle primitives placed in the world.

    Args:
        filepath: Path to the .obj file.
        material: Material shared by every triangle (default Material()).
        position: Translation applied last.
        scale: Uniform scale applied first.
        rotation_deg: Rotation in degrees applied after scaling.
        color: Optional diffuse color override for every triangle.
        swap_yz: Swap y and z while parsing (for z-up exports).

    Returns:
        One Triangle per (triangulated) face.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: On malformed content or a non-positive scale.
    """
    mesh = load_obj(filepath, swap_yz=swap_yz)
    placed = transform_triangles(mesh.triangles(), position, scale, rotation_deg)
    shared = material if material is not None else Material()
    return [
        Triangle(v0=tri[0], v1=tri[1], v2=tri[2], material=shared, color=color) for tri in placed
    ]
