"""Boxes tessellated into triangles.

A box is not intersected directly. It is converted into 12 outward-facing
triangles (two per face) that go into the triangle storage and the BVH like
any other mesh, all sharing the box's object id.

Rotation angles are in degrees and applied about the box center in the order
X, then Y, then Z.
"""

from __future__ import annotations

import math

import numpy as np

# Corner order: bit 0 -> x, bit 1 -> y, bit 2 -> z (0 = min side, 1 = max side)
_CORNER_SIGNS = np.array(
    [
        (-1, -1, -1),
        (1, -1, -1),
        (1, 1, -1),
        (-1, 1, -1),
        (-1, -1, 1),
        (1, -1, 1),
        (1, 1, 1),
        (-1, 1, 1),
    ],
    dtype=np.float32,
)

# Two counter-clockwise triangles per face, normals pointing outward
_FACE_TRIANGLES = (
    (0, 3, 2), (0, 2, 1),  # -z
    (4, 5, 6), (4, 6, 7),  # +z
    (0, 4, 7), (0, 7, 3),  # -x
    (1, 2, 6), (1, 6, 5),  # +x
    (0, 1, 5), (0, 5, 4),  # -y
    (3, 7, 6), (3, 6, 2),  # +y
)


def rotation_matrix(rotation_deg) -> np.ndarray:
    """Rotation matrix for Euler angles in degrees, applied X then Y then Z.

    Args:
        rotation_deg: (rx, ry, rz) in degrees.

    Returns:
        A 3x3 float64 matrix R such that R @ p rotates p.
    """
    rx, ry, rz = (math.radians(float(a)) for a in rotation_deg)

    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    cz, sz = math.cos(rz), math.sin(rz)

    rot_x = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    rot_y = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    rot_z = np.array([[cz, -sz, 0.0], [sz, cz, 0.0], [0.0, 0.0, 1.0]])

    return rot_z @ rot_y @ rot_x


def box_corners(center, size, rotation_deg=(0.0, 0.0, 0.0)) -> np.ndarray:
    """World-space corners of a (possibly rotated) box.

    Args:
        center: Box center (x, y, z).
        size: Edge length, either a scalar (cube) or per-axis (sx, sy, sz).
        rotation_deg: Rotation about the center in degrees (X, Y, Z order).

    Returns:
        Float32 array of shape (8, 3).

    Raises:
        ValueError: If any edge length is not positive.
    """
    half = np.broadcast_to(np.asarray(size, dtype=np.float64), (3,)) * 0.5
    if np.any(half <= 0.0):
        raise ValueError(f"Box size must be positive, got {size}")

    local = _CORNER_SIGNS.astype(np.float64) * half
    rotated = local @ rotation_matrix(rotation_deg).T
    return (rotated + np.asarray(center, dtype=np.float64)).astype(np.float32)


def box_triangles(center, size, rotation_deg=(0.0, 0.0, 0.0)) -> np.ndarray:
    """Tessellate a box into 12 triangles.

    Returns:
        Float32 array of shape (12, 3, 3): triangle, vertex, coordinate.
    """
    corners = box_corners(center, size, rotation_deg)
    return np.stack([corners[list(face)] for face in _FACE_TRIANGLES]).astype(np.float32)
