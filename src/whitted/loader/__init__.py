"""Mesh loaders."""

from .obj import ObjMesh, import_obj, load_obj, parse_obj, transform_triangles

__all__ = ["ObjMesh", "parse_obj", "load_obj", "transform_triangles", "import_obj"]
