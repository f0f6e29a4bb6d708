"""Whitted-style recursive ray tracer on Taichi with BVH-accelerated triangles.

This package provides BVH-accelerated recursive ray tracing using Taichi, with support for:
- Ambient, Lambertian diffuse and Phong specular shading with shadow rays
- Mirror reflection and Fresnel-weighted dielectric refraction
- Thin-film interference for soap-bubble spheres
- Geometric primitives (spheres, triangles, planes, rotated boxes, OBJ meshes)

Subpackages:
    core: Ray utilities, the Whitted tracer, render settings and render loop
    geometry: Shape primitives, bounding boxes and the BVH
    materials: Phong materials, dielectric helpers and thin-film color
    scene: Primitive storage, lights, the Scene registry and demo scenes
    camera: Pinhole camera with ray generation
    loader: Wavefront OBJ import
    preview: Image export utilities
"""

__version__ = "0.1.0"
