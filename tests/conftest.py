"""Pytest configuration for ray tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the module-level fields.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear primitives, materials, lights and tracer state around each test."""
    # Import here so Taichi is initialized before any field is created
    from src.whitted.core.tracer import clear_render_target, reset_tracer
    from src.whitted.materials.phong import clear_materials
    from src.whitted.scene.intersection import clear_scene
    from src.whitted.scene.lights import clear_lights

    def _clear_all():
        clear_scene()
        clear_materials()
        clear_lights()
        reset_tracer()
        clear_render_target()

    _clear_all()
    yield
    _clear_all()
