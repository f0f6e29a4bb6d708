"""Render loop: scene preparation, banded rendering, timing and output.

The Renderer wraps the tracer kernels with the bookkeeping a full render
needs:
- Build the BVH when acceleration is enabled (or force brute force)
- Apply depth and background from the settings
- Set up the camera with the image's aspect ratio
- Render in bands of rows, reporting progress after each band
- Time the render and save the result

Each band is one parallel Taichi kernel launch over its pixels; every pixel
writes only its own buffer cell.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.core.renderer import Renderer
    >>> from src.whitted.core.settings import RenderSettings
    >>> from src.whitted.scene.presets import create_room_scene
    >>>
    >>> scene, camera = create_room_scene()
    >>> renderer = Renderer(scene, camera, RenderSettings.quick_preview())
    >>> stats = renderer.render(callback=lambda done, total: print(f"{done}/{total} rows"))
    >>> renderer.save()
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.whitted.camera.pinhole import PinholeCamera, setup_camera
from src.whitted.core.settings import RenderSettings
from src.whitted.core.tracer import (
    get_normalized_image_numpy,
    get_trace_stats,
    render_rows,
    reset_trace_stats,
    setup_render_target,
)
from src.whitted.preview.export import save_image_from_array
from src.whitted.scene.manager import Scene

logger = logging.getLogger(__name__)

# Callback receives (rows_completed, total_rows)
ProgressCallback = Callable[[int, int], None]


@dataclass
class RenderStats:
    """Summary of a finished render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        elapsed_seconds: Wall time of the pixel loop (BVH build excluded).
        bvh_seconds: Wall time of the BVH build, 0 if none was built.
        shaded_rays: Rays shaded (primary plus secondary).
        deepest_level: Deepest reflection/refraction level reached.
    """

    width: int
    height: int
    elapsed_seconds: float
    bvh_seconds: float
    shaded_rays: int
    deepest_level: int

    @property
    def ms_per_row(self) -> float:
        return 1000.0 * self.elapsed_seconds / self.height


def format_duration(seconds: float) -> str:
    """Format a duration as 1h 02m 03s, 2m 05s or 4.25s."""
    if seconds >= 3600.0:
        hours, rest = divmod(int(seconds), 3600)
        minutes, secs = divmod(rest, 60)
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if seconds >= 60.0:
        minutes, secs = divmod(int(seconds), 60)
        return f"{minutes}m {secs:02d}s"
    return f"{seconds:.2f}s"


class Renderer:
    """Renders one scene through one camera with fixed settings.

    Attributes:
        scene: The scene to render.
        camera: Camera description; its aspect ratio is replaced by the
            settings' width / height.
        settings: Render settings.
    """

    def __init__(self, scene: Scene, camera: PinholeCamera, settings: RenderSettings | None = None) -> None:
        self.scene = scene
        self.camera = camera
        self.settings = settings if settings is not None else RenderSettings()
        self._rendered = False

    @property
    def width(self) -> int:
        return self.settings.width

    @property
    def height(self) -> int:
        return self.settings.height

    def prepare(self) -> float:
        """Apply settings to the scene and tracer.

        Returns:
            Seconds spent building the BVH (0 when acceleration is off).
        """
        settings = self.settings
        self.scene.set_max_reflection_depth(settings.max_reflection_depth)
        self.scene.set_background(settings.background)

        bvh_seconds = 0.0
        if settings.use_acceleration:
            self.scene.set_acceleration(True)
            if not self.scene.has_valid_bvh:
                start = time.perf_counter()
                self.scene.build_acceleration_structure()
                bvh_seconds = time.perf_counter() - start
        else:
            self.scene.set_acceleration(False)

        setup_camera(self.camera.with_aspect_ratio(settings.aspect_ratio))
        setup_render_target(settings.width, settings.height)
        return bvh_seconds

    def render(self, callback: ProgressCallback | None = None) -> RenderStats:
        """Render the full image.

        Args:
            callback: Called after every band with (rows_done, total_rows).

        Returns:
            Timing and tracing statistics.
        """
        settings = self.settings
        bvh_seconds = self.prepare()
        reset_trace_stats()

        logger.info(
            "Rendering %dx%d, max reflection depth %d, acceleration %s",
            settings.width,
            settings.height,
            settings.max_reflection_depth,
            "enabled" if settings.use_acceleration else "disabled",
        )

        start = time.perf_counter()
        for row_start in range(0, settings.height, settings.band_rows):
            row_end = min(row_start + settings.band_rows, settings.height)
            render_rows(row_start, row_end)
            ti.sync()
            logger.debug("Rendered rows %d-%d of %d", row_start, row_end, settings.height)
            if callback is not None:
                callback(row_end, settings.height)
        elapsed = time.perf_counter() - start

        trace_stats = get_trace_stats()
        stats = RenderStats(
            width=settings.width,
            height=settings.height,
            elapsed_seconds=elapsed,
            bvh_seconds=bvh_seconds,
            shaded_rays=trace_stats["shaded_rays"],
            deepest_level=trace_stats["deepest_level"],
        )
        logger.info(
            "Render finished in %s (%.2f ms per row, %d rays shaded)",
            format_duration(elapsed),
            stats.ms_per_row,
            stats.shaded_rays,
        )
        self._rendered = True
        return stats

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Rendered image as float32 (height, width, 3), top row first.

        Raises:
            RuntimeError: If render() has not been called.
        """
        if not self._rendered:
            raise RuntimeError("Nothing rendered yet. Call render() first.")
        return get_normalized_image_numpy()

    def save(self, filepath: str | None = None) -> str:
        """Save the rendered image.

        Args:
            filepath: Output path; defaults to settings.output_file.

        Returns:
            The path written.
        """
        path = filepath if filepath is not None else self.settings.output_file
        save_image_from_array(self.get_image_numpy(), path, gamma=self.settings.gamma)
        logger.info("Image saved to %s", path)
        return path
