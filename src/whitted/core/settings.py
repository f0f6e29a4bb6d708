"""Render settings with presets and validation.

Example:
    >>> from src.whitted.core.settings import RenderSettings
    >>> settings = RenderSettings.preview()
    >>> settings.width, settings.height, settings.max_reflection_depth
    (960, 540, 3)
    >>> settings.output_file
    'preview_render.png'
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass

# Limits shared with the preallocated render buffers and the tracer work list
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048
DEFAULT_MAX_DEPTH = 10
MAX_TRACE_DEPTH = 16

# Image formats Pillow writes for us, keyed by extension
SUPPORTED_FORMATS = ("png", "jpg", "jpeg", "bmp")


def _default_threads() -> int:
    return os.cpu_count() or 1


@dataclass
class RenderSettings:
    """Everything the renderer needs besides the scene and camera.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        max_reflection_depth: Reflection/refraction bounce limit.
        num_threads: CPU threads for the Taichi runtime (used at ti.init).
        output_filename: Output path without extension.
        output_format: Image format / extension (png, jpg, jpeg or bmp).
        use_acceleration: Build and use the BVH for triangle queries.
        gamma: Gamma applied when the image is saved (1.0 keeps it linear).
        band_rows: Rows rendered per kernel launch between progress reports.
        background: Color of rays that escape the scene.
    """

    width: int = 1920
    height: int = 1080
    max_reflection_depth: int = DEFAULT_MAX_DEPTH
    num_threads: int = dataclasses.field(default_factory=_default_threads)
    output_filename: str = "raytraced_image"
    output_format: str = "png"
    use_acceleration: bool = True
    gamma: float = 1.0
    band_rows: int = 64
    background: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}")
        if self.width > MAX_IMAGE_WIDTH or self.height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.width}x{self.height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        if not 0 <= self.max_reflection_depth <= MAX_TRACE_DEPTH:
            raise ValueError(
                f"max_reflection_depth must be in [0, {MAX_TRACE_DEPTH}], "
                f"got {self.max_reflection_depth}"
            )
        if self.num_threads < 1:
            raise ValueError(f"num_threads must be at least 1, got {self.num_threads}")
        self.output_format = self.output_format.lower().lstrip(".")
        if self.output_format not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported output format '{self.output_format}'. "
                f"Choose one of: {', '.join(SUPPORTED_FORMATS)}"
            )
        if not self.output_filename:
            raise ValueError("output_filename must not be empty")
        if self.gamma <= 0.0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")
        if self.band_rows < 1:
            raise ValueError(f"band_rows must be at least 1, got {self.band_rows}")
        if len(self.background) != 3 or any(c < 0.0 or c > 1.0 for c in self.background):
            raise ValueError(f"background must be an RGB triple in [0, 1], got {self.background}")
        self.background = tuple(float(c) for c in self.background)

    @property
    def output_file(self) -> str:
        """Output path including the extension."""
        return f"{self.output_filename}.{self.output_format}"

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def replace(self, **changes) -> RenderSettings:
        """Copy with some fields changed (validated again)."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def default(cls) -> RenderSettings:
        """Full HD, depth 10."""
        return cls()

    @classmethod
    def preview(cls) -> RenderSettings:
        """Half resolution with few bounces."""
        return cls(width=960, height=540, max_reflection_depth=3, output_filename="preview_render")

    @classmethod
    def quick_preview(cls) -> RenderSettings:
        """Quarter resolution with minimal bounces."""
        return cls(width=480, height=270, max_reflection_depth=2, output_filename="quick_preview")

    @classmethod
    def from_name(cls, name: str) -> RenderSettings:
        """Settings preset by name: default, preview or quick_preview.

        Raises:
            ValueError: If the name is unknown.
        """
        presets = {
            "default": cls.default,
            "preview": cls.preview,
            "quick_preview": cls.quick_preview,
        }
        key = name.lower().replace("-", "_")
        if key not in presets:
            raise ValueError(f"Unknown settings preset '{name}'. Choose one of: {', '.join(presets)}")
        return presets[key]()
