"""Image export utilities for rendered images.

Rendered images are float32 arrays of shape (H, W, 3) with values in [0, 1]
(the tracer clamps every color). Export quantizes them to 8 bits, optionally
after gamma encoding, and lets Pillow write the file.

Supported formats (chosen by file extension):
    - PNG
    - JPEG (.jpg / .jpeg)
    - BMP

Example:
    >>> from src.whitted.preview.export import save_image_from_array
    >>> from src.whitted.core.tracer import get_normalized_image_numpy
    >>> save_image_from_array(get_normalized_image_numpy(), "render.png")
"""

from __future__ import annotations

import os

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.whitted.preview.display import apply_gamma

# Pillow format names by extension
_FORMATS = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".bmp": "BMP",
}


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    gamma: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a float image in [0, 1] to uint8.

    Values are clamped, NaN becomes 0, and each channel is rounded to the
    nearest of 256 levels.

    Args:
        image: Image array of shape (H, W, 3).
        gamma: Gamma encoding applied before quantization (1.0 = none).

    Returns:
        8-bit image array of shape (H, W, 3).
    """
    processed = np.nan_to_num(np.asarray(image, dtype=np.float32), nan=0.0)
    processed = apply_gamma(np.clip(processed, 0.0, 1.0), gamma)
    return np.round(processed * 255.0).astype(np.uint8)


def image_format_for(filepath: str) -> str:
    """Pillow format name for a path's extension.

    Raises:
        ValueError: If the extension is not supported.
    """
    ext = os.path.splitext(filepath)[1].lower()
    if ext not in _FORMATS:
        raise ValueError(
            f"Unsupported image extension '{ext}'. Choose one of: {', '.join(sorted(_FORMATS))}"
        )
    return _FORMATS[ext]


def save_image_from_array(
    image: npt.NDArray[np.float32],
    filepath: str,
    *,
    gamma: float = 1.0,
) -> None:
    """Save a float image to a file.

    Args:
        image: Image array of shape (H, W, 3), values in [0, 1].
        filepath: Output path; the extension selects the format.
        gamma: Gamma encoding applied before quantization.

    Raises:
        ValueError: If the extension is not supported.
    """
    image_format = image_format_for(filepath)
    pil_image = PILImage.fromarray(image_to_uint8(image, gamma=gamma), mode="RGB")
    pil_image.save(filepath, format=image_format)


def load_image(filepath: str) -> npt.NDArray[np.float32]:
    """Load an image file as float32 (H, W, 3) in [0, 1]."""
    with PILImage.open(filepath) as pil_image:
        data = np.asarray(pil_image.convert("RGB"), dtype=np.float32)
    return data / 255.0


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
