"""Preview module for output and visualization.

Components:
    display: Gamma helper and Matplotlib preview windows
    export: 8-bit conversion, PNG/JPEG/BMP export via Pillow, RMSE

Example:
    >>> from src.whitted.preview import save_image_from_array, show_image
    >>> image = renderer.get_image_numpy()
    >>> show_image(image, title="Preview")
    >>> save_image_from_array(image, "output.png")
"""

from src.whitted.preview.display import (
    apply_gamma,
    show_image,
)
from src.whitted.preview.export import (
    compute_rmse,
    image_format_for,
    image_to_uint8,
    load_image,
    save_image_from_array,
)

__all__ = [
    # Display functions
    "show_image",
    "apply_gamma",
    # Export functions
    "save_image_from_array",
    "image_to_uint8",
    "image_format_for",
    "load_image",
    "compute_rmse",
]
