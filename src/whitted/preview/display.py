"""Matplotlib-based preview of rendered images.

Example:
    >>> from src.whitted.preview.display import show_image
    >>> show_image(renderer.get_image_numpy(), title="Room")
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Gamma-encode an image in [0, 1]: out = in^(1/gamma).

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image

    # Clamp before the power to avoid NaN from negative values
    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def show_image(
    image: npt.NDArray[np.float32],
    *,
    title: str | None = None,
    gamma: float = 1.0,
    figsize: tuple[float, float] = (10, 6),
    block: bool = True,
) -> None:
    """Display a rendered image in a Matplotlib window.

    Args:
        image: Image array of shape (H, W, 3) in [0, 1].
        title: Figure title.
        gamma: Gamma encoding for display.
        figsize: Figure size in inches.
        block: Whether to block until the window is closed.
    """
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(apply_gamma(image, gamma))
    ax.axis("off")
    if title:
        ax.set_title(title)
    plt.tight_layout()
    plt.show(block=block)
