"""Camera models for primary ray generation."""

from .pinhole import PinholeCamera, get_camera_info, pixel_direction, setup_camera

__all__ = ["PinholeCamera", "setup_camera", "get_camera_info", "pixel_direction"]
