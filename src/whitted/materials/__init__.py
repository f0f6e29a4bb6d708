"""Materials module for Whitted-style shading.

Components:
    phong: Phong material (ambient/diffuse/specular, reflectivity,
        transparency), named presets and the material registry fields
    dielectric: Fresnel reflectance and refraction at transparent boundaries
    thin_film: Spectral thin-film interference color for soap bubbles

Unlike a path tracer, no material samples random directions: reflection and
refraction are both followed and blended by their weights.
"""

from .dielectric import (
    AIR_IOR,
    fresnel_reflectance,
    split_dielectric,
    validate_ior,
    will_reflect,
)
from .phong import (
    MAX_MATERIALS,
    Material,
    MaterialPreset,
    add_material,
    clear_materials,
    get_material_count,
)
from .thin_film import (
    film_thickness_at,
    thin_film_color,
    thin_film_interference,
    wavelength_to_rgb,
)

__all__ = [
    "Material",
    "MaterialPreset",
    "MAX_MATERIALS",
    "add_material",
    "clear_materials",
    "get_material_count",
    "AIR_IOR",
    "fresnel_reflectance",
    "split_dielectric",
    "validate_ior",
    "will_reflect",
    "wavelength_to_rgb",
    "thin_film_interference",
    "film_thickness_at",
    "thin_film_color",
]
