"""Thin-film interference color for soap-bubble spheres.

Light reflected from the two faces of a thin film travels an extra optical
path of

    OPD = 2 * n_film * thickness * cos(theta)

and interferes with itself. For a wavelength lambda the reflected intensity
is modeled as

    I(lambda) = 0.5 * (1 + cos(2 * pi * OPD / lambda + pi))

(the extra pi is the phase flip on reflection at the denser medium).
thin_film_color() samples the visible spectrum, converts every wavelength to
RGB, weights it by I(lambda) and averages. Each channel is normalized by
the same average with I = 1, so a fully constructive film is white and the
result always lies in [0, 1].

The thickness varies across the bubble with a swirl pattern driven by the
bubble's variation and age, which produces the banded look of real bubbles.
The resulting color takes the place of the material's diffuse color during
shading.
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

# Visible range sampled for interference (nanometers)
MIN_WAVELENGTH_NM = 380.0
MAX_WAVELENGTH_NM = 780.0
NUM_WAVELENGTH_SAMPLES = 16

# Share of the film color that stays white when iridescence < 1
BASE_WHITE = 0.8


@ti.func
def wavelength_to_rgb(wavelength: ti.f32) -> vec3:
    """Approximate RGB color of a visible wavelength.

    Piecewise-linear spectrum with intensity falling off toward both ends of
    the visible range. Wavelengths outside [380, 780] nm map to black.

    Args:
        wavelength: Wavelength in nanometers.

    Returns:
        RGB color with components in [0, 1].
    """
    r = 0.0
    g = 0.0
    b = 0.0

    if wavelength >= 380.0 and wavelength < 440.0:
        r = -(wavelength - 440.0) / (440.0 - 380.0)
        b = 1.0
    elif wavelength >= 440.0 and wavelength < 490.0:
        g = (wavelength - 440.0) / (490.0 - 440.0)
        b = 1.0
    elif wavelength >= 490.0 and wavelength < 510.0:
        g = 1.0
        b = -(wavelength - 510.0) / (510.0 - 490.0)
    elif wavelength >= 510.0 and wavelength < 580.0:
        r = (wavelength - 510.0) / (580.0 - 510.0)
        g = 1.0
    elif wavelength >= 580.0 and wavelength < 645.0:
        r = 1.0
        g = -(wavelength - 645.0) / (645.0 - 580.0)
    elif wavelength >= 645.0 and wavelength <= 780.0:
        r = 1.0

    # Fade out near the limits of vision
    factor = 0.0
    if wavelength >= 380.0 and wavelength < 420.0:
        factor = 0.3 + 0.7 * (wavelength - 380.0) / (420.0 - 380.0)
    elif wavelength >= 420.0 and wavelength < 700.0:
        factor = 1.0
    elif wavelength >= 700.0 and wavelength <= 780.0:
        factor = 0.3 + 0.7 * (780.0 - wavelength) / (780.0 - 700.0)

    return vec3(r, g, b) * factor


@ti.func
def interference_intensity(thickness_nm: ti.f32, film_ior: ti.f32, cos_incidence: ti.f32, wavelength: ti.f32) -> ti.f32:
    """Reflected intensity in [0, 1] of one wavelength from a thin film."""
    opd = 2.0 * film_ior * thickness_nm * cos_incidence
    return 0.5 * (1.0 + ti.cos(2.0 * tm.pi * opd / wavelength + tm.pi))


@ti.func
def thin_film_interference(thickness_nm: ti.f32, film_ior: ti.f32, cos_incidence: ti.f32) -> vec3:
    """Spectrally averaged interference color of a film.

    Args:
        thickness_nm: Film thickness in nanometers.
        film_ior: Refractive index of the film.
        cos_incidence: Cosine of the angle between the view ray and the normal.

    Returns:
        RGB color with components in [0, 1].
    """
    weighted = vec3(0.0, 0.0, 0.0)
    reference = vec3(0.0, 0.0, 0.0)
    step = (MAX_WAVELENGTH_NM - MIN_WAVELENGTH_NM) / NUM_WAVELENGTH_SAMPLES

    for k in ti.static(range(NUM_WAVELENGTH_SAMPLES)):
        wavelength = MIN_WAVELENGTH_NM + (k + 0.5) * step
        rgb = wavelength_to_rgb(wavelength)
        weighted += rgb * interference_intensity(thickness_nm, film_ior, cos_incidence, wavelength)
        reference += rgb

    return tm.clamp(weighted / reference, 0.0, 1.0)


@ti.func
def film_thickness_at(local_point: vec3, base_thickness_nm: ti.f32, variation: ti.f32, age: ti.f32) -> ti.f32:
    """Film thickness at a point of a bubble.

    Args:
        local_point: Unit vector from the bubble center to the surface point.
        base_thickness_nm: Mean thickness in nanometers.
        variation: Relative thickness variation in [0, 1].
        age: Animation parameter that shifts the swirl pattern.

    Returns:
        Non-negative thickness in nanometers.
    """
    x = local_point.x
    y = local_point.y
    z = local_point.z

    swirl = (
        0.3 * ti.sin(15.0 * x + age * 20.0)
        + 0.3 * ti.cos(10.0 * y + age * 10.0)
        + 0.3 * ti.sin(20.0 * z + age * 15.0)
        + 0.2 * ti.sin(30.0 * (x + y + z) + age * 5.0)
    )
    pattern = 0.5 + 0.5 * swirl

    return tm.max(0.0, base_thickness_nm * (1.0 + variation * (pattern - 0.5)))


@ti.func
def thin_film_color(
    local_point: vec3,
    normal: vec3,
    view_direction: vec3,
    base_thickness_nm: ti.f32,
    film_ior: ti.f32,
    variation: ti.f32,
    age: ti.f32,
    iridescence: ti.f32,
) -> vec3:
    """Diffuse color of a soap-bubble surface point.

    Args:
        local_point: Unit vector from the bubble center to the surface point.
        normal: Surface normal at the point.
        view_direction: Direction of the incoming ray (unit length).
        base_thickness_nm: Mean film thickness in nanometers.
        film_ior: Refractive index of the film.
        variation: Relative thickness variation in [0, 1].
        age: Swirl pattern phase.
        iridescence: Blend between a plain whitish film (0) and the full
            interference color (1).

    Returns:
        RGB color with components in [0, 1].
    """
    cos_incidence = ti.abs(tm.dot(normal, view_direction))
    thickness = film_thickness_at(local_point, base_thickness_nm, variation, age)
    interference = thin_film_interference(thickness, film_ior, cos_incidence)
    base = vec3(BASE_WHITE, BASE_WHITE, BASE_WHITE) * (1.0 - iridescence)
    return tm.clamp(base + interference * iridescence, 0.0, 1.0)
