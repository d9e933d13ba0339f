"""Colour-space helpers.

Consumers talk in degrees, percentages, kelvin and RGB; the bridge talks in
its own integer scales and CIE xy. Everything here is pure arithmetic.
"""

from __future__ import annotations

import colorsys
import math
import re

from pyhuesync._constants import BRI_MAX, BRI_MIN, HUE_MAX, MIRED_MAX, MIRED_MIN, SAT_MAX
from pyhuesync.models._base import clamp

RGB = tuple[int, int, int]

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")


# ------------------------------------------------------------------
# Bridge scales <-> consumer scales
# ------------------------------------------------------------------


def percent_to_bri(percent: float) -> int:
    """Map 0-100 % to the bridge brightness range (1-254)."""
    return int(clamp(round(percent * BRI_MAX / 100), BRI_MIN, BRI_MAX))


def bri_to_percent(bri: int) -> int:
    return int(round(clamp(bri, 0, BRI_MAX) * 100 / BRI_MAX))


def degrees_to_hue(degrees: float) -> int:
    return int(round(clamp(degrees, 0, 360) * HUE_MAX / 360))


def hue_to_degrees(hue: int) -> int:
    return int(round(clamp(hue, 0, HUE_MAX) * 360 / HUE_MAX))


def percent_to_sat(percent: float) -> int:
    return int(clamp(round(percent * SAT_MAX / 100), 0, SAT_MAX))


def sat_to_percent(sat: int) -> int:
    return int(round(clamp(sat, 0, SAT_MAX) * 100 / SAT_MAX))


def kelvin_to_mired(kelvin: float) -> int:
    """Convert a colour temperature to mired, clamped to what bulbs accept."""
    if kelvin <= 0:
        raise ValueError(f"colour temperature must be positive, got {kelvin}")
    return int(clamp(round(1_000_000 / kelvin), MIRED_MIN, MIRED_MAX))


def mired_to_kelvin(mired: int) -> int:
    if mired <= 0:
        raise ValueError(f"mired must be positive, got {mired}")
    return int(round(1_000_000 / mired))


# ------------------------------------------------------------------
# RGB
# ------------------------------------------------------------------


def hex_to_rgb(value: str) -> RGB:
    match = _HEX_RE.match(value.strip())
    if match is None:
        raise ValueError(f"not a #rrggbb colour: {value!r}")
    digits = match.group(1)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def rgb_to_hex(rgb: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def hsv_to_rgb(degrees: float, sat_percent: float, value_percent: float) -> RGB:
    r, g, b = colorsys.hsv_to_rgb((degrees % 360) / 360, sat_percent / 100, value_percent / 100)
    return int(round(r * 255)), int(round(g * 255)), int(round(b * 255))


def rgb_to_hsv(rgb: RGB) -> tuple[float, float, float]:
    """Return ``(degrees, saturation %, value %)`` for an RGB triple."""
    h, s, v = colorsys.rgb_to_hsv(rgb[0] / 255, rgb[1] / 255, rgb[2] / 255)
    return h * 360, s * 100, v * 100


def kelvin_to_rgb(kelvin: float) -> RGB:
    """Approximate the RGB appearance of a black body at *kelvin*.

    Curve fit from Tanner Helland's published approximation; good to a few
    units between 1000 K and 40000 K.
    """
    temp = clamp(kelvin, 1000, 40000) / 100

    if temp <= 66:
        red = 255.0
        green = 99.4708025861 * math.log(temp) - 161.1195681661
        blue = 0.0 if temp <= 19 else 138.5177312231 * math.log(temp - 10) - 305.0447927307
    else:
        red = 329.698727446 * ((temp - 60) ** -0.1332047592)
        green = 288.1221695283 * ((temp - 60) ** -0.0755148492)
        blue = 255.0

    return (
        int(round(clamp(red, 0, 255))),
        int(round(clamp(green, 0, 255))),
        int(round(clamp(blue, 0, 255))),
    )


def xy_to_rgb(x: float, y: float, bri_percent: float = 100.0) -> RGB:
    """Convert CIE xy plus brightness to sRGB (Philips wide gamut matrix)."""
    if y <= 0:
        return 0, 0, 0
    z = 1.0 - x - y
    big_y = bri_percent / 100
    big_x = (big_y / y) * x
    big_z = (big_y / y) * z

    r = big_x * 1.656492 - big_y * 0.354851 - big_z * 0.255038
    g = -big_x * 0.707196 + big_y * 1.655397 + big_z * 0.036152
    b = big_x * 0.051713 - big_y * 0.121364 + big_z * 1.011530

    def _gamma(channel: float) -> float:
        if channel <= 0.0031308:
            return 12.92 * channel
        return 1.055 * (channel ** (1 / 2.4)) - 0.055

    channels = [_gamma(max(0.0, c)) for c in (r, g, b)]
    peak = max(channels)
    if peak > 1:
        channels = [c / peak for c in channels]
    red, green, blue = (int(round(clamp(c, 0, 1) * 255)) for c in channels)
    return red, green, blue
