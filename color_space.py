#!/usr/bin/env python3
"""
Perceptual color space: hex sRGB <-> OKLCH, CIEDE2000 distance, WCAG contrast.

OKLCH is used for every lightness/chroma/hue decision in the engine. Color
differences are measured with CIEDE2000 in CIELAB (D65), so distance
thresholds are in the familiar Lab Delta-E units (JND ~ 2.3).
"""

import math
import re
from dataclasses import dataclass

import numpy as np
from skimage.color import deltaE_ciede2000

from palette_errors import InvalidColorFormat


# =============================================================================
# Constants
# =============================================================================

HEX_PATTERN = re.compile(r'^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')

# Below this chroma the hue angle is noise; it is defined as 0.
ACHROMATIC_CHROMA = 1e-6

# D65 reference white
WHITE_X, WHITE_Y, WHITE_Z = 0.95047, 1.0, 1.08883

LAB_EPSILON = 0.008856
LAB_KAPPA = 903.3

AA_CONTRAST = 4.5
AAA_CONTRAST = 7.0
AA_LARGE_CONTRAST = 3.0


# =============================================================================
# PerceptualColor
# =============================================================================

def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def normalize_hue(value: float) -> float:
    """Wrap a hue angle into [0, 360). Non-finite hues become 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    hue = value % 360.0
    # -1e-20 % 360 rounds to 360.0
    return 0.0 if hue >= 360.0 else hue


@dataclass(frozen=True)
class PerceptualColor:
    """An OKLCH color: lightness in [0, 1], chroma >= 0, hue in [0, 360)."""
    l: float
    c: float
    h: float

    def __post_init__(self):
        object.__setattr__(self, 'l', clamp01(float(self.l)))
        object.__setattr__(self, 'c', max(0.0, float(self.c)))
        object.__setattr__(self, 'h', normalize_hue(float(self.h)))

    def as_list(self) -> list:
        return [self.l, self.c, self.h]


# =============================================================================
# Vectorized conversions
# =============================================================================

def srgb_to_linear(rgb: np.ndarray) -> np.ndarray:
    """Gamma-encoded sRGB in [0, 1] to linear light."""
    return np.where(rgb > 0.04045, ((rgb + 0.055) / 1.055) ** 2.4, rgb / 12.92)


def linear_to_srgb(linear: np.ndarray) -> np.ndarray:
    """Linear light to gamma-encoded sRGB (unclipped)."""
    mask = linear > 0.0031308
    return np.where(mask, 1.055 * np.power(np.clip(linear, 0, None), 1 / 2.4) - 0.055, 12.92 * linear)


def linear_to_oklab(linear: np.ndarray) -> np.ndarray:
    """Linear sRGB array (..., 3) to OKLab."""
    r, g, b = linear[..., 0], linear[..., 1], linear[..., 2]

    l_ = np.cbrt(0.4122214708 * r + 0.5363325363 * g + 0.0514459929 * b)
    m_ = np.cbrt(0.2119034982 * r + 0.6806995451 * g + 0.1073969566 * b)
    s_ = np.cbrt(0.0883024619 * r + 0.2817188376 * g + 0.6299787005 * b)

    L = 0.2104542553 * l_ + 0.7936177850 * m_ - 0.0040720468 * s_
    a = 1.9779984951 * l_ - 2.4285922050 * m_ + 0.4505937099 * s_
    b_val = 0.0259040371 * l_ + 0.7827717662 * m_ - 0.8086757660 * s_

    return np.stack([L, a, b_val], axis=-1)


def oklab_to_linear(lab: np.ndarray) -> np.ndarray:
    """OKLab array (..., 3) to linear sRGB. Out-of-gamut values are kept."""
    L, a, b = lab[..., 0], lab[..., 1], lab[..., 2]

    l_ = L + 0.3963377774 * a + 0.2158037573 * b
    m_ = L - 0.1055613458 * a - 0.0638541728 * b
    s_ = L - 0.0894841775 * a - 1.2914855480 * b

    l, m, s = l_ ** 3, m_ ** 3, s_ ** 3

    r = 4.0767416621 * l - 3.3077115913 * m + 0.2309699292 * s
    g = -1.2684380046 * l + 2.6097574011 * m - 0.3413193965 * s
    b_out = -0.0041960863 * l - 0.7034186147 * m + 1.7076147010 * s

    return np.stack([r, g, b_out], axis=-1)


def oklab_to_oklch(lab: np.ndarray) -> np.ndarray:
    """OKLab (..., 3) to OKLCH with the PerceptualColor invariants applied."""
    L, a, b = lab[..., 0], lab[..., 1], lab[..., 2]
    chroma = np.hypot(a, b)
    hue = np.degrees(np.arctan2(b, a)) % 360
    hue = np.where((chroma < ACHROMATIC_CHROMA) | (hue >= 360), 0.0, hue)
    return np.stack([np.clip(L, 0, 1), chroma, hue], axis=-1)


def oklch_to_oklab(lch: np.ndarray) -> np.ndarray:
    """OKLCH (..., 3) to OKLab."""
    angle = np.radians(lch[..., 2])
    return np.stack([lch[..., 0], lch[..., 1] * np.cos(angle), lch[..., 1] * np.sin(angle)], axis=-1)


def srgb_to_oklch(rgb: np.ndarray) -> np.ndarray:
    """Convert RGB array (0-255) of shape (N, 3) to OKLCH."""
    rgb_norm = np.asarray(rgb, dtype=np.float64) / 255.0
    return oklab_to_oklch(linear_to_oklab(srgb_to_linear(rgb_norm)))


def oklch_to_srgb(lch: np.ndarray) -> np.ndarray:
    """Convert OKLCH array (N, 3) to RGB (0-255), clipping into the sRGB cube."""
    lch = np.asarray(lch, dtype=np.float64)
    rgb = linear_to_srgb(oklab_to_linear(oklch_to_oklab(lch)))
    return np.round(np.clip(rgb, 0, 1) * 255).astype(np.uint8)


def linear_to_lab(linear: np.ndarray) -> np.ndarray:
    """Linear sRGB (..., 3) to CIELAB (D65), L in 0-100."""
    r, g, b = linear[..., 0], linear[..., 1], linear[..., 2]
    x = (r * 0.4124564 + g * 0.3575761 + b * 0.1804375) / WHITE_X
    y = (r * 0.2126729 + g * 0.7151522 + b * 0.0721750) / WHITE_Y
    z = (r * 0.0193339 + g * 0.1191920 + b * 0.9503041) / WHITE_Z

    fx = np.where(x > LAB_EPSILON, np.cbrt(x), (LAB_KAPPA * x + 16) / 116)
    fy = np.where(y > LAB_EPSILON, np.cbrt(y), (LAB_KAPPA * y + 16) / 116)
    fz = np.where(z > LAB_EPSILON, np.cbrt(z), (LAB_KAPPA * z + 16) / 116)

    return np.stack([116 * fy - 16, 500 * (fx - fy), 200 * (fy - fz)], axis=-1)


def oklch_to_lab(lch: np.ndarray) -> np.ndarray:
    """OKLCH (..., 3) to CIELAB without gamut clipping."""
    return linear_to_lab(oklab_to_linear(oklch_to_oklab(np.asarray(lch, dtype=np.float64))))


def delta_e_ciede2000(lab1: np.ndarray, lab2: np.ndarray) -> np.ndarray:
    """CIEDE2000 color difference between broadcastable CIELAB arrays."""
    return deltaE_ciede2000(np.asarray(lab1, dtype=np.float64), np.asarray(lab2, dtype=np.float64))


# =============================================================================
# Hex and scalar operations
# =============================================================================

def parse_hex(value: str) -> tuple:
    """Parse a 3- or 6-digit hex string into an (r, g, b) tuple (0-255)."""
    if not isinstance(value, str):
        raise InvalidColorFormat(value)
    match = HEX_PATTERN.match(value.strip())
    if not match:
        raise InvalidColorFormat(value)
    digits = match.group(1)
    if len(digits) == 3:
        digits = ''.join(ch * 2 for ch in digits)
    return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{int(r):02X}{int(g):02X}{int(b):02X}"


def normalize_hex(value: str) -> str:
    """Canonical uppercase #RRGGBB form of a hex color."""
    return rgb_to_hex(*parse_hex(value))


def from_hex(value: str) -> PerceptualColor:
    """Convert a hex color to OKLCH. Raises InvalidColorFormat."""
    lch = srgb_to_oklch(np.array([parse_hex(value)]))[0]
    return PerceptualColor(*lch)


def to_hex(color: PerceptualColor) -> str:
    """Convert OKLCH to hex, clipping out-of-gamut colors into sRGB."""
    rgb = oklch_to_srgb(np.array([[color.l, color.c, color.h]]))[0]
    return rgb_to_hex(*rgb)


def distance(a: PerceptualColor, b: PerceptualColor) -> float:
    """CIEDE2000 difference between two colors."""
    labs = oklch_to_lab(np.array([[a.l, a.c, a.h], [b.l, b.c, b.h]]))
    return float(delta_e_ciede2000(labs[0], labs[1]))


def adjust(color: PerceptualColor, dl: float = 0.0, dc: float = 0.0, dh: float = 0.0) -> PerceptualColor:
    return PerceptualColor(color.l + dl, color.c + dc, color.h + dh)


def to_cartesian(color: PerceptualColor) -> tuple:
    """Polar (c, h) to Cartesian (u, v), keeping lightness."""
    angle = math.radians(color.h)
    return (color.l, color.c * math.cos(angle), color.c * math.sin(angle))


def from_cartesian(l: float, u: float, v: float) -> PerceptualColor:
    chroma = math.hypot(u, v)
    hue = math.degrees(math.atan2(v, u)) if chroma >= ACHROMATIC_CHROMA else 0.0
    return PerceptualColor(l, chroma, hue)


def circular_hue_distance(hue1: float, hue2: float) -> float:
    """Compute minimum angular distance between two hues (0-180)."""
    diff = abs(hue1 - hue2) % 360
    return min(diff, 360 - diff)


# =============================================================================
# Contrast
# =============================================================================

def relative_luminance(hex_color: str) -> float:
    """WCAG relative luminance of a hex color."""
    def channel(value):
        value = value / 255.0
        return value / 12.92 if value <= 0.03928 else ((value + 0.055) / 1.055) ** 2.4

    r, g, b = parse_hex(hex_color)
    return 0.2126 * channel(r) + 0.7152 * channel(g) + 0.0722 * channel(b)


def contrast_ratio(foreground: str, background: str) -> float:
    """WCAG contrast ratio between two hex colors (1.0 - 21.0)."""
    l1 = relative_luminance(foreground)
    l2 = relative_luminance(background)
    lighter, darker = max(l1, l2), min(l1, l2)
    return (lighter + 0.05) / (darker + 0.05)


def wcag_level(ratio: float) -> str:
    if ratio >= AAA_CONTRAST:
        return "AAA"
    elif ratio >= AA_CONTRAST:
        return "AA"
    elif ratio >= AA_LARGE_CONTRAST:
        return "AA-large"
    return "fail"


# =============================================================================
# Naming
# =============================================================================

def describe_color(color: PerceptualColor) -> str:
    """Generate a descriptive name from OKLCH coordinates."""
    L, chroma, hue = color.l, color.c, color.h

    # Neutral colors
    if chroma < 0.03:
        if L < 0.2:
            return "Near-Black"
        elif L < 0.4:
            return "Dark Gray"
        elif L < 0.7:
            return "Gray"
        elif L < 0.9:
            return "Light Gray"
        else:
            return "Near-White"

    if hue < 40 or hue >= 345:
        hue_name = "Red"
    elif hue < 75:
        hue_name = "Orange"
    elif hue < 115:
        hue_name = "Yellow"
    elif hue < 165:
        hue_name = "Green"
    elif hue < 220:
        hue_name = "Cyan"
    elif hue < 285:
        hue_name = "Blue"
    else:
        hue_name = "Purple"

    if L < 0.3:
        lightness_mod = "Deep "
    elif L < 0.5:
        lightness_mod = "Dark "
    elif L < 0.7:
        lightness_mod = ""
    elif L < 0.85:
        lightness_mod = "Light "
    else:
        lightness_mod = "Pale "

    if chroma < 0.06:
        chroma_mod = "Grayish "
    elif chroma < 0.1:
        chroma_mod = "Muted "
    elif chroma > 0.2:
        chroma_mod = "Vivid "
    else:
        chroma_mod = ""

    return f"{lightness_mod}{chroma_mod}{hue_name}".strip()
