#!/usr/bin/env python3
"""
Synthesize a design-token color system from ranked swatches.

Picks primary/secondary/accent roles by lightness, chroma and hue heuristics,
derives an 11-step neutral ramp tinted by the primary, assigns text and
surface colors from the ramp, and optionally nudges text colors until they
reach WCAG AA contrast against the surface they are drawn on.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Optional

from color_space import (
    AA_CONTRAST, PerceptualColor, adjust, circular_hue_distance, contrast_ratio,
    describe_color, from_hex, normalize_hex, to_hex,
)
from cluster_colors import Swatch
from palette_errors import InvalidOptions, NoSwatches, require_number


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

FALLBACK_SUCCESS = "#3BB273"
FALLBACK_WARNING = "#F5A623"
FALLBACK_ERROR = "#D0021B"
OUTLINE = "rgba(15,17,23,0.12)"

# Used when the neutral ramp is shorter than expected
FALLBACK_TEXT_PRIMARY = "#111827"
FALLBACK_TEXT_MUTED = "#6B7280"
FALLBACK_TEXT_INVERTED = "#F9FAFB"
FALLBACK_SURFACE_BASE = "#FFFFFF"
FALLBACK_SURFACE_RAISED = "#F5F7FA"
FALLBACK_SURFACE_SUNKEN = "#E5E7EB"

# Role selection
PRIMARY_LIGHTNESS_RANGE = (0.45, 0.75)
PRIMARY_MAX_CHROMA = 0.25
PRIMARY_TARGET_LIGHTNESS = 0.6
SECONDARY_MIN_HUE_DELTA = 25.0
ACCENT_MIN_HUE_DELTA = 45.0

# Neutral ramp
NEUTRAL_STEPS = 11
NEUTRAL_MIN_LIGHTNESS = 0.03
NEUTRAL_MAX_LIGHTNESS = 0.97
NEUTRAL_CHROMA_SCALE = 0.2
NEUTRAL_MAX_CHROMA = 0.06

# Ramp indices for text and surfaces
TEXT_PRIMARY_INDEX = 1
TEXT_MUTED_INDEX = 4
TEXT_INVERTED_INDEX = 9
SURFACE_BASE_INDEX = 10
SURFACE_RAISED_INDEX = 9
SURFACE_SUNKEN_INDEX = 7
SURFACE_INVERSE_INDEX = 1  # dark background inverted text sits on

# Contrast search
AA_SEARCH_STEPS = 10
AA_LIGHTNESS_STEP = 0.01


# =============================================================================
# Data Types
# =============================================================================

@dataclass(frozen=True)
class TextColors:
    primary: str
    muted: str
    inverted: str


@dataclass(frozen=True)
class SurfaceColors:
    base: str
    raised: str
    sunken: str


@dataclass(frozen=True)
class Tokens:
    """The synthesized color system."""
    primary: str
    secondary: str
    accent: str
    success: str
    warning: str
    error: str
    neutral: tuple  # NEUTRAL_STEPS hex values, darkest first
    text: TextColors
    surface: SurfaceColors
    outline: str

    def to_dict(self) -> dict:
        return {
            'primary': self.primary,
            'secondary': self.secondary,
            'accent': self.accent,
            'success': self.success,
            'warning': self.warning,
            'error': self.error,
            'neutral': list(self.neutral),
            'text': {
                'primary': self.text.primary,
                'muted': self.text.muted,
                'inverted': self.text.inverted,
            },
            'surface': {
                'base': self.surface.base,
                'raised': self.surface.raised,
                'sunken': self.surface.sunken,
            },
            'outline': self.outline,
        }


@dataclass(frozen=True)
class SystemPalette:
    """Tokens plus narrative, and the swatches they were built from."""
    tokens: Tokens
    narrative: str
    swatches: tuple = field(default=())

    def to_dict(self) -> dict:
        return {'tokens': self.tokens.to_dict(), 'narrative': self.narrative}


@dataclass(frozen=True)
class PaletteAdjustment:
    """User deltas applied to every swatch before regeneration."""
    warmth: float = 0.0  # x10 degrees of hue
    contrast: float = 0.0  # x0.05 lightness
    mute: float = 0.0  # magnitude x0.08 chroma reduction

    @classmethod
    def from_mapping(cls, mapping) -> 'PaletteAdjustment':
        if mapping is None:
            return cls()
        if not isinstance(mapping, Mapping):
            raise InvalidOptions(f"'adjust' must be an object, got {mapping!r}")
        unknown = set(mapping) - {'warmth', 'contrast', 'mute'}
        if unknown:
            raise InvalidOptions(f"Unknown adjustment keys: {', '.join(sorted(unknown))}")
        return cls(**{key: require_number(value, key) for key, value in mapping.items()})

    def apply(self, color: PerceptualColor) -> PerceptualColor:
        return adjust(
            color,
            dl=self.contrast * 0.05,
            dc=-abs(self.mute) * 0.08,
            dh=self.warmth * 10,
        )


# =============================================================================
# Role Selection
# =============================================================================

def pick_swatch(swatches: list, predicate, scorer) -> Swatch:
    """Highest-scoring swatch passing predicate, or of all swatches if none pass."""
    candidates = [s for s in swatches if predicate(s)] or swatches
    # max() keeps the first of equal scores
    return max(candidates, key=scorer)


def select_primary(swatches: list) -> Swatch:
    low, high = PRIMARY_LIGHTNESS_RANGE
    return pick_swatch(
        swatches,
        lambda s: low <= s.color.l <= high and s.color.c <= PRIMARY_MAX_CHROMA,
        lambda s: s.share - abs(s.color.l - PRIMARY_TARGET_LIGHTNESS),
    )


def select_secondary(swatches: list, primary: Swatch) -> Swatch:
    return pick_swatch(
        swatches,
        lambda s: circular_hue_distance(s.color.h, primary.color.h) > SECONDARY_MIN_HUE_DELTA,
        lambda s: s.share - abs(s.color.c - primary.color.c),
    )


def select_accent(swatches: list, primary: Swatch) -> Swatch:
    return pick_swatch(
        swatches,
        lambda s: circular_hue_distance(s.color.h, primary.color.h) > ACCENT_MIN_HUE_DELTA,
        lambda s: s.color.c,
    )


# =============================================================================
# Neutrals and Contrast
# =============================================================================

def build_neutral_ramp(primary: Swatch) -> list:
    """NEUTRAL_STEPS low-chroma colors tinted by the primary hue, darkest first."""
    base = from_hex(primary.hex)
    chroma = max(0.0, min(NEUTRAL_MAX_CHROMA, base.c * NEUTRAL_CHROMA_SCALE))
    span = NEUTRAL_MAX_LIGHTNESS - NEUTRAL_MIN_LIGHTNESS
    return [
        to_hex(PerceptualColor(NEUTRAL_MIN_LIGHTNESS + (step / (NEUTRAL_STEPS - 1)) * span, chroma, base.h))
        for step in range(NEUTRAL_STEPS)
    ]


def ramp_color(ramp: list, index: int, fallback: str) -> str:
    return ramp[index] if index < len(ramp) else fallback


def ensure_aa(foreground: str, background: str) -> str:
    """
    Nudge foreground lightness until it reaches AA contrast on background.

    Tries darker before lighter at each step, up to AA_SEARCH_STEPS steps of
    AA_LIGHTNESS_STEP. Returns foreground unchanged if no step succeeds.
    """
    if contrast_ratio(foreground, background) >= AA_CONTRAST:
        return foreground

    color = from_hex(foreground)
    for step in range(1, AA_SEARCH_STEPS + 1):
        delta = step * AA_LIGHTNESS_STEP
        darker = to_hex(adjust(color, dl=-delta))
        if contrast_ratio(darker, background) >= AA_CONTRAST:
            return darker
        lighter = to_hex(adjust(color, dl=delta))
        if contrast_ratio(lighter, background) >= AA_CONTRAST:
            return lighter

    logger.debug("No AA adjustment found for %s on %s", foreground, background)
    return foreground


def inverse_surface(tokens: Tokens) -> str:
    """The dark background that inverted text is drawn on."""
    return ramp_color(list(tokens.neutral), SURFACE_INVERSE_INDEX, FALLBACK_TEXT_PRIMARY)


def text_surface_pairs(tokens: Tokens) -> list:
    """(name, text color, surface color) for every contrast-enforced pair."""
    return [
        ('primary', tokens.text.primary, tokens.surface.base),
        ('muted', tokens.text.muted, tokens.surface.base),
        ('inverted', tokens.text.inverted, inverse_surface(tokens)),
    ]


def enforce_text_contrast(tokens: Tokens) -> Tokens:
    adjusted = {name: ensure_aa(fg, bg) for name, fg, bg in text_surface_pairs(tokens)}
    return replace(tokens, text=TextColors(**adjusted))


# =============================================================================
# Synthesis
# =============================================================================

def build_system_palette(swatches: list, require_aa: bool = True) -> SystemPalette:
    """
    Build Tokens and a narrative from ranked swatches.

    Raises:
        NoSwatches: If swatches is empty
    """
    if not swatches:
        raise NoSwatches()

    primary = select_primary(swatches)
    secondary = select_secondary(swatches, primary)
    accent = select_accent(swatches, primary)

    neutral = build_neutral_ramp(primary)
    tokens = Tokens(
        primary=primary.hex,
        secondary=secondary.hex,
        accent=accent.hex,
        success=FALLBACK_SUCCESS,
        warning=FALLBACK_WARNING,
        error=FALLBACK_ERROR,
        neutral=tuple(neutral),
        text=TextColors(
            primary=ramp_color(neutral, TEXT_PRIMARY_INDEX, FALLBACK_TEXT_PRIMARY),
            muted=ramp_color(neutral, TEXT_MUTED_INDEX, FALLBACK_TEXT_MUTED),
            inverted=ramp_color(neutral, TEXT_INVERTED_INDEX, FALLBACK_TEXT_INVERTED),
        ),
        surface=SurfaceColors(
            base=ramp_color(neutral, SURFACE_BASE_INDEX, FALLBACK_SURFACE_BASE),
            raised=ramp_color(neutral, SURFACE_RAISED_INDEX, FALLBACK_SURFACE_RAISED),
            sunken=ramp_color(neutral, SURFACE_SUNKEN_INDEX, FALLBACK_SURFACE_SUNKEN),
        ),
        outline=OUTLINE,
    )

    if require_aa:
        tokens = enforce_text_contrast(tokens)

    logger.debug("Roles: primary %s, secondary %s, accent %s", primary.hex, secondary.hex, accent.hex)
    narrative = f"Palette grounded in your upload, anchored by {primary.hex} with {tokens.accent} accents."
    return SystemPalette(tokens=tokens, narrative=narrative, swatches=tuple(swatches))


def adjust_swatch(swatch: Swatch, adjustment: PaletteAdjustment) -> Swatch:
    """Shifted copy of swatch; generated labels follow the new color, custom ones are kept."""
    color = adjustment.apply(swatch.color)
    label = swatch.label
    if label is not None and label == describe_color(swatch.color):
        label = describe_color(color)
    return Swatch.from_color(color, swatch.share, label)


def regenerate_from_swatches(swatches: list, adjustment: Optional[PaletteAdjustment] = None,
                             lock_primary: Optional[str] = None, require_aa: bool = True) -> SystemPalette:
    """
    Re-run synthesis on swatches shifted by a PaletteAdjustment.

    Args:
        swatches: Prior swatch list
        adjustment: Warmth/contrast/mute deltas (none by default)
        lock_primary: Hex of a swatch to move to the front before role selection
        require_aa: Enforce AA text contrast

    Returns:
        SystemPalette whose swatches are the adjusted swatches
    """
    if not swatches:
        raise NoSwatches()
    adjustment = adjustment or PaletteAdjustment()

    adjusted = [adjust_swatch(s, adjustment) for s in swatches]

    if lock_primary:
        locked = normalize_hex(lock_primary)
        for index, (original, updated) in enumerate(zip(swatches, adjusted)):
            if locked in (normalize_hex(original.hex), updated.hex):
                adjusted.insert(0, adjusted.pop(index))
                break

    return build_system_palette(adjusted, require_aa)
