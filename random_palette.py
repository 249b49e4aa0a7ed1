#!/usr/bin/env python3
"""
Generate random, mutually distinct palette colors under a bias profile.

Candidates are drawn in OKLCH within perceptual bounds and rejected when
they fall within MIN_DISTINCT_DELTA (CIEDE2000) of an existing color.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from color_space import PerceptualColor, distance, from_hex, to_hex
from palette_errors import InvalidColorFormat, InvalidOptions


logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 60
MIN_DISTINCT_DELTA = 4.5
LIGHTNESS_RANGE = (0.32, 0.75)
CONTRAST_LIGHTNESS_RANGE = (0.18, 0.82)
CHROMA_RANGE = (0.08, 0.28)
MUTED_FACTOR = 0.65


@dataclass(frozen=True)
class BiasProfile:
    """Steers hue range, chroma scale and lightness spread of random colors."""
    hue_range: tuple = (0.0, 360.0)
    chroma_scale: float = 1.0
    muted: bool = False
    high_contrast: bool = False


BIAS_PROFILES = {
    'none': BiasProfile(),
    'warmer': BiasProfile(hue_range=(10.0, 80.0)),
    'cooler': BiasProfile(hue_range=(190.0, 260.0)),
    'muted': BiasProfile(chroma_scale=0.8, muted=True),
    'contrast': BiasProfile(high_contrast=True),
}


@dataclass(frozen=True)
class RandomColor:
    hex: str
    color: PerceptualColor

    def to_dict(self) -> dict:
        return {'hex': self.hex, 'oklch': self.color.as_list()}


def get_bias_profile(bias: str) -> BiasProfile:
    try:
        return BIAS_PROFILES[bias]
    except (KeyError, TypeError):
        raise InvalidOptions(
            f"Unknown bias {bias!r}; expected one of {', '.join(BIAS_PROFILES)}"
        ) from None


def generate_candidate(profile: BiasProfile, index: int, total: int, rng: np.random.Generator) -> PerceptualColor:
    """Draw one candidate: hue, then lightness (unless spread), then chroma."""
    hue = rng.uniform(*profile.hue_range)

    if profile.high_contrast:
        # Spread dark-to-light across the batch
        t = index / max(1, total - 1)
        low, high = CONTRAST_LIGHTNESS_RANGE
        lightness = low + (high - low) * t
    else:
        lightness = rng.uniform(*LIGHTNESS_RANGE)

    chroma = rng.uniform(*CHROMA_RANGE) * profile.chroma_scale
    if profile.muted:
        chroma *= MUTED_FACTOR

    return PerceptualColor(lightness, chroma, hue)


def parse_existing(existing) -> list:
    """OKLCH colors for the valid hex strings in existing; invalid ones are skipped."""
    colors = []
    for value in existing:
        try:
            colors.append(from_hex(value))
        except InvalidColorFormat:
            logger.debug("Skipping invalid existing color %r", value)
    return colors


def create_random_color(existing, bias: str = 'none', index: int = 0, total: int = 5,
                        rng: Optional[np.random.Generator] = None) -> RandomColor:
    """
    Create one random color distinct from existing colors.

    Args:
        existing: Hex colors to stay distinct from
        bias: Bias profile name (none/warmer/cooler/muted/contrast)
        index: Position of this color within the batch
        total: Batch size
        rng: numpy Generator; a fresh default_rng() when omitted

    Returns:
        RandomColor. After MAX_ATTEMPTS rejections, one more candidate is
        returned without checking distinctness.
    """
    profile = get_bias_profile(bias)
    rng = rng if rng is not None else np.random.default_rng()
    existing_colors = parse_existing(existing)

    for _ in range(MAX_ATTEMPTS):
        candidate = generate_candidate(profile, index, total, rng)
        if all(distance(color, candidate) > MIN_DISTINCT_DELTA for color in existing_colors):
            return RandomColor(to_hex(candidate), candidate)

    logger.debug("No distinct candidate after %d attempts; using fallback", MAX_ATTEMPTS)
    fallback = generate_candidate(profile, index, total, rng)
    return RandomColor(to_hex(fallback), fallback)


def generate_random_palette(count: int = 5, bias: str = 'none', existing=(),
                            rng: Optional[np.random.Generator] = None) -> list:
    """Generate count colors, each distinct from existing and from earlier ones."""
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidOptions(f"'count' must be a positive integer, got {count!r}")
    rng = rng if rng is not None else np.random.default_rng()

    taken = list(existing)
    colors = []
    for index in range(count):
        color = create_random_color(taken, bias, index, count, rng)
        colors.append(color)
        taken.append(color.hex)
    return colors


def main():
    import argparse
    import json
    import sys

    parser = argparse.ArgumentParser(
        description='Generate a random palette of distinct colors.'
    )
    parser.add_argument('--count', '-n', type=int, default=5, help='Number of colors (default 5)')
    parser.add_argument(
        '--bias', '-b',
        choices=sorted(BIAS_PROFILES),
        default='none',
        help='Bias profile'
    )
    parser.add_argument(
        '--existing', '-e',
        nargs='*',
        default=[],
        help='Hex colors the new colors must stay distinct from'
    )
    parser.add_argument('--seed', type=int, default=None, help='Random seed')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s:%(name)s:%(message)s")

    try:
        colors = generate_random_palette(args.count, args.bias, args.existing,
                                         np.random.default_rng(args.seed))
    except InvalidOptions as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    print(json.dumps([c.to_dict() for c in colors], indent=2))


if __name__ == '__main__':
    main()
