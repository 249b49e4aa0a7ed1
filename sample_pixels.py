#!/usr/bin/env python3
"""
Weighted pixel sampling from a decoded raw pixel buffer.

Inspects roughly TARGET_SAMPLE_COUNT pixels regardless of resolution, drops
near-transparent (and optionally near-black/near-white) pixels, and weights
the rest by proximity to the image center. Skin tones can be discounted so
portraits do not hand their palette to the subject's face.
"""

import logging
from dataclasses import dataclass

import numpy as np

from color_space import PerceptualColor, srgb_to_oklch
from palette_errors import EmptyInput, InvalidImage


logger = logging.getLogger(__name__)

TARGET_SAMPLE_COUNT = 5000
ALPHA_FLOOR = 32  # alpha below this counts as transparent


@dataclass(frozen=True)
class SamplerConfig:
    """Filtering and weighting thresholds for sample_pixels()."""
    target_samples: int = TARGET_SAMPLE_COUNT
    alpha_floor: int = ALPHA_FLOOR
    min_lightness: float = 0.08  # near-black cutoff when ignoring extremes
    max_lightness: float = 0.92  # near-white cutoff when ignoring extremes
    skin_lightness: tuple = (0.2, 0.8)
    skin_hue: tuple = (25.0, 70.0)
    skin_tone_discount: float = 0.35


DEFAULT_SAMPLER_CONFIG = SamplerConfig()


@dataclass(frozen=True)
class WeightedSample:
    """One retained pixel: its color and sampling importance."""
    color: PerceptualColor
    weight: float


def skin_tone_mask(lch: np.ndarray, config: SamplerConfig = DEFAULT_SAMPLER_CONFIG) -> np.ndarray:
    """Boolean mask of OKLCH rows inside the skin-tone lightness/hue band."""
    l_low, l_high = config.skin_lightness
    h_low, h_high = config.skin_hue
    return ((lch[:, 0] >= l_low) & (lch[:, 0] <= l_high)
            & (lch[:, 2] >= h_low) & (lch[:, 2] <= h_high))


def to_rgba(pixels: np.ndarray) -> np.ndarray:
    """Normalize a (h, w, channels) buffer to RGBA uint8."""
    pixels = np.asarray(pixels)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    if pixels.ndim != 3 or pixels.shape[2] not in (1, 2, 3, 4):
        raise InvalidImage(f"Expected a (height, width, 1-4 channels) pixel buffer, got shape {pixels.shape}")

    if pixels.dtype != np.uint8:
        raise InvalidImage(f"Expected 8-bit channels, got dtype {pixels.dtype}")

    h, w, channels = pixels.shape
    opaque = np.full((h, w, 1), 255, dtype=np.uint8)

    if channels == 1:
        return np.concatenate([pixels, pixels, pixels, opaque], axis=2)
    if channels == 2:
        gray, alpha = pixels[:, :, :1], pixels[:, :, 1:]
        return np.concatenate([gray, gray, gray, alpha], axis=2)
    if channels == 3:
        return np.concatenate([pixels, opaque], axis=2)
    return pixels


def sample_pixels(pixels: np.ndarray, ignore_extremes: bool = True, skin_tone_guard: bool = True,
                  config: SamplerConfig = DEFAULT_SAMPLER_CONFIG) -> list:
    """
    Emit weighted OKLCH samples from a raw pixel buffer.

    Args:
        pixels: Array of shape (height, width, channels), channels 1-4
        ignore_extremes: Drop near-black and near-white pixels
        skin_tone_guard: Discount the weight of skin-tone pixels
        config: Sampling thresholds

    Returns:
        List of WeightedSample, possibly empty.
    """
    rgba = to_rgba(pixels)
    h, w = rgba.shape[:2]
    total_pixels = h * w
    if total_pixels == 0:
        return []

    stride = max(1, total_pixels // config.target_samples)
    indices = np.arange(0, total_pixels, stride)
    flat = rgba.reshape(-1, 4)[indices]

    keep = flat[:, 3] >= config.alpha_floor
    indices = indices[keep]
    lch = srgb_to_oklch(flat[keep, :3])

    if ignore_extremes:
        in_range = (lch[:, 0] >= config.min_lightness) & (lch[:, 0] <= config.max_lightness)
        indices = indices[in_range]
        lch = lch[in_range]

    # Center bias: 2.0 at the center, 1.0 at the corners
    x = indices % w
    y = indices // w
    center_x, center_y = w / 2, h / 2
    max_distance = np.hypot(center_x, center_y)
    dist = np.hypot(x - center_x, y - center_y)
    weights = 1 + np.maximum(0, 1 - dist / max_distance)

    if skin_tone_guard:
        skin = skin_tone_mask(lch, config)
        weights = np.where(skin, weights * config.skin_tone_discount, weights)

    samples = [
        WeightedSample(PerceptualColor(*row), float(weight))
        for row, weight in zip(lch, weights)
    ]
    logger.debug("Sampled %d of %d pixels (stride %d, %d inspected)",
                 len(samples), total_pixels, stride, len(flat))
    return samples


def sample_or_raise(pixels: np.ndarray, ignore_extremes: bool = True, skin_tone_guard: bool = True,
                    config: SamplerConfig = DEFAULT_SAMPLER_CONFIG) -> list:
    """Like sample_pixels(), but an empty result raises EmptyInput."""
    samples = sample_pixels(pixels, ignore_extremes, skin_tone_guard, config)
    if not samples:
        raise EmptyInput()
    return samples
