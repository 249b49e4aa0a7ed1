#!/usr/bin/env python3
"""
Cluster weighted OKLCH samples into a ranked list of swatches.

K-means runs in the Cartesian (L, u, v) projection of OKLCH so that hue
wraps correctly. Near-duplicate centroids (CIEDE2000 below DEDUP_THRESHOLD)
are merged, so the output can hold fewer swatches than requested.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.spatial.distance import cdist
from sklearn.cluster import kmeans_plusplus
from sklearn.utils import check_random_state

from color_space import (
    PerceptualColor, describe_color, distance, from_cartesian, from_hex,
    normalize_hex, to_cartesian, to_hex,
)
from palette_errors import ClusteringDegenerate, EmptyInput, InvalidOptions, require_number


logger = logging.getLogger(__name__)

MIN_CLUSTERS = 3
MAX_CLUSTERS = 8
MAX_SWATCHES = 8
MAX_ITERATIONS = 64
CONVERGENCE_TOLERANCE = 1e-7  # max centroid shift in (L, u, v) units
DEDUP_THRESHOLD = 3.0  # CIEDE2000
MAX_REPEATS = 8  # cap on weight-proportional repetition per sample


@dataclass(frozen=True)
class Swatch:
    """A representative color with its share of the sampled weight."""
    color: PerceptualColor
    hex: str
    share: float
    label: Optional[str] = None

    @classmethod
    def from_color(cls, color: PerceptualColor, share: float, label: Optional[str] = None) -> 'Swatch':
        return cls(color=color, hex=to_hex(color), share=share, label=label)

    @classmethod
    def from_mapping(cls, mapping) -> 'Swatch':
        """
        Validate an externally supplied swatch ({hex, oklch?, share?, label?}).

        The OKLCH triple is recomputed from the hex value when absent.

        Raises:
            InvalidColorFormat: If hex is missing or malformed
            InvalidOptions: If any other field has the wrong type
        """
        if not isinstance(mapping, Mapping):
            raise InvalidOptions(f"Swatch must be an object, got {mapping!r}")

        hex_value = normalize_hex(mapping.get('hex'))

        oklch = mapping.get('oklch')
        if oklch is None:
            color = from_hex(hex_value)
        else:
            if isinstance(oklch, (str, bytes)) or not isinstance(oklch, Sequence) or len(oklch) != 3:
                raise InvalidOptions(f"'oklch' must be a [l, c, h] triple, got {oklch!r}")
            color = PerceptualColor(*(require_number(v, 'oklch') for v in oklch))

        share = require_number(mapping.get('share', 0.0), 'share')
        if not 0.0 <= share <= 1.0:
            raise InvalidOptions(f"'share' must be between 0 and 1, got {share!r}")

        label = mapping.get('label')
        if label is not None and not isinstance(label, str):
            raise InvalidOptions(f"'label' must be a string, got {label!r}")

        return cls(color=color, hex=hex_value, share=share, label=label)

    def to_dict(self) -> dict:
        result = {
            'hex': self.hex,
            'oklch': self.color.as_list(),
            'share': self.share,
        }
        if self.label is not None:
            result['label'] = self.label
        return result


def clamp_cluster_count(color_count: int) -> int:
    return min(max(int(color_count), MIN_CLUSTERS), MAX_CLUSTERS)


def weighted_kmeans(points: np.ndarray, weights: np.ndarray, k: int, random_state=None) -> tuple:
    """
    Weighted k-means with k-means++ seeding and bounded Lloyd iterations.

    Returns:
        Tuple of (centroids, labels), centroids of shape (k, 3)
    """
    rng = check_random_state(random_state)
    centroids, _ = kmeans_plusplus(points, n_clusters=k, sample_weight=weights, random_state=rng)

    for iteration in range(MAX_ITERATIONS):
        labels = cdist(points, centroids, 'sqeuclidean').argmin(axis=1)

        updated = centroids.copy()
        for j in range(k):
            members = labels == j
            # Empty clusters keep their previous centroid
            if members.any():
                updated[j] = np.average(points[members], axis=0, weights=weights[members])

        shift = np.abs(updated - centroids).max()
        centroids = updated
        if shift < CONVERGENCE_TOLERANCE:
            logger.debug("k-means converged after %d iterations", iteration + 1)
            break

    labels = cdist(points, centroids, 'sqeuclidean').argmin(axis=1)
    return centroids, labels


def circular_mean(hues: Sequence, weights: Sequence) -> float:
    """Weighted circular mean of hue angles in degrees."""
    sin_sum = sum(w * math.sin(math.radians(h)) for h, w in zip(hues, weights))
    cos_sum = sum(w * math.cos(math.radians(h)) for h, w in zip(hues, weights))
    return math.degrees(math.atan2(sin_sum, cos_sum)) % 360


def merge_colors(a: PerceptualColor, weight_a: float, b: PerceptualColor, weight_b: float) -> PerceptualColor:
    """Weight-average two colors; hue uses the circular mean."""
    total = weight_a + weight_b
    return PerceptualColor(
        (a.l * weight_a + b.l * weight_b) / total,
        (a.c * weight_a + b.c * weight_b) / total,
        circular_mean([a.h, b.h], [weight_a, weight_b]),
    )


def deduplicate(centroids: list, threshold: float = DEDUP_THRESHOLD) -> list:
    """
    Merge centroids closer than threshold, scanning in descending weight.

    Args:
        centroids: List of (PerceptualColor, weight), sorted by weight descending

    Returns:
        List of [PerceptualColor, weight] entries, distinct at threshold
    """
    kept = []
    for color, weight in centroids:
        for entry in kept:
            if distance(entry[0], color) < threshold:
                entry[0] = merge_colors(entry[0], entry[1], color, weight)
                entry[1] += weight
                break
        else:
            kept.append([color, weight])
    return kept


def cluster_samples(samples: list, color_count: int, random_state=None) -> list:
    """
    Group weighted samples into at most MAX_SWATCHES ranked swatches.

    Args:
        samples: List of WeightedSample
        color_count: Requested cluster count, clamped to [3, 8]
        random_state: Seed or RandomState for k-means++ seeding

    Returns:
        List of Swatch sorted by share descending; shares sum to 1.0

    Raises:
        EmptyInput: If samples is empty
        ClusteringDegenerate: If no clusters survive
    """
    if not samples:
        raise EmptyInput()

    points = np.array([to_cartesian(s.color) for s in samples], dtype=np.float64)
    raw_weights = np.array([s.weight for s in samples], dtype=np.float64)

    # Weight-proportional repetition, applied as a multiplicity rather than copies
    repeats = np.clip(np.round(raw_weights * 2), 1, MAX_REPEATS)
    credited = raw_weights * repeats

    k = min(clamp_cluster_count(color_count), len(points))
    centroids, labels = weighted_kmeans(points, repeats, k, random_state)
    centroid_weights = np.bincount(labels, weights=credited, minlength=k)

    ranked = [
        (from_cartesian(*centroid), float(weight))
        for centroid, weight in zip(centroids, centroid_weights)
        if weight > 0
    ]
    ranked.sort(key=lambda entry: -entry[1])

    kept = deduplicate(ranked)[:MAX_SWATCHES]
    if not kept:
        logger.error("Clustering %d samples into %d clusters produced no centroids", len(samples), k)
        raise ClusteringDegenerate()

    total_weight = sum(weight for _, weight in kept)
    swatches = [
        Swatch.from_color(color, weight / total_weight, describe_color(color))
        for color, weight in kept
    ]
    swatches.sort(key=lambda s: -s.share)

    logger.debug("Clustered %d samples into %d swatches (k=%d)", len(samples), len(swatches), k)
    return swatches
