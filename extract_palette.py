#!/usr/bin/env python3
"""
End-to-end palette extraction pipeline.

Three stages: Sampling → Clustering → Synthesis. Takes a decoded pixel
buffer (or encoded image bytes) and returns ranked swatches plus a
suggested token system, in the JSON shape served to clients:

    {"swatches": [...], "suggested": {"tokens": {...}, "narrative": "..."}}
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from build_palette import PaletteAdjustment, SystemPalette, build_system_palette, regenerate_from_swatches
from cluster_colors import MAX_CLUSTERS, MIN_CLUSTERS, Swatch, cluster_samples
from decode_image import decode_image_bytes
from palette_errors import InvalidOptions, NoSwatches, PaletteError, require_bool, require_number
from sample_pixels import DEFAULT_SAMPLER_CONFIG, SamplerConfig, sample_or_raise


logger = logging.getLogger(__name__)

DEFAULT_COLOR_COUNT = 5

# Request keys are camelCase; snake_case is accepted too
OPTION_KEYS = {
    'colorCount': 'color_count',
    'color_count': 'color_count',
    'ignoreExtremes': 'ignore_extremes',
    'ignore_extremes': 'ignore_extremes',
    'skinToneGuard': 'skin_tone_guard',
    'skin_tone_guard': 'skin_tone_guard',
    'requireAA': 'require_aa',
    'require_aa': 'require_aa',
}


# =============================================================================
# Options
# =============================================================================

@dataclass(frozen=True)
class ExtractorOptions:
    """Validated extraction options."""
    color_count: int = DEFAULT_COLOR_COUNT
    ignore_extremes: bool = True
    skin_tone_guard: bool = True
    require_aa: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'color_count', min(max(int(self.color_count), MIN_CLUSTERS), MAX_CLUSTERS))

    @classmethod
    def from_mapping(cls, mapping) -> 'ExtractorOptions':
        """
        Build options from a request mapping, applying defaults.

        Raises:
            InvalidOptions: On unknown keys or wrongly-typed values
        """
        if mapping is None:
            return cls()
        if not isinstance(mapping, Mapping):
            raise InvalidOptions(f"'options' must be an object, got {mapping!r}")

        values = {}
        for key, value in mapping.items():
            field_name = OPTION_KEYS.get(key)
            if field_name is None:
                raise InvalidOptions(f"Unknown option: {key!r}")
            if field_name == 'color_count':
                count = require_number(value, key)
                if count != int(count):
                    raise InvalidOptions(f"'{key}' must be an integer, got {value!r}")
                values[field_name] = int(count)
            else:
                values[field_name] = require_bool(value, key)
        return cls(**values)


# =============================================================================
# Pipeline
# =============================================================================

@dataclass(frozen=True)
class ExtractionResult:
    swatches: tuple
    suggested: SystemPalette

    def to_dict(self) -> dict:
        return {
            'swatches': [s.to_dict() for s in self.swatches],
            'suggested': self.suggested.to_dict(),
        }


def extract_palette(pixels: np.ndarray, options: ExtractorOptions = ExtractorOptions(),
                    random_state=None, sampler_config: SamplerConfig = DEFAULT_SAMPLER_CONFIG) -> ExtractionResult:
    """
    Run the pipeline on a decoded pixel buffer.

    Args:
        pixels: Array of shape (height, width, channels)
        options: Extraction options
        random_state: Seed for k-means++ seeding
        sampler_config: Sampling thresholds

    Raises:
        EmptyInput: If no pixels survive sampling
        ClusteringDegenerate: If clustering yields nothing
    """
    # Stage 1: Sampling
    samples = sample_or_raise(pixels, options.ignore_extremes, options.skin_tone_guard, sampler_config)

    # Stage 2: Clustering
    swatches = cluster_samples(samples, options.color_count, random_state)

    # Stage 3: Synthesis
    suggested = build_system_palette(swatches, options.require_aa)

    logger.info("Extracted %d swatches from %d samples; primary %s",
                len(swatches), len(samples), suggested.tokens.primary)
    return ExtractionResult(swatches=tuple(swatches), suggested=suggested)


def extract_palette_from_bytes(data: bytes, options: ExtractorOptions = ExtractorOptions(),
                               random_state=None) -> ExtractionResult:
    """Decode image bytes, then run extract_palette()."""
    return extract_palette(decode_image_bytes(data), options, random_state)


def regenerate_palette(payload) -> SystemPalette:
    """
    Validate a regeneration request and rebuild the palette.

    Args:
        payload: Mapping with 'swatches', and optionally 'adjust',
            'lockPrimary' and 'options'

    Raises:
        NoSwatches: If swatches are missing or empty
        InvalidOptions, InvalidColorFormat: On malformed fields
    """
    if not isinstance(payload, Mapping):
        raise InvalidOptions(f"Request must be an object, got {payload!r}")

    raw_swatches = payload.get('swatches')
    if isinstance(raw_swatches, (str, bytes)) or not isinstance(raw_swatches, Sequence) or not raw_swatches:
        raise NoSwatches("Swatches are required.")
    swatches = [Swatch.from_mapping(item) for item in raw_swatches]

    adjustment = PaletteAdjustment.from_mapping(payload.get('adjust'))
    lock_primary = payload.get('lockPrimary')
    if lock_primary is not None and not isinstance(lock_primary, str):
        raise InvalidOptions(f"'lockPrimary' must be a hex string, got {lock_primary!r}")
    options = ExtractorOptions.from_mapping(payload.get('options'))

    return regenerate_from_swatches(swatches, adjustment, lock_primary or None, options.require_aa)


# =============================================================================
# CLI
# =============================================================================

def add_extraction_arguments(parser) -> None:
    """Options shared by the single-image and batch CLIs."""
    parser.add_argument(
        '--colors', '-n',
        type=int,
        default=DEFAULT_COLOR_COUNT,
        help=f'Number of colors to extract ({MIN_CLUSTERS}-{MAX_CLUSTERS})'
    )
    parser.add_argument('--keep-extremes', action='store_true', help='Keep near-black and near-white pixels')
    parser.add_argument('--no-skin-guard', action='store_true', help='Do not discount skin tones')
    parser.add_argument('--no-aa', action='store_true', help='Skip AA text contrast enforcement')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for clustering')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')


def options_from_args(args) -> ExtractorOptions:
    return ExtractorOptions(
        color_count=args.colors,
        ignore_extremes=not args.keep_extremes,
        skin_tone_guard=not args.no_skin_guard,
        require_aa=not args.no_aa,
    )


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format="%(levelname)s:%(name)s:%(message)s")


def main():
    import argparse
    import json
    import sys
    from pathlib import Path

    parser = argparse.ArgumentParser(
        description='Extract a color palette and token system from an image.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Path to the image file'
    )
    parser.add_argument(
        '--output', '-o',
        default=None,
        help='Write JSON to this path instead of stdout'
    )
    add_extraction_arguments(parser)

    args = parser.parse_args()
    configure_logging(args.verbose)

    image_path = Path(args.input)
    options = options_from_args(args)

    try:
        result = extract_palette_from_bytes(image_path.read_bytes(), options, random_state=args.seed)
    except FileNotFoundError:
        print(f"Error: Image not found: {image_path}", file=sys.stderr)
        sys.exit(1)
    except PaletteError as e:
        print(f"Error analyzing image: {e}", file=sys.stderr)
        sys.exit(1)

    output = json.dumps(result.to_dict(), indent=2)

    if args.output:
        output_path = Path(args.output)
        try:
            output_path.write_text(output)
            print(f"Wrote: {output_path}")
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        print(output)


if __name__ == '__main__':
    main()
