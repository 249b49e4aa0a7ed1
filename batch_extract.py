#!/usr/bin/env python3
"""Batch extract palettes from a directory of images into JSON files."""

import argparse
import json
import sys
import time
from pathlib import Path

from extract_palette import (
    ExtractionResult, ExtractorOptions, add_extraction_arguments, configure_logging,
    extract_palette_from_bytes, options_from_args,
)
from palette_errors import PaletteError


IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.gif'}
OUTPUT_SUFFIX = '-palette.json'


def find_images(directory: Path) -> list:
    """Image files directly inside directory, by extension (any case)."""
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS)


def palette_path(image_path: Path, output_dir: Path) -> Path:
    return output_dir / f"{image_path.stem}{OUTPUT_SUFFIX}"


def extract_to_file(image_path: Path, output_dir: Path, options: ExtractorOptions,
                    random_state=None) -> ExtractionResult:
    """Extract one image and write its palette JSON next to the others."""
    result = extract_palette_from_bytes(image_path.read_bytes(), options, random_state=random_state)
    palette_path(image_path, output_dir).write_text(json.dumps(result.to_dict(), indent=2))
    return result


def main():
    parser = argparse.ArgumentParser(
        description='Batch extract palettes and write one JSON file per image.'
    )
    parser.add_argument('--input', '-i', required=True, help='Directory of images')
    parser.add_argument('--output', '-o', required=True, help=f'Directory for <name>{OUTPUT_SUFFIX} files')
    parser.add_argument('--skip-existing', action='store_true', help='Leave images with an existing palette file alone')
    add_extraction_arguments(parser)

    args = parser.parse_args()
    configure_logging(args.verbose)

    input_dir = Path(args.input)
    output_dir = Path(args.output)
    if not input_dir.is_dir():
        print(f"Error: Input directory not found: {input_dir}", file=sys.stderr)
        sys.exit(2)

    images = find_images(input_dir)
    if not images:
        print(f"No images found in {input_dir}", file=sys.stderr)
        sys.exit(2)
    output_dir.mkdir(parents=True, exist_ok=True)

    options = options_from_args(args)
    failed = {}
    skipped = 0
    started = time.perf_counter()

    for i, image_path in enumerate(images, 1):
        prefix = f"[{i}/{len(images)}] {image_path.name}"
        if args.skip_existing and palette_path(image_path, output_dir).exists():
            print(f"{prefix} → skipped")
            skipped += 1
            continue
        try:
            result = extract_to_file(image_path, output_dir, options, random_state=args.seed)
        except (PaletteError, OSError) as e:
            failed[image_path.name] = f"{type(e).__name__}: {e}"
            print(f"{prefix} → ERROR: {failed[image_path.name]}", file=sys.stderr)
            continue
        tokens = result.suggested.tokens
        print(f"{prefix} → {len(result.swatches)} swatches, primary {tokens.primary}, accent {tokens.accent}")

    extracted = len(images) - skipped - len(failed)
    print()
    print(f"Extracted {extracted}, skipped {skipped}, failed {len(failed)} "
          f"in {time.perf_counter() - started:.2f}s")
    for name, error in failed.items():
        print(f"  - {name}: {error}", file=sys.stderr)
    if failed:
        sys.exit(1)


if __name__ == '__main__':
    main()
