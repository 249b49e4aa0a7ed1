#!/usr/bin/env python3
"""
Decode encoded image bytes into a raw RGBA pixel array for sampling.
"""

import base64
import binascii
import io
import logging
import warnings

import numpy as np
from PIL import Image, UnidentifiedImageError

from palette_errors import InvalidImage


logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
MAX_ANALYSIS_SIZE = 600  # longest side after downscaling

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels


def decode_image_bytes(data: bytes, max_bytes: int = MAX_FILE_SIZE,
                       max_dimension: int = MAX_ANALYSIS_SIZE) -> np.ndarray:
    """
    Decode image bytes and downscale to fit max_dimension on both sides.

    Args:
        data: Encoded image (PNG, JPEG, WebP, GIF, ...)
        max_bytes: Reject inputs larger than this
        max_dimension: Longest side of the returned array; never enlarges

    Returns:
        uint8 array of shape (height, width, 4)

    Raises:
        InvalidImage: If data is empty, too large, or not a decodable image
    """
    if not data:
        raise InvalidImage("Image data is empty.")
    if len(data) > max_bytes:
        raise InvalidImage(f"Image exceeds the {max_bytes // (1024 * 1024)}MB limit.")

    try:
        with warnings.catch_warnings():
            warnings.simplefilter('error', Image.DecompressionBombWarning)
            img = Image.open(io.BytesIO(data))
            width, height = img.size
            if width * height > MAX_IMAGE_PIXELS:
                raise InvalidImage(
                    f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
                )
            img.draft('RGB', (max_dimension, max_dimension))
            img = img.convert('RGBA')
            img.thumbnail((max_dimension, max_dimension))
    except InvalidImage:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError, Image.DecompressionBombWarning) as e:
        raise InvalidImage(f"Could not open image: {e}") from e
    except (OSError, ValueError, SyntaxError) as e:
        raise InvalidImage(f"Could not decode image: {e}") from e

    pixels = np.asarray(img, dtype=np.uint8)
    logger.debug("Decoded %dx%d image to %dx%d", width, height, pixels.shape[1], pixels.shape[0])
    return pixels


def decode_base64_image(payload: str, max_bytes: int = MAX_FILE_SIZE) -> np.ndarray:
    """Decode a base64 string or data: URL into an RGBA pixel array."""
    if not isinstance(payload, str) or not payload:
        raise InvalidImage("Please provide a base64 encoded image.")

    comma = payload.find(',')
    encoded = payload[comma + 1:] if comma >= 0 else payload
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImage(f"Invalid base64 image data: {e}") from e

    return decode_image_bytes(data, max_bytes=max_bytes)
