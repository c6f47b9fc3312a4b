"""Slice serialization: RGBA8 PNG blobs named ZSlice_0000.png, ZSlice_0001.png, ..."""

from __future__ import annotations

import logging
import re
import warnings
from typing import Dict, List, Mapping, Optional, Sequence

import imageio.v3 as iio
import numpy as np

from .errors import SliceFormatError

LOGGER = logging.getLogger(__name__)

SLICE_PREFIX = "ZSlice_"
SLICE_SUFFIX = ".png"
INDEX_DIGITS = 4

_SLICE_NAME = re.compile(r"^ZSlice_(\d{4})\.png$")


def slice_name(index: int) -> str:
    if not 0 <= index < 10 ** INDEX_DIGITS:
        raise ValueError(f"Slice index {index} does not fit in {INDEX_DIGITS} digits")
    return f"{SLICE_PREFIX}{index:0{INDEX_DIGITS}d}{SLICE_SUFFIX}"


def parse_slice_name(name: str) -> Optional[int]:
    match = _SLICE_NAME.match(name)
    return int(match.group(1)) if match else None


def quantize(image: np.ndarray) -> np.ndarray:
    """Convert [0, 1] floats to uint8; uint8 input is returned unchanged."""
    img = np.asarray(image)
    if img.dtype == np.uint8:
        return img
    img = np.clip(img.astype(np.float32), 0.0, 1.0)
    return (img * 255.0 + 0.5).astype(np.uint8)


def _ensure_rgba(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        image = image[:, :, None]
    if image.ndim != 3:
        raise SliceFormatError(f"Unsupported slice shape {image.shape}")
    channels = image.shape[2]
    if channels == 4:
        return image
    if channels == 1:
        rgb = np.repeat(image, 3, axis=2)
    elif channels == 3:
        rgb = image
    else:
        raise SliceFormatError(f"Unsupported channel count {channels}")
    alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([rgb, alpha], axis=2)


def encode_slice(image: np.ndarray) -> bytes:
    """Encode one slice as a lossless RGBA8 PNG (no colour-space transform)."""
    data = quantize(image)
    if data.ndim != 3 or data.shape[2] != 4:
        raise SliceFormatError(f"Slices must be (height, width, 4), got {data.shape}")
    return iio.imwrite("<bytes>", np.ascontiguousarray(data), extension=SLICE_SUFFIX)


def decode_slice(blob: bytes) -> np.ndarray:
    """Decode a PNG blob to uint8 (height, width, 4)."""
    try:
        image = iio.imread(blob, extension=SLICE_SUFFIX)
    except (OSError, ValueError) as e:
        raise SliceFormatError(f"Cannot decode slice: {e}") from e
    if image.dtype != np.uint8:
        raise SliceFormatError(f"Slices must be 8-bit, got {image.dtype}")
    return _ensure_rgba(image)


def encode_slices(slices: Sequence[np.ndarray]) -> Dict[str, bytes]:
    """
    Encode a cubic slice stack.

    Raises:
        SliceFormatError: empty stack, mixed shapes, or slice count != side length
    """
    if len(slices) == 0:
        raise SliceFormatError("Cannot encode an empty slice stack")
    shape = np.shape(slices[0])
    for index, image in enumerate(slices):
        if np.shape(image) != shape:
            raise SliceFormatError(f"Slice {index} has shape {np.shape(image)}, expected {shape}")
    if len(shape) != 3 or shape[2] != 4 or shape[0] != shape[1] or shape[0] != len(slices):
        raise SliceFormatError(
            f"Expected {len(slices)} slices of {len(slices)}x{len(slices)}x4, got {shape}"
        )
    return {slice_name(i): encode_slice(image) for i, image in enumerate(slices)}


def decode_slices(blobs: Mapping[str, bytes], resolution: int) -> Optional[List[np.ndarray]]:
    """
    Decode a stored entry into ordered uint8 slices.

    Only `.png` blobs are considered. Returns None when the entry does not
    hold exactly ZSlice_0000 .. ZSlice_{resolution-1}, each resolution x
    resolution.
    """
    pngs = {name: blob for name, blob in blobs.items() if name.lower().endswith(SLICE_SUFFIX)}
    if len(pngs) != resolution:
        LOGGER.debug("Slice count %d does not match resolution %d", len(pngs), resolution)
        return None

    expected = [slice_name(i) for i in range(resolution)]
    if sorted(pngs) != expected:
        LOGGER.debug("Slice names are not a contiguous ZSlice sequence")
        return None

    slices = []
    for name in expected:
        try:
            image = decode_slice(pngs[name])
        except SliceFormatError as e:
            warnings.warn(f"Unreadable noise slice {name}: {e}")
            return None
        if image.shape[:2] != (resolution, resolution):
            LOGGER.debug("Slice %s is %dx%d, expected %dx%d",
                         name, image.shape[1], image.shape[0], resolution, resolution)
            return None
        slices.append(image)
    return slices
