# cloudnoise/volume.py
"""
Loaded noise volumes and tileable trilinear sampling.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from numba import jit


@dataclass
class NoiseVolume:
    """Cubic RGBA8 noise volume, data shape (depth, height, width, 4)"""
    data: np.ndarray

    def __post_init__(self):
        if self.data.ndim != 4:
            raise ValueError(f"Volume data must be 4D (depth, height, width, channels), got {self.data.ndim}D")
        if self.data.shape[3] != 4:
            raise ValueError(f"Volume data must have 4 channels, got {self.data.shape[3]}")
        depth, height, width = self.data.shape[:3]
        if not depth == height == width:
            raise ValueError(f"Volume must be cubic, got {depth}x{height}x{width}")
        if self.data.dtype != np.uint8:
            raise ValueError(f"Volume data must be uint8, got {self.data.dtype}")

    @classmethod
    def from_slices(cls, slices: Sequence[np.ndarray]) -> "NoiseVolume":
        """Stack uint8 z-slices in order"""
        if not slices:
            raise ValueError("At least one slice is required")
        return cls(data=np.ascontiguousarray(np.stack(slices, axis=0)))

    @property
    def resolution(self) -> int:
        return self.data.shape[0]

    @property
    def shape(self) -> Tuple[int, int, int, int]:
        return self.data.shape

    @property
    def channels(self) -> int:
        return self.data.shape[3]

    @property
    def size_bytes(self) -> int:
        return self.data.nbytes

    def get_slice(self, index: int) -> np.ndarray:
        if index < 0 or index >= self.resolution:
            raise IndexError(f"Z index {index} out of bounds [0, {self.resolution - 1}]")
        return self.data[index]

    def as_float(self) -> np.ndarray:
        return self.data.astype(np.float32) / 255.0

    def density(self) -> np.ndarray:
        """Noise values (red channel) in [0, 1], shape (D, H, W)"""
        return self.data[..., 0].astype(np.float32) / 255.0

    def sample(self, x: float, y: float, z: float) -> np.ndarray:
        """
        Trilinear lookup at normalized coordinates, repeating in every axis.

        Texel centres sit at (i + 0.5) / resolution, matching where slices
        were evaluated, so sample((i + 0.5) / n, ...) returns texel i exactly.

        Returns:
            float64 RGBA in [0, 1]
        """
        return sample_volume_repeat(self.data, float(x), float(y), float(z))


@jit(nopython=True, cache=True)
def sample_volume_repeat(volume: np.ndarray, x: float, y: float, z: float) -> np.ndarray:
    depth, height, width, channels = volume.shape

    fx = (x - np.floor(x)) * width - 0.5
    fy = (y - np.floor(y)) * height - 0.5
    fz = (z - np.floor(z)) * depth - 0.5

    x0 = int(np.floor(fx))
    y0 = int(np.floor(fy))
    z0 = int(np.floor(fz))
    dx = fx - x0
    dy = fy - y0
    dz = fz - z0

    ix0 = x0 % width
    iy0 = y0 % height
    iz0 = z0 % depth
    ix1 = (ix0 + 1) % width
    iy1 = (iy0 + 1) % height
    iz1 = (iz0 + 1) % depth

    result = np.zeros(channels, dtype=np.float64)
    for c in range(channels):
        c00 = volume[iz0, iy0, ix0, c] * (1.0 - dx) + volume[iz0, iy0, ix1, c] * dx
        c01 = volume[iz0, iy1, ix0, c] * (1.0 - dx) + volume[iz0, iy1, ix1, c] * dx
        c10 = volume[iz1, iy0, ix0, c] * (1.0 - dx) + volume[iz1, iy0, ix1, c] * dx
        c11 = volume[iz1, iy1, ix0, c] * (1.0 - dx) + volume[iz1, iy1, ix1, c] * dx
        c0 = c00 * (1.0 - dy) + c01 * dy
        c1 = c10 * (1.0 - dy) + c11 * dy
        result[c] = (c0 * (1.0 - dz) + c1 * dz) / 255.0
    return result
