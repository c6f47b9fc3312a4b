# cloudnoise/noise.py
"""
Tileable 3D Perlin and Worley noise kernels.

Every kernel wraps its lattice indices modulo the period before hashing, so a
field built from them repeats exactly when translated by one period along any
axis. The fBm helpers work in normalized coordinates where the whole volume
spans [0, 1) and the tile period is 1.
"""

import math
from typing import Union

import numpy as np
from numba import jit

# ----------------------------------------------------------------------
# Constants
# ----------------------------------------------------------------------

# Noise modes, values shared with cloudnoise.core.NoiseMode
MIX = 0
PERLIN_ONLY = 1
WORLEY_ONLY = 2

# Edge midpoints of a cube (Perlin's improved gradient set)
_GRAD3 = np.array([
    [1, 1, 0], [-1, 1, 0], [1, -1, 0], [-1, -1, 0],
    [1, 0, 1], [-1, 0, 1], [1, 0, -1], [-1, 0, -1],
    [0, 1, 1], [0, -1, 1], [0, 1, -1], [0, -1, -1]
], dtype=np.float64)

# Per-octave hash offsets, keeps octaves and channels decorrelated
_OCTAVE_SALT = 67
_WORLEY_SALT = 101


def make_permutation(seed: int = 0) -> np.ndarray:
    """Build the 256-entry hash permutation for a seed."""
    rng = np.random.RandomState(seed)
    return rng.permutation(256).astype(np.int64)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

@jit(nopython=True, nogil=True, cache=True)
def _fast_floor(x: float) -> int:
    xi = int(x)
    return xi if x >= xi else xi - 1


@jit(nopython=True, nogil=True, cache=True)
def _fade(t: float) -> float:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


@jit(nopython=True, nogil=True, cache=True)
def _lerp(a: float, b: float, t: float) -> float:
    return a + t * (b - a)


@jit(nopython=True, nogil=True, cache=True)
def _hash3(perm: np.ndarray, ix: int, iy: int, iz: int) -> int:
    return perm[(perm[(perm[ix & 255] + iy) & 255] + iz) & 255]


@jit(nopython=True, nogil=True, cache=True)
def _grad_dot(h: int, x: float, y: float, z: float) -> float:
    g = _GRAD3[h % 12]
    return g[0] * x + g[1] * y + g[2] * z


# ----------------------------------------------------------------------
# Single-octave noise
# ----------------------------------------------------------------------

@jit(nopython=True, nogil=True, cache=True)
def perlin_noise_3d(x: float, y: float, z: float, period: int,
                    perm: np.ndarray, salt: int) -> float:
    """
    Gradient noise that repeats every `period` lattice cells.

    Returns:
        Noise value roughly in [-1, 1]
    """
    xi = _fast_floor(x)
    yi = _fast_floor(y)
    zi = _fast_floor(z)
    xf = x - xi
    yf = y - yi
    zf = z - zi

    x0 = xi % period
    y0 = yi % period
    z0 = zi % period
    x1 = (x0 + 1) % period
    y1 = (y0 + 1) % period
    z1 = (z0 + 1) % period
    z0 += salt
    z1 += salt

    n000 = _grad_dot(_hash3(perm, x0, y0, z0), xf, yf, zf)
    n100 = _grad_dot(_hash3(perm, x1, y0, z0), xf - 1.0, yf, zf)
    n010 = _grad_dot(_hash3(perm, x0, y1, z0), xf, yf - 1.0, zf)
    n110 = _grad_dot(_hash3(perm, x1, y1, z0), xf - 1.0, yf - 1.0, zf)
    n001 = _grad_dot(_hash3(perm, x0, y0, z1), xf, yf, zf - 1.0)
    n101 = _grad_dot(_hash3(perm, x1, y0, z1), xf - 1.0, yf, zf - 1.0)
    n011 = _grad_dot(_hash3(perm, x0, y1, z1), xf, yf - 1.0, zf - 1.0)
    n111 = _grad_dot(_hash3(perm, x1, y1, z1), xf - 1.0, yf - 1.0, zf - 1.0)

    u = _fade(xf)
    v = _fade(yf)
    w = _fade(zf)

    nx00 = _lerp(n000, n100, u)
    nx10 = _lerp(n010, n110, u)
    nx01 = _lerp(n001, n101, u)
    nx11 = _lerp(n011, n111, u)
    return _lerp(_lerp(nx00, nx10, v), _lerp(nx01, nx11, v), w)


@jit(nopython=True, nogil=True, cache=True)
def worley_noise_3d(x: float, y: float, z: float, cells: int,
                    perm: np.ndarray, salt: int) -> float:
    """
    Distance to the nearest feature point (F1), one jittered point per cell.

    Neighbour cells are looked up with wrapped indices, so the pattern
    repeats every `cells` cells.
    """
    xi = _fast_floor(x)
    yi = _fast_floor(y)
    zi = _fast_floor(z)
    xf = x - xi
    yf = y - yi
    zf = z - zi

    best = 8.0
    for dz in range(-1, 2):
        cz = (zi + dz) % cells + salt
        for dy in range(-1, 2):
            cy = (yi + dy) % cells
            for dx in range(-1, 2):
                cx = (xi + dx) % cells
                h = _hash3(perm, cx, cy, cz)
                px = dx + perm[h] / 255.0 - xf
                py = dy + perm[(h + 85) & 255] / 255.0 - yf
                pz = dz + perm[(h + 170) & 255] / 255.0 - zf
                d = px * px + py * py + pz * pz
                if d < best:
                    best = d
    return math.sqrt(best)


# ----------------------------------------------------------------------
# Fractal sums, remap and mode combination
# ----------------------------------------------------------------------

@jit(nopython=True, nogil=True, cache=True)
def perlin_fbm(x: float, y: float, z: float, octaves: int, periods: int,
               perm: np.ndarray) -> float:
    """Perlin fBm in normalized coordinates, tiles with period 1, result in [0, 1]"""
    total = 0.0
    norm = 0.0
    amplitude = 1.0
    frequency = periods
    for octave in range(octaves):
        total += amplitude * perlin_noise_3d(
            x * frequency, y * frequency, z * frequency,
            frequency, perm, octave * _OCTAVE_SALT
        )
        norm += amplitude
        amplitude *= 0.5
        frequency *= 2
    value = 0.5 + 0.5 * total / norm
    return min(max(value, 0.0), 1.0)


@jit(nopython=True, nogil=True, cache=True)
def worley_fbm(x: float, y: float, z: float, octaves: int, periods: int,
               perm: np.ndarray) -> float:
    """Inverted Worley fBm (1 at feature points), tiles with period 1, result in [0, 1]"""
    total = 0.0
    norm = 0.0
    amplitude = 1.0
    cells = periods
    for octave in range(octaves):
        f1 = worley_noise_3d(
            x * cells, y * cells, z * cells,
            cells, perm, octave * _OCTAVE_SALT + _WORLEY_SALT
        )
        total += amplitude * (1.0 - min(f1, 1.0))
        norm += amplitude
        amplitude *= 0.5
        cells *= 2
    return total / norm


@jit(nopython=True, nogil=True, cache=True)
def remap(value: float, brightness: float, contrast: float) -> float:
    """Linear gain around 0.5 by `contrast`, then scale by `brightness`, clipped to [0, 1]"""
    v = 0.5 + (value - 0.5) * contrast
    v = v * brightness
    return min(max(v, 0.0), 1.0)


@jit(nopython=True, nogil=True, cache=True)
def combine(p: float, w: float, mode: int) -> float:
    """Mix is the product p * w."""
    if mode == PERLIN_ONLY:
        return p
    if mode == WORLEY_ONLY:
        return w
    return p * w


@jit(nopython=True, nogil=True, cache=True)
def render_slice_values(resolution: int, z: float,
                        perlin_params: np.ndarray, worley_params: np.ndarray,
                        mode: int, perm: np.ndarray) -> np.ndarray:
    """
    Evaluate one z-slice at pixel centres.

    Args:
        resolution: Slice side length
        z: Normalized depth of the slice
        perlin_params, worley_params: (octaves, periods, brightness, contrast)
        mode: MIX, PERLIN_ONLY or WORLEY_ONLY
        perm: Hash permutation

    Returns:
        float32 array (resolution, resolution), rows are y
    """
    out = np.empty((resolution, resolution), dtype=np.float32)
    p_octaves = int(perlin_params[0])
    p_periods = int(perlin_params[1])
    w_octaves = int(worley_params[0])
    w_periods = int(worley_params[1])
    step = 1.0 / resolution

    for j in range(resolution):
        y = (j + 0.5) * step
        for i in range(resolution):
            x = (i + 0.5) * step
            p = 0.0
            w = 0.0
            if mode != WORLEY_ONLY:
                p = remap(perlin_fbm(x, y, z, p_octaves, p_periods, perm),
                          perlin_params[2], perlin_params[3])
            if mode != PERLIN_ONLY:
                w = remap(worley_fbm(x, y, z, w_octaves, w_periods, perm),
                          worley_params[2], worley_params[3])
            out[j, i] = combine(p, w, mode)
    return out


# ----------------------------------------------------------------------
# Array versions
# ----------------------------------------------------------------------

@jit(nopython=True, nogil=True, cache=True)
def _perlin_fbm_flat(xs, ys, zs, octaves, periods, perm):
    out = np.empty(xs.shape[0], dtype=np.float64)
    for k in range(xs.shape[0]):
        out[k] = perlin_fbm(xs[k], ys[k], zs[k], octaves, periods, perm)
    return out


@jit(nopython=True, nogil=True, cache=True)
def _worley_fbm_flat(xs, ys, zs, octaves, periods, perm):
    out = np.empty(xs.shape[0], dtype=np.float64)
    for k in range(xs.shape[0]):
        out[k] = worley_fbm(xs[k], ys[k], zs[k], octaves, periods, perm)
    return out


def _flatten(x, y, z):
    x, y, z = np.broadcast_arrays(
        np.asarray(x, dtype=np.float64),
        np.asarray(y, dtype=np.float64),
        np.asarray(z, dtype=np.float64),
    )
    shape = x.shape
    return (shape, np.ascontiguousarray(x).ravel(),
            np.ascontiguousarray(y).ravel(), np.ascontiguousarray(z).ravel())


def perlin_fbm_array(x: Union[float, np.ndarray], y: Union[float, np.ndarray],
                     z: Union[float, np.ndarray], octaves: int, periods: int,
                     perm: np.ndarray) -> np.ndarray:
    """Perlin fBm over broadcastable coordinate arrays"""
    shape, xs, ys, zs = _flatten(x, y, z)
    return _perlin_fbm_flat(xs, ys, zs, int(octaves), int(periods), perm).reshape(shape)


def worley_fbm_array(x: Union[float, np.ndarray], y: Union[float, np.ndarray],
                     z: Union[float, np.ndarray], octaves: int, periods: int,
                     perm: np.ndarray) -> np.ndarray:
    """Worley fBm over broadcastable coordinate arrays"""
    shape, xs, ys, zs = _flatten(x, y, z)
    return _worley_fbm_flat(xs, ys, zs, int(octaves), int(periods), perm).reshape(shape)
