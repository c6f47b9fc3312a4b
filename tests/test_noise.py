"""Tests for the tileable noise kernels."""
from __future__ import annotations

import numpy as np
import pytest

from cloudnoise import noise


@pytest.fixture(scope="module")
def perm():
    return noise.make_permutation(7)


def _points(count=40, seed=11):
    rng = np.random.default_rng(seed)
    return rng.uniform(0.0, 4.0, size=(count, 3))


def test_make_permutation_is_deterministic_and_complete():
    first = noise.make_permutation(5)
    second = noise.make_permutation(5)
    assert np.array_equal(first, second)
    assert sorted(first.tolist()) == list(range(256))
    assert not np.array_equal(first, noise.make_permutation(6))


@pytest.mark.parametrize("axis", [0, 1, 2])
def test_perlin_repeats_after_one_period_on_each_axis(perm, axis):
    period = 4
    for point in _points():
        shifted = point.copy()
        shifted[axis] += period
        a = noise.perlin_noise_3d(point[0], point[1], point[2], period, perm, 0)
        b = noise.perlin_noise_3d(shifted[0], shifted[1], shifted[2], period, perm, 0)
        assert a == pytest.approx(b, abs=1e-9)


@pytest.mark.parametrize("axis", [0, 1, 2])
def test_worley_repeats_after_one_period_on_each_axis(perm, axis):
    cells = 3
    for point in _points():
        shifted = point.copy()
        shifted[axis] -= cells
        a = noise.worley_noise_3d(point[0], point[1], point[2], cells, perm, 0)
        b = noise.worley_noise_3d(shifted[0], shifted[1], shifted[2], cells, perm, 0)
        assert a == pytest.approx(b, abs=1e-9)


def test_perlin_is_zero_on_lattice_points(perm):
    assert noise.perlin_noise_3d(1.0, 2.0, 3.0, 4, perm, 0) == pytest.approx(0.0)


def test_perlin_is_not_constant(perm):
    values = [noise.perlin_noise_3d(p[0], p[1], p[2], 4, perm, 0) for p in _points()]
    assert np.std(values) > 0.05


@pytest.mark.parametrize("axis", [0, 1, 2])
def test_fbm_tiles_with_unit_period(perm, axis):
    rng = np.random.default_rng(3)
    coords = rng.uniform(0.0, 1.0, size=(3, 64))
    shifted = coords.copy()
    shifted[axis] += 1.0

    p_a = noise.perlin_fbm_array(coords[0], coords[1], coords[2], 4, 3, perm)
    p_b = noise.perlin_fbm_array(shifted[0], shifted[1], shifted[2], 4, 3, perm)
    w_a = noise.worley_fbm_array(coords[0], coords[1], coords[2], 3, 2, perm)
    w_b = noise.worley_fbm_array(shifted[0], shifted[1], shifted[2], 3, 2, perm)

    assert np.allclose(p_a, p_b, atol=1e-9)
    assert np.allclose(w_a, w_b, atol=1e-9)


def test_fbm_values_stay_in_unit_range(perm):
    grid = np.linspace(0.0, 1.0, 17)
    xx, yy, zz = np.meshgrid(grid, grid, grid, indexing="ij")
    p = noise.perlin_fbm_array(xx, yy, zz, 8, 16, perm)
    w = noise.worley_fbm_array(xx, yy, zz, 4, 5, perm)
    assert p.shape == xx.shape
    assert p.min() >= 0.0 and p.max() <= 1.0
    assert w.min() >= 0.0 and w.max() <= 1.0


def test_fbm_array_matches_scalar(perm):
    x = np.array([0.1, 0.7])
    y = np.array([0.25, 0.9])
    z = 0.4
    out = noise.perlin_fbm_array(x, y, z, 3, 2, perm)
    for k in range(2):
        assert out[k] == pytest.approx(noise.perlin_fbm(x[k], y[k], z, 3, 2, perm), abs=1e-12)


def test_remap_clips_and_scales():
    assert noise.remap(0.5, 1.0, 4.0) == pytest.approx(0.5)
    assert noise.remap(0.75, 1.0, 2.0) == pytest.approx(1.0)
    assert noise.remap(0.1, 1.0, 8.0) == 0.0
    assert noise.remap(0.6, 2.0, 1.0) == 1.0
    assert noise.remap(0.9, 1.0, 0.0) == pytest.approx(0.5)
    assert noise.remap(0.4, 0.0, 1.0) == 0.0


def test_remap_is_monotone_in_brightness():
    values = np.linspace(0.0, 1.0, 21)
    for v in values:
        outs = [noise.remap(v, b, 1.5) for b in np.linspace(0.0, 2.0, 9)]
        assert all(a <= b for a, b in zip(outs, outs[1:]))


def test_combine_modes():
    assert noise.combine(0.5, 0.4, noise.MIX) == pytest.approx(0.2)
    assert noise.combine(0.4, 0.5, noise.MIX) == noise.combine(0.5, 0.4, noise.MIX)
    assert noise.combine(0.5, 0.4, noise.PERLIN_ONLY) == 0.5
    assert noise.combine(0.5, 0.4, noise.WORLEY_ONLY) == 0.4


def test_render_slice_values_samples_pixel_centres(perm):
    params_p = np.array([2, 2, 1.0, 1.0])
    params_w = np.array([1, 2, 1.0, 1.0])
    out = noise.render_slice_values(4, 0.375, params_p, params_w, noise.PERLIN_ONLY, perm)
    assert out.shape == (4, 4)
    assert out.dtype == np.float32
    expected = noise.perlin_fbm((1 + 0.5) / 4, (2 + 0.5) / 4, 0.375, 2, 2, perm)
    assert out[2, 1] == pytest.approx(expected, abs=1e-6)


def test_single_octave_fbm_uses_channel_salts(perm):
    x, y, z = 0.3, 0.55, 0.8
    perlin = noise.perlin_noise_3d(x * 3, y * 3, z * 3, 3, perm, 0)
    worley = noise.worley_noise_3d(x * 3, y * 3, z * 3, 3, perm, noise._WORLEY_SALT)
    assert noise.perlin_fbm(x, y, z, 1, 3, perm) == pytest.approx(min(max(0.5 + 0.5 * perlin, 0.0), 1.0), abs=1e-12)
    assert noise.worley_fbm(x, y, z, 1, 3, perm) == pytest.approx(1.0 - min(worley, 1.0), abs=1e-12)
