"""Pytest configuration for cloudnoise tests."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the repository root is importable without an installed package.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cloudnoise import MemoryNoiseStore, NoiseCache, NoiseSettings, VolumeSynthesizer  # noqa: E402


@pytest.fixture
def perlin():
    return NoiseSettings(octaves=2, periods=2, brightness=1.0, contrast=1.0)


@pytest.fixture
def worley():
    return NoiseSettings(octaves=2, periods=3, brightness=1.0, contrast=1.0)


@pytest.fixture
def memory_store():
    return MemoryNoiseStore()


@pytest.fixture
def cache(memory_store, perlin, worley):
    return NoiseCache(memory_store, synthesizer=VolumeSynthesizer(seed=3), perlin=perlin, worley=worley)
