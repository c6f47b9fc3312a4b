# cloudnoise/core.py
"""
Volume synthesis: noise settings and the slice-by-slice generator.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from queue import Empty, Queue
from typing import Callable, List, Optional, Tuple

import numpy as np

from . import noise
from .errors import GenerationCancelled

LOGGER = logging.getLogger(__name__)

# Slices are indexed with four digits on disk
MAX_RESOLUTION = 10000


class NoiseMode(Enum):
    """Which noise channel(s) contribute to the final value"""
    MIX = noise.MIX
    PERLIN_ONLY = noise.PERLIN_ONLY
    WORLEY_ONLY = noise.WORLEY_ONLY


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


@dataclass(frozen=True)
class NoiseSettings:
    """Parameters of one noise channel"""
    octaves: int = 1
    periods: int = 1
    brightness: float = 1.0
    contrast: float = 1.0

    def __post_init__(self):
        if not _is_int(self.octaves) or not 1 <= self.octaves <= 8:
            raise ValueError(f"octaves must be an integer in [1, 8], got {self.octaves!r}")
        if not _is_int(self.periods) or not 1 <= self.periods <= 16:
            raise ValueError(f"periods must be an integer in [1, 16], got {self.periods!r}")
        if not _is_number(self.brightness) or not 0.0 <= self.brightness <= 2.0:
            raise ValueError(f"brightness must be in [0, 2], got {self.brightness!r}")
        if not _is_number(self.contrast) or not 0.0 <= self.contrast <= 8.0:
            raise ValueError(f"contrast must be in [0, 8], got {self.contrast!r}")
        object.__setattr__(self, "octaves", int(self.octaves))
        object.__setattr__(self, "periods", int(self.periods))
        object.__setattr__(self, "brightness", float(self.brightness))
        object.__setattr__(self, "contrast", float(self.contrast))

    def as_params(self) -> Tuple[int, int, float, float]:
        return (self.octaves, self.periods, self.brightness, self.contrast)


DEFAULT_PERLIN = NoiseSettings(octaves=4, periods=4, brightness=1.0, contrast=1.5)
DEFAULT_WORLEY = NoiseSettings(octaves=3, periods=4, brightness=1.0, contrast=1.0)


def check_resolution(resolution) -> int:
    if not _is_int(resolution) or not 1 <= resolution <= MAX_RESOLUTION:
        raise ValueError(
            f"resolution must be an integer in [1, {MAX_RESOLUTION}], got {resolution!r}"
        )
    return int(resolution)


def _to_rgba(values: np.ndarray) -> np.ndarray:
    """Replicate a scalar slice into RGB with opaque alpha"""
    rgba = np.empty(values.shape + (4,), dtype=np.float32)
    rgba[..., :3] = values[..., None]
    rgba[..., 3] = 1.0
    return rgba


class VolumeSynthesizer:
    """
    Generates tileable Perlin/Worley noise volumes as ordered z-slices.

    Slice `u` of a volume with side `resolution` is evaluated at the
    normalized depth (u + 0.5) / resolution. Each slice is a float32
    (resolution, resolution, 4) array with R = G = B = noise and A = 1.
    """

    def __init__(self, seed: int = 0, workers: int = 1):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.seed = seed
        self.workers = workers
        self.perm = noise.make_permutation(seed)

    def render_slice(self, perlin: NoiseSettings, worley: NoiseSettings,
                     resolution: int, z: float,
                     mode: NoiseMode = NoiseMode.MIX) -> np.ndarray:
        """
        Render a single slice at an arbitrary normalized depth.

        Args:
            perlin, worley: Channel settings
            resolution: Slice side length
            z: Depth in [0, 1), values outside wrap around
            mode: Channel combination

        Returns:
            float32 RGBA slice (resolution, resolution, 4)
        """
        resolution = check_resolution(resolution)
        mode = NoiseMode(mode)
        values = noise.render_slice_values(
            resolution, float(z),
            np.array(perlin.as_params(), dtype=np.float64),
            np.array(worley.as_params(), dtype=np.float64),
            mode.value, self.perm,
        )
        return _to_rgba(values)

    def synthesize(self, perlin: NoiseSettings, worley: NoiseSettings,
                   resolution: int, mode: NoiseMode = NoiseMode.MIX,
                   cancel: Optional[threading.Event] = None) -> List[np.ndarray]:
        """
        Generate a full volume.

        Returns:
            `resolution` slices ordered by z

        Raises:
            GenerationCancelled: `cancel` was set before every slice was done
        """
        resolution = check_resolution(resolution)
        mode = NoiseMode(mode)

        def render(u: int) -> np.ndarray:
            z = (u + 0.5) / resolution
            LOGGER.debug("Rendering slice %d/%d (z=%.4f)", u + 1, resolution, z)
            return self.render_slice(perlin, worley, resolution, z, mode)

        LOGGER.info("Generating %s noise volume %dx%dx%d",
                    mode.name.lower(), resolution, resolution, resolution)
        start = time.perf_counter()

        if self.workers == 1 or resolution == 1:
            slices = []
            for u in range(resolution):
                if cancel is not None and cancel.is_set():
                    raise GenerationCancelled(f"Cancelled after {u} of {resolution} slices")
                slices.append(render(u))
        else:
            slices = self._render_parallel(render, resolution, cancel)

        LOGGER.info("Generated %d slices in %.2fs", resolution, time.perf_counter() - start)
        return slices

    def _render_parallel(self, render: Callable[[int], np.ndarray], resolution: int,
                         cancel: Optional[threading.Event]) -> List[np.ndarray]:
        """Worker threads pull z indices from a queue; slices land by index."""
        tasks = Queue()
        for u in range(resolution):
            tasks.put(u)
        slices: List[Optional[np.ndarray]] = [None] * resolution
        errors: List[BaseException] = []

        def worker_loop():
            while not errors:
                if cancel is not None and cancel.is_set():
                    return
                try:
                    u = tasks.get_nowait()
                except Empty:
                    return
                try:
                    slices[u] = render(u)
                except Exception as e:
                    errors.append(e)

        threads = [
            threading.Thread(target=worker_loop, name=f"cloudnoise-slice-{i}", daemon=True)
            for i in range(min(self.workers, resolution))
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        if errors:
            raise errors[0]
        done = sum(1 for s in slices if s is not None)
        if done != resolution:
            raise GenerationCancelled(f"Cancelled after {done} of {resolution} slices")
        return slices


def synthesize(perlin: NoiseSettings, worley: NoiseSettings, resolution: int,
               mode: NoiseMode = NoiseMode.MIX, seed: int = 0,
               workers: int = 1) -> List[np.ndarray]:
    """Generate a noise volume with a throwaway synthesizer"""
    return VolumeSynthesizer(seed=seed, workers=workers).synthesize(
        perlin, worley, resolution, mode
    )
