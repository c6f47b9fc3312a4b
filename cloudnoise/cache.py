# cloudnoise/cache.py
"""
Load-or-generate policy over a noise store.

    Start -> TryLoad -> Hit: done
                     -> Miss -> (mode allows generation?) -> Generate -> Store
                             -> TryLoad -> Hit: done
                                        -> Miss: PostWriteReadbackError
"""

import logging
import threading
import warnings
from enum import Enum
from typing import Dict, Optional, Sequence

import numpy as np

from .codec import decode_slices, encode_slices
from .core import (
    DEFAULT_PERLIN,
    DEFAULT_WORLEY,
    NoiseMode,
    NoiseSettings,
    VolumeSynthesizer,
    check_resolution,
)
from .errors import GenerationUnavailableError, NoiseStoreError, PostWriteReadbackError
from .store import FolderNoiseStore, NoiseStore, validate_name
from .volume import NoiseVolume

LOGGER = logging.getLogger(__name__)


class LoadMode(Enum):
    """How get_or_generate treats a stored entry"""
    LOAD_AVAILABLE_ELSE_GENERATE = 0
    LOAD_AVAILABLE_ELSE_ABORT = 1
    FORCE_GENERATE = 2


class NoiseCache:
    """
    Loads noise volumes from a store and regenerates them when missing.

    Args:
        store: Backing slice store
        synthesizer: Generator used on a miss (default: seed 0, one worker)
        can_generate: False for hosts that may only read the store
        perlin, worley, noise_mode: Defaults for generation calls
    """

    def __init__(self, store: NoiseStore,
                 synthesizer: Optional[VolumeSynthesizer] = None,
                 can_generate: bool = True,
                 perlin: Optional[NoiseSettings] = None,
                 worley: Optional[NoiseSettings] = None,
                 noise_mode: NoiseMode = NoiseMode.MIX):
        self.backend = store
        self.synthesizer = synthesizer or VolumeSynthesizer()
        self.can_generate = can_generate
        self.perlin = perlin or DEFAULT_PERLIN
        self.worley = worley or DEFAULT_WORLEY
        self.noise_mode = NoiseMode(noise_mode)
        self.hits = 0
        self.misses = 0
        self.generations = 0
        self.fatal_errors = 0
        self._stats_lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> "NoiseCache":
        """Folder-backed cache from a CloudNoiseConfig"""
        return cls(
            FolderNoiseStore(config.root),
            synthesizer=VolumeSynthesizer(seed=config.seed, workers=config.workers),
            can_generate=config.can_generate,
            perlin=config.perlin,
            worley=config.worley,
            noise_mode=config.noise_mode,
        )

    def _count(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self, counter, getattr(self, counter) + 1)

    def load(self, name: str, resolution: int) -> Optional[NoiseVolume]:
        """Load `name` if it holds exactly `resolution` slices of resolution^2; None otherwise."""
        resolution = check_resolution(resolution)
        blobs = self.backend.read(name)
        if blobs is None:
            LOGGER.debug("No stored noise named %r", name)
            self._count("misses")
            return None

        slices = decode_slices(blobs, resolution)
        if slices is None:
            LOGGER.info("Stored noise %r does not match resolution %d", name, resolution)
            self._count("misses")
            return None

        self._count("hits")
        return NoiseVolume.from_slices(slices)

    def store(self, name: str, slices: Sequence[np.ndarray]) -> bool:
        """Replace entry `name` with `slices`; False if the backend fails to write."""
        validate_name(name)
        blobs = encode_slices(slices)
        try:
            with self.backend.lock(name):
                self.backend.replace(name, blobs)
        except OSError as e:
            LOGGER.error("Could not store noise %r: %s", name, e)
            return False
        LOGGER.debug("Stored %d slices under %r", len(blobs), name)
        return True

    def generate(self, name: str, resolution: int,
                 perlin: Optional[NoiseSettings] = None,
                 worley: Optional[NoiseSettings] = None,
                 noise_mode: Optional[NoiseMode] = None,
                 cancel: Optional[threading.Event] = None) -> bool:
        """Synthesize a volume and store it under `name`."""
        if not self.can_generate:
            raise GenerationUnavailableError("This noise cache cannot generate volumes")
        validate_name(name)
        slices = self.synthesizer.synthesize(
            perlin or self.perlin,
            worley or self.worley,
            resolution,
            self.noise_mode if noise_mode is None else noise_mode,
            cancel=cancel,
        )
        self._count("generations")
        return self.store(name, slices)

    def get_or_generate(self, name: str, resolution: int,
                        mode: LoadMode = LoadMode.LOAD_AVAILABLE_ELSE_GENERATE,
                        perlin: Optional[NoiseSettings] = None,
                        worley: Optional[NoiseSettings] = None,
                        noise_mode: Optional[NoiseMode] = None,
                        cancel: Optional[threading.Event] = None) -> Optional[NoiseVolume]:
        """
        Return the volume stored under `name`, generating it as `mode` allows.

        Returns:
            The volume, or None when it is missing and may not be generated

        Raises:
            NoiseStoreError: generated slices could not be written
            PostWriteReadbackError: slices were written but do not load back
            GenerationCancelled: `cancel` was set during generation
        """
        validate_name(name)
        resolution = check_resolution(resolution)
        mode = LoadMode(mode)

        if not self.can_generate:
            if mode is LoadMode.FORCE_GENERATE:
                warnings.warn(f"Cannot force generation of noise {name!r}: generation is unavailable")
                return None
            mode = LoadMode.LOAD_AVAILABLE_ELSE_ABORT

        with self.backend.lock(name):
            if mode is not LoadMode.FORCE_GENERATE:
                volume = self.load(name, resolution)
                if volume is not None:
                    return volume
                if mode is LoadMode.LOAD_AVAILABLE_ELSE_ABORT:
                    LOGGER.info("Noise %r not available at resolution %d", name, resolution)
                    return None

            LOGGER.info("Generating noise %r at resolution %d (%s)", name, resolution, mode.name)
            if not self.generate(name, resolution, perlin, worley, noise_mode, cancel=cancel):
                raise NoiseStoreError(f"Unable to store generated noise {name!r}")

            volume = self.load(name, resolution)
            if volume is None:
                self._count("fatal_errors")
                LOGGER.error("Fatal error: unable to load noise %r after generating it", name)
                raise PostWriteReadbackError(
                    f"Noise {name!r} was stored at resolution {resolution} but could not be loaded back"
                )
            return volume

    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return {
                "hits": self.hits,
                "misses": self.misses,
                "generations": self.generations,
                "fatal_errors": self.fatal_errors,
            }
