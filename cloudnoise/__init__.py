"""Cloudnoise public API."""

from .core import (
    DEFAULT_PERLIN,
    DEFAULT_WORLEY,
    NoiseMode,
    NoiseSettings,
    VolumeSynthesizer,
    synthesize,
)
from .volume import NoiseVolume
from .codec import decode_slices, encode_slices, slice_name
from .store import FolderNoiseStore, MemoryNoiseStore, NoiseStore, validate_name
from .cache import LoadMode, NoiseCache
from .config import CloudNoiseConfig, add_config_args
from .errors import (
    CloudNoiseError,
    GenerationCancelled,
    GenerationUnavailableError,
    InvalidNameError,
    NoiseStoreError,
    PostWriteReadbackError,
    SliceFormatError,
)

__all__ = [
    "DEFAULT_PERLIN",
    "DEFAULT_WORLEY",
    "NoiseMode",
    "NoiseSettings",
    "VolumeSynthesizer",
    "synthesize",
    "NoiseVolume",
    "decode_slices",
    "encode_slices",
    "slice_name",
    "FolderNoiseStore",
    "MemoryNoiseStore",
    "NoiseStore",
    "validate_name",
    "LoadMode",
    "NoiseCache",
    "CloudNoiseConfig",
    "add_config_args",
    "CloudNoiseError",
    "GenerationCancelled",
    "GenerationUnavailableError",
    "InvalidNameError",
    "NoiseStoreError",
    "PostWriteReadbackError",
    "SliceFormatError",
]

__version__ = "0.1.0"
