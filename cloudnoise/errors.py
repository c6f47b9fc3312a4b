"""Exceptions raised by cloudnoise."""


class CloudNoiseError(Exception):
    """Base class for all cloudnoise errors."""


class InvalidNameError(CloudNoiseError, ValueError):
    """A store entry name is empty, hidden or escapes the store root."""


class SliceFormatError(CloudNoiseError, ValueError):
    """A slice is not a square RGBA image, or a blob is not a readable PNG."""


class NoiseStoreError(CloudNoiseError, OSError):
    """Generated slices could not be written to the store."""


class GenerationUnavailableError(CloudNoiseError, RuntimeError):
    """Generation was requested from a cache that cannot generate."""


class GenerationCancelled(CloudNoiseError):
    """Generation was cancelled before every slice was computed."""


class PostWriteReadbackError(CloudNoiseError, RuntimeError):
    """Noise that was just stored could not be loaded back."""
