"""Configuration for hosts that build a noise cache."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .core import DEFAULT_PERLIN, DEFAULT_WORLEY, NoiseMode, NoiseSettings, check_resolution

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"", "0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def add_config_args(parser) -> None:
    parser.add_argument("--noise-root", type=Path, default=None, help="Noise store directory")
    parser.add_argument("--seed", type=int, default=None, help="Noise hash seed")
    parser.add_argument("--workers", type=int, default=None, help="Slice worker threads")
    parser.add_argument("--resolution", type=int, default=None, help="Volume side length")
    parser.add_argument("--read-only", action="store_true", help="Never generate noise")


@dataclass
class CloudNoiseConfig:
    root: Path = Path("CloudNoiseGen")
    seed: int = 0
    workers: int = 1
    can_generate: bool = True
    resolution: int = 64
    noise_mode: NoiseMode = NoiseMode.MIX
    perlin: NoiseSettings = DEFAULT_PERLIN
    worley: NoiseSettings = DEFAULT_WORLEY

    def __post_init__(self):
        self.root = Path(self.root)
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        check_resolution(self.resolution)
        self.noise_mode = NoiseMode(self.noise_mode)

    @classmethod
    def from_args(cls, args) -> "CloudNoiseConfig":
        defaults = cls()
        root = getattr(args, "noise_root", None)
        seed = getattr(args, "seed", None)
        workers = getattr(args, "workers", None)
        resolution = getattr(args, "resolution", None)
        return cls(
            root=root if root is not None else defaults.root,
            seed=seed if seed is not None else defaults.seed,
            workers=workers if workers is not None else defaults.workers,
            can_generate=not getattr(args, "read_only", False),
            resolution=resolution if resolution is not None else defaults.resolution,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CloudNoiseConfig":
        """
        Read CLOUDNOISE_ROOT, CLOUDNOISE_SEED, CLOUDNOISE_WORKERS,
        CLOUDNOISE_RESOLUTION and CLOUDNOISE_READ_ONLY; unset keys keep defaults.
        """
        env = os.environ if environ is None else environ
        kwargs = {}
        if "CLOUDNOISE_ROOT" in env:
            kwargs["root"] = Path(env["CLOUDNOISE_ROOT"])
        for key, field in (("CLOUDNOISE_SEED", "seed"), ("CLOUDNOISE_WORKERS", "workers"),
                           ("CLOUDNOISE_RESOLUTION", "resolution")):
            if key in env:
                kwargs[field] = _parse_int(key, env[key])
        if "CLOUDNOISE_READ_ONLY" in env:
            kwargs["can_generate"] = not _parse_bool("CLOUDNOISE_READ_ONLY", env["CLOUDNOISE_READ_ONLY"])
        return cls(**kwargs)
