"""Sketchy - song and artist image generator with a persistent gallery."""

__version__ = "0.3.0"

from sketchy.core.config import SketchyConfig, config  # noqa: E402

__all__ = [
    "SketchyConfig",
    "config",
]
