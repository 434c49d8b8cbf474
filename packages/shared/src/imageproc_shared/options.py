"""
Option and configuration types for image pipelines.

ProcessingConfig holds the defaults an engine falls back to (gravity,
background, which engine, the ImageMagick binary). ProcessingOptions
describes one request: a resize, an optional crop and output settings.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Any, Literal

from .errors import InvalidDimension
from .geometry import Gravity, ResizeMode, validate_target

EngineName = Literal["pillow", "magick"]

ENGINES: frozenset[str] = frozenset({"pillow", "magick"})
TRANSPARENT = "transparent"


@dataclass(frozen=True)
class ProcessingConfig:
    """Engine defaults, passed explicitly to pipelines and the geometry functions."""

    default_gravity: Gravity = Gravity.CENTER
    default_background: str = TRANSPARENT
    engine: EngineName = "pillow"
    magick_binary: str = "convert"
    timeout: float = 120.0

    @classmethod
    def load(cls) -> ProcessingConfig:
        """Load from environment variables."""
        engine = os.getenv("IMAGEPROC_ENGINE", "pillow")
        if engine not in ENGINES:
            raise ValueError(f"IMAGEPROC_ENGINE must be one of {sorted(ENGINES)}, got {engine!r}")
        return cls(
            default_gravity=Gravity.parse(os.getenv("IMAGEPROC_GRAVITY", "center")),
            default_background=os.getenv("IMAGEPROC_BACKGROUND", TRANSPARENT),
            engine=engine,
            magick_binary=os.getenv("IMAGEPROC_MAGICK_BINARY", "convert"),
            timeout=float(os.getenv("IMAGEPROC_TIMEOUT", "120.0")),
        )


@dataclass
class ProcessingOptions:
    """
    Options for processing one image. Any of these can come from the
    command line or a plain dict.
    """
    mode: ResizeMode | None = None
    width: int | None = None
    height: int | None = None

    crop_w: int | None = None
    crop_h: int | None = None

    gravity: Gravity | None = None
    background: str | None = None

    format: str | None = None
    quality: int | None = None

    def has_resize(self) -> bool:
        """True if a resize mode and at least one side are set."""
        return self.mode is not None and (self.width is not None or self.height is not None)

    def has_crop(self) -> bool:
        """True if both crop sides are set."""
        return self.crop_w is not None and self.crop_h is not None


_SIZE_RE = re.compile(r"\s*(\d+)?\s*(?:[xX]\s*(\d+)?)?\s*")


def parse_size(value: str) -> tuple[int | None, int | None]:
    """Parse "WxH", "W", "Wx" or "xH" into a target size."""
    m = _SIZE_RE.fullmatch(value or "")
    if not m or (m.group(1) is None and m.group(2) is None):
        raise InvalidDimension(f"invalid size: {value!r} (expected WxH, W or xH)")
    width = int(m.group(1)) if m.group(1) is not None else None
    height = int(m.group(2)) if m.group(2) is not None else None
    return validate_target(width, height)


def parse_processing_options(data: dict[str, Any] | None) -> ProcessingOptions:
    if data is None:
        return ProcessingOptions()

    mode = data.get("mode")
    gravity = data.get("gravity")
    quality = data.get("quality")

    options = ProcessingOptions(
        mode=ResizeMode.parse(mode) if mode is not None else None,
        width=data.get("width"),
        height=data.get("height"),
        crop_w=data.get("crop_w"),
        crop_h=data.get("crop_h"),
        gravity=Gravity.parse(gravity) if gravity is not None else None,
        background=data.get("background"),
        format=data.get("format"),
        quality=int(quality) if quality is not None else None,
    )

    if options.mode is not None:
        validate_target(options.width, options.height)
    if options.crop_w is not None or options.crop_h is not None:
        if not options.has_crop():
            raise InvalidDimension("crop needs both crop_w and crop_h")
        validate_target(options.crop_w, options.crop_h)
    return options
