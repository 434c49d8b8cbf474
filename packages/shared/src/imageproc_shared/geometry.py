"""
Geometry for resize, crop and pad operations.

Everything here is pure arithmetic on (width, height) pairs. The engines
measure the image, ask this module for a scale ratio or an offset, and then
hand the numbers to the wrapped library.

    resolve_ratio(source, target, mode)  -> Scale(ratio, kernel)
    resolve_offset(current, target, gravity) -> Offset(top, left)
"""

from __future__ import annotations

import numbers
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple

from .errors import InvalidDimension, InvalidGravity

if TYPE_CHECKING:
    from .options import ProcessingConfig


class Gravity(str, Enum):
    """Anchor used when cropping from, or padding around, an image."""

    CENTER = "center"
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    NORTHEAST = "northeast"
    NORTHWEST = "northwest"
    SOUTHEAST = "southeast"
    SOUTHWEST = "southwest"

    @classmethod
    def parse(cls, value: Any) -> Gravity:
        """
        Accepts a Gravity, or a name in any case with optional separators:
        "center", "NorthWest", "north_west", "south-east".
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidGravity(f"Gravity must be a string, got {value!r}")
        key = value.strip().lower().replace("_", "").replace("-", "").replace(" ", "")
        if key == "centre":
            key = "center"
        try:
            return cls(key)
        except ValueError:
            raise InvalidGravity(f"Unknown gravity: {value!r}") from None

    @property
    def magick_name(self) -> str:
        """Spelling used by ImageMagick's -gravity option."""
        names = {
            "northeast": "NorthEast",
            "northwest": "NorthWest",
            "southeast": "SouthEast",
            "southwest": "SouthWest",
        }
        return names.get(self.value, self.value.capitalize())


_WEST = frozenset({Gravity.WEST, Gravity.NORTHWEST, Gravity.SOUTHWEST})
_EAST = frozenset({Gravity.EAST, Gravity.NORTHEAST, Gravity.SOUTHEAST})
_NORTH = frozenset({Gravity.NORTH, Gravity.NORTHWEST, Gravity.NORTHEAST})
_SOUTH = frozenset({Gravity.SOUTH, Gravity.SOUTHWEST, Gravity.SOUTHEAST})


class ResizeMode(str, Enum):
    """How the target size bounds the source size."""

    LIMIT = "limit"
    FIT = "fit"
    FILL = "fill"
    PAD = "pad"

    @classmethod
    def parse(cls, value: Any) -> ResizeMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown resize mode: {value!r}") from None


class Kernel(str, Enum):
    """Resampling hint: nearest for upscaling, cubic for downscaling."""

    NEAREST = "nearest"
    CUBIC = "cubic"


class Dimensions(NamedTuple):
    width: int
    height: int


class Scale(NamedTuple):
    ratio: float
    kernel: Kernel


class Offset(NamedTuple):
    top: int
    left: int


def _check_side(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidDimension(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidDimension(f"{name} must be positive, got {value}")
    return int(value)


def validate_dimensions(dims: Any, label: str = "dimensions") -> Dimensions:
    """Check a fully specified (width, height) pair."""
    try:
        width, height = dims
    except (TypeError, ValueError):
        raise InvalidDimension(f"{label} must be a (width, height) pair, got {dims!r}") from None
    return Dimensions(
        _check_side(f"{label} width", width),
        _check_side(f"{label} height", height),
    )


def validate_target(width: Any, height: Any) -> tuple[int | None, int | None]:
    """Check a target size where one side may be None."""
    if width is None and height is None:
        raise InvalidDimension("At least one of width or height is required")
    return (
        None if width is None else _check_side("target width", width),
        None if height is None else _check_side("target height", height),
    )


def _unpack_target(target: Any) -> tuple[int | None, int | None]:
    try:
        width, height = target
    except (TypeError, ValueError):
        raise InvalidDimension(f"target must be a (width, height) pair, got {target!r}") from None
    return validate_target(width, height)


def resolve_target(source: Any, target: Any) -> Dimensions:
    """Fill in a missing target side from the source aspect ratio."""
    sw, sh = validate_dimensions(source, "source")
    tw, th = _unpack_target(target)

    if tw is None:
        tw = max(1, int(sw * th / sh + 0.5))
    elif th is None:
        th = max(1, int(sh * tw / sw + 0.5))
    return Dimensions(tw, th)


def resolve_ratio(source: Any, target: Any, mode: ResizeMode | str) -> Scale:
    """
    Compute the scale ratio and resampling kernel for a resize.

    fit and limit take the smaller of the width and height ratios so the
    result fits inside the target; fill takes the larger so the result
    covers it. limit never enlarges: a ratio of 1 or more becomes 1.0.
    When one target side is None it scales with the given side.

    Raises InvalidDimension for non-positive sides or an empty target.
    """
    mode = ResizeMode.parse(mode)
    sw, sh = validate_dimensions(source, "source")
    tw, th = _unpack_target(target)

    width_ratio = tw / sw if tw is not None else None
    height_ratio = th / sh if th is not None else None
    if width_ratio is None:
        width_ratio = height_ratio
    if height_ratio is None:
        height_ratio = width_ratio

    if mode is ResizeMode.FILL:
        ratio = max(width_ratio, height_ratio)
    else:
        ratio = min(width_ratio, height_ratio)

    if mode is ResizeMode.LIMIT and ratio >= 1:
        ratio = 1.0

    kernel = Kernel.NEAREST if ratio > 1 else Kernel.CUBIC
    return Scale(ratio, kernel)


def scaled_dimensions(source: Any, ratio: float) -> Dimensions:
    """Apply a ratio to a size, rounding half up and never below 1px."""
    sw, sh = validate_dimensions(source, "source")
    if ratio <= 0:
        raise InvalidDimension(f"ratio must be positive, got {ratio}")
    return Dimensions(
        max(1, int(sw * ratio + 0.5)),
        max(1, int(sh * ratio + 0.5)),
    )


def resolve_offset(
    current: Any,
    target: Any,
    gravity: Gravity | str | None = None,
    config: ProcessingConfig | None = None,
) -> Offset:
    """
    Top-left origin of a target-sized rectangle anchored inside current.

    The slack on each axis is split by gravity. Centering uses floor
    division, so an odd extra pixel ends up on the right or bottom edge.
    An axis where current is smaller than target gets offset 0.

    gravity=None uses config.default_gravity, or center without a config.
    """
    cw, ch = validate_dimensions(current, "current")
    tw, th = validate_dimensions(target, "target")

    if gravity is None:
        gravity = config.default_gravity if config is not None else Gravity.CENTER
    gravity = Gravity.parse(gravity)

    dx = max(cw - tw, 0)
    dy = max(ch - th, 0)

    if gravity in _WEST:
        left = 0
    elif gravity in _EAST:
        left = dx
    else:
        left = dx // 2

    if gravity in _NORTH:
        top = 0
    elif gravity in _SOUTH:
        top = dy
    else:
        top = dy // 2

    return Offset(top, left)


def crop_box(current: Any, target: Any, gravity: Gravity | str | None = None,
             config: ProcessingConfig | None = None) -> tuple[int, int, int, int]:
    """(left, upper, right, lower) box for a gravity crop, clamped to current."""
    cw, ch = validate_dimensions(current, "current")
    tw, th = validate_dimensions(target, "target")
    top, left = resolve_offset((cw, ch), (tw, th), gravity, config)
    return (left, top, left + min(cw, tw), top + min(ch, th))
