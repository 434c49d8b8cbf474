"""
Operation types recorded by a Pipeline, and the Engine interface that
replays them.

A pipeline never touches pixels itself. It collects operations in order and
hands them to an engine on the terminal call:

    handle = engine.load(path, **loader_options)
    for op in operations:
        handle = engine.apply(handle, op)
    engine.save(handle, destination, format=fmt, **saver_options)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Union

from imageproc_shared.geometry import Gravity, ResizeMode
from imageproc_shared.options import ProcessingConfig


@dataclass(frozen=True)
class Resize:
    """Scale by a limit, fit or fill ratio. fill also crops to the target."""
    mode: ResizeMode
    width: int | None = None
    height: int | None = None
    gravity: Gravity | None = None

    def __post_init__(self):
        if self.mode is ResizeMode.PAD:
            raise ValueError("pad is a Pad operation, not a Resize mode")


@dataclass(frozen=True)
class Crop:
    """Cut a width x height region anchored by gravity."""
    width: int
    height: int
    gravity: Gravity | None = None


@dataclass(frozen=True)
class Pad:
    """Fit inside width x height, then pad out to exactly that size."""
    width: int
    height: int
    gravity: Gravity | None = None
    background: str | None = None


@dataclass(frozen=True)
class Convert:
    """Change the output format."""
    format: str


@dataclass(frozen=True)
class Custom:
    """
    Anything else. Either a callable taking and returning the engine's image
    handle, or the name of a native engine operation with its arguments.
    """
    name: str
    args: tuple[Any, ...] = ()
    func: Callable[[Any], Any] | None = None


Operation = Union[Resize, Crop, Pad, Convert, Custom]


class Engine(ABC):
    """Backend that performs operations with a wrapped image library."""

    name: str = "engine"

    def __init__(self, config: ProcessingConfig | None = None):
        self.config = config or ProcessingConfig()

    @abstractmethod
    def load(self, source: Path, **options: Any) -> Any:
        """Open source and return the engine's image handle."""

    @abstractmethod
    def apply(self, handle: Any, op: Operation) -> Any:
        """Apply one operation and return the new handle."""

    @abstractmethod
    def save(self, handle: Any, destination: Path, format: str | None = None,
             **options: Any) -> Path:
        """Write the handle to destination."""

    @abstractmethod
    def valid_image(self, path: Path) -> bool:
        """True if the engine can fully decode path."""

    def gravity(self, gravity: Gravity | None) -> Gravity:
        return Gravity.parse(gravity if gravity is not None else self.config.default_gravity)

    def background(self, background: str | None) -> str:
        return background if background is not None else self.config.default_background
