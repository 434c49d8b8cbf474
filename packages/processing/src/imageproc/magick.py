"""
Wrapper for the ImageMagick convert command-line tool.

Operations are translated into convert arguments and collected in a
MagickCommand. Nothing runs until save(), which appends the destination and
executes the whole command once:

    convert [limits] [defines/options] input[page][geometry]
            [-regard-warnings] [-auto-orient] [operations] [options] output
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from imageproc_shared.errors import EngineFailure
from imageproc_shared.files import normalize_format
from imageproc_shared.geometry import Gravity, ResizeMode, validate_dimensions
from imageproc_shared.options import TRANSPARENT

from .operations import Convert, Crop, Custom, Engine, Operation, Pad, Resize

logger = logging.getLogger(__name__)

TRANSPARENT_MAGICK = "rgba(255,255,255,0.0)"


class MagickError(EngineFailure):
    """Raised when convert exits with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__("convert", f"rc={returncode}: {stderr.strip()}")


def run_magick(args: list[str], timeout: float) -> tuple[int, str, str]:
    """Run an ImageMagick command with the given arguments."""
    try:
        result = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
            timeout=timeout,
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return 124, "", f"TimeoutExpired after {timeout}s"
    except FileNotFoundError:
        return 127, "", f"{args[0]} not found. Install imagemagick package."


def option_args(name: str, *values: Any) -> list[str]:
    """
    Translate one option into arguments.

    option_args("strip") -> ["-strip"]
    option_args("strip", False) -> ["+strip"]
    option_args("quality", 85) -> ["-quality", "85"]
    """
    flag = name.replace("_", "-")
    if not values or values == (True,):
        return [f"-{flag}"]
    if values == (False,):
        return [f"+{flag}"]
    return [f"-{flag}", *(str(v) for v in values)]


def options_args(options: dict[str, Any]) -> list[str]:
    args: list[str] = []
    for name, value in options.items():
        if isinstance(value, (list, tuple)):
            args += option_args(name, *value)
        else:
            args += option_args(name, value)
    return args


def define_args(define: dict[str, dict[str, Any]] | None) -> list[str]:
    """{"jpeg": {"size": "20x20"}} -> ["-define", "jpeg:size=20x20"]"""
    args: list[str] = []
    for namespace, values in (define or {}).items():
        namespace = namespace.replace("_", "-")
        for key, value in values.items():
            args += ["-define", f"{namespace}:{key.replace('_', '-')}={value}"]
    return args


def size_geometry(width: int | None, height: int | None) -> str:
    """"400x300", "400x" or "x300"."""
    return f"{'' if width is None else width}x{'' if height is None else height}"


@dataclass
class MagickCommand:
    """A convert invocation being built up, one operation at a time."""
    binary: str
    source: str
    input_args: list[str] = field(default_factory=list)
    args: list[str] = field(default_factory=list)
    limits: list[str] = field(default_factory=list)

    def argv(self, destination: str) -> list[str]:
        return [self.binary, *self.limits, *self.input_args, self.source,
                *self.args, destination]


class MagickEngine(Engine):
    """Engine that shells out to ImageMagick."""

    name = "magick"

    @property
    def binary(self) -> str:
        return self.config.magick_binary

    def load(
        self,
        source: Path,
        page: int | None = None,
        geometry: str | None = None,
        fail: bool = True,
        auto_orient: bool = True,
        define: dict[str, dict[str, Any]] | None = None,
        **options: Any,
    ) -> MagickCommand:
        input_path = str(source)
        if page is not None:
            input_path += f"[{page}]"
        if geometry is not None:
            input_path += f"[{geometry}]"

        cmd = MagickCommand(
            binary=self.binary,
            source=input_path,
            input_args=define_args(define) + options_args(options),
        )
        if fail:
            cmd.args.append("-regard-warnings")
        if auto_orient:
            cmd.args.append("-auto-orient")
        return cmd

    def apply(self, handle: MagickCommand, op: Operation) -> MagickCommand:
        if isinstance(op, Resize):
            handle.args += self._resize_args(op)
        elif isinstance(op, Pad):
            handle.args += self._pad_args(op.width, op.height, op.gravity, op.background)
        elif isinstance(op, Crop):
            handle.args += [
                "-gravity", self.gravity(op.gravity).magick_name,
                "-crop", f"{op.width}x{op.height}+0+0",
                "+repage",
            ]
        elif isinstance(op, Custom):
            handle = self._custom(handle, op)
        elif not isinstance(op, Convert):
            raise TypeError(f"Unknown operation: {op!r}")
        return handle

    def save(
        self,
        handle: MagickCommand,
        destination: Path,
        format: str | None = None,
        define: dict[str, dict[str, Any]] | None = None,
        **options: Any,
    ) -> Path:
        handle.args += define_args(define) + options_args(options)

        output = str(destination)
        if format:
            output = f"{normalize_format(format)}:{output}"

        cmd = handle.argv(output)
        logger.debug("Running: %s", " ".join(cmd))
        returncode, _stdout, stderr = run_magick(cmd, self.config.timeout)
        if returncode != 0:
            raise MagickError(cmd, returncode, stderr)
        return destination

    def valid_image(self, path: Path) -> bool:
        cmd = [self.binary, "-regard-warnings", str(path), "null:"]
        returncode, _stdout, stderr = run_magick(cmd, self.config.timeout)
        if returncode != 0:
            logger.warning("Invalid image %s: %s", path, stderr.strip())
            return False
        return True

    def _resize_args(self, op: Resize) -> list[str]:
        size = size_geometry(op.width, op.height)

        if op.mode is ResizeMode.LIMIT:
            return ["-thumbnail", f"{size}>"]
        if op.mode is ResizeMode.FIT:
            return ["-thumbnail", size]

        width, height = validate_dimensions((op.width, op.height), "fill target")
        return [
            "-thumbnail", f"{size}^",
            "-gravity", self.gravity(op.gravity).magick_name,
            "-background", TRANSPARENT_MAGICK,
            "-extent", f"{width}x{height}",
        ]

    def _pad_args(
        self,
        width: int | None,
        height: int | None,
        gravity: Gravity | None,
        background: str | None,
    ) -> list[str]:
        width, height = validate_dimensions((width, height), "pad target")
        background = self.background(background)
        if background.lower() == TRANSPARENT:
            background = TRANSPARENT_MAGICK
        return [
            "-thumbnail", size_geometry(width, height),
            "-background", background,
            "-gravity", self.gravity(gravity).magick_name,
            "-extent", f"{width}x{height}",
        ]

    def _custom(self, handle: MagickCommand, op: Custom) -> MagickCommand:
        if op.func is not None:
            result = op.func(handle)
            return result if isinstance(result, MagickCommand) else handle
        if op.name == "append":
            handle.args += [str(a) for a in op.args]
        elif op.name == "limits":
            for resource, value in op.args:
                handle.limits += ["-limit", str(resource), str(value)]
        else:
            handle.args += option_args(op.name, *op.args)
        return handle
