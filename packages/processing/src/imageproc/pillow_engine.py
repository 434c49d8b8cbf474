"""
In-process engine backed by Pillow.

Resize, crop and pad sizes come from imageproc_shared.geometry; Pillow does
the decoding, resampling and encoding.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from PIL import Image, ImageColor, ImageFile, ImageOps

from imageproc_shared.errors import EngineFailure, ImageProcessingError
from imageproc_shared.files import normalize_format
from imageproc_shared.geometry import (
    Kernel,
    ResizeMode,
    Scale,
    crop_box,
    resolve_offset,
    resolve_ratio,
    resolve_target,
    scaled_dimensions,
)
from imageproc_shared.options import TRANSPARENT

from .operations import Convert, Crop, Custom, Engine, Operation, Pad, Resize

logger = logging.getLogger(__name__)

KERNELS: dict[Kernel, Image.Resampling] = {
    Kernel.NEAREST: Image.Resampling.NEAREST,
    Kernel.CUBIC: Image.Resampling.BICUBIC,
}

TRANSPARENT_RGBA = (255, 255, 255, 0)

# ImageFile.LOAD_TRUNCATED_IMAGES is module state in Pillow.
_truncated_lock = threading.Lock()


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA") or (
        img.mode == "P" and "transparency" in img.info
    )


def _background_rgba(background: str) -> tuple[int, int, int, int]:
    if background.lower() == TRANSPARENT:
        return TRANSPARENT_RGBA
    return ImageColor.getcolor(background, "RGBA")


def _decode(img: Image.Image, truncated: bool = False) -> None:
    """
    Fully decode img with LOAD_TRUNCATED_IMAGES set to truncated.

    The flag is global to Pillow, so every decode sets it under the same
    lock and a strict load never runs while a lenient one has it enabled.
    """
    with _truncated_lock:
        previous = ImageFile.LOAD_TRUNCATED_IMAGES
        ImageFile.LOAD_TRUNCATED_IMAGES = truncated
        try:
            img.load()
        finally:
            ImageFile.LOAD_TRUNCATED_IMAGES = previous


class PillowEngine(Engine):
    """Engine that runs every operation through Pillow."""

    name = "pillow"

    def load(
        self,
        source: Path,
        page: int | None = None,
        auto_orient: bool = True,
        fail: bool = True,
        **options: Any,
    ) -> Image.Image:
        if options:
            raise ValueError(f"Unsupported pillow loader options: {sorted(options)}")

        try:
            img = Image.open(source)
            if page is not None:
                img.seek(page)
            _decode(img, truncated=not fail)
            if auto_orient:
                img = ImageOps.exif_transpose(img)
        except (OSError, EOFError, SyntaxError, Image.DecompressionBombError) as e:
            raise EngineFailure(self.name, f"cannot load {source}: {e}") from e

        logger.debug("Loaded %s: %dx%d %s", source, img.width, img.height, img.mode)
        return img

    def apply(self, handle: Image.Image, op: Operation) -> Image.Image:
        try:
            if isinstance(op, Resize):
                return self._resize(handle, op)
            if isinstance(op, Pad):
                return self._pad(handle, op)
            if isinstance(op, Crop):
                box = crop_box(handle.size, (op.width, op.height), self.gravity(op.gravity))
                logger.debug("Crop %s box=%s", handle.size, box)
                return handle.crop(box)
            if isinstance(op, Custom):
                return self._custom(handle, op)
            if isinstance(op, Convert):
                return handle
        except ImageProcessingError:
            raise
        except (OSError, ValueError, TypeError) as e:
            raise EngineFailure(self.name, f"{type(op).__name__}: {e}") from e

        raise TypeError(f"Unknown operation: {op!r}")

    def save(
        self,
        handle: Image.Image,
        destination: Path,
        format: str | None = None,
        **options: Any,
    ) -> Path:
        fmt = format or destination.suffix
        if fmt:
            fmt = normalize_format(fmt)
            pil_format = Image.registered_extensions().get(f".{fmt}")
            if pil_format is None:
                raise EngineFailure(self.name, f"unsupported output format: {fmt}")
        else:
            pil_format = "PNG"

        img = handle
        if pil_format == "JPEG":
            img = self._flatten(img)

        try:
            img.save(destination, format=pil_format, **options)
        except (OSError, ValueError, KeyError) as e:
            raise EngineFailure(self.name, f"cannot save {destination}: {e}") from e

        logger.debug("Saved %s as %s", destination, pil_format)
        return destination

    def valid_image(self, path: Path) -> bool:
        try:
            with Image.open(path) as img:
                _decode(img)
            return True
        except (OSError, EOFError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            logger.warning("Invalid image %s: %s", path, e)
            return False

    def _scale(self, img: Image.Image, scale: Scale) -> Image.Image:
        if scale.ratio == 1:
            return img
        size = scaled_dimensions(img.size, scale.ratio)
        logger.debug("Resize %s -> %s ratio=%.4f kernel=%s",
                     img.size, size, scale.ratio, scale.kernel.value)
        return img.resize(size, KERNELS[scale.kernel])

    def _resize(self, img: Image.Image, op: Resize) -> Image.Image:
        target = (op.width, op.height)

        img_out = self._scale(img, resolve_ratio(img.size, target, op.mode))
        if op.mode is not ResizeMode.FILL:
            return img_out

        box = crop_box(img_out.size, resolve_target(img.size, target), self.gravity(op.gravity))
        return img_out.crop(box)

    def _pad(self, img: Image.Image, op: Pad) -> Image.Image:
        target = (op.width, op.height)
        img = self._scale(img, resolve_ratio(img.size, target, ResizeMode.FIT))

        canvas = Image.new("RGBA", target, _background_rgba(self.background(op.background)))
        top, left = resolve_offset(target, img.size, self.gravity(op.gravity))

        img = img.convert("RGBA")
        canvas.paste(img, (left, top), img)
        return canvas

    def _custom(self, img: Image.Image, op: Custom) -> Image.Image:
        if op.func is not None:
            result = op.func(img)
        elif hasattr(Image.Image, op.name) and not op.name.startswith("_"):
            result = getattr(img, op.name)(*op.args)
        elif hasattr(ImageOps, op.name) and not op.name.startswith("_"):
            result = getattr(ImageOps, op.name)(img, *op.args)
        else:
            raise ValueError(f"Unknown pillow operation: {op.name}")

        # in-place methods such as thumbnail() return None
        return result if isinstance(result, Image.Image) else img

    def _flatten(self, img: Image.Image) -> Image.Image:
        """JPEG has no alpha: composite onto white."""
        if _has_alpha(img):
            rgba = img.convert("RGBA")
            flat = Image.new("RGB", rgba.size, (255, 255, 255))
            flat.paste(rgba, mask=rgba.getchannel("A"))
            return flat
        if img.mode not in ("RGB", "L", "CMYK"):
            return img.convert("RGB")
        return img
