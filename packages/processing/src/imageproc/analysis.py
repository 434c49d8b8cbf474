"""
Image comparison utilities.

Used to check that two pipeline outputs look alike, e.g. the same resize
done by the pillow and magick engines, or that a gravity change actually
moved the crop.
"""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import numpy as np
from PIL import Image, ImageOps

from imageproc_shared.geometry import Dimensions

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 8.0


def dimensions(image_path: Path) -> Dimensions:
    """Width and height of an image on disk, after EXIF orientation."""
    with Image.open(image_path) as img:
        img = ImageOps.exif_transpose(img)
        return Dimensions(img.width, img.height)


def _load_rgb(image_path: Path) -> np.ndarray:
    with Image.open(image_path) as img:
        n_frames = getattr(img, "n_frames", 1)
        if n_frames != 1:
            logger.debug("Comparing first frame of %d in %s", n_frames, image_path)
        img = ImageOps.exif_transpose(img)

        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            # flatten onto white so transparent pixels compare equal
            rgba = img.convert("RGBA")
            flat = Image.new("RGB", rgba.size, (255, 255, 255))
            flat.paste(rgba, mask=rgba.getchannel("A"))
            img = flat
        else:
            img = img.convert("RGB")
        return np.ascontiguousarray(np.array(img, dtype=np.uint8))


def image_difference(a: Path, b: Path) -> float:
    """
    Mean absolute per-pixel difference between two images.

    b is resized to a's size if they differ. Returns a value in [0.0, 255.0]
    """
    rgb_a = _load_rgb(a)
    rgb_b = _load_rgb(b)

    h, w = rgb_a.shape[:2]
    if rgb_b.shape[:2] != (h, w):
        rgb_b = cv2.resize(rgb_b, (w, h), interpolation=cv2.INTER_AREA)

    diff = float(cv2.absdiff(rgb_a, rgb_b).mean())
    logger.debug("Difference %s vs %s: %.2f", Path(a).name, Path(b).name, diff)
    return diff


def is_similar(a: Path, b: Path, threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> bool:
    """True if the mean difference is below threshold."""
    return image_difference(a, b) < threshold
