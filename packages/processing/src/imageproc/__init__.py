"""
Image processing pipelines.

Chainable resize/crop/pad/convert pipelines executed by a wrapped image
library: Pillow in-process, or ImageMagick's convert binary.

Deployment:
    pip install imageproc
    apt install imagemagick  # only for the magick engine

The geometry (ratios, offsets) lives in imageproc_shared; this package only
hands the numbers to the engines.
"""

from .analysis import dimensions, image_difference, is_similar
from .magick import MagickCommand, MagickEngine, MagickError, run_magick
from .operations import Convert, Crop, Custom, Engine, Pad, Resize
from .pillow_engine import PillowEngine
from .pipeline import (
    Pipeline,
    PipelineResult,
    get_engine,
    magick_pipeline,
    pillow_pipeline,
    valid_image,
)

__all__ = [
    "Pipeline",
    "PipelineResult",
    "pillow_pipeline",
    "magick_pipeline",
    "valid_image",
    "get_engine",
    "Engine",
    "PillowEngine",
    "MagickEngine",
    "MagickCommand",
    "MagickError",
    "run_magick",
    "Resize",
    "Crop",
    "Pad",
    "Convert",
    "Custom",
    "dimensions",
    "image_difference",
    "is_similar",
]
