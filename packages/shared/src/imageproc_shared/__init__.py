"""
Shared geometry, option types and errors for image processing

The package is a dependency of both the processing package and the CLI:
- imageproc uses it to compute resize ratios and crop/pad offsets
- imageproc_cli uses it to parse sizes and load configuration

It has no image library dependencies. Everything here is plain arithmetic
and file bookkeeping.
"""

from .errors import (
    EngineFailure,
    ImageProcessingError,
    InvalidDimension,
    InvalidGravity,
    InvalidSource,
)
from .geometry import (
    Dimensions,
    Gravity,
    Kernel,
    Offset,
    ResizeMode,
    Scale,
    crop_box,
    resolve_offset,
    resolve_ratio,
    resolve_target,
    scaled_dimensions,
    validate_dimensions,
    validate_target,
)
from .options import (
    ProcessingConfig,
    ProcessingOptions,
    parse_processing_options,
    parse_size,
)
from .files import (
    copy_to_tempfile,
    prepare_source,
    is_in_dir,
    normalize_format,
    output_path,
    resolve_source,
    tmp_destination,
)

__all__ = [
    # Errors
    "ImageProcessingError",
    "InvalidDimension",
    "InvalidGravity",
    "InvalidSource",
    "EngineFailure",
    # Geometry
    "Dimensions",
    "Gravity",
    "Kernel",
    "Offset",
    "ResizeMode",
    "Scale",
    "resolve_ratio",
    "resolve_offset",
    "resolve_target",
    "scaled_dimensions",
    "crop_box",
    "validate_dimensions",
    "validate_target",
    # Options
    "ProcessingConfig",
    "ProcessingOptions",
    "parse_processing_options",
    "parse_size",
    # Files
    "is_in_dir",
    "normalize_format",
    "tmp_destination",
    "copy_to_tempfile",
    "prepare_source",
    "resolve_source",
    "output_path",
]
