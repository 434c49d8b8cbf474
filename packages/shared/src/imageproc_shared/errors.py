"""
Exception types shared by the geometry core, the pipeline and the engines.

Validation errors are raised where the bad value is first seen. Engine
errors are wrapped in EngineFailure with the original exception chained.
"""

from __future__ import annotations


class ImageProcessingError(Exception):
    """Base exception for everything raised by imageproc."""
    pass


class InvalidDimension(ImageProcessingError, ValueError):
    """Raised when a width or height is not a positive integer, or both are missing."""
    pass


class InvalidGravity(ImageProcessingError, ValueError):
    """Raised when a gravity is not one of the nine known directions."""
    pass


class InvalidSource(ImageProcessingError, ValueError):
    """Raised when a pipeline has no usable source image."""
    pass


class EngineFailure(ImageProcessingError):
    """Raised when the wrapped image engine fails to process an image."""

    def __init__(self, engine: str, message: str):
        self.engine = engine
        super().__init__(f"{engine} failed: {message}")
