"""
Command line front end for imageproc. It:
1. Parses sizes, gravity and format options
2. Builds a Pipeline for the chosen engine
3. Runs it and reports the output path and dimensions

Deployment:
    pip install imageproc
    imageproc process photo.jpg --fill 400x400 --gravity north -o thumb.jpg
"""

from .cli import cli, main
from .config import CliConfig

__all__ = ["cli", "main", "CliConfig"]
