"""
File handling utilities for pipelines and the CLI
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from pathlib import Path
from typing import IO, Any

from werkzeug.utils import secure_filename

from .errors import InvalidSource

logger = logging.getLogger(__name__)

FORMAT_ALIASES: dict[str, str] = {
    "jpeg": "jpg",
    "tif": "tiff",
}


def is_in_dir(base: Path, target: Path) -> bool:
    """Check if target path is in base dir."""
    try:
        target.resolve().relative_to(base.resolve())
        return True
    except ValueError:
        return False


def normalize_format(fmt: str) -> str:
    """"JPEG", ".jpeg" and "jpg" all become "jpg"."""
    fmt = fmt.strip().lower().lstrip(".")
    if not fmt:
        raise ValueError("Empty image format")
    return FORMAT_ALIASES.get(fmt, fmt)


def tmp_destination(suffix: str) -> Path:
    """Create an empty temporary file for pipeline output and return its path."""
    fd, name = tempfile.mkstemp(prefix="imageproc-", suffix=suffix)
    os.close(fd)
    return Path(name)


def copy_to_tempfile(stream: IO[Any], suffix: str = "") -> Path:
    """
    Copy a binary file object into a temporary file.

    Raises InvalidSource for text streams and empty input.
    """
    data = stream.read()
    if isinstance(data, str):
        raise InvalidSource("Source stream must be opened in binary mode")
    if not data:
        raise InvalidSource("Source stream is empty")

    if hasattr(stream, "seek"):
        try:
            stream.seek(0)
        except OSError:
            pass

    path = tmp_destination(suffix)
    path.write_bytes(data)
    logger.debug("Copied %d bytes from stream to %s", len(data), path)
    return path


def _is_text_stream(source: Any) -> bool:
    if isinstance(source, io.TextIOBase):
        return True
    mode = getattr(source, "mode", None)
    return isinstance(mode, str) and "b" not in mode


def prepare_source(source: Any) -> tuple[Path, bool]:
    """
    Turn a pipeline source into a path on disk.

    Paths are used directly; binary file objects with a real ``name`` on
    disk are read from there, anything else readable is copied to a temp
    file. Returns (path, copied); when copied is True the caller owns the
    temp file and should delete it. Text streams raise InvalidSource.
    """
    if source is None:
        raise InvalidSource("No source image given")

    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        if not path.is_file():
            raise InvalidSource(f"Source file not found: {path}")
        return path, False

    if not hasattr(source, "read"):
        raise InvalidSource(f"Unsupported source type: {type(source).__name__}")
    if _is_text_stream(source):
        raise InvalidSource("Source stream must be opened in binary mode")

    name = getattr(source, "name", None)
    if isinstance(name, (str, os.PathLike)) and Path(name).is_file():
        return Path(name), False

    suffix = Path(name).suffix if isinstance(name, str) else ""
    return copy_to_tempfile(source, suffix), True


def resolve_source(source: Any) -> Path:
    """Like prepare_source, for callers that keep any temp copy."""
    path, _ = prepare_source(source)
    return path


def output_path(dest_dir: Path, source: Path, fmt: str | None = None) -> Path:
    """Safe output path in dest_dir named after source, with fmt's extension."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    suffix = f".{normalize_format(fmt)}" if fmt else source.suffix
    stem = secure_filename(source.stem) or "image"
    ext = secure_filename(suffix.lstrip("."))
    safe_name = f"{stem}.{ext}" if ext else stem

    out_path = dest_dir / safe_name
    if not is_in_dir(dest_dir, out_path):
        raise InvalidSource(f"Path traversal attempt: {source.name}")
    return out_path
