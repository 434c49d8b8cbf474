"""Configuration for the imageproc CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from imageproc_shared.options import ProcessingConfig


@dataclass(frozen=True)
class CliConfig:
    """CLI configuration."""

    output_dir: Path = Path("imageproc-output")
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)

    @classmethod
    def load(cls) -> CliConfig:
        """Load from environment variables."""
        return cls(
            output_dir=Path(os.getenv("IMAGEPROC_OUTPUT_DIR", "imageproc-output")),
            processing=ProcessingConfig.load(),
        )

    def ensure_directories(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
