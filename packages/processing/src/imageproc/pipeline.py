"""
Chainable image processing pipelines.

A Pipeline records a source, loader/saver options and an ordered list of
operations. Each builder method returns a new Pipeline, so a partially
built one can be reused:

    thumbs = Pipeline().source("photo.jpg").convert("webp")
    small = thumbs.resize_to_limit(400, 400).call()
    square = thumbs.resize_to_fill(200, 200, gravity="north").call()

Nothing touches the image until call()/execute()/run().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable

from PIL import Image

from imageproc_shared.errors import EngineFailure, InvalidSource
from imageproc_shared.files import normalize_format, prepare_source, tmp_destination
from imageproc_shared.geometry import (
    Dimensions,
    Gravity,
    ResizeMode,
    validate_dimensions,
    validate_target,
)
from imageproc_shared.options import ENGINES, ProcessingConfig, ProcessingOptions

from .magick import MagickEngine
from .operations import Convert, Crop, Custom, Engine, Operation, Pad, Resize
from .pillow_engine import PillowEngine

logger = logging.getLogger(__name__)

ENGINE_CLASSES: dict[str, type[Engine]] = {
    "pillow": PillowEngine,
    "magick": MagickEngine,
}


def get_engine(name: str, config: ProcessingConfig | None = None) -> Engine:
    """Instantiate an engine by name ("pillow" or "magick")."""
    try:
        engine_cls = ENGINE_CLASSES[name]
    except KeyError:
        raise ValueError(f"Unknown engine {name!r}, expected one of {sorted(ENGINES)}") from None
    return engine_cls(config)


def _gravity(gravity: Gravity | str | None) -> Gravity | None:
    return Gravity.parse(gravity) if gravity is not None else None


@dataclass(frozen=True)
class PipelineResult:
    """Output of a pipeline run."""
    path: Path
    format: str
    dimensions: Dimensions


@dataclass(frozen=True)
class Pipeline:
    """
    Immutable builder of image operations, executed by an Engine.

    The engine is picked by name; config supplies the default gravity,
    background, ImageMagick binary and timeout.
    """
    engine: str = "pillow"
    config: ProcessingConfig = field(default_factory=ProcessingConfig)
    file: Any = None
    loader_options: dict[str, Any] = field(default_factory=dict)
    saver_options: dict[str, Any] = field(default_factory=dict)
    operations: tuple[Operation, ...] = ()

    def __post_init__(self):
        if self.engine not in ENGINE_CLASSES:
            raise ValueError(f"Unknown engine {self.engine!r}, expected one of {sorted(ENGINES)}")

    @classmethod
    def from_options(
        cls,
        options: ProcessingOptions,
        engine: str | None = None,
        config: ProcessingConfig | None = None,
    ) -> Pipeline:
        """Build a pipeline from a ProcessingOptions request."""
        config = config or ProcessingConfig()
        pipeline = cls(engine=engine or config.engine, config=config)

        if options.has_resize():
            if options.mode is ResizeMode.PAD:
                pipeline = pipeline.resize_and_pad(
                    options.width, options.height, options.gravity, options.background
                )
            else:
                pipeline = pipeline.resize(
                    options.mode, options.width, options.height, options.gravity
                )
        if options.has_crop():
            pipeline = pipeline.crop(options.crop_w, options.crop_h, options.gravity)
        if options.format:
            pipeline = pipeline.convert(options.format)
        if options.quality is not None:
            pipeline = pipeline.saver(quality=options.quality)
        return pipeline

    def _add(self, op: Operation) -> Pipeline:
        return replace(self, operations=self.operations + (op,))

    def source(self, file: Any) -> Pipeline:
        """Path, or binary file object, of the image to process."""
        return replace(self, file=file)

    def loader(self, **options: Any) -> Pipeline:
        """Options for loading the source (page, geometry, fail, auto_orient, define)."""
        return replace(self, loader_options={**self.loader_options, **options})

    def saver(self, **options: Any) -> Pipeline:
        """Options for saving the result (quality, define, ...)."""
        return replace(self, saver_options={**self.saver_options, **options})

    def convert(self, fmt: str) -> Pipeline:
        return self._add(Convert(normalize_format(fmt)))

    def resize(
        self,
        mode: ResizeMode | str,
        width: int | None = None,
        height: int | None = None,
        gravity: Gravity | str | None = None,
    ) -> Pipeline:
        mode = ResizeMode.parse(mode)
        if mode is ResizeMode.PAD:
            return self.resize_and_pad(width, height, gravity)
        if mode is ResizeMode.FILL:
            width, height = validate_dimensions((width, height), "fill target")
        else:
            width, height = validate_target(width, height)
        return self._add(Resize(mode, width, height, _gravity(gravity)))

    def resize_to_limit(self, width: int | None = None, height: int | None = None) -> Pipeline:
        """Shrink to fit inside width x height; never enlarges."""
        return self.resize(ResizeMode.LIMIT, width, height)

    def resize_to_fit(self, width: int | None = None, height: int | None = None) -> Pipeline:
        """Scale to fit inside width x height, enlarging if needed."""
        return self.resize(ResizeMode.FIT, width, height)

    def resize_to_fill(self, width: int, height: int,
                       gravity: Gravity | str | None = None) -> Pipeline:
        """Scale to cover width x height, then crop the overflow by gravity."""
        return self.resize(ResizeMode.FILL, width, height, gravity)

    def resize_and_pad(
        self,
        width: int,
        height: int,
        gravity: Gravity | str | None = None,
        background: str | None = None,
    ) -> Pipeline:
        """Scale to fit inside width x height, then pad to exactly that size."""
        width, height = validate_dimensions((width, height), "pad target")
        return self._add(Pad(width, height, _gravity(gravity), background))

    def crop(self, width: int, height: int, gravity: Gravity | str | None = None) -> Pipeline:
        width, height = validate_dimensions((width, height), "crop")
        return self._add(Crop(width, height, _gravity(gravity)))

    def custom(self, func: Callable[[Any], Any]) -> Pipeline:
        """Run func on the engine's image handle (PIL image or MagickCommand)."""
        return self._add(Custom(getattr(func, "__name__", "custom"), func=func))

    def apply(self, name: str, *args: Any) -> Pipeline:
        """Native engine operation, e.g. apply("flip") or apply("rotate", 90)."""
        return self._add(Custom(name, tuple(args)))

    def append(self, *args: Any) -> Pipeline:
        """Raw convert arguments."""
        self._require_magick("append")
        return self._add(Custom("append", tuple(args)))

    def limits(self, **resources: Any) -> Pipeline:
        """ImageMagick resource limits, e.g. limits(time=10, memory="64MiB")."""
        self._require_magick("limits")
        return self._add(Custom("limits", tuple(resources.items())))

    def _require_magick(self, name: str) -> None:
        if self.engine != "magick":
            raise ValueError(f"{name}() is only supported by the magick engine")

    def output_format(self) -> str | None:
        """Format set by the last convert(), if any."""
        for op in reversed(self.operations):
            if isinstance(op, Convert):
                return op.format
        return None

    def call(
        self,
        file: Any = None,
        destination: str | Path | None = None,
        save: bool = True,
    ) -> Any:
        """
        Run the pipeline.

        Returns the destination path, or the engine's unsaved image handle
        when save is False. Without a destination the result goes to a
        temporary file named with the output format's extension.

        A stream source is copied to a temp file which is removed once the
        result is saved. With save=False the copy is left in place, since
        the returned handle may still read from it.
        """
        source_file = file if file is not None else self.file
        if source_file is None:
            raise InvalidSource("Pipeline has no source; call source() or pass a file")
        source, copied = prepare_source(source_file)

        try:
            engine = get_engine(self.engine, self.config)
            handle = engine.load(source, **self.loader_options)
            for op in self.operations:
                handle = engine.apply(handle, op)

            if not save:
                copied = False
                return handle

            fmt = self.output_format()
            created = destination is None
            if created:
                suffix = f".{fmt}" if fmt else source.suffix
                destination = tmp_destination(suffix)
            destination = Path(destination)

            try:
                engine.save(handle, destination, format=fmt, **self.saver_options)
            except Exception:
                if created:
                    destination.unlink(missing_ok=True)
                raise
        finally:
            if copied:
                source.unlink(missing_ok=True)

        logger.info("Processed %s -> %s (%d operations, %s)",
                    source.name, destination, len(self.operations), engine.name)
        return destination

    execute = call

    def run(self, file: Any = None, destination: str | Path | None = None) -> PipelineResult:
        """Like call(), but also reports the output format and dimensions."""
        path = self.call(file, destination)
        try:
            with Image.open(path) as img:
                size = Dimensions(img.width, img.height)
                fmt = (img.format or path.suffix.lstrip(".")).lower()
        except OSError as e:
            raise EngineFailure("pillow", f"cannot read output {path}: {e}") from e
        return PipelineResult(path=path, format=normalize_format(fmt), dimensions=size)

    def valid_image(self, file: Any) -> bool:
        """True if this pipeline's engine can decode file."""
        return valid_image(file, self.engine, self.config)


def pillow_pipeline(config: ProcessingConfig | None = None) -> Pipeline:
    return Pipeline(engine="pillow", config=config or ProcessingConfig())


def magick_pipeline(config: ProcessingConfig | None = None) -> Pipeline:
    return Pipeline(engine="magick", config=config or ProcessingConfig())


def valid_image(file: Any, engine: str = "pillow",
                config: ProcessingConfig | None = None) -> bool:
    """True if the engine can fully decode file, False for corrupt images."""
    source, copied = prepare_source(file)
    try:
        return get_engine(engine, config).valid_image(source)
    finally:
        if copied:
            source.unlink(missing_ok=True)
