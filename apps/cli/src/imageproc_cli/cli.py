"""CLI for imageproc."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from imageproc import Pipeline, image_difference, valid_image
from imageproc.analysis import DEFAULT_SIMILARITY_THRESHOLD
from imageproc_shared.errors import ImageProcessingError
from imageproc_shared.files import output_path
from imageproc_shared.options import ENGINES, parse_processing_options, parse_size

from .config import CliConfig

logger = logging.getLogger(__name__)

RESIZE_MODES = ("limit", "fit", "fill", "pad")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Resize, crop, pad and convert images."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    try:
        ctx.obj = CliConfig.load()
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e


@cli.command()
@click.argument("src", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Output file (default: output dir / source name)")
@click.option("--engine", type=click.Choice(sorted(ENGINES)), default=None,
              help="Image engine (default: IMAGEPROC_ENGINE or pillow)")
@click.option("--limit", default=None, help="Shrink to fit inside WxH")
@click.option("--fit", default=None, help="Scale to fit inside WxH")
@click.option("--fill", default=None, help="Scale to cover WxH and crop")
@click.option("--pad", default=None, help="Scale to fit WxH and pad")
@click.option("--crop", default=None, help="Crop to WxH")
@click.option("--gravity", default=None, help="Anchor for fill/pad/crop")
@click.option("--background", default=None, help="Pad color")
@click.option("--format", "fmt", default=None, help="Output format, e.g. png")
@click.option("--quality", type=int, default=None, help="Output quality")
@click.pass_obj
def process(config: CliConfig, src: Path, output: Path | None, engine: str | None,
            limit: str | None, fit: str | None, fill: str | None, pad: str | None,
            crop: str | None, gravity: str | None, background: str | None,
            fmt: str | None, quality: int | None) -> None:
    """Process one image."""
    sizes = {"limit": limit, "fit": fit, "fill": fill, "pad": pad}
    chosen = [mode for mode in RESIZE_MODES if sizes[mode] is not None]
    if len(chosen) > 1:
        raise click.UsageError(f"Use only one of --{', --'.join(RESIZE_MODES)}")

    try:
        data: dict[str, object] = {
            "gravity": gravity,
            "background": background,
            "format": fmt,
            "quality": quality,
        }
        if chosen:
            mode = chosen[0]
            data["mode"] = mode
            data["width"], data["height"] = parse_size(sizes[mode])
        if crop is not None:
            data["crop_w"], data["crop_h"] = parse_size(crop)

        options = parse_processing_options(data)
        pipeline = Pipeline.from_options(options, engine=engine, config=config.processing)

        if output is None:
            config.ensure_directories()
            output = output_path(config.output_dir, src, options.format)

        result = pipeline.source(src).run(destination=output)
    except ImageProcessingError as e:
        logger.error("Processing %s failed: %s", src, e)
        raise click.ClickException(str(e)) from e

    width, height = result.dimensions
    click.echo(f"{result.path} {width}x{height} {result.format}")


@cli.command()
@click.argument("paths", nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--engine", type=click.Choice(sorted(ENGINES)), default=None)
@click.pass_obj
def valid(config: CliConfig, paths: tuple[Path, ...], engine: str | None) -> None:
    """Check that images decode cleanly."""
    engine = engine or config.processing.engine
    failed = 0
    for path in paths:
        ok = valid_image(path, engine=engine, config=config.processing)
        click.echo(f"{'ok' if ok else 'invalid'} {path}")
        failed += not ok
    if failed:
        sys.exit(1)


@cli.command()
@click.argument("a", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("b", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--threshold", type=float, default=DEFAULT_SIMILARITY_THRESHOLD,
              show_default=True, help="Max mean pixel difference for similar images")
def compare(a: Path, b: Path, threshold: float) -> None:
    """Compare two images; exit 1 if they differ."""
    try:
        diff = image_difference(a, b)
    except OSError as e:
        raise click.ClickException(f"Cannot compare {a} and {b}: {e}") from e

    similar = diff < threshold
    click.echo(f"{diff:.2f} {'similar' if similar else 'different'}")
    if not similar:
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
