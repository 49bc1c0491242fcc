"""CLI interface for webpkit."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from webpkit import __version__, constants
from webpkit.api.processor import WebPKit
from webpkit.core.config import ConversionSettingsBuilder, QualityPreset
from webpkit.exceptions import ConfigurationError
from webpkit.io.packager import OutputPackager
from webpkit.logging_utils import setup_logging

logger = logging.getLogger("webpkit.cli.main")


def _parse_size(ctx: click.Context, param: click.Parameter, value: Optional[str]):
    if value is None:
        return None
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise click.BadParameter("expected WIDTHxHEIGHT, e.g. 1920x1080") from None
    return width, height


def _format_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


@click.group()
@click.version_option(__version__)
def main() -> None:
    """webpkit - batch WebP conversion with frame sequence detection."""
    setup_logging()


@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--recursive", "-r", is_flag=True, default=False, help="Scan subdirectories.")
@click.option(
    "--max-gap",
    type=click.IntRange(min=0),
    default=constants.DEFAULT_MAX_FRAME_GAP,
    show_default=True,
    help="Largest frame gap that keeps frames in the same sequence.",
)
def detect(paths: tuple[Path, ...], recursive: bool, max_gap: int) -> None:
    """List frame sequences and single images found in PATHS.

    Examples:

    \b
        webpkit detect renders/
        webpkit detect renders/ --recursive --max-gap 10
    """
    kit = WebPKit(rasterizer=None, configure_logging=False)
    sequences = kit.detect_sequences(paths, recursive=recursive, max_gap=max_gap)

    if not sequences:
        click.echo("No image files found.")
        return

    for sequence in sequences:
        size = _format_size(sequence.total_original_size)
        if sequence.is_sequence:
            first, last = sequence.frame_range
            click.echo(f"{sequence.base_name}: {len(sequence)} frames [{first}-{last}], {size}")
            if sequence.missing_frames:
                missing = ", ".join(str(frame) for frame in sequence.missing_frames)
                click.echo(f"  missing: {missing}")
        else:
            click.echo(f"{sequence.images[0].name}: single image, {size}")


@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Directory for converted files.",
)
@click.option(
    "--preset",
    type=click.Choice([p.value for p in QualityPreset], case_sensitive=False),
    default=QualityPreset.CUSTOM.value,
    help="Quality preset; explicit options below override it.",
)
@click.option("--quality", type=click.IntRange(0, 100), default=None, help="Quality 0-100.")
@click.option("--lossless", is_flag=True, default=False, help="Lossless encoding.")
@click.option("--sharpen", type=click.IntRange(0, 100), default=None, help="Sharpen 0-100.")
@click.option("--denoise", type=click.IntRange(0, 100), default=None, help="Denoise 0-100.")
@click.option("--scale", type=float, default=None, help="Resize to a percentage of the source.")
@click.option("--width", type=int, default=None, help="Resize to width, keeping aspect ratio.")
@click.option("--height", type=int, default=None, help="Resize to height, keeping aspect ratio.")
@click.option(
    "--size",
    callback=_parse_size,
    default=None,
    help="Resize to exact WIDTHxHEIGHT (aspect ratio not preserved).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(sorted(constants.OUTPUT_FORMAT_EXTENSIONS), case_sensitive=False),
    default=constants.DEFAULT_OUTPUT_FORMAT,
    show_default=True,
    help="Output format.",
)
@click.option("--recursive", "-r", is_flag=True, default=False, help="Scan subdirectories.")
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Number of images converted in parallel.",
)
@click.option("--zip", "as_zip", is_flag=True, default=False, help="Write one zip archive.")
@click.option("--overwrite", is_flag=True, default=False, help="Overwrite existing outputs.")
def convert(
    paths: tuple[Path, ...],
    output_dir: Path,
    preset: str,
    quality: Optional[int],
    lossless: bool,
    sharpen: Optional[int],
    denoise: Optional[int],
    scale: Optional[float],
    width: Optional[int],
    height: Optional[int],
    size: Optional[tuple[int, int]],
    output_format: str,
    recursive: bool,
    workers: int,
    as_zip: bool,
    overwrite: bool,
) -> None:
    """Convert images in PATHS.

    Examples:

    \b
        # Convert a frame folder with the web preset
        webpkit convert frames/ -o out/ --preset web

    \b
        # Half size, lossless, packaged as a zip
        webpkit convert frames/ -o out/ --scale 50 --lossless --zip
    """
    resize_options = [opt for opt in (scale, width, height, size) if opt is not None]
    if len(resize_options) > 1:
        raise click.UsageError("Use only one of --scale, --width, --height and --size.")

    builder = ConversionSettingsBuilder().with_preset(QualityPreset(preset.lower()))
    if quality is not None:
        builder.with_quality(quality)
    if lossless:
        builder.with_lossless(True)
    if sharpen is not None:
        builder.with_sharpen(sharpen)
    if denoise is not None:
        builder.with_denoise(denoise)
    if scale is not None:
        builder.with_resize_percentage(scale)
    elif width is not None:
        builder.with_resize_width(width)
    elif height is not None:
        builder.with_resize_height(height)
    elif size is not None:
        builder.with_exact_size(*size)
        logger.warning("Exact size does not preserve the aspect ratio")

    try:
        settings = builder.build()
    except ConfigurationError as e:
        raise click.BadParameter(str(e)) from e

    kit = WebPKit(output_format=output_format.lower(), configure_logging=False)
    sequences = kit.detect_sequences(paths, recursive=recursive)
    if not sequences:
        click.echo("No image files found.", err=True)
        sys.exit(1)

    results = kit.convert_sequences(sequences, settings, max_workers=workers)

    output_dir.mkdir(parents=True, exist_ok=True)
    if as_zip:
        archive = OutputPackager.write_batch_archive(
            results, directory=output_dir, overwrite=overwrite
        )
        if archive is None:
            click.echo("Use --overwrite to replace the existing archive.", err=True)
            sys.exit(1)
        click.echo(f"Wrote {archive}")
    else:
        written = []
        for result in results:
            written.extend(OutputPackager.write_images(result.images, output_dir, overwrite))
        click.echo(f"Wrote {len(written)} file(s) to {output_dir}")

    original = sum(img.original_byte_size for r in results for img in r.completed)
    converted = sum(r.total_converted_size for r in results)
    click.echo(f"Size: {_format_size(original)} -> {_format_size(converted)}")

    failed = [img for result in results for img in result.failed]
    for image in failed:
        click.echo(f"FAILED {image.name}: {image.error_message}", err=True)
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
