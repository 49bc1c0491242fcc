"""Public Python API for webpkit."""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Optional, Union

from webpkit import constants
from webpkit.core.config import DEFAULT_SETTINGS, ConversionSettings
from webpkit.core.converter import BatchConverter, ConversionPipeline, SequenceResult
from webpkit.core.sequence import ImageSequence, SequenceDetector
from webpkit.io.file_utils import FileUtils
from webpkit.io.rasterizer import OIIORasterizer, Rasterizer
from webpkit.logging_utils import setup_logging

logger = logging.getLogger("webpkit.api.processor")

PathLike = Union[str, Path]


class WebPKit:
    """Main public API for sequence detection and image conversion."""

    def __init__(
        self,
        rasterizer: Optional[Rasterizer] = None,
        output_format: str = constants.DEFAULT_OUTPUT_FORMAT,
        configure_logging: bool = True,
    ) -> None:
        """Initialize WebPKit.

        Args:
            rasterizer: Decode/resample/encode backend (defaults to OpenImageIO)
            output_format: Target format for every conversion
            configure_logging: Install webpkit's log handlers
        """
        if configure_logging:
            setup_logging()
        self.rasterizer = rasterizer or OIIORasterizer()
        self.pipeline = ConversionPipeline(self.rasterizer, output_format)

    def detect_sequences(
        self,
        paths: Iterable[PathLike],
        recursive: bool = False,
        max_gap: int = constants.DEFAULT_MAX_FRAME_GAP,
    ) -> list[ImageSequence]:
        """Collect files under ``paths`` and group them into sequences.

        Example:
            >>> kit = WebPKit()
            >>> for seq in kit.detect_sequences(["renders/"]):
            ...     print(seq.base_name, seq.missing_frames)
        """
        files = FileUtils.collect_files([Path(p) for p in paths], recursive=recursive)
        return SequenceDetector.detect(files, max_gap=max_gap)

    def convert_sequences(
        self,
        sequences: Iterable[ImageSequence],
        settings: ConversionSettings = DEFAULT_SETTINGS,
        max_workers: int = 1,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> list[SequenceResult]:
        """Convert already detected sequences."""
        converter = BatchConverter(self.pipeline, max_workers=max_workers)
        return converter.convert(sequences, settings, progress_callback=progress_callback)

    def convert_files(
        self,
        paths: Iterable[PathLike],
        settings: ConversionSettings = DEFAULT_SETTINGS,
        recursive: bool = False,
        max_workers: int = 1,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> list[SequenceResult]:
        """Detect sequences under ``paths`` and convert every image.

        Args:
            paths: Files and/or directories
            settings: Conversion settings
            recursive: Descend into subdirectories
            max_workers: Concurrent conversions
            progress_callback: Called with (finished, total)

        Returns:
            Results per detected sequence; failed images carry ERROR status

        Example:
            >>> from webpkit.core.config import ConversionSettingsBuilder, QualityPreset
            >>> settings = ConversionSettingsBuilder()\\
            ...     .with_preset(QualityPreset.WEB)\\
            ...     .with_resize_width(1280)\\
            ...     .build()
            >>> results = WebPKit().convert_files(["frames/"], settings)
        """
        sequences = self.detect_sequences(paths, recursive=recursive)
        return self.convert_sequences(
            sequences,
            settings,
            max_workers=max_workers,
            progress_callback=progress_callback,
        )
