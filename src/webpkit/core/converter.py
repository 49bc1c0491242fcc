import asyncio
import logging
import math
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from webpkit import constants
from webpkit.core.config import ConversionSettings, ResizeMode, ResizeSettings
from webpkit.core.sequence import ImageSequence, SourceImage
from webpkit.exceptions import ConversionStateError
from webpkit.io.file_utils import FileUtils
from webpkit.io.rasterizer import PixelBuffer, Rasterizer
from webpkit.processing.luminance import LuminanceProcessor

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_target_dimensions(
    width: int, height: int, resize: ResizeSettings
) -> tuple[int, int]:
    """Compute output dimensions for a source of ``width`` x ``height``.

    Args:
        width: Natural width
        height: Natural height
        resize: Resize settings

    Returns:
        (target_width, target_height), each at least 1
    """
    if resize.mode == ResizeMode.PERCENTAGE:
        scale = resize.percentage / 100
        target = (_round_half_up(width * scale), _round_half_up(height * scale))
    elif resize.mode == ResizeMode.WIDTH:
        target = (resize.width, _round_half_up(height * resize.width / width))
    elif resize.mode == ResizeMode.HEIGHT:
        target = (_round_half_up(width * resize.height / height), resize.height)
    elif resize.mode == ResizeMode.EXACT:
        target = (resize.width, resize.height)
    else:
        target = (width, height)

    return max(1, target[0]), max(1, target[1])


@dataclass(frozen=True)
class EncodedResult:
    """Encoded output of one conversion."""

    data: bytes = field(repr=False)
    width: int
    height: int
    format: str

    @property
    def byte_size(self) -> int:
        return len(self.data)


class ConversionPipeline:
    """Converts one image: decode, resize, luminance filters, encode."""

    def __init__(
        self, rasterizer: Rasterizer, output_format: str = constants.DEFAULT_OUTPUT_FORMAT
    ) -> None:
        """Initialize the pipeline.

        Args:
            rasterizer: Backend used to decode, resample and encode
            output_format: Target format name (e.g. "webp")
        """
        self.rasterizer = rasterizer
        self.output_format = output_format

    def convert(self, source: SourceImage, settings: ConversionSettings) -> EncodedResult:
        """Convert a source image.

        Raises:
            DecodeError: If the source cannot be decoded
            ContextUnavailableError: If the backend cannot resample or access pixels
            EncodeError: If the encoder produces no output
        """
        buffer = self.rasterizer.decode(source.read(), source.name)
        buffer = self._transform(buffer, settings)
        return self._encode(buffer, settings)

    async def convert_async(
        self, source: SourceImage, settings: ConversionSettings
    ) -> EncodedResult:
        """Async variant of :meth:`convert`; decode and encode run in worker threads."""
        data = await asyncio.to_thread(source.read)
        buffer = await asyncio.to_thread(self.rasterizer.decode, data, source.name)
        buffer = self._transform(buffer, settings)
        return await asyncio.to_thread(self._encode, buffer, settings)

    def _transform(self, buffer: PixelBuffer, settings: ConversionSettings) -> PixelBuffer:
        target_width, target_height = calculate_target_dimensions(
            buffer.width, buffer.height, settings.resize
        )

        # One resample straight from the decoded resolution to the target
        if (target_width, target_height) != (buffer.width, buffer.height):
            buffer = self.rasterizer.resample(buffer, target_width, target_height)

        if settings.needs_luminance_pass:
            LuminanceProcessor.process(
                buffer.pixels, denoise=settings.denoise, sharpen=settings.sharpen
            )

        return buffer

    def _encode(self, buffer: PixelBuffer, settings: ConversionSettings) -> EncodedResult:
        data = self.rasterizer.encode(
            buffer,
            self.output_format,
            settings.encode_quality,
            lossless=settings.lossless,
        )
        return EncodedResult(data, buffer.width, buffer.height, self.output_format)


class ImageStatus(Enum):
    """Per-image conversion state."""

    PENDING = "pending"
    CONVERTING = "converting"
    DONE = "done"
    ERROR = "error"


@dataclass
class ImageResult:
    """Conversion state and output of one image."""

    id: str
    name: str
    base_name: str
    frame_number: Optional[int]
    original_byte_size: int
    output_name: str
    status: ImageStatus = ImageStatus.PENDING
    converted_byte_size: Optional[int] = None
    encoded_bytes: Optional[bytes] = field(default=None, repr=False)
    error_message: Optional[str] = None

    @classmethod
    def from_source(cls, image: SourceImage, output_format: str) -> "ImageResult":
        return cls(
            id=image.id,
            name=image.name,
            base_name=image.base_name,
            frame_number=image.frame_number,
            original_byte_size=image.original_byte_size,
            output_name=FileUtils.get_output_filename(image.name, output_format),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (ImageStatus.DONE, ImageStatus.ERROR)

    def mark_converting(self) -> None:
        if self.status != ImageStatus.PENDING:
            raise ConversionStateError(
                f"{self.name}: cannot start converting from {self.status.value}"
            )
        self.status = ImageStatus.CONVERTING

    def mark_done(self, result: EncodedResult) -> None:
        self._require_converting()
        self.encoded_bytes = result.data
        self.converted_byte_size = result.byte_size
        self.status = ImageStatus.DONE

    def mark_error(self, message: str) -> None:
        self._require_converting()
        self.error_message = message
        self.status = ImageStatus.ERROR

    def _require_converting(self) -> None:
        if self.status != ImageStatus.CONVERTING:
            raise ConversionStateError(
                f"{self.name}: not converting (status {self.status.value})"
            )


@dataclass
class SequenceResult:
    """Conversion results for one detected sequence."""

    id: str
    base_name: str
    is_sequence: bool
    missing_frames: list[int]
    images: list[ImageResult]
    total_original_size: int

    @classmethod
    def from_sequence(cls, sequence: ImageSequence, output_format: str) -> "SequenceResult":
        return cls(
            id=sequence.id,
            base_name=sequence.base_name,
            is_sequence=sequence.is_sequence,
            missing_frames=list(sequence.missing_frames),
            images=[ImageResult.from_source(img, output_format) for img in sequence.images],
            total_original_size=sequence.total_original_size,
        )

    @property
    def total_converted_size(self) -> int:
        return sum(img.converted_byte_size or 0 for img in self.images)

    @property
    def completed(self) -> list[ImageResult]:
        return [img for img in self.images if img.status == ImageStatus.DONE]

    @property
    def failed(self) -> list[ImageResult]:
        return [img for img in self.images if img.status == ImageStatus.ERROR]


class BatchConverter:
    """Runs the pipeline over detected sequences and tracks per-image status.

    A failing image is recorded as ERROR and never stops its siblings.
    """

    def __init__(self, pipeline: ConversionPipeline, max_workers: int = 1) -> None:
        """Initialize the batch converter.

        Args:
            pipeline: Pipeline used for every image
            max_workers: Concurrent conversions (1 converts sequentially)
        """
        self.pipeline = pipeline
        self.max_workers = max(1, max_workers)

    def convert(
        self,
        sequences: Iterable[ImageSequence],
        settings: ConversionSettings,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> list[SequenceResult]:
        """Convert every image of every sequence.

        Args:
            sequences: Sequences from SequenceDetector.detect
            settings: Settings applied to all images
            progress_callback: Called with (finished, total); a tqdm bar is
                shown when omitted

        Returns:
            One SequenceResult per sequence, in input order
        """
        sequences = list(sequences)
        results, jobs = self._prepare(sequences)
        total = len(jobs)
        finished = 0
        pbar = None

        logger.info(f"Converting {total} image(s) in {len(sequences)} group(s)")

        def _tick(sequence: ImageSequence, image_result: ImageResult) -> None:
            nonlocal finished
            finished += 1
            if image_result.status == ImageStatus.DONE:
                sequence.record_converted(image_result.converted_byte_size)
            if progress_callback:
                progress_callback(finished, total)
            elif pbar is not None:
                pbar.update(1)

        try:
            if progress_callback is None:
                from tqdm import tqdm

                pbar = tqdm(total=total, desc="Converting images", unit="img")

            if self.max_workers > 1:
                with ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="webpkit-convert"
                ) as executor:
                    futures = {
                        executor.submit(self.convert_image, image, image_result, settings): (
                            sequence,
                            image_result,
                        )
                        for sequence, image, image_result in jobs
                    }
                    for future in as_completed(futures):
                        future.result()
                        _tick(*futures[future])
            else:
                for sequence, image, image_result in jobs:
                    self.convert_image(image, image_result, settings)
                    _tick(sequence, image_result)
        finally:
            if pbar is not None:
                pbar.close()

        self._log_summary(results)
        return results

    async def convert_async(
        self, sequences: Iterable[ImageSequence], settings: ConversionSettings
    ) -> list[SequenceResult]:
        """Convert all images concurrently on the running event loop."""
        sequences = list(sequences)
        results, jobs = self._prepare(sequences)

        async def _run(sequence: ImageSequence, image: SourceImage, image_result: ImageResult):
            image_result.mark_converting()
            try:
                encoded = await self.pipeline.convert_async(image, settings)
            except Exception as e:
                logger.warning(f"Failed to convert {image.name}: {e}")
                image_result.mark_error(str(e) or type(e).__name__)
                return
            image_result.mark_done(encoded)
            sequence.record_converted(encoded.byte_size)

        await asyncio.gather(*(_run(*job) for job in jobs))
        self._log_summary(results)
        return results

    def convert_image(
        self, image: SourceImage, image_result: ImageResult, settings: ConversionSettings
    ) -> ImageResult:
        """Convert one image, recording success or failure on ``image_result``."""
        image_result.mark_converting()
        try:
            encoded = self.pipeline.convert(image, settings)
        except Exception as e:
            logger.warning(f"Failed to convert {image.name}: {e}")
            image_result.mark_error(str(e) or type(e).__name__)
            return image_result

        image_result.mark_done(encoded)
        logger.debug(
            f"Converted {image.name}: {image.original_byte_size} -> {encoded.byte_size} bytes"
        )
        return image_result

    def _prepare(
        self, sequences: list[ImageSequence]
    ) -> tuple[list[SequenceResult], list[tuple[ImageSequence, SourceImage, ImageResult]]]:
        results = [
            SequenceResult.from_sequence(seq, self.pipeline.output_format) for seq in sequences
        ]
        jobs = [
            (sequence, image, image_result)
            for sequence, result in zip(sequences, results)
            for image, image_result in zip(sequence.images, result.images)
        ]
        return results, jobs

    @staticmethod
    def _log_summary(results: list[SequenceResult]) -> None:
        done = sum(len(r.completed) for r in results)
        failed = sum(len(r.failed) for r in results)
        if failed:
            logger.warning(f"{done} image(s) converted, {failed} failed")
        else:
            logger.info(f"{done} image(s) converted")
