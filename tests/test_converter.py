"""Tests for the conversion pipeline and batch converter."""

import asyncio

import numpy as np
import pytest
from conftest import FakeRasterizer, encode_raw, make_image, raw_file

from webpkit.core.config import (
    ConversionSettings,
    ConversionSettingsBuilder,
    ResizeMode,
    ResizeSettings,
)
from webpkit.core.converter import (
    BatchConverter,
    ConversionPipeline,
    EncodedResult,
    ImageResult,
    ImageStatus,
    calculate_target_dimensions,
)
from webpkit.core.sequence import SequenceDetector
from webpkit.exceptions import ConversionStateError, DecodeError, EncodeError
from webpkit.io.raw_file import RawFile


def _source(name: str = "frame_01.png", width: int = 4, height: int = 4, **kwargs):
    return SequenceDetector.create_source_images([raw_file(name, width, height, **kwargs)])[0]


class TestCalculateTargetDimensions:
    """Tests for calculate_target_dimensions."""

    def test_percentage(self) -> None:
        resize = ResizeSettings(ResizeMode.PERCENTAGE, percentage=50)
        assert calculate_target_dimensions(200, 100, resize) == (100, 50)

    def test_percentage_rounds(self) -> None:
        resize = ResizeSettings(ResizeMode.PERCENTAGE, percentage=50)
        assert calculate_target_dimensions(201, 99, resize) == (101, 50)

    def test_width_keeps_aspect(self) -> None:
        resize = ResizeSettings(ResizeMode.WIDTH, width=960)
        assert calculate_target_dimensions(1920, 1080, resize) == (960, 540)

    def test_height_keeps_aspect(self) -> None:
        resize = ResizeSettings(ResizeMode.HEIGHT, height=540)
        assert calculate_target_dimensions(1920, 1080, resize) == (960, 540)

    def test_exact(self) -> None:
        resize = ResizeSettings(ResizeMode.EXACT, width=300, height=300)
        assert calculate_target_dimensions(1920, 1080, resize) == (300, 300)

    def test_minimum_one_pixel(self) -> None:
        resize = ResizeSettings(ResizeMode.PERCENTAGE, percentage=1)
        assert calculate_target_dimensions(10, 10, resize) == (1, 1)


class TestConversionPipeline:
    """Tests for ConversionPipeline."""

    def test_percentage_resize(self, rasterizer: FakeRasterizer) -> None:
        """Test a 200x100 source at 50% is encoded at 100x50."""
        pipeline = ConversionPipeline(rasterizer)
        settings = ConversionSettingsBuilder().with_resize_percentage(50).build()

        result = pipeline.convert(_source(width=200, height=100), settings)

        assert rasterizer.resampled == [(200, 100, 100, 50)]
        assert (rasterizer.encoded[0]["width"], rasterizer.encoded[0]["height"]) == (100, 50)
        assert (result.width, result.height) == (100, 50)

    def test_no_resample_when_size_unchanged(self, rasterizer: FakeRasterizer) -> None:
        pipeline = ConversionPipeline(rasterizer)

        pipeline.convert(_source(width=8, height=6), ConversionSettings())

        assert rasterizer.resampled == []
        assert rasterizer.encoded[0]["width"] == 8

    def test_quality_passed_to_encoder(self, rasterizer: FakeRasterizer) -> None:
        pipeline = ConversionPipeline(rasterizer)

        pipeline.convert(_source(), ConversionSettings(quality=80))

        call = rasterizer.encoded[0]
        assert call["quality"] == pytest.approx(0.8)
        assert call["lossless"] is False
        assert call["format"] == "webp"

    def test_lossless_ignores_quality(self, rasterizer: FakeRasterizer) -> None:
        """Test lossless calls differing only in quality encode identically."""
        pipeline = ConversionPipeline(rasterizer)

        pipeline.convert(_source(), ConversionSettings(quality=10, lossless=True))
        pipeline.convert(_source(), ConversionSettings(quality=95, lossless=True))

        first, second = rasterizer.encoded
        assert first["quality"] == second["quality"] == 1.0
        assert first["lossless"] is second["lossless"] is True

    def test_luminance_skipped_without_filters(
        self, rasterizer: FakeRasterizer, monkeypatch
    ) -> None:
        from webpkit.processing.luminance import LuminanceProcessor

        def fail(*args, **kwargs):
            raise AssertionError("luminance pass should be skipped")

        monkeypatch.setattr(LuminanceProcessor, "process", fail)
        pipeline = ConversionPipeline(rasterizer)

        pipeline.convert(_source(), ConversionSettings(quality=50))

        assert len(rasterizer.encoded) == 1

    def test_luminance_applied_after_resize(self, rasterizer: FakeRasterizer) -> None:
        """Test filters run on the resampled buffer and keep hue."""
        pixels = make_image(16, 16, (60, 30, 15, 255))
        pixels[:, 8:] = (180, 90, 45, 255)
        source = SequenceDetector.create_source_images(
            [RawFile.from_bytes("edge.png", encode_raw(pixels))]
        )[0]
        settings = (
            ConversionSettingsBuilder().with_resize_percentage(50).with_sharpen(80).build()
        )

        ConversionPipeline(rasterizer).convert(source, settings)

        encoded = rasterizer.encoded[0]["pixels"]
        assert encoded.shape == (8, 8, 4)
        # The edge got more contrast, but R:G:B stays 4:2:1 up to rounding
        assert encoded[4, 3, 0] < 60
        assert encoded[4, 4, 0] > 180
        for y, x in ((4, 3), (4, 4)):
            r, g, b = encoded[y, x, :3].astype(float)
            assert abs(r / 2 - g) <= 1
            assert abs(r / 4 - b) <= 1

    def test_result(self, rasterizer: FakeRasterizer) -> None:
        result = ConversionPipeline(rasterizer).convert(_source(), ConversionSettings())

        assert isinstance(result, EncodedResult)
        assert result.byte_size == len(result.data) > 0
        assert result.format == "webp"

    def test_decode_error(self, rasterizer: FakeRasterizer) -> None:
        source = SequenceDetector.create_source_images(
            [RawFile.from_bytes("broken.png", b"not an image")]
        )[0]

        with pytest.raises(DecodeError):
            ConversionPipeline(rasterizer).convert(source, ConversionSettings())
        assert rasterizer.encoded == []

    def test_encode_error(self) -> None:
        pipeline = ConversionPipeline(FakeRasterizer(fail_encode=True))

        with pytest.raises(EncodeError):
            pipeline.convert(_source(), ConversionSettings())

    def test_convert_async(self, rasterizer: FakeRasterizer) -> None:
        pipeline = ConversionPipeline(rasterizer)
        settings = ConversionSettingsBuilder().with_resize_percentage(50).build()

        result = asyncio.run(pipeline.convert_async(_source(width=200, height=100), settings))

        assert (result.width, result.height) == (100, 50)

    def test_output_format(self, rasterizer: FakeRasterizer) -> None:
        ConversionPipeline(rasterizer, output_format="png").convert(_source(), ConversionSettings())
        assert rasterizer.encoded[0]["format"] == "png"


class TestImageResult:
    """Tests for per-image status transitions."""

    def _result(self) -> ImageResult:
        return ImageResult.from_source(_source("Shot_0001.PNG"), "webp")

    def test_initial_state(self) -> None:
        result = self._result()

        assert result.status == ImageStatus.PENDING
        assert result.output_name == "Shot_0001.webp"
        assert result.frame_number == 1

    def test_done(self) -> None:
        result = self._result()
        result.mark_converting()
        result.mark_done(EncodedResult(b"1234", 2, 2, "webp"))

        assert result.status == ImageStatus.DONE
        assert result.converted_byte_size == 4
        assert result.encoded_bytes == b"1234"

    def test_error(self) -> None:
        result = self._result()
        result.mark_converting()
        result.mark_error("boom")

        assert result.status == ImageStatus.ERROR
        assert result.error_message == "boom"
        assert result.encoded_bytes is None

    def test_converting_entered_once(self) -> None:
        result = self._result()
        result.mark_converting()

        with pytest.raises(ConversionStateError):
            result.mark_converting()

    def test_terminal_states_final(self) -> None:
        result = self._result()
        result.mark_converting()
        result.mark_done(EncodedResult(b"x", 1, 1, "webp"))

        with pytest.raises(ConversionStateError):
            result.mark_error("late failure")
        with pytest.raises(ConversionStateError):
            result.mark_converting()
        assert result.is_terminal

    def test_done_requires_converting(self) -> None:
        with pytest.raises(ConversionStateError):
            self._result().mark_done(EncodedResult(b"x", 1, 1, "webp"))


class TestBatchConverter:
    """Tests for BatchConverter."""

    def _batch(self):
        return [
            raw_file("clip_01.png"),
            RawFile.from_bytes("clip_02.png", b"corrupt"),
            raw_file("clip_03.png"),
            raw_file("poster.png", 6, 3),
        ]

    @pytest.mark.parametrize("workers", [1, 3])
    def test_failure_isolated(self, rasterizer: FakeRasterizer, workers: int) -> None:
        """Test a corrupt image fails alone; siblings still convert."""
        sequences = SequenceDetector.detect(self._batch())
        converter = BatchConverter(ConversionPipeline(rasterizer), max_workers=workers)

        results = converter.convert(
            sequences, ConversionSettings(), progress_callback=lambda *_: None
        )

        clip, poster = results
        statuses = {img.name: img.status for img in clip.images}
        assert statuses == {
            "clip_01.png": ImageStatus.DONE,
            "clip_02.png": ImageStatus.ERROR,
            "clip_03.png": ImageStatus.DONE,
        }
        assert "decode" in clip.failed[0].error_message.lower()
        assert clip.failed[0].encoded_bytes is None
        assert poster.images[0].status == ImageStatus.DONE

    def test_results_mirror_sequences(self, rasterizer: FakeRasterizer) -> None:
        sequences = SequenceDetector.detect(self._batch())

        results = BatchConverter(ConversionPipeline(rasterizer)).convert(
            sequences, ConversionSettings(), progress_callback=lambda *_: None
        )

        assert [r.id for r in results] == [s.id for s in sequences]
        assert results[0].is_sequence is True
        assert results[0].missing_frames == []
        assert results[0].total_original_size == sequences[0].total_original_size

    def test_converted_sizes(self, rasterizer: FakeRasterizer) -> None:
        """Test sequence totals only count completed images."""
        sequences = SequenceDetector.detect(self._batch())

        results = BatchConverter(ConversionPipeline(rasterizer)).convert(
            sequences, ConversionSettings(), progress_callback=lambda *_: None
        )

        expected = sum(img.converted_byte_size for img in results[0].completed)
        assert results[0].total_converted_size == expected > 0
        assert sequences[0].total_converted_size == expected

    def test_progress_callback(self, rasterizer: FakeRasterizer) -> None:
        sequences = SequenceDetector.detect(self._batch())
        progress = []

        BatchConverter(ConversionPipeline(rasterizer)).convert(
            sequences,
            ConversionSettings(),
            progress_callback=lambda done, total: progress.append((done, total)),
        )

        assert progress == [(1, 4), (2, 4), (3, 4), (4, 4)]

    def test_progress_bar_default(self, rasterizer: FakeRasterizer) -> None:
        sequences = SequenceDetector.detect([raw_file("solo.png")])

        converter = BatchConverter(ConversionPipeline(rasterizer))
        results = converter.convert(sequences, ConversionSettings())

        assert results[0].images[0].status == ImageStatus.DONE

    def test_convert_async(self, rasterizer: FakeRasterizer) -> None:
        sequences = SequenceDetector.detect(self._batch())
        converter = BatchConverter(ConversionPipeline(rasterizer))

        results = asyncio.run(converter.convert_async(sequences, ConversionSettings()))

        assert [img.status for img in results[0].images] == [
            ImageStatus.DONE,
            ImageStatus.ERROR,
            ImageStatus.DONE,
        ]
        assert sequences[0].total_converted_size == results[0].total_converted_size

    def test_each_image_decoded_once(self, rasterizer: FakeRasterizer) -> None:
        sequences = SequenceDetector.detect([raw_file(f"f_{i:02d}.png") for i in range(1, 6)])

        BatchConverter(ConversionPipeline(rasterizer), max_workers=4).convert(
            sequences, ConversionSettings(), progress_callback=lambda *_: None
        )

        assert sorted(rasterizer.decoded) == [f"f_{i:02d}.png" for i in range(1, 6)]
        assert all(np.array_equal(call["pixels"], make_image(4, 4)) for call in rasterizer.encoded)
