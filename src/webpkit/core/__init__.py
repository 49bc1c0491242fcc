"""Core modules for sequence detection and conversion settings."""

from webpkit.core.config import (
    ConversionSettings,
    ConversionSettingsBuilder,
    QualityPreset,
    ResizeMode,
    ResizeSettings,
    apply_preset,
)
from webpkit.core.frame_parser import FrameInfo, parse_frame_name
from webpkit.core.sequence import ImageSequence, SequenceDetector, SourceImage

__all__ = [
    "ConversionSettings",
    "ConversionSettingsBuilder",
    "FrameInfo",
    "ImageSequence",
    "QualityPreset",
    "ResizeMode",
    "ResizeSettings",
    "SequenceDetector",
    "SourceImage",
    "apply_preset",
    "parse_frame_name",
]
