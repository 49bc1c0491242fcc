"""Configuration classes using Builder pattern for conversion settings."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from webpkit.exceptions import ConfigurationError


class ResizeMode(Enum):
    """How target dimensions are derived from the source."""

    PERCENTAGE = "percentage"
    WIDTH = "width"
    HEIGHT = "height"
    EXACT = "exact"


class QualityPreset(Enum):
    """Named quality presets. Informational once expanded into settings."""

    CUSTOM = "custom"
    PHOTO = "photo"
    WEB = "web"
    CRISP = "crisp"
    WEBFLOW_LIKE = "webflow_like"


PRESETS: dict[QualityPreset, dict[str, Any]] = {
    QualityPreset.CUSTOM: {},
    QualityPreset.PHOTO: {"quality": 88, "sharpen": 20, "denoise": 15, "lossless": False},
    QualityPreset.WEB: {"quality": 85, "sharpen": 30, "denoise": 20, "lossless": False},
    QualityPreset.CRISP: {"quality": 92, "sharpen": 35, "denoise": 10, "lossless": False},
    QualityPreset.WEBFLOW_LIKE: {"quality": 90, "sharpen": 25, "denoise": 25, "lossless": False},
}


def _check_range(name: str, value: float, low: float = 0, high: float = 100) -> None:
    if not low <= value <= high:
        raise ConfigurationError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class ResizeSettings:
    """Resize configuration; only the fields used by ``mode`` matter."""

    mode: ResizeMode = ResizeMode.PERCENTAGE
    percentage: float = 100
    width: int = 1920  # used by WIDTH and EXACT
    height: int = 1080  # used by HEIGHT and EXACT

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not isinstance(self.mode, ResizeMode):
            raise ConfigurationError(f"Unknown resize mode: {self.mode!r}")
        if self.percentage <= 0:
            raise ConfigurationError("Resize percentage must be greater than 0")
        if self.width <= 0:
            raise ConfigurationError("Width must be greater than 0")
        if self.height <= 0:
            raise ConfigurationError("Height must be greater than 0")


@dataclass(frozen=True)
class ConversionSettings:
    """Settings for converting one image."""

    quality: int = 90  # 0-100, ignored when lossless
    resize: ResizeSettings = field(default_factory=ResizeSettings)
    lossless: bool = False
    sharpen: int = 0  # 0-100
    denoise: int = 0  # 0-100
    preset: QualityPreset = QualityPreset.CUSTOM

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        _check_range("Quality", self.quality)
        _check_range("Sharpen", self.sharpen)
        _check_range("Denoise", self.denoise)
        if not isinstance(self.preset, QualityPreset):
            raise ConfigurationError(f"Unknown preset: {self.preset!r}")

    @property
    def encode_quality(self) -> float:
        """Encoder quality in 0..1; maximum fidelity when lossless."""
        if self.lossless:
            return 1.0
        return self.quality / 100

    @property
    def needs_luminance_pass(self) -> bool:
        return self.denoise > 0 or self.sharpen > 0


DEFAULT_SETTINGS = ConversionSettings()


def apply_preset(preset: QualityPreset, current: ConversionSettings) -> ConversionSettings:
    """Merge a preset's overrides into ``current``.

    Resize settings are never changed by a preset.

    Args:
        preset: Preset to apply
        current: Settings to start from

    Returns:
        New settings tagged with ``preset``
    """
    overrides = PRESETS[preset]
    return replace(current, **overrides, resize=current.resize, preset=preset)


class ConversionSettingsBuilder:
    """Builder for ConversionSettings using Builder pattern."""

    def __init__(self, base: ConversionSettings = DEFAULT_SETTINGS) -> None:
        """Initialize the builder."""
        self._load(base)

    def _load(self, settings: ConversionSettings) -> None:
        self._quality: int = settings.quality
        self._resize: ResizeSettings = settings.resize
        self._lossless: bool = settings.lossless
        self._sharpen: int = settings.sharpen
        self._denoise: int = settings.denoise
        self._preset: QualityPreset = settings.preset

    def with_quality(self, quality: int) -> "ConversionSettingsBuilder":
        """Set the encoder quality (0-100)."""
        self._quality = quality
        return self

    def with_lossless(self, enabled: bool = True) -> "ConversionSettingsBuilder":
        """Enable lossless encoding."""
        self._lossless = enabled
        return self

    def with_sharpen(self, amount: int) -> "ConversionSettingsBuilder":
        """Set the sharpen amount (0-100)."""
        self._sharpen = amount
        return self

    def with_denoise(self, strength: int) -> "ConversionSettingsBuilder":
        """Set the denoise strength (0-100)."""
        self._denoise = strength
        return self

    def with_preset(self, preset: QualityPreset) -> "ConversionSettingsBuilder":
        """Apply a quality preset on top of the current values."""
        self._load(apply_preset(preset, self.build()))
        return self

    def with_resize_percentage(self, percentage: float) -> "ConversionSettingsBuilder":
        """Scale both axes by a percentage."""
        self._resize = replace(self._resize, mode=ResizeMode.PERCENTAGE, percentage=percentage)
        return self

    def with_resize_width(self, width: int) -> "ConversionSettingsBuilder":
        """Set the target width, keeping the aspect ratio."""
        self._resize = replace(self._resize, mode=ResizeMode.WIDTH, width=width)
        return self

    def with_resize_height(self, height: int) -> "ConversionSettingsBuilder":
        """Set the target height, keeping the aspect ratio."""
        self._resize = replace(self._resize, mode=ResizeMode.HEIGHT, height=height)
        return self

    def with_exact_size(self, width: int, height: int) -> "ConversionSettingsBuilder":
        """Set exact target dimensions (aspect ratio not preserved)."""
        self._resize = replace(self._resize, mode=ResizeMode.EXACT, width=width, height=height)
        return self

    def build(self) -> ConversionSettings:
        """Build the ConversionSettings object."""
        return ConversionSettings(
            quality=self._quality,
            resize=self._resize,
            lossless=self._lossless,
            sharpen=self._sharpen,
            denoise=self._denoise,
            preset=self._preset,
        )
