"""Luminance-only filtering that leaves hue and saturation untouched.

All filters work on a single-channel luminance map. Changes are written back
by scaling R, G and B by the same factor, so the ratio between the channels
of a pixel survives every operation apart from 8-bit rounding.
"""

import logging
import math

import numpy as np

from webpkit.constants import (
    LUMA_WEIGHT_B,
    LUMA_WEIGHT_G,
    LUMA_WEIGHT_R,
    NEAR_BLACK_LUMINANCE,
)

logger = logging.getLogger(__name__)

SPATIAL_SIGMA = 1.2


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


class LuminanceProcessor:
    """Denoise and sharpen images through their luminance channel."""

    @staticmethod
    def extract_luminance(pixels: np.ndarray) -> np.ndarray:
        """Compute BT.601 luminance for an RGBA buffer.

        Args:
            pixels: uint8 array (H, W, 4); alpha is ignored

        Returns:
            float64 array (H, W)
        """
        rgb = pixels[..., :3].astype(np.float64)
        return (
            LUMA_WEIGHT_R * rgb[..., 0]
            + LUMA_WEIGHT_G * rgb[..., 1]
            + LUMA_WEIGHT_B * rgb[..., 2]
        )

    @staticmethod
    def apply_luminance(
        pixels: np.ndarray, old_luminance: np.ndarray, new_luminance: np.ndarray
    ) -> np.ndarray:
        """Write a modified luminance map back into an RGBA buffer in place.

        Near-black pixels get the luminance difference added to each channel,
        every other pixel has its RGB channels multiplied by ``new / old``.
        Alpha is never modified.

        Args:
            pixels: uint8 array (H, W, 4), modified in place
            old_luminance: Luminance the buffer was extracted with
            new_luminance: Target luminance

        Returns:
            The same ``pixels`` array
        """
        rgb = pixels[..., :3].astype(np.float64)
        near_black = old_luminance < NEAR_BLACK_LUMINANCE

        safe_old = np.where(near_black, 1.0, old_luminance)
        scale = (new_luminance / safe_old)[..., np.newaxis]
        shift = (new_luminance - old_luminance)[..., np.newaxis]

        result = np.where(near_black[..., np.newaxis], rgb + shift, rgb * scale)
        pixels[..., :3] = np.clip(_round_half_up(result), 0, 255).astype(np.uint8)
        return pixels

    @staticmethod
    def denoise(luminance: np.ndarray, width: int, height: int, strength: float) -> np.ndarray:
        """Edge-preserving bilateral smoothing of a luminance map.

        Pixels within ``radius`` of the border are left unfiltered.

        Args:
            luminance: float array (H, W)
            width: Map width
            height: Map height
            strength: 0-100; values <= 0 return ``luminance`` itself

        Returns:
            Filtered copy of the map
        """
        if strength <= 0:
            return luminance

        range_sigma = 5 + (strength / 100) * 25
        radius = math.ceil(strength / 25)
        result = np.array(luminance, dtype=np.float64, copy=True)

        if width <= 2 * radius or height <= 2 * radius:
            return result

        center = luminance[radius : height - radius, radius : width - radius]
        total = np.zeros_like(center, dtype=np.float64)
        weight_sum = np.zeros_like(center, dtype=np.float64)

        for ky in range(-radius, radius + 1):
            for kx in range(-radius, radius + 1):
                neighbor = luminance[
                    radius + ky : height - radius + ky, radius + kx : width - radius + kx
                ]
                spatial = math.exp(-(kx * kx + ky * ky) / (2 * SPATIAL_SIGMA * SPATIAL_SIGMA))
                diff = neighbor - center
                weight = spatial * np.exp(-(diff * diff) / (2 * range_sigma * range_sigma))
                total += neighbor * weight
                weight_sum += weight

        # The center tap always has weight 1, so weight_sum is never zero
        result[radius : height - radius, radius : width - radius] = total / weight_sum
        return result

    @staticmethod
    def sharpen(luminance: np.ndarray, width: int, height: int, amount: float) -> np.ndarray:
        """Thresholded unsharp mask on a luminance map.

        Only differences from a 3x3 box blur larger than an adaptive threshold
        are amplified, ramping in over 15 levels, so flat and noisy areas are
        left alone. Border pixels are left unfiltered.

        Args:
            luminance: float array (H, W)
            width: Map width
            height: Map height
            amount: 0-100; values <= 0 return ``luminance`` itself

        Returns:
            Sharpened copy of the map
        """
        if amount <= 0:
            return luminance

        strength = (amount / 100) * 0.7
        threshold = 3 + (60 - amount) * 0.15
        result = np.array(luminance, dtype=np.float64, copy=True)

        if width <= 2 or height <= 2:
            return result

        inner = luminance[1 : height - 1, 1 : width - 1]
        blurred = np.zeros_like(inner, dtype=np.float64)
        for ky in (-1, 0, 1):
            for kx in (-1, 0, 1):
                blurred += luminance[1 + ky : height - 1 + ky, 1 + kx : width - 1 + kx]
        blurred /= 9.0

        diff = inner - blurred
        magnitude = np.abs(diff)
        edge_factor = np.minimum(1.0, (magnitude - threshold) / 15)
        sharpened = np.clip(inner + diff * strength * edge_factor, 0, 255)

        result[1 : height - 1, 1 : width - 1] = np.where(magnitude > threshold, sharpened, inner)
        return result

    @classmethod
    def process(cls, pixels: np.ndarray, denoise: float = 0, sharpen: float = 0) -> np.ndarray:
        """Denoise then sharpen an RGBA buffer in place through its luminance.

        Args:
            pixels: uint8 array (H, W, 4)
            denoise: Denoise strength 0-100
            sharpen: Sharpen amount 0-100

        Returns:
            The same ``pixels`` array
        """
        if denoise <= 0 and sharpen <= 0:
            return pixels

        height, width = pixels.shape[:2]
        original = cls.extract_luminance(pixels)
        processed = original

        if denoise > 0:
            processed = cls.denoise(processed, width, height, denoise)
        if sharpen > 0:
            processed = cls.sharpen(processed, width, height, sharpen)

        logger.debug(f"Applied luminance filters (denoise={denoise}, sharpen={sharpen})")
        return cls.apply_luminance(pixels, original, processed)
