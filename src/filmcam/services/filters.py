"""
Film filter composition.

Each filter operation is a per-pixel kernel over normalized RGB values.
Operations run in profile order and the intermediate result is clamped to
0..1 after every step, so a profile always maps the same input to the same
bytes.
"""

from collections.abc import Callable
from datetime import datetime

import numpy as np

from ..logging_config import get_logger, log_performance
from ..models.filter_profile import FilterOperation, FilterProfile
from ..models.pixel_buffer import PixelBuffer
from .image_processor import get_image_processor

logger = get_logger(__name__)

# Rec. 709 luma weights
LUMA_R = 0.2126
LUMA_G = 0.7152
LUMA_B = 0.0722

Kernel = Callable[[np.ndarray, float], np.ndarray]


def _apply_matrix(rgb: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    return rgb @ matrix.T


def sepia_matrix(amount: float) -> np.ndarray:
    inverse = 1 - min(amount, 1.0)
    return np.array(
        [
            [0.393 + 0.607 * inverse, 0.769 - 0.769 * inverse, 0.189 - 0.189 * inverse],
            [0.349 - 0.349 * inverse, 0.686 + 0.314 * inverse, 0.168 - 0.168 * inverse],
            [0.272 - 0.272 * inverse, 0.534 - 0.534 * inverse, 0.131 + 0.869 * inverse],
        ]
    )


def grayscale_matrix(amount: float) -> np.ndarray:
    inverse = 1 - min(amount, 1.0)
    return np.array(
        [
            [LUMA_R + (1 - LUMA_R) * inverse, LUMA_G - LUMA_G * inverse, LUMA_B - LUMA_B * inverse],
            [LUMA_R - LUMA_R * inverse, LUMA_G + (1 - LUMA_G) * inverse, LUMA_B - LUMA_B * inverse],
            [LUMA_R - LUMA_R * inverse, LUMA_G - LUMA_G * inverse, LUMA_B + (1 - LUMA_B) * inverse],
        ]
    )


def saturate_matrix(amount: float) -> np.ndarray:
    return np.array(
        [
            [0.213 + 0.787 * amount, 0.715 - 0.715 * amount, 0.072 - 0.072 * amount],
            [0.213 - 0.213 * amount, 0.715 + 0.285 * amount, 0.072 - 0.072 * amount],
            [0.213 - 0.213 * amount, 0.715 - 0.715 * amount, 0.072 + 0.928 * amount],
        ]
    )


def rgb_to_hsl(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorized RGB -> HSL; all components in 0..1."""
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    max_c = rgb.max(axis=-1)
    min_c = rgb.min(axis=-1)
    lightness = (max_c + min_c) / 2
    delta = max_c - min_c

    chromatic = delta > 0
    safe_delta = np.where(chromatic, delta, 1.0)

    saturation_denominator = 1 - np.abs(2 * lightness - 1)
    saturation = np.where(
        chromatic & (saturation_denominator > 0),
        delta / np.where(saturation_denominator > 0, saturation_denominator, 1.0),
        0.0,
    )

    hue = np.select(
        [max_c == r, max_c == g],
        [((g - b) / safe_delta) % 6, (b - r) / safe_delta + 2],
        default=(r - g) / safe_delta + 4,
    )
    hue = np.where(chromatic, hue / 6, 0.0)
    return hue, saturation, lightness


def hsl_to_rgb(hue: np.ndarray, saturation: np.ndarray, lightness: np.ndarray) -> np.ndarray:
    """Vectorized HSL -> RGB; all components in 0..1."""
    chroma = (1 - np.abs(2 * lightness - 1)) * saturation
    sector_position = (hue % 1.0) * 6
    x = chroma * (1 - np.abs(sector_position % 2 - 1))
    m = lightness - chroma / 2
    zero = np.zeros_like(chroma)

    sector = np.floor(sector_position).astype(np.int64) % 6
    conditions = [sector == i for i in range(6)]
    r = np.select(conditions, [chroma, x, zero, zero, x, chroma])
    g = np.select(conditions, [x, chroma, chroma, x, zero, zero])
    b = np.select(conditions, [zero, zero, x, chroma, chroma, x])
    return np.stack([r + m, g + m, b + m], axis=-1)


def sepia(rgb: np.ndarray, amount: float) -> np.ndarray:
    return _apply_matrix(rgb, sepia_matrix(amount))


def grayscale(rgb: np.ndarray, amount: float) -> np.ndarray:
    return _apply_matrix(rgb, grayscale_matrix(amount))


def saturate(rgb: np.ndarray, amount: float) -> np.ndarray:
    return _apply_matrix(rgb, saturate_matrix(amount))


def contrast(rgb: np.ndarray, amount: float) -> np.ndarray:
    """Remap around mid-gray."""
    return (rgb - 0.5) * amount + 0.5


def brightness(rgb: np.ndarray, amount: float) -> np.ndarray:
    return rgb * amount


def hue_rotate(rgb: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate hue in HSL space; saturation and lightness are preserved."""
    if degrees % 360 == 0:
        return rgb
    hue, saturation, lightness = rgb_to_hsl(rgb)
    return hsl_to_rgb((hue + degrees / 360.0) % 1.0, saturation, lightness)


KERNELS: dict[str, Kernel] = {
    "sepia": sepia,
    "grayscale": grayscale,
    "saturate": saturate,
    "contrast": contrast,
    "brightness": brightness,
    "hue-rotate": hue_rotate,
}


class FilterCompositor:
    """Applies filter profiles to pixel buffers."""

    def apply(self, buffer: PixelBuffer, profile: FilterProfile | None) -> PixelBuffer:
        """
        Apply every operation of ``profile`` in order.

        ``None`` and the ``none`` profile are the identity and return the
        input unchanged. Alpha is never modified.
        """
        if profile is None or profile.is_identity() or buffer.is_empty():
            return buffer

        start_time = datetime.now()
        rgb = buffer.data[..., :3].astype(np.float64) / 255.0
        for operation in profile.operations:
            rgb = self._apply_operation(rgb, operation)

        data = buffer.data.copy()
        data[..., :3] = np.clip(np.rint(rgb * 255.0), 0, 255).astype(np.uint8)

        duration = (datetime.now() - start_time).total_seconds()
        log_performance(
            "apply_filter",
            duration,
            profile_id=profile.id,
            operations=len(profile.operations),
            size=buffer.size,
        )
        return PixelBuffer(width=buffer.width, height=buffer.height, data=data)

    def _apply_operation(self, rgb: np.ndarray, operation: FilterOperation) -> np.ndarray:
        kernel = KERNELS[operation.name]
        return np.clip(kernel(rgb, operation.value), 0.0, 1.0)

    def preview(self, buffer: PixelBuffer, profile: FilterProfile | None, max_size: int = 160) -> PixelBuffer:
        """Downscale to a thumbnail, then filter it (filter picker tiles)."""
        thumbnail = get_image_processor().resize(buffer, max_size, max_size)
        return self.apply(thumbnail, profile)


# Global compositor instance
filter_compositor = FilterCompositor()


def get_filter_compositor() -> FilterCompositor:
    """Get the global filter compositor instance."""
    return filter_compositor
