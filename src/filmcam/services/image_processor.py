"""Pixel-level image processing for the capture and edit pipeline."""

import io
from datetime import datetime

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from filmcam.ui.handlers.error import EncodingFailedError, ImageProcessingError
from ..logging_config import get_logger, log_error, log_performance
from ..models.histogram import BINS, Histogram
from ..models.pixel_buffer import PixelBuffer

logger = get_logger(__name__)

# Capture frames are bounded to this box
MAX_CAPTURE_WIDTH = 1920
MAX_CAPTURE_HEIGHT = 1080

# JPEG quality per call site
CAPTURE_JPEG_QUALITY = 0.85
EDIT_JPEG_QUALITY = 0.95

# Exposure slider range and the channel offset per exposure stop
MIN_EXPOSURE = -2.0
MAX_EXPOSURE = 2.0
EXPOSURE_STEP = 25


class ImageProcessor:
    """Resizing, exposure, histogram and JPEG codec operations on pixel buffers."""

    def resize(self, buffer: PixelBuffer, max_width: int, max_height: int) -> PixelBuffer:
        """
        Constrain a buffer to a bounding box, preserving aspect ratio.

        Buffers that already fit are returned unchanged; nothing is ever
        upscaled. New dimensions are truncated, then resampled bilinearly.

        Args:
            buffer: Source pixels
            max_width: Maximum output width
            max_height: Maximum output height

        Returns:
            PixelBuffer: The input itself when it fits, otherwise a new buffer
        """
        if max_width <= 0 or max_height <= 0:
            raise ValueError(f"Invalid bounding box: {max_width}x{max_height}")

        if buffer.width <= max_width and buffer.height <= max_height:
            return buffer

        start_time = datetime.now()
        new_width, new_height = self._calculate_fit_size(buffer.size, (max_width, max_height))

        resized = buffer.to_image().resize((new_width, new_height), Image.Resampling.BILINEAR)
        result = PixelBuffer.from_image(resized)

        duration = (datetime.now() - start_time).total_seconds()
        log_performance(
            "resize",
            duration,
            original_size=buffer.size,
            resized_size=result.size,
        )
        return result

    def _calculate_fit_size(self, original_size: tuple[int, int], max_size: tuple[int, int]) -> tuple[int, int]:
        """
        Calculate the largest size that fits ``max_size`` with the same aspect ratio.

        Dimensions are truncated, with a floor of one pixel so extreme
        aspect ratios never collapse to an empty image.
        """
        original_width, original_height = original_size
        max_width, max_height = max_size

        scale_ratio = min(max_width / original_width, max_height / original_height)

        new_width = max(1, int(original_width * scale_ratio))
        new_height = max(1, int(original_height * scale_ratio))

        return (new_width, new_height)

    def mirror(self, buffer: PixelBuffer) -> PixelBuffer:
        """Flip a buffer horizontally (front camera frames)."""
        return PixelBuffer(width=buffer.width, height=buffer.height, data=buffer.data[:, ::-1, :].copy())

    def adjust_exposure(self, buffer: PixelBuffer, exposure: float) -> PixelBuffer:
        """
        Add a uniform brightness bias of ``exposure * 25`` to R, G and B.

        Results are rounded to the nearest integer (ties to even) and
        clamped to 0..255. Alpha is untouched. Zero exposure returns the
        input unchanged.

        Raises:
            ValueError: If exposure is outside -2.0..2.0
        """
        if not MIN_EXPOSURE <= exposure <= MAX_EXPOSURE:
            raise ValueError(f"Exposure must be between {MIN_EXPOSURE} and {MAX_EXPOSURE}, got {exposure}")

        if exposure == 0:
            return buffer

        start_time = datetime.now()
        delta = exposure * EXPOSURE_STEP

        data = buffer.data.copy()
        rgb = data[..., :3].astype(np.float64) + delta
        data[..., :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)

        duration = (datetime.now() - start_time).total_seconds()
        log_performance("adjust_exposure", duration, exposure=exposure, size=buffer.size)
        return PixelBuffer(width=buffer.width, height=buffer.height, data=data)

    def analyze_histogram(self, buffer: PixelBuffer) -> Histogram:
        """
        Count R, G and B intensities over every pixel once.

        A zero-pixel buffer yields an all-zero histogram; callers scaling
        for display must guard ``max_count == 0``.
        """
        if buffer.is_empty():
            return Histogram.empty()

        start_time = datetime.now()
        counts = [
            tuple(int(c) for c in np.bincount(buffer.data[..., channel].ravel(), minlength=BINS))
            for channel in range(3)
        ]
        histogram = Histogram(r=counts[0], g=counts[1], b=counts[2])

        duration = (datetime.now() - start_time).total_seconds()
        log_performance("analyze_histogram", duration, size=buffer.size, max_count=histogram.max_count)
        return histogram

    def encode(self, buffer: PixelBuffer, quality: float) -> bytes:
        """
        Encode a buffer as JPEG.

        Args:
            buffer: Pixels to encode; alpha is dropped
            quality: JPEG quality in (0, 1]

        Returns:
            bytes: JPEG data

        Raises:
            EncodingFailedError: If the buffer is empty or the codec fails
        """
        if not 0 < quality <= 1:
            raise ValueError(f"Quality must be in (0, 1], got {quality}")

        if buffer.is_empty():
            raise EncodingFailedError(
                f"Cannot encode empty buffer ({buffer.width}x{buffer.height})",
                details={"width": buffer.width, "height": buffer.height},
            )

        start_time = datetime.now()
        jpeg_quality = int(round(quality * 100))
        try:
            output = io.BytesIO()
            buffer.to_image().convert("RGB").save(output, format="JPEG", quality=jpeg_quality)
            jpeg_data = output.getvalue()
        except (OSError, ValueError) as e:
            raise EncodingFailedError(
                f"Failed to encode image: {e}",
                details={"width": buffer.width, "height": buffer.height, "quality": jpeg_quality},
                original_exception=e,
            ) from e

        if not jpeg_data:
            raise EncodingFailedError("Encoder produced no data", details={"quality": jpeg_quality})

        duration = (datetime.now() - start_time).total_seconds()
        log_performance(
            "encode",
            duration,
            size=buffer.size,
            quality=jpeg_quality,
            encoded_size=len(jpeg_data),
        )
        return jpeg_data

    def decode(self, image_data: bytes) -> PixelBuffer:
        """
        Decode image bytes into an RGBA buffer, honoring EXIF orientation.

        Raises:
            ImageProcessingError: If the data is not a readable image
        """
        start_time = datetime.now()
        try:
            with Image.open(io.BytesIO(image_data)) as image:
                image = ImageOps.exif_transpose(image)
                buffer = PixelBuffer.from_image(image)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            log_error(e, {"operation": "decode", "file_size": len(image_data)})
            raise ImageProcessingError(
                f"Failed to decode image: {e}",
                code="decode_failed",
                details={"file_size": len(image_data), "operation": "decode"},
                original_exception=e,
            ) from e

        duration = (datetime.now() - start_time).total_seconds()
        log_performance("decode", duration, size=buffer.size, file_size=len(image_data))
        return buffer


# Global image processor instance
image_processor = ImageProcessor()


def get_image_processor() -> ImageProcessor:
    """
    Get the global image processor instance.

    Returns:
        ImageProcessor: Global image processor instance
    """
    return image_processor
