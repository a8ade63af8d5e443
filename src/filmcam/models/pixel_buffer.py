"""
Raw RGBA pixel buffer passed between pipeline stages.

Pixels are stored as a row-major ``(height, width, 4)`` uint8 numpy array,
so the flattened length is always ``width * height * 4``.
"""

from dataclasses import dataclass

import numpy as np
from PIL import Image

CHANNELS = 4


@dataclass(eq=False)
class PixelBuffer:
    """
    In-memory RGBA image with explicit dimensions.

    A buffer is owned by whichever pipeline stage currently holds it;
    stages that need to keep the input intact work on ``copy()``.
    """

    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Negative dimensions: {self.width}x{self.height}")
        if self.data.dtype != np.uint8:
            raise ValueError(f"Pixel data must be uint8, got {self.data.dtype}")
        if self.data.size != self.width * self.height * CHANNELS:
            raise ValueError(
                f"Pixel data length {self.data.size} does not match {self.width}x{self.height}x{CHANNELS}"
            )
        self.data = self.data.reshape(self.height, self.width, CHANNELS)

    @classmethod
    def blank(cls, width: int, height: int, color: tuple[int, int, int, int] = (0, 0, 0, 255)) -> "PixelBuffer":
        """Create a buffer filled with a single RGBA color."""
        data = np.empty((height, width, CHANNELS), dtype=np.uint8)
        data[...] = color
        return cls(width=width, height=height, data=data)

    @classmethod
    def from_bytes(cls, width: int, height: int, raw: bytes) -> "PixelBuffer":
        """Create a buffer from packed RGBA bytes."""
        data = np.frombuffer(raw, dtype=np.uint8).copy()
        return cls(width=width, height=height, data=data)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Create a buffer from a Pillow image of any mode."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        data = np.array(image, dtype=np.uint8)
        return cls(width=image.width, height=image.height, data=data)

    def to_bytes(self) -> bytes:
        """Packed row-major RGBA bytes."""
        return self.data.tobytes()

    def to_image(self) -> Image.Image:
        """Convert to a Pillow RGBA image."""
        return Image.fromarray(self.data)

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(width=self.width, height=self.height, data=self.data.copy())

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def is_empty(self) -> bool:
        return self.pixel_count == 0

    def __len__(self) -> int:
        return int(self.data.size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.size == other.size and np.array_equal(self.data, other.data)
