"""
Unit tests for PixelBuffer.
"""

import numpy as np
import pytest
from PIL import Image

from filmcam.models.pixel_buffer import PixelBuffer


class TestPixelBuffer:
    """Test cases for PixelBuffer."""

    def test_length_invariant(self):
        buffer = PixelBuffer.blank(5, 3)

        assert len(buffer) == 5 * 3 * 4
        assert buffer.data.shape == (3, 5, 4)
        assert buffer.pixel_count == 15

    def test_rejects_mismatched_length(self):
        with pytest.raises(ValueError, match="does not match"):
            PixelBuffer(width=2, height=2, data=np.zeros(15, dtype=np.uint8))

    def test_rejects_non_uint8_data(self):
        with pytest.raises(ValueError, match="uint8"):
            PixelBuffer(width=1, height=1, data=np.zeros(4, dtype=np.float32))

    def test_from_bytes_round_trip(self):
        raw = bytes(range(24))

        buffer = PixelBuffer.from_bytes(3, 2, raw)

        assert buffer.to_bytes() == raw
        assert buffer.data[0, 1].tolist() == [4, 5, 6, 7]

    def test_from_image_converts_to_rgba(self):
        image = Image.new("RGB", (4, 2), color=(200, 100, 50))

        buffer = PixelBuffer.from_image(image)

        assert buffer.size == (4, 2)
        assert buffer.data[1, 3].tolist() == [200, 100, 50, 255]

    def test_copy_is_independent(self):
        buffer = PixelBuffer.blank(2, 2, (1, 2, 3, 255))
        copied = buffer.copy()

        copied.data[0, 0, 0] = 99

        assert buffer.data[0, 0, 0] == 1
        assert buffer != copied

    def test_equality_is_byte_equality(self):
        assert PixelBuffer.blank(2, 2, (9, 9, 9, 255)) == PixelBuffer.blank(2, 2, (9, 9, 9, 255))
        assert PixelBuffer.blank(2, 2) != PixelBuffer.blank(1, 4)

    def test_zero_pixel_buffer_is_empty(self):
        buffer = PixelBuffer(width=0, height=0, data=np.zeros(0, dtype=np.uint8))

        assert buffer.is_empty()
        assert len(buffer) == 0
