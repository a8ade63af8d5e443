"""
Unit tests for filter composition.
"""

import numpy as np
import pytest

from filmcam.models.filter_profile import FilterProfile, adjustment_profile, get_filter_profile, list_filter_profiles
from filmcam.models.pixel_buffer import PixelBuffer
from filmcam.services.filters import FilterCompositor, hsl_to_rgb, hue_rotate, rgb_to_hsl
from tests.conftest import TestDataFactory


class TestFilterCompositor:
    """Test cases for FilterCompositor."""

    def setup_method(self):
        self.compositor = FilterCompositor()
        self.buffer = TestDataFactory.create_gradient_buffer(32, 24)

    def test_none_profile_is_identity(self):
        result = self.compositor.apply(self.buffer, get_filter_profile("none"))

        assert result == self.buffer
        assert result.to_bytes() == self.buffer.to_bytes()

    def test_absent_profile_is_identity(self):
        assert self.compositor.apply(self.buffer, None) is self.buffer

    @pytest.mark.parametrize("profile", list_filter_profiles(), ids=lambda profile: profile.id)
    def test_every_catalog_profile_is_deterministic(self, profile):
        first = self.compositor.apply(self.buffer, profile)
        second = self.compositor.apply(self.buffer, profile)

        assert first.to_bytes() == second.to_bytes()
        assert first.size == self.buffer.size

    def test_input_is_not_mutated(self):
        original = self.buffer.copy()

        self.compositor.apply(self.buffer, get_filter_profile("vintage_sepia"))

        assert self.buffer == original

    def test_alpha_is_preserved(self):
        buffer = TestDataFactory.create_buffer(3, 3, (200, 30, 90, 17))

        result = self.compositor.apply(buffer, get_filter_profile("lomography"))

        assert np.all(result.data[..., 3] == 17)

    def test_classic_bw_yields_gray_pixels(self):
        result = self.compositor.apply(self.buffer, get_filter_profile("classic_bw"))

        rgb = result.data[..., :3].astype(int)
        assert np.all(np.abs(rgb[..., 0] - rgb[..., 1]) <= 1)
        assert np.all(np.abs(rgb[..., 1] - rgb[..., 2]) <= 1)

    def test_full_grayscale_uses_luma(self):
        buffer = TestDataFactory.create_buffer(1, 1, (255, 0, 0, 255))
        profile = FilterProfile.from_effect("gray", "Gray", "grayscale(1)")

        result = self.compositor.apply(buffer, profile)

        # 0.2126 * 255
        assert result.data[0, 0, :3].tolist() == [54, 54, 54]

    def test_contrast_pivots_on_mid_gray(self):
        buffer = TestDataFactory.create_buffer(1, 1, (60, 128, 250, 255))
        profile = FilterProfile.from_effect("c", "C", "contrast(1.5)")

        result = self.compositor.apply(buffer, profile)

        assert result.data[0, 0, :3].tolist() == [26, 128, 255]

    def test_brightness_scales_and_clamps(self):
        buffer = TestDataFactory.create_buffer(1, 1, (100, 200, 0, 255))
        profile = FilterProfile.from_effect("b", "B", "brightness(1.5)")

        result = self.compositor.apply(buffer, profile)

        assert result.data[0, 0, :3].tolist() == [150, 255, 0]

    def test_full_sepia_matches_css_matrix(self):
        buffer = TestDataFactory.create_buffer(1, 1, (100, 100, 100, 255))
        profile = FilterProfile.from_effect("s", "S", "sepia(1)")

        result = self.compositor.apply(buffer, profile)

        # Row sums 1.351, 1.203, 0.937
        assert result.data[0, 0, :3].tolist() == [135, 120, 94]

    def test_operation_order_matters(self):
        buffer = TestDataFactory.create_buffer(1, 1, (200, 200, 200, 255))
        brighten_first = FilterProfile.from_effect("a", "A", "brightness(1.5) contrast(0.5)")
        contrast_first = FilterProfile.from_effect("b", "B", "contrast(0.5) brightness(1.5)")

        first = self.compositor.apply(buffer, brighten_first)
        second = self.compositor.apply(buffer, contrast_first)

        assert first != second

    def test_adjustment_profile_applies(self):
        buffer = TestDataFactory.create_buffer(1, 1, (100, 100, 100, 255))

        result = self.compositor.apply(buffer, adjustment_profile(brightness=1.2))

        assert result.data[0, 0, :3].tolist() == [120, 120, 120]

    def test_empty_buffer_passes_through(self):
        buffer = PixelBuffer(width=0, height=0, data=np.zeros(0, dtype=np.uint8))

        assert self.compositor.apply(buffer, get_filter_profile("velvia")) is buffer

    def test_preview_is_thumbnail_sized(self):
        buffer = TestDataFactory.create_gradient_buffer(640, 480)

        preview = self.compositor.preview(buffer, get_filter_profile("kodachrome"), max_size=160)

        assert preview.size == (160, 120)


class TestHueRotation:
    def test_hsl_round_trip(self):
        rgb = TestDataFactory.create_gradient_buffer(16, 16).data[..., :3].astype(np.float64) / 255.0

        restored = hsl_to_rgb(*rgb_to_hsl(rgb))

        assert np.allclose(restored, rgb, atol=1e-9)

    def test_full_turn_is_identity(self):
        rgb = np.array([[[0.8, 0.2, 0.1]]])

        assert np.array_equal(hue_rotate(rgb, 360), rgb)

    def test_red_rotated_by_120_degrees_is_green(self):
        rgb = np.array([[[1.0, 0.0, 0.0]]])

        assert np.allclose(hue_rotate(rgb, 120), [[[0.0, 1.0, 0.0]]])

    def test_gray_is_unaffected(self):
        rgb = np.array([[[0.5, 0.5, 0.5]]])

        assert np.allclose(hue_rotate(rgb, 45), rgb)
