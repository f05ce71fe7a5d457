import numpy as np
import pytest

from beadpsf.config import Interpolation
from beadpsf.errors import InputError
from beadpsf.psf.resample import scaled_width, upsample


@pytest.mark.unit
class TestScaledWidth:
    @pytest.mark.parametrize(
        ("window", "factor", "expected"),
        [(21, 1.0, 21), (21, 2.0, 42), (5, 1.5, 8), (5, 0.5, 3), (3, 0.1, 1)],
    )
    def test_rounding(self, window: int, factor: float, expected: int) -> None:
        assert scaled_width(window, factor) == expected


@pytest.mark.unit
class TestUpsample:
    def test_factor_two_doubles_lateral_only(self) -> None:
        stack = np.random.default_rng(1).random((4, 10, 12)).astype(np.float32)
        for interp in Interpolation:
            out = upsample(stack, 2.0, interp)
            assert out.shape == (4, 20, 24)
            assert out.dtype == np.float32

    def test_factor_one_is_an_independent_copy(self) -> None:
        stack = np.arange(2 * 3 * 3, dtype=np.uint16).reshape(2, 3, 3)
        out = upsample(stack, 1.0)

        np.testing.assert_array_equal(out, stack)
        assert out.dtype == np.float32
        out[0, 0, 0] = 999
        assert stack[0, 0, 0] == 0

    def test_nearest_repeats_pixels(self) -> None:
        stack = np.array([[[1, 2], [3, 4]]], dtype=np.uint16)
        out = upsample(stack, 2.0, Interpolation.NONE)
        expected = np.array([[[1, 1, 2, 2], [1, 1, 2, 2], [3, 3, 4, 4], [3, 3, 4, 4]]], dtype=np.float32)
        np.testing.assert_array_equal(out, expected)

    def test_constant_stays_constant(self) -> None:
        stack = np.full((3, 8, 8), 250, dtype=np.uint16)
        for interp in Interpolation:
            np.testing.assert_allclose(upsample(stack, 3.0, interp), 250.0, rtol=1e-5)

    def test_planes_are_independent(self) -> None:
        stack = np.zeros((3, 6, 6), dtype=np.float32)
        stack[1] = 5.0
        out = upsample(stack, 2.0, Interpolation.BICUBIC)
        np.testing.assert_allclose(out[0], 0.0, atol=1e-4)
        np.testing.assert_allclose(out[2], 0.0, atol=1e-4)
        np.testing.assert_allclose(out[1], 5.0, rtol=1e-5)

    def test_output_pitch_is_exactly_one_over_factor(self) -> None:
        # column index as intensity: resampled value is the source coordinate
        ramp = np.tile(np.arange(8, dtype=np.float32), (1, 4, 1))
        out = upsample(ramp, 2.0, Interpolation.BILINEAR)

        assert out.shape == (1, 8, 16)
        expected = (np.arange(1, 15) + 0.5) / 2.0 - 0.5
        np.testing.assert_allclose(out[0, 3, 1:15], expected, atol=1e-5)

    def test_string_interpolation_accepted(self) -> None:
        out = upsample(np.ones((1, 4, 4)), 2.0, "bicubic")
        assert out.shape == (1, 8, 8)

    @pytest.mark.parametrize("factor", [0.0, -1.5])
    def test_invalid_factor(self, factor: float) -> None:
        with pytest.raises(InputError, match="positive"):
            upsample(np.ones((1, 4, 4)), factor)
