"""
==============================================================================
Frame Tests
==============================================================================

Tests for RawFrame checks and gray conversion.

==============================================================================
"""

import cv2
import numpy as np
import pytest

from bistro_scan.core.exceptions import InvalidFrameError
from bistro_scan.scanner.frame import PixelFormat, RawFrame


class TestFrameChecks:
    """Frames the decoder must refuse."""

    def test_zero_width(self):
        frame = RawFrame(data=b"", width=0, height=10)
        with pytest.raises(InvalidFrameError):
            frame.to_gray()

    def test_buffer_size_mismatch(self):
        frame = RawFrame(data=bytes(99), width=10, height=10)
        with pytest.raises(InvalidFrameError) as exc_info:
            frame.to_gray()
        assert exc_info.value.details == {"expected": 100, "actual": 99}

    def test_unknown_pixel_format(self):
        frame = RawFrame(data=bytes(100), width=10, height=10, pixel_format="cmyk")
        with pytest.raises(InvalidFrameError):
            frame.to_gray()

    def test_odd_yuv_dimensions(self):
        frame = RawFrame(data=bytes(100), width=9, height=9, pixel_format=PixelFormat.NV21)
        with pytest.raises(InvalidFrameError):
            frame.to_gray()

    def test_non_uint8_array(self):
        frame = RawFrame.from_array(np.zeros((4, 4), dtype=np.float32))
        with pytest.raises(InvalidFrameError):
            frame.to_gray()

    def test_unsupported_channel_count(self):
        with pytest.raises(InvalidFrameError):
            RawFrame.from_array(np.zeros((4, 4, 2), dtype=np.uint8))

    def test_undecodable_image_bytes(self):
        with pytest.raises(InvalidFrameError):
            RawFrame.from_image_bytes(b"definitely not a png")

    def test_error_is_not_retryable(self):
        assert InvalidFrameError("bad").retryable is False
        assert InvalidFrameError("bad").status_code == 422


class TestGrayConversion:
    """Supported layouts convert to HxW uint8."""

    def test_gray_bytes(self):
        frame = RawFrame(data=bytes(range(12)), width=4, height=3)
        gray = frame.to_gray()
        assert gray.shape == (3, 4)
        assert gray[2, 3] == 11

    def test_string_pixel_format(self):
        frame = RawFrame(data=bytes(12), width=4, height=3, pixel_format="GRAY8")
        assert frame.to_gray().shape == (3, 4)

    def test_bgr_array_inferred(self):
        image = np.zeros((6, 8, 3), dtype=np.uint8)
        image[:, :, 2] = 255
        frame = RawFrame.from_array(image)
        assert frame.pixel_format == PixelFormat.BGR888
        gray = frame.to_gray()
        assert gray.shape == (6, 8)
        assert gray[0, 0] == cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)[0, 0]

    def test_rgba_bytes(self):
        frame = RawFrame(
            data=bytes(4 * 4 * 4),
            width=4,
            height=4,
            pixel_format=PixelFormat.RGBA8888
        )
        assert frame.to_gray().shape == (4, 4)

    def test_nv21_takes_luma_plane(self):
        luma = np.arange(16, dtype=np.uint8)
        chroma = np.full(8, 128, dtype=np.uint8)
        frame = RawFrame(
            data=np.concatenate([luma, chroma]).tobytes(),
            width=4,
            height=4,
            pixel_format=PixelFormat.NV21
        )
        gray = frame.to_gray()
        assert gray.shape == (4, 4)
        assert gray.reshape(-1).tolist() == luma.tolist()

    def test_i420_buffer_size(self):
        assert PixelFormat.I420.buffer_size(640, 480) == 640 * 480 * 3 // 2

    def test_png_round_trip(self):
        image = np.tile(np.arange(0, 200, 25, dtype=np.uint8), (8, 1))
        ok, buffer = cv2.imencode(".png", image)
        assert ok
        frame = RawFrame.from_image_bytes(buffer.tobytes())
        assert frame.pixel_format == PixelFormat.BGR888
        assert frame.to_gray().tolist() == image.tolist()
