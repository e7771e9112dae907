"""
==============================================================================
Raw Frame Module
==============================================================================

In-memory image buffers handed to the decoder by a frame source.

Supported Pixel Formats:
-----------------------
    GRAY8       1 byte/pixel
    RGB888      3 bytes/pixel
    BGR888      3 bytes/pixel (OpenCV native)
    RGBA8888    4 bytes/pixel
    BGRA8888    4 bytes/pixel
    NV21        w*h*3/2 bytes, even dimensions (Android camera preview)
    I420        w*h*3/2 bytes, even dimensions

==============================================================================
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union

import cv2
import numpy as np

from bistro_scan.core.exceptions import InvalidFrameError


class PixelFormat(str, enum.Enum):
    """Pixel layouts accepted by RawFrame."""

    GRAY8 = "gray8"
    RGB888 = "rgb888"
    BGR888 = "bgr888"
    RGBA8888 = "rgba8888"
    BGRA8888 = "bgra8888"
    NV21 = "nv21"
    I420 = "i420"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value

    @property
    def is_yuv(self) -> bool:
        """Check if this is a planar YUV 4:2:0 layout."""
        return self in (PixelFormat.NV21, PixelFormat.I420)

    def buffer_size(self, width: int, height: int) -> int:
        """Expected byte length of a buffer in this format."""
        if self.is_yuv:
            return width * height * 3 // 2
        return width * height * _CHANNELS[self]


_CHANNELS = {
    PixelFormat.GRAY8: 1,
    PixelFormat.RGB888: 3,
    PixelFormat.BGR888: 3,
    PixelFormat.RGBA8888: 4,
    PixelFormat.BGRA8888: 4,
}

_GRAY_CONVERSIONS = {
    PixelFormat.RGB888: cv2.COLOR_RGB2GRAY,
    PixelFormat.BGR888: cv2.COLOR_BGR2GRAY,
    PixelFormat.RGBA8888: cv2.COLOR_RGBA2GRAY,
    PixelFormat.BGRA8888: cv2.COLOR_BGRA2GRAY,
    PixelFormat.NV21: cv2.COLOR_YUV2GRAY_NV21,
    PixelFormat.I420: cv2.COLOR_YUV2GRAY_I420,
}

Buffer = Union[bytes, bytearray, memoryview, np.ndarray]


@dataclass(frozen=True, eq=False)
class RawFrame:
    """
    Opaque pixel buffer plus geometry.

    The frame is not checked on construction; BarcodeDecoder.decode calls
    to_gray(), which raises InvalidFrameError for anything it cannot read.

    Attributes:
        data: Pixel bytes or a uint8 numpy array
        width: Width in pixels
        height: Height in pixels
        pixel_format: Buffer layout

    Example:
        >>> frame = RawFrame.from_array(cv2.imread("ticket.png"))
        >>> frame.pixel_format
        <PixelFormat.BGR888: 'bgr888'>
    """

    data: Buffer
    width: int
    height: int
    pixel_format: Union[PixelFormat, str] = PixelFormat.GRAY8

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def from_array(
        cls,
        array: np.ndarray,
        pixel_format: Optional[PixelFormat] = None
    ) -> "RawFrame":
        """
        Wrap an OpenCV/numpy image.

        Args:
            array: HxW, HxWx3 or HxWx4 uint8 array
            pixel_format: Override the inferred format (defaults follow OpenCV: BGR/BGRA)

        Returns:
            RawFrame over the array
        """
        if array is None or array.ndim not in (2, 3):
            raise InvalidFrameError("Array frames must be 2D or 3D")

        height, width = array.shape[:2]

        if pixel_format is None:
            if array.ndim == 2:
                pixel_format = PixelFormat.GRAY8
            elif array.shape[2] == 3:
                pixel_format = PixelFormat.BGR888
            elif array.shape[2] == 4:
                pixel_format = PixelFormat.BGRA8888
            else:
                raise InvalidFrameError(
                    f"Unsupported channel count: {array.shape[2]}",
                    {"channels": int(array.shape[2])}
                )

        return cls(data=array, width=width, height=height, pixel_format=pixel_format)

    @classmethod
    def from_image_bytes(cls, encoded: bytes) -> "RawFrame":
        """
        Decode a JPEG/PNG/... file body into a BGR frame.

        Raises:
            InvalidFrameError: If OpenCV cannot decode the bytes
        """
        if not encoded:
            raise InvalidFrameError("Image data is empty")

        nparr = np.frombuffer(encoded, np.uint8)
        image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

        if image is None:
            raise InvalidFrameError("Image data could not be decoded")

        return cls.from_array(image, PixelFormat.BGR888)

    # =========================================================================
    # CONVERSION
    # =========================================================================

    def resolve_format(self) -> PixelFormat:
        """Coerce pixel_format to PixelFormat."""
        if isinstance(self.pixel_format, PixelFormat):
            return self.pixel_format
        try:
            return PixelFormat(str(self.pixel_format).lower())
        except ValueError:
            raise InvalidFrameError(
                f"Unsupported pixel format: {self.pixel_format!r}",
                {"pixel_format": str(self.pixel_format)}
            ) from None

    def to_gray(self) -> np.ndarray:
        """
        Check the frame and convert it to a single-channel uint8 image.

        Returns:
            HxW uint8 array

        Raises:
            InvalidFrameError: Zero dimensions, unsupported format,
                non-uint8 data or a buffer of the wrong size
        """
        if self.width <= 0 or self.height <= 0:
            raise InvalidFrameError(
                "Frame dimensions must be non-zero",
                {"width": self.width, "height": self.height}
            )

        pixel_format = self.resolve_format()

        if pixel_format.is_yuv and (self.width % 2 or self.height % 2):
            raise InvalidFrameError(
                f"{pixel_format.value} frames need even dimensions",
                {"width": self.width, "height": self.height}
            )

        flat = self._flat_buffer()
        expected = pixel_format.buffer_size(self.width, self.height)
        if flat.size != expected:
            raise InvalidFrameError(
                "Buffer size does not match frame geometry",
                {"expected": expected, "actual": int(flat.size)}
            )

        if pixel_format == PixelFormat.GRAY8:
            return flat.reshape(self.height, self.width)

        if pixel_format.is_yuv:
            planar = flat.reshape(self.height * 3 // 2, self.width)
            return cv2.cvtColor(planar, _GRAY_CONVERSIONS[pixel_format])

        packed = flat.reshape(self.height, self.width, _CHANNELS[pixel_format])
        return cv2.cvtColor(packed, _GRAY_CONVERSIONS[pixel_format])

    def _flat_buffer(self) -> np.ndarray:
        """View the buffer as a contiguous 1D uint8 array."""
        if isinstance(self.data, np.ndarray):
            if self.data.dtype != np.uint8:
                raise InvalidFrameError(
                    "Frame arrays must be uint8",
                    {"dtype": str(self.data.dtype)}
                )
            return np.ascontiguousarray(self.data).reshape(-1)

        if isinstance(self.data, (bytes, bytearray, memoryview)):
            return np.frombuffer(self.data, dtype=np.uint8)

        raise InvalidFrameError(
            "Frame data must be bytes or a numpy array",
            {"type": type(self.data).__name__}
        )
