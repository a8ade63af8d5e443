"""
Frame sources for the capture pipeline.

A frame source owns one camera stream. ``grab`` reads the current frame
once, mirrors it for front-facing streams and constrains it to the
requested box. No earlier frames are buffered.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

import cv2
import numpy as np

from filmcam.ui.handlers.error import ImageProcessingError, SourceUnavailableError
from ..config import get_camera_device
from ..logging_config import get_logger, log_performance
from ..models.pixel_buffer import PixelBuffer
from .image_processor import MAX_CAPTURE_HEIGHT, MAX_CAPTURE_WIDTH, get_image_processor

logger = get_logger(__name__)

FACING_ENVIRONMENT = "environment"
FACING_USER = "user"
FACING_MODES = (FACING_ENVIRONMENT, FACING_USER)


class FrameSource(ABC):
    """A single camera stream that can be opened, read and stopped."""

    def __init__(self, facing_mode: str = FACING_ENVIRONMENT) -> None:
        if facing_mode not in FACING_MODES:
            raise ValueError(f"Unknown facing mode: {facing_mode}")
        self.facing_mode = facing_mode

    @abstractmethod
    async def open(self) -> None:
        """Acquire the device. Raises SourceUnavailableError when it cannot be opened."""

    @abstractmethod
    async def close(self) -> None:
        """Release the device. Safe to call more than once."""

    @property
    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    async def _read_raw(self) -> PixelBuffer:
        """Read the current frame at native resolution."""

    async def grab(self, max_width: int = MAX_CAPTURE_WIDTH, max_height: int = MAX_CAPTURE_HEIGHT) -> PixelBuffer:
        """
        Read the current frame, bounded to ``max_width`` x ``max_height``.

        Raises:
            SourceUnavailableError: If the stream is not open or yields no frame
        """
        if not self.is_open:
            raise SourceUnavailableError(
                "Camera stream is not ready",
                details={"facing_mode": self.facing_mode},
            )

        start_time = datetime.now()
        frame = await self._read_raw()
        processor = get_image_processor()

        if self.facing_mode == FACING_USER:
            frame = processor.mirror(frame)

        native_size = frame.size
        frame = processor.resize(frame, max_width, max_height)

        log_performance(
            "grab_frame",
            (datetime.now() - start_time).total_seconds(),
            facing_mode=self.facing_mode,
            native_size=native_size,
            size=frame.size,
        )
        return frame

    async def __aenter__(self) -> "FrameSource":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class OpenCVFrameSource(FrameSource):
    """Webcam stream read through OpenCV."""

    def __init__(self, facing_mode: str = FACING_ENVIRONMENT, device_index: int | None = None) -> None:
        super().__init__(facing_mode)
        self.device_index = device_index if device_index is not None else get_camera_device(facing_mode)
        self._capture: cv2.VideoCapture | None = None
        # read and release must never overlap on one VideoCapture
        self._device_lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    async def open(self) -> None:
        if self.is_open:
            return

        capture = await asyncio.to_thread(cv2.VideoCapture, self.device_index)
        if not capture.isOpened():
            capture.release()
            raise SourceUnavailableError(
                f"Could not open camera device {self.device_index}",
                details={"device_index": self.device_index, "facing_mode": self.facing_mode},
            )

        # Ask for the capture box; drivers fall back to what they support
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, MAX_CAPTURE_WIDTH)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, MAX_CAPTURE_HEIGHT)
        self._capture = capture
        logger.info("camera_opened", device_index=self.device_index, facing_mode=self.facing_mode)

    async def close(self) -> None:
        if self._capture is None:
            return
        capture, self._capture = self._capture, None
        await asyncio.to_thread(self._locked_call, capture.release)
        logger.info("camera_released", device_index=self.device_index, facing_mode=self.facing_mode)

    def _locked_call(self, method):
        with self._device_lock:
            return method()

    async def _read_raw(self) -> PixelBuffer:
        capture = self._capture
        if capture is None:
            raise SourceUnavailableError("Camera stream was released", details={"device_index": self.device_index})

        ok, frame = await asyncio.to_thread(self._locked_call, capture.read)
        if not ok or frame is None:
            raise SourceUnavailableError(
                f"Camera device {self.device_index} returned no frame",
                details={"device_index": self.device_index},
            )

        rgba = cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)
        height, width = rgba.shape[:2]
        return PixelBuffer(width=width, height=height, data=np.ascontiguousarray(rgba, dtype=np.uint8))


class StaticImageFrameSource(FrameSource):
    """
    A still image served as a one-frame stream.

    Used for browser captures delivered as image files and for headless
    runs from the command line.
    """

    def __init__(self, image: bytes | str | Path | PixelBuffer, facing_mode: str = FACING_ENVIRONMENT) -> None:
        super().__init__(facing_mode)
        self._image = image
        self._frame: PixelBuffer | None = None

    @property
    def is_open(self) -> bool:
        return self._frame is not None

    async def open(self) -> None:
        if self._frame is not None:
            return

        image = self._image
        if isinstance(image, PixelBuffer):
            self._frame = image
            return

        try:
            data = image if isinstance(image, bytes) else await asyncio.to_thread(Path(image).read_bytes)
            self._frame = await asyncio.to_thread(get_image_processor().decode, data)
        except (OSError, ImageProcessingError) as e:
            raise SourceUnavailableError(
                f"Could not read still image: {e}",
                details={"facing_mode": self.facing_mode},
                original_exception=e,
            ) from e

    async def close(self) -> None:
        self._frame = None

    async def _read_raw(self) -> PixelBuffer:
        if self._frame is None:
            raise SourceUnavailableError("Still image source was closed")
        return self._frame.copy()
