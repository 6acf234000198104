"""Camera image source."""

from __future__ import annotations

import asyncio
import logging
import subprocess
import threading
from typing import Any, Optional, Protocol

import numpy as np

_LOGGER = logging.getLogger(__name__)


class ImageSource(Protocol):
    """Produces one image per call."""

    async def capture(self) -> Any:
        ...


class OpenCvCamera:
    """Front camera capture through cv2.VideoCapture.

    Falls back to a single rpicam-jpeg still when the capture device does not
    deliver frames (Raspberry Pi camera stack).
    """

    def __init__(
        self,
        *,
        camera_index: int = 0,
        width: int = 320,
        height: int = 240,
        read_attempts: int = 3,
    ) -> None:
        self._camera_index = camera_index
        self._width = width
        self._height = height
        self._read_attempts = max(1, read_attempts)
        self._cap: Optional[Any] = None
        self._lock = threading.Lock()

    async def open(self) -> None:
        await asyncio.to_thread(self._open_sync)

    async def close(self) -> None:
        await asyncio.to_thread(self._close_sync)

    async def capture(self) -> np.ndarray:
        return await asyncio.to_thread(self.capture_sync)

    def _open_sync(self) -> None:
        try:
            import cv2  # type: ignore
        except Exception as err:  # noqa: BLE001
            raise RuntimeError(f"opencv_unavailable: {err}") from err

        with self._lock:
            if self._cap is not None:
                return
            cap = cv2.VideoCapture(self._camera_index)
            if not cap.isOpened():
                cap.release()
                _LOGGER.warning(
                    "Camera %s could not be opened, using rpicam fallback",
                    self._camera_index,
                )
                return
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, float(self._width))
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, float(self._height))
            cap.set(cv2.CAP_PROP_BUFFERSIZE, 1.0)
            self._cap = cap
            _LOGGER.info("Camera %s opened (%sx%s)", self._camera_index, self._width, self._height)

    def _close_sync(self) -> None:
        with self._lock:
            cap = self._cap
            self._cap = None
        if cap is not None:
            cap.release()
            _LOGGER.info("Camera %s closed", self._camera_index)

    def capture_sync(self) -> np.ndarray:
        import cv2  # type: ignore

        with self._lock:
            if self._cap is not None:
                for _ in range(self._read_attempts):
                    ok, frame = self._cap.read()
                    if ok and frame is not None:
                        return frame

        frame = self._capture_single_frame_rpicam(cv2)
        if frame is None:
            raise RuntimeError("camera_no_frames")
        return frame

    def _capture_single_frame_rpicam(self, cv2_module) -> Optional[np.ndarray]:
        jpeg = read_rpicam_still(self._camera_index, self._width, self._height)
        if not jpeg:
            return None
        return cv2_module.imdecode(np.frombuffer(jpeg, dtype=np.uint8), cv2_module.IMREAD_COLOR)


def rpicam_still_command(camera_index: int, width: int, height: int) -> list[str]:
    """rpicam-jpeg invocation writing one preview-less still to stdout."""
    return [
        "rpicam-jpeg",
        "--nopreview",
        "--timeout", "1",
        "--camera", str(camera_index),
        "--width", str(width),
        "--height", str(height),
        "--output", "-",
    ]


def read_rpicam_still(camera_index: int, width: int, height: int, timeout_s: float = 2.0) -> Optional[bytes]:
    try:
        completed = subprocess.run(  # noqa: S603
            rpicam_still_command(camera_index, width, height),
            capture_output=True,
            timeout=timeout_s,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as err:
        _LOGGER.debug("rpicam still unavailable: %s", err)
        return None
    return completed.stdout or None
