"""Face detector abstraction."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import numpy as np

from .models import DetectionResult, FaceBox

_LOGGER = logging.getLogger(__name__)


class FaceDetector(Protocol):
    """Detection adapter used by the session."""

    async def detect_faces(self, image: Any) -> DetectionResult:
        ...


class HaarFaceDetector:
    """Frontal face detector built on the OpenCV Haar cascade."""

    def __init__(
        self,
        *,
        scale_factor: float = 1.15,
        min_neighbors: int = 3,
        min_size: tuple[int, int] = (28, 28),
    ) -> None:
        self._scale_factor = scale_factor
        self._min_neighbors = min_neighbors
        self._min_size = min_size
        self._cascade = None
        try:
            import cv2  # type: ignore

            cascade_path = cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
            cascade = cv2.CascadeClassifier(cascade_path)
            if not cascade.empty():
                self._cascade = cascade
        except Exception as err:  # noqa: BLE001
            _LOGGER.warning("Face cascade unavailable: %s", err)
            self._cascade = None

    @property
    def available(self) -> bool:
        return self._cascade is not None

    async def detect_faces(self, image: Any) -> DetectionResult:
        return await asyncio.to_thread(self.detect_faces_sync, image)

    def detect_faces_sync(self, image: np.ndarray) -> DetectionResult:
        if self._cascade is None:
            raise RuntimeError("face_cascade_unavailable")

        import cv2  # type: ignore

        gray = image if image.ndim == 2 else cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        faces = self._cascade.detectMultiScale(
            gray,
            scaleFactor=self._scale_factor,
            minNeighbors=self._min_neighbors,
            minSize=self._min_size,
        )
        return faces_to_result(faces)


def faces_to_result(faces: Any) -> DetectionResult:
    """Convert (x, y, w, h) rectangles into a DetectionResult."""
    return DetectionResult(
        faces=tuple(
            FaceBox(x=float(x), y=float(y), width=float(w), height=float(h))
            for (x, y, w, h) in faces
        )
    )
