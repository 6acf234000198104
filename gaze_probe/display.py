"""Stimulus screen rendering with session overlay."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from .models import Finished, SessionSnapshot, Verdict

_LOGGER = logging.getLogger(__name__)

DOT_RADIUS = 10
DOT_TOP = 50
DOT_COLOR = (255, 160, 60)  # BGR
PLACEHOLDER_COLORS = ((60, 90, 140), (40, 120, 200))  # BGR, left/right
TEXT_COLOR = (255, 255, 255)

_VERDICT_TEXT = {
    Verdict.LEFT: "Looked more at LEFT image",
    Verdict.RIGHT: "Looked more at RIGHT image",
    Verdict.TIE: "Looked equally at both",
}


def describe_verdict(verdict: Verdict) -> str:
    return _VERDICT_TEXT[verdict]


def build_overlay_lines(snapshot: SessionSnapshot) -> list[str]:
    state = snapshot.state
    if snapshot.running:
        return [
            f"Time left: {snapshot.seconds_remaining} s",
            f"left={snapshot.tally.left} right={snapshot.tally.right}",
        ]
    if isinstance(state, Finished):
        return [
            f"{state.tally.left} left vs {state.tally.right} right",
            describe_verdict(state.verdict),
            "Press Start to begin",
        ]
    return ["Press Start to begin"]


def load_stimulus(path: Optional[str]) -> Optional[np.ndarray]:
    if not path:
        return None
    try:
        import cv2  # type: ignore

        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    except Exception as err:  # noqa: BLE001
        _LOGGER.warning("Failed to load stimulus %s: %s", path, err)
        return None
    if image is None:
        _LOGGER.warning("Stimulus image not readable: %s", path)
    return image


def _fit_panel(image: Optional[np.ndarray], width: int, height: int, color) -> np.ndarray:
    if image is None or width <= 0 or height <= 0:
        panel = np.zeros((max(0, height), max(0, width), 3), dtype=np.uint8)
        panel[:, :] = color
        return panel

    import cv2  # type: ignore

    # Cover-fit: scale to fill, then center crop.
    src_h, src_w = image.shape[:2]
    scale = max(width / float(src_w), height / float(src_h))
    scaled_w = max(width, int(round(src_w * scale)))
    scaled_h = max(height, int(round(src_h * scale)))
    resized = cv2.resize(image, (scaled_w, scaled_h), interpolation=cv2.INTER_AREA)
    x0 = (scaled_w - width) // 2
    y0 = (scaled_h - height) // 2
    return resized[y0 : y0 + height, x0 : x0 + width]


def render_frame(
    snapshot: SessionSnapshot,
    height: int,
    stimuli: Sequence[Optional[np.ndarray]] = (None, None),
) -> np.ndarray:
    """Draw both stimuli side by side with the pointer dot and status text."""
    import cv2  # type: ignore

    width = int(round(snapshot.screen_width))
    height = int(height)
    left_w = width // 2
    right_w = width - left_w
    left_img = stimuli[0] if len(stimuli) > 0 else None
    right_img = stimuli[1] if len(stimuli) > 1 else None

    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[:, :left_w] = _fit_panel(left_img, left_w, height, PLACEHOLDER_COLORS[0])
    frame[:, left_w:] = _fit_panel(right_img, right_w, height, PLACEHOLDER_COLORS[1])

    if snapshot.running:
        center = (int(round(snapshot.sample_x)), DOT_TOP)
        cv2.circle(frame, center, DOT_RADIUS + 4, (120, 80, 30), -1, cv2.LINE_AA)
        cv2.circle(frame, center, DOT_RADIUS, DOT_COLOR, -1, cv2.LINE_AA)

    lines = build_overlay_lines(snapshot)
    y = height - 20 - (len(lines) - 1) * 28
    for line in lines:
        cv2.putText(
            frame,
            line,
            (12, y),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.7,
            TEXT_COLOR,
            2,
            cv2.LINE_AA,
        )
        y += 28
    return frame


def encode_jpeg(frame: np.ndarray, quality: int = 80) -> bytes:
    import cv2  # type: ignore

    ok, encoded = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise RuntimeError("jpeg_encode_failed")
    return bytes(encoded.tobytes())
