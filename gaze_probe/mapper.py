"""Face position to screen coordinate mapping."""

from __future__ import annotations

from typing import Optional

from .models import DetectionResult

# Assumed width of the source image space. Not the real camera resolution;
# the mapping is only meant to be directional.
REFERENCE_WIDTH = 300.0


def average_face_x(result: DetectionResult) -> Optional[float]:
    """Mean horizontal face center, or None when no face was found."""
    if result.empty:
        return None
    return sum(face.center[0] for face in result.faces) / len(result.faces)


def map_to_screen(
    face_center_x: float,
    reference_width: float = REFERENCE_WIDTH,
    screen_width: float = 0.0,
) -> float:
    """Mirror a face center onto the screen and clamp to [0, screen_width].

    A face moving toward the viewer's left moves the pointer right, like a
    selfie preview.
    """
    normalized = (1.0 - (face_center_x / reference_width)) * screen_width
    return max(0.0, min(float(screen_width), normalized))
