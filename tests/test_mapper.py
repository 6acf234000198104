import math

from gaze_probe.mapper import REFERENCE_WIDTH, average_face_x, map_to_screen
from gaze_probe.models import DetectionResult, FaceBox


def test_center_maps_to_center() -> None:
    assert map_to_screen(REFERENCE_WIDTH / 2, REFERENCE_WIDTH, 800) == 400.0
    assert map_to_screen(50.0, 100.0, 1024.0) == 512.0


def test_mapping_is_mirrored() -> None:
    assert math.isclose(map_to_screen(50.0, 300.0, 800.0), (1 - 50 / 300) * 800)
    assert math.isclose(map_to_screen(280.0, 300.0, 800.0), (1 - 280 / 300) * 800)
    assert map_to_screen(50.0, 300.0, 800.0) > map_to_screen(280.0, 300.0, 800.0)


def test_output_is_clamped_to_screen() -> None:
    assert map_to_screen(-500.0, 300.0, 800.0) == 800.0
    assert map_to_screen(900.0, 300.0, 800.0) == 0.0
    assert map_to_screen(0.0, 300.0, 800.0) == 800.0
    assert map_to_screen(300.0, 300.0, 800.0) == 0.0
    assert map_to_screen(123.0, 300.0, 0.0) == 0.0

    for face_x in (-1e6, -1.0, 0.0, 17.5, 150.0, 299.9, 1e6):
        for width in (0.0, 1.0, 640.0, 1920.0):
            value = map_to_screen(face_x, 300.0, width)
            assert 0.0 <= value <= width


def test_average_face_x() -> None:
    assert average_face_x(DetectionResult()) is None

    single = DetectionResult(faces=(FaceBox(x=40, y=10, width=20, height=20),))
    assert average_face_x(single) == 50.0

    pair = DetectionResult(
        faces=(
            FaceBox(x=0, y=0, width=20, height=20),
            FaceBox(x=190, y=0, width=20, height=20),
        )
    )
    assert average_face_x(pair) == 105.0
