import subprocess

from gaze_probe import camera
from gaze_probe.camera import read_rpicam_still, rpicam_still_command


def test_rpicam_command_targets_camera() -> None:
    cmd = rpicam_still_command(1, 320, 240)
    assert cmd[0] == "rpicam-jpeg"
    assert cmd[cmd.index("--camera") + 1] == "1"
    assert cmd[cmd.index("--width") + 1] == "320"
    assert cmd[cmd.index("--height") + 1] == "240"
    assert cmd[-2:] == ["--output", "-"]


def test_rpicam_still_missing_binary(monkeypatch) -> None:
    def _missing(*_args, **_kwargs):
        raise FileNotFoundError("rpicam-jpeg")

    monkeypatch.setattr(camera.subprocess, "run", _missing)
    assert read_rpicam_still(0, 320, 240) is None


def test_rpicam_still_failure_and_success(monkeypatch) -> None:
    def _failed(cmd, **_kwargs):
        raise subprocess.CalledProcessError(255, cmd)

    monkeypatch.setattr(camera.subprocess, "run", _failed)
    assert read_rpicam_still(0, 320, 240) is None

    def _ok(cmd, **_kwargs):
        return subprocess.CompletedProcess(cmd, 0, stdout=b"\xff\xd8jpeg", stderr=b"")

    monkeypatch.setattr(camera.subprocess, "run", _ok)
    assert read_rpicam_still(0, 320, 240) == b"\xff\xd8jpeg"
