"""Application configuration loading."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from .mapper import REFERENCE_WIDTH
from .session import OverlapPolicy, SessionSettings

_LOGGER = logging.getLogger(__name__)
_MODULE_DIR = Path(__file__).parent
_REPO_DIR = _MODULE_DIR.parent
DEFAULT_CONFIG_PATH = _REPO_DIR / "config.json"


@dataclass
class SessionConfig:
    session_seconds: int = 10
    countdown_interval_s: float = 1.0
    sample_interval_s: float = 0.5
    reference_width: float = REFERENCE_WIDTH
    screen_width: int = 800
    screen_height: int = 450
    overlap_policy: str = OverlapPolicy.SKIP.value

    def to_settings(self) -> SessionSettings:
        try:
            policy = OverlapPolicy(str(self.overlap_policy).strip().lower())
        except ValueError as err:
            raise ValueError(f"Unknown overlap_policy: {self.overlap_policy!r}") from err
        settings = SessionSettings(
            session_seconds=int(self.session_seconds),
            countdown_interval_s=float(self.countdown_interval_s),
            sample_interval_s=float(self.sample_interval_s),
            reference_width=float(self.reference_width),
            screen_width=float(self.screen_width),
            overlap_policy=policy,
        )
        settings.validate()
        return settings


@dataclass
class CameraConfig:
    camera_index: int = 0
    width: int = 320
    height: int = 240


@dataclass
class DisplayConfig:
    left_image: Optional[str] = None
    right_image: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8090
    jpeg_quality: int = 80


@dataclass
class AppConfig:
    session: SessionConfig = field(default_factory=SessionConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    log_level: str = "INFO"


def _coerce_value(key: str, current: Any, value: Any) -> Any:
    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(current, int):
        if not is_number or (isinstance(value, float) and not value.is_integer()):
            raise ValueError(f"Invalid value for {key}: expected integer, got {value!r}")
        return int(value)
    if isinstance(current, float):
        if not is_number:
            raise ValueError(f"Invalid value for {key}: expected number, got {value!r}")
        return float(value)
    # Optional fields default to None and accept null.
    if isinstance(value, str) or (current is None and value is None):
        return value
    raise ValueError(f"Invalid value for {key}: expected string, got {value!r}")


def _apply_mapping(target: Any, data: dict[str, Any]) -> None:
    for key, value in data.items():
        if not hasattr(target, key):
            continue
        setattr(target, key, _coerce_value(key, getattr(target, key), value))


def _write_default_config(path: Path, config: AppConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as config_file:
        json.dump(asdict(config), config_file, ensure_ascii=False, indent=4)


def get_config_path() -> Path:
    env_path = os.environ.get("GAZE_PROBE_CONFIG_PATH", "").strip()
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def resolve_repo_path(path: str | Path) -> Path:
    path_obj = Path(path)
    if path_obj.is_absolute():
        return path_obj
    return (_REPO_DIR / path_obj).resolve()


def load_config(path: Optional[Path] = None) -> AppConfig:
    config = AppConfig()
    config_path = get_config_path() if path is None else path

    if not config_path.exists():
        _write_default_config(config_path, config)
        _LOGGER.info("Created default config: %s", config_path)
        return config

    with open(config_path, "r", encoding="utf-8") as config_file:
        loaded = json.load(config_file)
    if not isinstance(loaded, dict):
        raise ValueError(f"Invalid config format in {config_path}: expected object")

    session = loaded.get("session")
    if isinstance(session, dict):
        _apply_mapping(config.session, session)
    camera = loaded.get("camera")
    if isinstance(camera, dict):
        _apply_mapping(config.camera, camera)
    display = loaded.get("display")
    if isinstance(display, dict):
        _apply_mapping(config.display, display)
    log_level = loaded.get("log_level")
    if log_level is not None:
        if not isinstance(log_level, str):
            raise ValueError(f"Invalid value for log_level: expected string, got {log_level!r}")
        if log_level.strip():
            config.log_level = log_level.strip()
    return config
