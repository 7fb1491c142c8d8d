"""Persisted application settings."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import platformdirs

from .osd import OsdOptions
from .render_settings import RenderSettings
from .srt import SrtOptions
from .util import NAMESPACE, AppUpdate

log = logging.getLogger(__name__)

CONFIG_NAME = "saved_settings"


def default_config_path() -> Path:
    """Where the settings file lives in the user's configuration directory."""
    return platformdirs.user_config_path(NAMESPACE) / f"{CONFIG_NAME}.json"


def _app_update_from_dict(data: Any) -> AppUpdate:
    if not isinstance(data, Mapping):
        raise TypeError("app_update must be a mapping")
    check = data.get("check_on_startup", AppUpdate().check_on_startup)
    if not isinstance(check, bool):
        raise TypeError("check_on_startup must be a boolean")
    return AppUpdate(check_on_startup=check)


@dataclass
class AppConfig:
    """Everything the application remembers between runs."""

    osd_options: OsdOptions = field(default_factory=OsdOptions)
    srt_options: SrtOptions = field(default_factory=SrtOptions)
    render_options: RenderSettings = field(default_factory=RenderSettings)
    app_update: AppUpdate = field(default_factory=AppUpdate)
    font_path: str = ""
    dark_mode: bool = False

    @classmethod
    def _clean_start(cls) -> "AppConfig":
        return cls(dark_mode=True)

    def to_dict(self) -> dict[str, Any]:
        """The configuration as plain data."""
        return {
            "osd_options": self.osd_options.to_dict(),
            "srt_options": self.srt_options.to_dict(),
            "render_options": self.render_options.to_dict(),
            "app_update": {"check_on_startup": self.app_update.check_on_startup},
            "font_path": self.font_path,
            "dark_mode": self.dark_mode,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppConfig":
        """Rebuild a configuration from plain data; missing fields take defaults."""
        if not isinstance(data, Mapping):
            raise TypeError("configuration must be a mapping")
        config = cls()
        if "osd_options" in data:
            config.osd_options = OsdOptions.from_dict(data["osd_options"])
        if "srt_options" in data:
            config.srt_options = SrtOptions.from_dict(data["srt_options"])
        if "render_options" in data:
            config.render_options = RenderSettings.from_dict(data["render_options"])
        if "app_update" in data:
            config.app_update = _app_update_from_dict(data["app_update"])
        if "font_path" in data:
            if not isinstance(data["font_path"], str):
                raise TypeError("font_path must be a string")
            config.font_path = data["font_path"]
        if "dark_mode" in data:
            if not isinstance(data["dark_mode"], bool):
                raise TypeError("dark_mode must be a boolean")
            config.dark_mode = data["dark_mode"]
        return config

    def _write(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @classmethod
    def load_or_create(cls, path: str | Path | None = None) -> "AppConfig":
        """Load saved settings, writing defaults if there are none.

        Unreadable or invalid settings are replaced by a clean start.
        """
        path = Path(path) if path is not None else default_config_path()
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            config = cls()
            try:
                config._write(path)
            except OSError as exc:
                log.error("Failed to load or create new config, caused by %s", exc)
                raise
            return config
        except UnicodeDecodeError:
            log.warning("Invalid config found, resetting to default")
            return cls._clean_start()
        except OSError as exc:
            log.error("Failed to load or create new config, caused by %s", exc)
            raise

        try:
            return cls.from_dict(json.loads(raw))
        except (ValueError, TypeError, KeyError, AttributeError):
            log.warning("Invalid config found, resetting to default")
            config = cls._clean_start()
            log.debug("Default config: %r", config)
            return config

    def save(self, path: str | Path | None = None) -> None:
        """Write the settings; failures are logged, not raised."""
        path = Path(path) if path is not None else default_config_path()
        try:
            self._write(path)
        except OSError as exc:
            log.error("Failed to save config file, %s", exc)