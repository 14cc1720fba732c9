"""Timings, persisted user settings and launch options."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ValidationError

from plugndump.exceptions import PersistenceError
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)

SETTINGS_FILENAME = "settings.json"
DEFAULT_BACKUP_ROOT = Path.home() / "Documents" / "Plug-N-Dump" / "BBL Logs"


@dataclass(frozen=True)
class Timings:
    """Delays and timeouts in seconds.

    The delays mirror empirical device behaviour: the FC needs time to settle
    after USB enumeration, to leave CLI mode after ``msc``, and for the host
    OS to mount the mass-storage volume.
    """
    poll_interval: float = 1.0
    initial_scan_delay: float = 0.5
    settle_delay: float = 2.0
    msc_close_delay: float = 1.0
    mount_settle_delay: float = 5.0
    completion_prompt_delay: float = 2.0
    reset_grace: float = 1.0
    startup_extract_delay: float = 2.0
    handshake_timeout: float = 10.0
    dump_timeout: float = 60.0
    command_timeout: float = 120.0


class AppSettings(BaseModel):
    """User settings persisted between runs."""

    auto_extract_on_detection: bool = False
    minimize_to_tray: bool = True
    run_on_startup: bool = False
    output_dir: Path | None = None


@dataclass(frozen=True)
class AppConfig:
    """Options the process was launched with."""
    embedded: bool = False
    silent: bool = False
    auto_extract_port: str | None = None
    output_dir: Path | None = None


def config_dir() -> Path:
    """Directory holding settings.json (``PLUGNDUMP_HOME`` overrides)."""
    env = os.environ.get("PLUGNDUMP_HOME")
    return Path(env) if env else Path.home() / ".plugndump"


class SettingsStore:
    """Loads and saves :class:`AppSettings` as JSON."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or config_dir() / SETTINGS_FILENAME
        self._settings = AppSettings()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def settings(self) -> AppSettings:
        return self._settings

    def load(self) -> AppSettings:
        """Read settings from disk, keeping defaults for anything missing.

        A missing file is not an error. An unreadable or invalid file is
        logged and ignored.
        """
        if not self._path.exists():
            return self._settings
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            self._settings = AppSettings.model_validate(
                {**self._settings.model_dump(), **data}
            )
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("settings_load_failed", path=str(self._path), error=str(exc))
        return self._settings

    def save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(self._settings.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to save settings: {exc}") from exc
        logger.debug("settings_saved", path=str(self._path))

    def override(self, **changes: object) -> AppSettings:
        """Merge *changes* for this process only, without saving."""
        self._settings = AppSettings.model_validate(
            {**self._settings.model_dump(), **changes}
        )
        return self._settings

    def update(self, **changes: object) -> AppSettings:
        """Merge *changes* into the current settings and save them."""
        self._settings = AppSettings.model_validate(
            {**self._settings.model_dump(), **changes}
        )
        self.save()
        logger.info("settings_updated", changes=sorted(changes))
        return self._settings


def resolve_backup_root(app_config: AppConfig, settings: AppSettings) -> Path:
    """Launch option first, then the saved setting, then the default location."""
    if app_config.output_dir is not None:
        return Path(app_config.output_dir)
    if settings.output_dir is not None:
        return Path(settings.output_dir)
    return DEFAULT_BACKUP_ROOT
