from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError

from lhserver.core.config.io import ReadResult, atomic_write_json, quarantine_corrupt, read_json_file
from lhserver.core.config.models import SECTION_FILES, AppConfig
from lhserver.core.errors import ConfigError


@dataclass(frozen=True)
class ConfigFsPaths:
    root: str = "."

    @property
    def config_dir(self) -> str:
        return os.path.join(self.root, "config")

    def section(self, filename: str) -> str:
        return os.path.join(self.config_dir, filename)


class ConfigManager:
    """
    Loads one JSON file per config section from <root>/config/.

    - missing files are created from model defaults (unless read_only)
    - corrupt files are moved aside and replaced with defaults
    - schema violations raise ConfigError (no silent fallback)
    """

    def __init__(self, *, fs: Optional[ConfigFsPaths] = None, logger=None, read_only: bool = False):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger
        self.read_only = read_only
        self._cfg: Optional[AppConfig] = None

    def load_all(self) -> AppConfig:
        if not self.read_only:
            os.makedirs(self.fs.config_dir, exist_ok=True)
        files = self._load_raw_files()
        ensured = self._ensure_defaults(files)
        self._cfg = self._validate_all(ensured)
        return self._cfg

    def get(self) -> AppConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    # ---------- internals ----------
    def _load_raw_files(self) -> Dict[str, Dict[str, Any]]:
        out: Dict[str, Dict[str, Any]] = {}
        for name in SECTION_FILES:
            path = self.fs.section(name)
            rr: ReadResult = read_json_file(path)
            if rr.ok:
                out[name] = rr.data
                continue
            if rr.error and rr.error != "missing":
                moved = None if self.read_only else quarantine_corrupt(path)
                if self.logger:
                    self.logger.warning(f"Unreadable config {name} ({rr.error}); using defaults. moved_to={moved}")
            out[name] = {}
        return out

    def _ensure_defaults(self, files: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        defaults = AppConfig().model_dump(mode="json")
        out = dict(files)
        for name, section in SECTION_FILES.items():
            if out.get(name):
                continue
            out[name] = defaults[section]
            if self.logger:
                self.logger.warning(f"Missing config {name}; creating defaults.")
            if not self.read_only:
                atomic_write_json(self.fs.section(name), defaults[section])
        return out

    def _validate_all(self, files: Dict[str, Dict[str, Any]]) -> AppConfig:
        payload = {section: files.get(name) or {} for name, section in SECTION_FILES.items()}
        try:
            return AppConfig.model_validate(payload)
        except ValidationError as e:
            raise ConfigError("Invalid configuration.", errors=e.errors(include_url=False)) from e


def load_config(root: str = ".", *, logger=None, read_only: bool = False) -> AppConfig:
    return ConfigManager(fs=ConfigFsPaths(root=root), logger=logger, read_only=read_only).load_all()
