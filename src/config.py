"""Configuration loading.

Precedence, lowest to highest:
1) built-in defaults
2) YAML file: DEPSYNC_CONFIG, ./depsync.yml, ~/.config/depsync/depsync.yml
3) the manifest's "config" section
4) DEPSYNC_<KEY> environment variables (VENDOR_DIR -> vendor-dir)
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "vendor-dir": "vendor",
    "prefer-source": False,
    "prefer-dist": False,
    "process-timeout": 300,
    "platform": {},
}


class Config:
    """Merged configuration values for one project directory."""

    def __init__(self, base_dir: str = "."):
        self.base_dir = os.path.abspath(base_dir)
        self._data: Dict[str, Any] = dict(DEFAULTS)

    def merge(self, values: Optional[Mapping[str, Any]]) -> None:
        """Overlay values; mappings are merged one level deep."""
        for key, value in (values or {}).items():
            if isinstance(value, dict) and isinstance(self._data.get(key), dict):
                merged = dict(self._data[key])
                merged.update(value)
                self._data[key] = merged
            else:
                self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def get_bool(self, key: str) -> bool:
        value = self._data.get(key)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def get_int(self, key: str) -> int:
        return int(self._data.get(key) or 0)

    def get_path(self, key: str) -> str:
        """Return a path setting resolved against the project directory."""
        value = os.path.expanduser(str(self._data[key]))
        if os.path.isabs(value):
            return value
        return os.path.join(self.base_dir, value)

    def all(self) -> Dict[str, Any]:
        return dict(self._data)


def _coerce_value(text: str) -> Any:
    """Best-effort convert an environment string to JSON, bool or number."""
    s = text.strip()
    try:
        return json.loads(s)
    except ValueError:
        sl = s.lower()
        if sl in ("true", "yes", "on"):
            return True
        if sl in ("false", "no", "off"):
            return False
        return s


def _default_config_paths(base_dir: str):
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        yield env_path
    yield os.path.join(base_dir, Constants.CONFIG_FILE)
    yield os.path.join(os.path.expanduser("~"), ".config", "depsync", Constants.CONFIG_FILE)


def load_yaml_config(path: Optional[str] = None, base_dir: str = ".") -> Dict[str, Any]:
    """Load the first YAML config found; an explicit path must exist.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ValueError: If the file is not a YAML mapping.
    """
    if path:
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Config file not found: {path}")
        candidates = [path]
    else:
        candidates = [p for p in _default_config_paths(base_dir) if os.path.isfile(p)]
    if not candidates:
        return {}

    with open(candidates[0], "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {candidates[0]}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config file {candidates[0]} must contain a mapping")
    logger.debug("Loaded config from %s", candidates[0])
    return data


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides = {}
    reserved = {Constants.ENV_CONFIG, Constants.ENV_LOG_LEVEL}
    for name, value in environ.items():
        if not name.startswith(Constants.ENV_PREFIX) or name in reserved:
            continue
        key = name[len(Constants.ENV_PREFIX):].lower().replace("_", "-")
        overrides[key] = _coerce_value(value)
    return overrides


def load_config(base_dir: str = ".", manifest_config: Optional[Mapping[str, Any]] = None,
                config_path: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build the Config for a project directory."""
    config = Config(base_dir)
    config.merge(load_yaml_config(config_path, base_dir))
    config.merge(manifest_config)
    config.merge(_env_overrides(os.environ if environ is None else environ))
    return config
