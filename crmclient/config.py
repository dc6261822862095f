from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/crmclient/config.json").expanduser()
DEFAULT_SESSION_PATH = "~/.config/crmclient/session.json"
DEFAULT_API_URL = "http://localhost:5001"

CONFIG_ENV_OVERRIDES = {
    "api_url": "CRM_API_URL",
    "session_path": "CRM_SESSION_FILE",
    "request_timeout_s": "CRM_REQUEST_TIMEOUT_S",
    "log_level": "CRM_LOG_LEVEL",
}
CONFIG_KEYS = tuple(CONFIG_ENV_OVERRIDES)


def get_config_path(path: Path | None = None) -> Path:
    if path is not None:
        return path.expanduser()
    return Path(os.getenv("CRM_CONFIG") or DEFAULT_CONFIG_PATH).expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    """Raw config file contents. Missing or blank files read as empty."""
    config_path = get_config_path(path)
    try:
        raw = config_path.read_text()
    except FileNotFoundError:
        return {}
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = config_path.with_name(f"{config_path.name}.tmp")
    tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n")
    os.replace(tmp_path, config_path)
    return config_path


def get_env_overrides() -> dict[str, str]:
    return {
        key: os.environ[env_var]
        for key, env_var in CONFIG_ENV_OVERRIDES.items()
        if env_var in os.environ
    }


@dataclass
class CrmClientConfig:
    api_url: str = DEFAULT_API_URL
    session_path: str = DEFAULT_SESSION_PATH
    request_timeout_s: float = 10.0
    log_level: str | None = None


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    if parsed <= 0:
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def _coerce_str(value: object, default: str, *, key: str) -> str:
    if value is None:
        return default
    if isinstance(value, str) and value.strip():
        return value.strip()
    warnings.warn(f"Invalid string for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> CrmClientConfig:
    """Resolve the client config once: defaults, then the config file, then env."""
    try:
        data = read_config_file(path)
    except ValueError as exc:
        warnings.warn(f"Ignoring config file: {exc}", RuntimeWarning, stacklevel=2)
        data = {}
    cfg = _apply_dict(CrmClientConfig(), data)
    return _apply_dict(cfg, get_env_overrides())


def _apply_dict(cfg: CrmClientConfig, data: dict[str, Any]) -> CrmClientConfig:
    for key, value in data.items():
        if key not in CONFIG_KEYS:
            continue
        if key == "request_timeout_s":
            cfg.request_timeout_s = _parse_float(value, cfg.request_timeout_s, key=key)
        elif key == "log_level":
            cfg.log_level = _coerce_str(value, cfg.log_level or "", key=key) or None
        else:
            setattr(cfg, key, _coerce_str(value, getattr(cfg, key), key=key))
    return cfg


def set_config_value(data: dict[str, Any], key: str, value: str) -> dict[str, Any]:
    """Return a copy of a raw config dict with one validated key updated."""
    if key not in CONFIG_KEYS:
        raise ValueError(f"unknown config key: {key} (expected one of {', '.join(CONFIG_KEYS)})")
    updated = dict(data)
    if key == "request_timeout_s":
        try:
            timeout = float(value)
        except ValueError as exc:
            raise ValueError(f"{key} must be a number") from exc
        if timeout <= 0:
            raise ValueError(f"{key} must be positive")
        updated[key] = timeout
    elif not value.strip():
        updated.pop(key, None)
    else:
        updated[key] = value.strip()
    return updated
