"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from dotenv import dotenv_values

from malta_addresses.common.constants import API_KEY_ENV_VAR, PLACEHOLDER_API_KEY
from malta_addresses.common.errors import ConfigError
from malta_addresses.common.fs import read_yaml
from malta_addresses.common.http import RetryConfig, TimeoutConfig
from malta_addresses.common.schema import validate_app_config

CONFIG_FILENAME = "maltapost.yml"


@dataclass(frozen=True)
class AppConfig:
    directory_base_url: str
    geocode_url: str
    retry: RetryConfig
    timeout: TimeoutConfig
    json_filename: str
    csv_filename: str
    api_key: str | None = None
    directory_rate_per_sec: float | None = None
    geocode_rate_per_sec: float | None = None

    @property
    def geocoding_enabled(self) -> bool:
        return is_geocoding_enabled(self.api_key)


def is_geocoding_enabled(api_key: str | None) -> bool:
    return bool(api_key) and api_key != PLACEHOLDER_API_KEY


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def resolve_api_key(env_file: Path | None = None, environ: Mapping[str, str] | None = None) -> str | None:
    """Read the geocoding key; process environment wins over the ``.env`` file."""
    values: dict[str, str | None] = {}
    if env_file is not None and env_file.exists():
        values.update(dotenv_values(env_file))
    values.update(os.environ if environ is None else environ)
    api_key = values.get(API_KEY_ENV_VAR)
    if api_key is None:
        return None
    return api_key.strip() or None


def load_app_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
    env_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    overlay_path = overlay_config_dir / CONFIG_FILENAME if overlay_config_dir is not None else None
    cfg = validate_app_config(
        _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path),
        allow_unknown=allow_unknown,
    )
    http = cfg["http"]
    return AppConfig(
        directory_base_url=str(cfg["directory"]["base_url"]),
        geocode_url=str(cfg["geocoding"]["endpoint"]),
        retry=RetryConfig(
            max_attempts=int(http["max_attempts"]),
            delay_seconds=float(http["retry_delay_seconds"]),
        ),
        timeout=TimeoutConfig(
            connect=float(http["connect_timeout_seconds"]),
            read=float(http["read_timeout_seconds"]),
        ),
        json_filename=str(cfg["output"]["json_filename"]),
        csv_filename=str(cfg["output"]["csv_filename"]),
        api_key=resolve_api_key(env_file, environ),
        directory_rate_per_sec=cfg["directory"].get("rate_limit_per_sec"),
        geocode_rate_per_sec=cfg["geocoding"].get("rate_limit_per_sec"),
    )
