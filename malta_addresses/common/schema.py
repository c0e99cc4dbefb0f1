"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from malta_addresses.common.errors import ConfigError

TOP_LEVEL_KEYS = {"directory", "geocoding", "http", "output"}


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_number(value: object, ctx: str, *, allow_zero: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{ctx} must be a number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"{ctx} must be {'non-negative' if allow_zero else 'positive'}")


def validate_app_config(cfg: object, *, allow_unknown: bool = False) -> dict:
    cfg = _assert_mapping(cfg, "config")
    _assert_required_keys(cfg, TOP_LEVEL_KEYS, "config")
    _assert_no_unknown_keys(cfg, TOP_LEVEL_KEYS, "config", allow_unknown)

    directory = _assert_mapping(cfg["directory"], "directory")
    _assert_required_keys(directory, {"base_url"}, "directory")
    _assert_no_unknown_keys(directory, {"base_url", "rate_limit_per_sec"}, "directory", allow_unknown)

    geocoding = _assert_mapping(cfg["geocoding"], "geocoding")
    _assert_required_keys(geocoding, {"endpoint"}, "geocoding")
    _assert_no_unknown_keys(geocoding, {"endpoint", "rate_limit_per_sec"}, "geocoding", allow_unknown)

    for section in (directory, geocoding):
        if "rate_limit_per_sec" in section:
            _assert_positive_number(section["rate_limit_per_sec"], "rate_limit_per_sec", allow_zero=True)

    http = _assert_mapping(cfg["http"], "http")
    http_keys = {"max_attempts", "retry_delay_seconds", "connect_timeout_seconds", "read_timeout_seconds"}
    _assert_required_keys(http, http_keys, "http")
    _assert_no_unknown_keys(http, http_keys, "http", allow_unknown)
    if not isinstance(http["max_attempts"], int) or isinstance(http["max_attempts"], bool) or http["max_attempts"] < 1:
        raise ConfigError("http.max_attempts must be a positive integer")
    _assert_positive_number(http["retry_delay_seconds"], "http.retry_delay_seconds", allow_zero=True)
    _assert_positive_number(http["connect_timeout_seconds"], "http.connect_timeout_seconds")
    _assert_positive_number(http["read_timeout_seconds"], "http.read_timeout_seconds")

    output = _assert_mapping(cfg["output"], "output")
    _assert_required_keys(output, {"json_filename", "csv_filename"}, "output")
    _assert_no_unknown_keys(output, {"json_filename", "csv_filename"}, "output", allow_unknown)

    return cfg
