"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

import re

from address_ingest.common.errors import ConfigError

REGION_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

PIPELINE_SECTIONS = {
    "data_dir": None,
    "store": {"url"},
    "staging": {"filename", "key"},
    "csv": {"encoding", "delimiter"},
    "load": {"progress_interval", "lease_seconds"},
    "http": {"connect_timeout", "read_timeout", "max_attempts"},
}


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


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def validate_sources_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "sources config")
    _assert_required_keys(cfg, {"sources"}, "sources config")
    _assert_no_unknown_keys(cfg, {"sources"}, "sources config", allow_unknown)
    if not isinstance(cfg["sources"], list) or not cfg["sources"]:
        raise ConfigError("sources must be a non-empty list")

    regions: list[str] = []
    for idx, source in enumerate(cfg["sources"]):
        ctx = f"sources[{idx}]"
        _assert_mapping(source, ctx)
        _assert_required_keys(source, {"url", "region", "file"}, ctx)
        _assert_no_unknown_keys(source, {"url", "region", "file"}, ctx, allow_unknown)
        region = str(source["region"])
        if not REGION_PATTERN.match(region):
            raise ConfigError(f"{ctx}.region must be a non-empty file-name safe tag: {region!r}")
        if not str(source["url"]).startswith(("http://", "https://")):
            raise ConfigError(f"{ctx}.url must be an http(s) URL")
        if not str(source["file"]).strip():
            raise ConfigError(f"{ctx}.file must not be empty")
        regions.append(region)

    duplicates = sorted({region for region in regions if regions.count(region) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate region tags: {', '.join(duplicates)}")
    return cfg


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "pipeline config")
    _assert_required_keys(cfg, set(PIPELINE_SECTIONS), "pipeline config")
    _assert_no_unknown_keys(cfg, set(PIPELINE_SECTIONS), "pipeline config", allow_unknown)

    for section, keys in PIPELINE_SECTIONS.items():
        if keys is None:
            continue
        _assert_mapping(cfg[section], section)
        _assert_required_keys(cfg[section], keys, section)
        _assert_no_unknown_keys(cfg[section], keys, section, allow_unknown)

    if int(cfg["load"]["progress_interval"]) <= 0:
        raise ConfigError("load.progress_interval must be positive")
    if int(cfg["load"]["lease_seconds"]) <= 0:
        raise ConfigError("load.lease_seconds must be positive")
    if int(cfg["http"]["max_attempts"]) < 1:
        raise ConfigError("http.max_attempts must be at least 1")
    if len(str(cfg["csv"]["delimiter"])) != 1:
        raise ConfigError("csv.delimiter must be a single character")
    return cfg
