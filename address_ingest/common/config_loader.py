"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from address_ingest.common.errors import ConfigError
from address_ingest.common.fs import read_yaml
from address_ingest.common.models import SourceDescriptor
from address_ingest.common.schema import validate_pipeline_config, validate_sources_config
from address_ingest.fetch.catalog import SourceCatalog

SOURCES_FILENAME = "sources.yml"
PIPELINE_FILENAME = "pipeline.yml"


@dataclass(frozen=True)
class ConfigBundle:
    catalog: SourceCatalog
    pipeline: dict

    @property
    def data_dir(self) -> Path:
        return Path(self.pipeline["data_dir"])

    @property
    def staging_path(self) -> Path:
        return self.data_dir / self.pipeline["staging"]["filename"]

    @property
    def store_url(self) -> str:
        return self.pipeline["store"]["url"]


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
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def _apply_environment(pipeline_cfg: dict, environ: Mapping[str, str]) -> dict:
    out = _deep_merge(pipeline_cfg, {})
    if environ.get("REDIS_URL"):
        out = _deep_merge(out, {"store": {"url": environ["REDIS_URL"]}})
    if environ.get("DATA_DIR"):
        out["data_dir"] = environ["DATA_DIR"]
    return out


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConfigBundle:
    def overlay_for(name: str) -> Path | None:
        return overlay_config_dir / name if overlay_config_dir is not None else None

    sources_cfg = validate_sources_config(
        _load_yaml_with_overlay(config_dir / SOURCES_FILENAME, overlay_for(SOURCES_FILENAME)),
        allow_unknown=allow_unknown,
    )
    pipeline_cfg = _load_yaml_with_overlay(config_dir / PIPELINE_FILENAME, overlay_for(PIPELINE_FILENAME))
    if not isinstance(pipeline_cfg, dict):
        raise ConfigError("pipeline config must be a mapping")
    pipeline_cfg = _apply_environment(pipeline_cfg, os.environ if environ is None else environ)
    pipeline_cfg = validate_pipeline_config(pipeline_cfg, allow_unknown=allow_unknown)

    catalog = SourceCatalog(
        SourceDescriptor(url=str(src["url"]), region=str(src["region"]), file=str(src["file"]))
        for src in sources_cfg["sources"]
    )
    return ConfigBundle(catalog=catalog, pipeline=pipeline_cfg)
