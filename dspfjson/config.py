"""Load and validate the YAML configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml

CONFIG_ENV_VAR = "DSPFJSON_CONFIG"
METHOD_ENV_VAR = "JSON_TO_DDS_CONVERSION_METHOD"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "defaults.yaml"


def _load_config(path: Path) -> Dict[str, Any]:
    """Read the YAML config from disk and validate its top-level type."""
    if not path.exists():
        raise RuntimeError(f'Config file not found: "{path}"')
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except Exception as e:
        raise RuntimeError(f'Failed to read config "{path}": {e}') from e
    if not isinstance(data, dict):
        raise RuntimeError(f'Config file "{path}" must be a YAML mapping at top level')
    return data


def _resolve_config_path() -> Path:
    """Resolve the config path from env override or default."""
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser().resolve()
    return DEFAULT_CONFIG_PATH


_CONFIG_PATH = _resolve_config_path()
_CONFIG = _load_config(_CONFIG_PATH)


def get_config_path() -> Path:
    """Expose the resolved config path for diagnostics."""
    return _CONFIG_PATH


def _require_section(name: str, kind: type) -> Any:
    """Fetch a required config section and validate its type."""
    value = _CONFIG.get(name)
    if not isinstance(value, kind):
        raise RuntimeError(f'Config section "{name}" missing or not a {kind.__name__}')
    return value


def get_codec_config() -> Dict[str, Any]:
    """Return chunking and echo settings."""
    codec = _require_section("codec", dict)
    chunk_size = codec.get("chunk_size")
    if not isinstance(chunk_size, int) or chunk_size <= 0:
        raise RuntimeError('Config "codec.chunk_size" must be a positive int')
    keyword = codec.get("full_echo_keyword")
    if not isinstance(keyword, str) or not keyword.strip():
        raise RuntimeError('Config "codec.full_echo_keyword" must be a non-empty string')
    return codec


def get_conversion_config() -> Dict[str, Any]:
    """Return JSON->DDS conversion settings, honouring the method env override."""
    conversion = dict(_require_section("conversion", dict))
    override = os.environ.get(METHOD_ENV_VAR)
    if override is not None:
        conversion["method"] = override
    conversion["method"] = str(conversion.get("method", "1"))
    return conversion


def get_store_config() -> Dict[str, Any]:
    """Return optional remote store config or an empty mapping."""
    store = _CONFIG.get("store")
    if store is None:
        return {}
    if not isinstance(store, dict):
        raise RuntimeError('Config section "store" must be a mapping')
    return store
