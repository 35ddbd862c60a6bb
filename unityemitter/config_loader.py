"""Load emitter options from YAML and environment variables."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from unityemitter.options import EmitterOptions, check_options

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "UNITYEMITTER_"

# environment variable suffix -> (section, key); section None is top level
_ENV_FIELDS = {
    "REJECTIONS": (None, "rejections"),
    "LIMITS_IGNORE": ("limits", "ignore"),
    "LIMITS_STORE": ("limits", "store"),
    "LIMITS_STORAGE": ("limits", "storage"),
}


def _coerce_scalar(value: str) -> object:
    """Turn an environment string into a bool or number where it looks like one.

    Anything else is returned unchanged so that option validation reports the
    offending field.
    """

    stripped = value.strip()
    lowered = stripped.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        return float(stripped)
    except ValueError:
        return stripped


def _apply_env(data: Dict[str, Any]) -> Dict[str, Any]:
    for suffix, (section, key) in _ENV_FIELDS.items():
        raw = os.getenv(f"{ENV_PREFIX}{suffix}")
        if raw is None:
            continue
        if section is None:
            data[key] = _coerce_scalar(raw)
            continue
        nested = data.get(section)
        if not isinstance(nested, dict):
            nested = {}
            data[section] = nested
        nested[key] = _coerce_scalar(raw)
    return data


def load_options(
    config_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
) -> EmitterOptions:
    """Load emitter options from an optional YAML file plus environment overrides.

    Without ``config_path`` only defaults and the environment are used. Values
    from ``UNITYEMITTER_*`` variables win over the YAML document; ``env_path``
    is loaded first without overriding variables already present in the
    process environment.
    """

    if env_path is not None:
        load_dotenv(dotenv_path=env_path, override=False)

    data: Dict[str, Any] = {}
    if config_path is not None:
        with open(config_path, "r", encoding="utf-8") as fp:
            loaded = yaml.safe_load(fp.read()) or {}
        if not isinstance(loaded, dict):
            return check_options(loaded)
        data = dict(loaded)
        if isinstance(data.get("limits"), dict):
            data["limits"] = dict(data["limits"])

    options = check_options(_apply_env(data))
    LOGGER.debug("Loaded emitter options: %s", options)
    return options


__all__ = ["ENV_PREFIX", "load_options"]
