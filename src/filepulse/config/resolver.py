"""Layering of configuration sources into a validated :class:`FilePulseConfig`."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import FilePulseConfig

ENV_PREFIX = "FILEPULSE__"


def resolve_with_precedence(
    *,
    defaults: FilePulseConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> FilePulseConfig:
    """Layer the sources over ``defaults``; later sources win.

    Keys in any source may be nested mappings, dotted paths
    (``backup.mount_timeout``), or a mix of both.

    Raises:
        ConfigError: If a source is malformed or the result fails validation.
    """
    layered = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for label, source in layers:
        if source:
            layered = _overlay(layered, expand_dotted(source, label=label))

    try:
        return FilePulseConfig.model_validate(layered)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def collect_env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``FILEPULSE__SECTION__KEY`` variables into nested overrides.

    Values are read as YAML scalars, so ``30`` is an int and ``false`` a bool;
    anything YAML cannot parse is kept as the raw string.
    """
    collected: dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        parts = [part.lower() for part in name[len(ENV_PREFIX) :].split("__") if part]
        if not parts:
            continue
        try:
            value: Any = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        collected[".".join(parts)] = value
    return expand_dotted(collected, label="environment")


def expand_dotted(source: Mapping[str, Any], *, label: str) -> dict[str, Any]:
    """Turn dotted keys into nested dictionaries."""
    name = label.capitalize()
    if not isinstance(source, Mapping):
        raise ConfigError(f"{name} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str) or not key:
            raise ConfigError(f"{name} override keys must be non-empty strings.")
        *parents, leaf = key.split(".")
        node = expanded
        for part in parents:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ConfigError(f"{name} override '{key}' conflicts with '{part}'.")
            node = child
        if isinstance(value, Mapping):
            current = node.get(leaf)
            base = current if isinstance(current, Mapping) else {}
            value = _overlay(base, expand_dotted(value, label=label))
        node[leaf] = value
    return expanded


def _overlay(base: Mapping[str, Any], top: Mapping[str, Any]) -> dict[str, Any]:
    result = deepcopy(dict(base))
    for key, value in top.items():
        current = result.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            result[key] = _overlay(current, value)
        else:
            result[key] = deepcopy(value)
    return result


__all__ = ["ENV_PREFIX", "collect_env_overrides", "expand_dotted", "resolve_with_precedence"]
