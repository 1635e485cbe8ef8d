"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Mapping

from pydantic import ValidationError

from .exceptions import ConfigError
from .models import SortifyConfig

ENV_PREFIX = "SORTIFY__"


def resolve_with_precedence(
    *,
    defaults: SortifyConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> SortifyConfig:
    """Merge configuration sources: defaults < file < environment < CLI.

    Args:
        defaults: Baseline configuration.
        file_overrides: Nested mapping loaded from the YAML file.
        env_overrides: Nested mapping derived from ``SORTIFY__`` variables.
        cli_overrides: Mapping of dotted keys or nested values from the CLI.

    Returns:
        SortifyConfig: Validated configuration.

    Raises:
        ConfigError: If any source is malformed or the merge fails validation.
    """
    merged = deepcopy(defaults.model_dump(mode="python"))
    for name, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source is None:
            continue
        overrides = _normalize_mapping(source, source_name=name)
        merged = _deep_merge(merged, overrides)

    try:
        return SortifyConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def merge_dotted(base: Mapping[str, Any], key: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``base`` with ``value`` stored at the dotted ``key``.

    Raises:
        ConfigError: If ``key`` is empty.
    """
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise ConfigError("Keys must be dotted paths such as 'organization.mode'.")
    update: dict[str, Any] = {}
    _assign(update, segments, value, source_name="file")
    return _deep_merge(base, update)


def _normalize_mapping(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in dict(source).items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        _assign(result, key.split("."), value, source_name=source_name)
    return result


def _assign(target: dict[str, Any], path: list[str], value: Any, *, source_name: str) -> None:
    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            joined = ".".join(path)
            raise ConfigError(
                f"{source_name.capitalize()} override for {joined} conflicts with existing value."
            )
        node = existing
    leaf = path[-1]
    if isinstance(value, MappingABC):
        nested = _normalize_mapping(value, source_name=source_name)
        existing_leaf = node.get(leaf, {})
        if not isinstance(existing_leaf, MappingABC):
            existing_leaf = {}
        node[leaf] = _deep_merge(existing_leaf, nested)
    else:
        node[leaf] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        if isinstance(value, MappingABC) and isinstance(merged.get(key), MappingABC):
            merged[key] = _deep_merge(dict(merged[key]), value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "merge_dotted", "resolve_with_precedence"]
