"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from sortify.config import (
    ConfigError,
    ConfigManager,
    SortifyConfig,
    merge_dotted,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".sortify" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "Sortify configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, SortifyConfig)
    assert config.organization.mode == "move"
    assert config.organization.on_conflict == "suffix"
    assert config.processing.allow_mtime_fallback is False


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.save({"organization": {"mode": "copy"}, "processing": {"workers": 2}})

    env = {
        "SORTIFY__PROCESSING__WORKERS": "6",
        "SORTIFY__PROCESSING__METADATA_SOURCES": '["exiftool"]',
        "SORTIFY__ORGANIZATION__ON_CONFLICT": "skip",
    }
    cli = {"processing.workers": 8}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.organization.mode == "copy"
    assert config.organization.on_conflict == "skip"
    assert config.processing.metadata_sources == ["exiftool"]
    # CLI overrides take precedence over environment
    assert config.processing.workers == 8


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_merge_dotted_preserves_sibling_keys() -> None:
    base = {"organization": {"mode": "copy"}, "processing": {"workers": 2}}

    merged = merge_dotted(base, "organization.on_conflict", "skip")

    assert merged == {
        "organization": {"mode": "copy", "on_conflict": "skip"},
        "processing": {"workers": 2},
    }
    # The input mapping is left untouched.
    assert base["organization"] == {"mode": "copy"}


def test_merge_dotted_rejects_empty_key() -> None:
    with pytest.raises(ConfigError):
        merge_dotted({}, " . ", "value")


def test_environment_values_are_parsed_as_yaml(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    env = {
        "SORTIFY__PROCESSING__ALLOW_MTIME_FALLBACK": "true",
        "SORTIFY__PROCESSING__HASH_CHUNK_SIZE": "4096",
        "UNRELATED__PROCESSING__WORKERS": "99",
    }

    config = manager.load(env_overrides=env)

    assert config.processing.allow_mtime_fallback is True
    assert config.processing.hash_chunk_size == 4096
    assert config.processing.workers is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"organization": {"mode": "hardlink"}},
        {"organization": {"on_conflict": "ask"}},
        {"processing": {"metadata_sources": []}},
        {"processing": {"workers": 0}},
        {"discovery": {"unknown": True}},
    ],
)
def test_resolve_with_precedence_invalid_value_raises(overrides: dict) -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=SortifyConfig(), file_overrides=overrides)
