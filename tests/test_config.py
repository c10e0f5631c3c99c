from __future__ import annotations

from pathlib import Path

from svcindex.config import (
    DEFAULT_CONFIG_NAME,
    _as_bool,
    _normalize_name_list,
    index_settings,
    load_config,
    merge_payload,
    registry_defaults,
)
from svcindex.ingest.python_scanner import DEFAULT_MARKER


def test_missing_or_invalid_config_is_empty(tmp_path: Path) -> None:
    assert load_config(root=tmp_path) == {}
    bad = tmp_path / DEFAULT_CONFIG_NAME
    bad.write_text("[registry\n", encoding="utf-8")
    assert load_config(root=tmp_path) == {}


def test_registry_section_is_read(tmp_path: Path) -> None:
    (tmp_path / DEFAULT_CONFIG_NAME).write_text(
        '[registry]\noutput_dir = "out"\ndecorators = ["a.mark", "b.mark"]\n',
        encoding="utf-8",
    )
    section = registry_defaults(root=tmp_path)
    assert section == {"output_dir": "out", "decorators": ["a.mark", "b.mark"]}


def test_non_table_registry_section_is_ignored(tmp_path: Path) -> None:
    config = tmp_path / "custom.toml"
    config.write_text('registry = "nope"\n', encoding="utf-8")
    assert registry_defaults(config_path=config) == {}


def test_index_settings_defaults(tmp_path: Path) -> None:
    settings = index_settings(tmp_path, {})
    assert settings.output_dir == tmp_path / "build"
    assert settings.registry_prefix == "META-INF/services"
    assert settings.decorators == (DEFAULT_MARKER,)
    assert settings.exclude_dirs == ()
    assert settings.strict_assignability is False
    assert settings.fail_on_errors is True


def test_index_settings_from_section(tmp_path: Path) -> None:
    settings = index_settings(
        tmp_path,
        {
            "output_dir": "/abs/out",
            "registry_prefix": "",
            "decorators": "x.provides, y.provides",
            "exclude_dirs": [".venv", "build"],
            "strict_assignability": "yes",
            "fail_on_errors": False,
        },
    )
    assert settings.output_dir == Path("/abs/out")
    assert settings.registry_prefix == ""
    assert settings.decorators == ("x.provides", "y.provides")
    assert settings.exclude_dirs == (".venv", "build")
    assert settings.strict_assignability is True
    assert settings.fail_on_errors is False


def test_merge_payload_skips_unset_values() -> None:
    merged = merge_payload({"a": None, "b": 2}, {"a": 1, "c": 3})
    assert merged == {"a": 1, "b": 2, "c": 3}


def test_value_normalizers() -> None:
    assert _normalize_name_list(None) == []
    assert _normalize_name_list(["a, b", 3, "c"]) == ["a", "b", "c"]
    assert _as_bool(1) is True
    assert _as_bool("off") is False
    assert _as_bool(None) is False
