from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

from svcindex.ingest.python_scanner import DEFAULT_MARKER
from svcindex.store import DEFAULT_REGISTRY_PREFIX

DEFAULT_CONFIG_NAME = "svcindex.toml"
DEFAULT_OUTPUT_DIR = "build"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def registry_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("registry", {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


@dataclass(frozen=True)
class IndexSettings:
    root: Path
    output_dir: Path
    registry_prefix: str = DEFAULT_REGISTRY_PREFIX
    decorators: tuple[str, ...] = (DEFAULT_MARKER,)
    exclude_dirs: tuple[str, ...] = ()
    strict_assignability: bool = False
    fail_on_errors: bool = True


def index_settings(root: Path, section: TomlTable) -> IndexSettings:
    output_dir = Path(str(section.get("output_dir") or DEFAULT_OUTPUT_DIR))
    if not output_dir.is_absolute():
        output_dir = root / output_dir
    prefix = section.get("registry_prefix")
    decorators = _normalize_name_list(section.get("decorators")) or [DEFAULT_MARKER]
    return IndexSettings(
        root=root,
        output_dir=output_dir,
        registry_prefix=str(prefix) if prefix is not None else DEFAULT_REGISTRY_PREFIX,
        decorators=tuple(decorators),
        exclude_dirs=tuple(_normalize_name_list(section.get("exclude_dirs"))),
        strict_assignability=_as_bool(section.get("strict_assignability")),
        fail_on_errors=(
            _as_bool(section["fail_on_errors"]) if "fail_on_errors" in section else True
        ),
    )
