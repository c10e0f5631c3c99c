"""Registry resources: one line-oriented text file per contract.

Format::

    # priority 10
    pkg.mod.Preferred
    # priority 0
    pkg.mod.Fallback
    pkg.mod.Other

A ``# priority N`` marker applies to every following identifier until the next
marker; the initial priority is 0. Any other ``#`` starts a comment.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol, runtime_checkable

from svcindex.diagnostics import DiagnosticSink, Severity, report_error
from svcindex.exceptions import RegistryReadError, RegistryWriteError
from svcindex.registration import (
    ContractRegistrations,
    RegistrationRecord,
    ordered_registrations,
)

DEFAULT_REGISTRY_PREFIX = "META-INF/services"
REGISTRY_ENCODING = "utf-8"

_PRIORITY_RE = re.compile(r"# priority (-?[0-9]+)")
_COMMENT_RE = re.compile(r"#.*")
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def parse_registry_text(text: str) -> ContractRegistrations:
    records: ContractRegistrations = {}
    current_priority = 0
    for raw_line in _LINE_BREAK_RE.split(text):
        line = raw_line.strip()
        marker = _PRIORITY_RE.fullmatch(line)
        if marker is not None:
            current_priority = int(marker.group(1))
        name = _COMMENT_RE.sub("", line).strip()
        if name:
            records[name] = RegistrationRecord(name=name, priority=current_priority)
    return records


def render_registry_text(records: Mapping[str, RegistrationRecord]) -> str:
    lines: list[str] = []
    current_priority = 0
    for record in ordered_registrations(records):
        if record.priority != current_priority:
            current_priority = record.priority
            lines.append(f"# priority {current_priority}")
        lines.append(record.name)
    return "".join(f"{line}\n" for line in lines)


@runtime_checkable
class ResourceStore(Protocol):
    """Named text resources. ``open_for_read`` raises FileNotFoundError when absent."""

    def open_for_read(self, name: str) -> str: ...

    def open_for_write(self, name: str, text: str) -> None: ...


@dataclass(frozen=True)
class DirectoryResourceStore:
    root: Path

    def path_for(self, name: str) -> Path:
        return self.root / name

    def open_for_read(self, name: str) -> str:
        return self.path_for(name).read_text(encoding=REGISTRY_ENCODING)

    def open_for_write(self, name: str, text: str) -> None:
        target = self.path_for(name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding=REGISTRY_ENCODING, newline="\n")


@dataclass(frozen=True)
class RegistryStore:
    resources: ResourceStore
    prefix: str = DEFAULT_REGISTRY_PREFIX

    def resource_name(self, contract: str) -> str:
        prefix = self.prefix.strip("/")
        return f"{prefix}/{contract}" if prefix else contract

    def read(self, contract: str) -> ContractRegistrations:
        name = self.resource_name(contract)
        try:
            text = self.resources.open_for_read(name)
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeError) as exc:
            raise RegistryReadError(
                f"Failed to load existing service definition file {name}: {exc}"
            ) from exc
        return parse_registry_text(text)

    def load(self, contract: str, *, sink: DiagnosticSink) -> ContractRegistrations:
        try:
            return self.read(contract)
        except RegistryReadError as exc:
            report_error(sink, exc)
            return {}

    def write(
        self,
        contract: str,
        records: Mapping[str, RegistrationRecord],
        *,
        sink: DiagnosticSink,
    ) -> None:
        name = self.resource_name(contract)
        sink.report(Severity.NOTE, f"Writing {name}")
        try:
            self.resources.open_for_write(name, render_registry_text(records))
        except (OSError, UnicodeError) as exc:
            raise RegistryWriteError(
                f"Failed to write service definition file {name}: {exc}"
            ) from exc
