"""Diagnostic sink used by the scanner, collector and indexer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

from svcindex.exceptions import SvcIndexError


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


@dataclass(frozen=True)
class SourceLocation:
    path: Path
    line: int = 0
    column: int = 0

    def render(self) -> str:
        if self.line <= 0:
            return str(self.path)
        return f"{self.path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    message: str
    location: SourceLocation | None = None

    def render(self) -> str:
        prefix = self.location.render() if self.location is not None else "svcindex"
        return f"{prefix}: {self.severity.value}: {self.message}"


@runtime_checkable
class DiagnosticSink(Protocol):
    def report(
        self,
        severity: Severity,
        message: str,
        location: SourceLocation | None = None,
    ) -> None: ...


@dataclass
class DiagnosticCollector:
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def report(
        self,
        severity: Severity,
        message: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.diagnostics.append(Diagnostic(severity, message, location))

    @property
    def has_errors(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.diagnostics)

    def of_severity(self, severity: Severity) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is severity]


def report_error(sink: DiagnosticSink, error: SvcIndexError) -> None:
    sink.report(Severity.ERROR, error.message, error.location)
