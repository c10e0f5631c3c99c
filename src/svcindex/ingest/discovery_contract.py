from __future__ import annotations

from dataclasses import dataclass

from svcindex.diagnostics import SourceLocation


@dataclass(frozen=True)
class ContractRef:
    """An explicit ``contract`` argument as written at the marker site.

    ``name`` is the qualified class name, or None when the expression does not
    denote a class. ``assignable`` records whether the provider derives from it.
    """

    text: str
    name: str | None
    assignable: bool = True


@dataclass(frozen=True)
class DiscoveryEvent:
    implementation: str
    priority: int = 0
    explicit_contract: ContractRef | None = None
    superclasses: tuple[str, ...] = ()
    interfaces: tuple[str, ...] = ()
    location: SourceLocation | None = None
