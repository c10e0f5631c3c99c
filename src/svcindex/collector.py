"""Group discovery events into a per-contract registry."""

from __future__ import annotations

from typing import Iterable

from svcindex.diagnostics import DiagnosticSink, report_error
from svcindex.exceptions import ContractInferenceError, InvalidContractError, SvcIndexError
from svcindex.ingest.discovery_contract import ContractRef, DiscoveryEvent
from svcindex.registration import RegistrationRecord, Registry


def _explicit_contract(event: DiscoveryEvent, ref: ContractRef) -> str:
    if ref.name is None:
        raise InvalidContractError(
            f"Type '{ref.text}' is not a valid contract type",
            location=event.location,
        )
    if not ref.assignable:
        raise InvalidContractError(
            f"Type '{event.implementation}' is not assignable to contract type '{ref.name}'",
            location=event.location,
        )
    return ref.name


def _inferred_contract(event: DiscoveryEvent) -> str:
    has_base_class = bool(event.superclasses)
    has_interfaces = bool(event.interfaces)
    if has_base_class != has_interfaces:
        if not has_base_class:
            return event.interfaces[0]
        # Multiple concrete bases are as ambiguous as base-plus-interfaces.
        if len(event.superclasses) == 1:
            return event.superclasses[0]
    raise ContractInferenceError(
        f"Cannot infer contract type for '{event.implementation}'",
        location=event.location,
    )


def resolve_contract(event: DiscoveryEvent) -> str:
    if event.explicit_contract is not None:
        return _explicit_contract(event, event.explicit_contract)
    return _inferred_contract(event)


class ContractRegistrationCollector:
    """Accumulates registrations keyed by contract, then by implementation."""

    def __init__(self, *, sink: DiagnosticSink) -> None:
        self.sink = sink
        self.registry: Registry = {}

    def add(self, event: DiscoveryEvent) -> bool:
        try:
            contract = resolve_contract(event)
        except SvcIndexError as exc:
            report_error(self.sink, exc)
            return False
        records = self.registry.setdefault(contract, {})
        records[event.implementation] = RegistrationRecord(
            name=event.implementation,
            priority=event.priority,
        )
        return True

    def add_all(self, events: Iterable[DiscoveryEvent]) -> Registry:
        for event in events:
            self.add(event)
        return self.registry


def collect_registrations(
    events: Iterable[DiscoveryEvent], *, sink: DiagnosticSink
) -> Registry:
    return ContractRegistrationCollector(sink=sink).add_all(events)
