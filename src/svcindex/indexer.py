"""Drive one indexing pass: collect, merge with existing registries, write."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from svcindex.collector import ContractRegistrationCollector
from svcindex.diagnostics import DiagnosticSink, report_error
from svcindex.exceptions import IndexerStateError, RegistryWriteError
from svcindex.ingest.discovery_contract import DiscoveryEvent
from svcindex.merge import merge_registrations
from svcindex.registration import Registry
from svcindex.store import RegistryStore


@dataclass(frozen=True)
class IndexResult:
    written: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()
    registry: Registry = field(default_factory=dict)


class ServiceIndexer:
    """Accumulates discovery rounds and writes nothing until ``finalize``.

    Each contract's resource is read once and written once, in contract-name
    order. A failure on one contract is reported and the rest proceed.
    """

    def __init__(self, *, store: RegistryStore, sink: DiagnosticSink) -> None:
        self.store = store
        self.sink = sink
        self._collector = ContractRegistrationCollector(sink=sink)
        self._finalized = False

    @property
    def discovered(self) -> Registry:
        return self._collector.registry

    def process_round(self, events: Iterable[DiscoveryEvent]) -> Registry:
        if self._finalized:
            raise IndexerStateError("process_round() called after finalize()")
        return self._collector.add_all(events)

    def finalize(self) -> IndexResult:
        if self._finalized:
            raise IndexerStateError("finalize() called twice")
        self._finalized = True
        merged: Registry = {}
        written: list[str] = []
        failed: list[str] = []
        for contract in sorted(self.discovered):
            existing = self.store.load(contract, sink=self.sink)
            records = merge_registrations(self.discovered[contract], existing)
            merged[contract] = records
            try:
                self.store.write(contract, records, sink=self.sink)
            except RegistryWriteError as exc:
                report_error(self.sink, exc)
                failed.append(contract)
                continue
            written.append(contract)
        return IndexResult(written=tuple(written), failed=tuple(failed), registry=merged)


def run_index_pass(
    events: Iterable[DiscoveryEvent],
    *,
    store: RegistryStore,
    sink: DiagnosticSink,
) -> IndexResult:
    indexer = ServiceIndexer(store=store, sink=sink)
    indexer.process_round(events)
    return indexer.finalize()
