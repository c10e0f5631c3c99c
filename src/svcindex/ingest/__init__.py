from svcindex.ingest.discovery_contract import ContractRef, DiscoveryEvent
from svcindex.ingest.python_scanner import (
    DEFAULT_MARKER,
    PythonSourceScanner,
    ScanConfig,
    iter_python_paths,
    module_name,
    scan_sources,
)

__all__ = [
    "ContractRef",
    "DEFAULT_MARKER",
    "DiscoveryEvent",
    "PythonSourceScanner",
    "ScanConfig",
    "iter_python_paths",
    "module_name",
    "scan_sources",
]
