from __future__ import annotations

from typing import Mapping

from svcindex.registration import ContractRegistrations, RegistrationRecord


def merge_registrations(
    discovered: Mapping[str, RegistrationRecord],
    existing: Mapping[str, RegistrationRecord],
) -> ContractRegistrations:
    """Combine this pass's registrations with the ones already on disk.

    Discovered records are authoritative: an identifier present in both keeps
    its discovered priority. Existing records survive so a partial rebuild
    does not drop providers from sources that were not rescanned.
    """
    merged: ContractRegistrations = dict(discovered)
    for name, record in existing.items():
        if name not in merged:
            merged[name] = record
    return merged
