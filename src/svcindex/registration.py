from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, TypeAlias


@dataclass(frozen=True)
class RegistrationRecord:
    name: str
    priority: int = 0


ContractRegistrations: TypeAlias = dict[str, RegistrationRecord]
Registry: TypeAlias = dict[str, ContractRegistrations]


def registration_sort_key(record: RegistrationRecord) -> tuple[int, str]:
    # Priority descending, then identifier ascending.
    return (-record.priority, record.name)


def ordered_registrations(
    records: Iterable[RegistrationRecord] | Mapping[str, RegistrationRecord],
) -> list[RegistrationRecord]:
    if isinstance(records, Mapping):
        records = records.values()
    return sorted(records, key=registration_sort_key)
