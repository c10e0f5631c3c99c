"""Error kinds raised while indexing service providers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from svcindex.diagnostics import SourceLocation


class SvcIndexError(RuntimeError):
    """Base class for errors that are isolated to one declaration or contract.

    These are caught at the collector and indexer seams, reported through the
    diagnostic sink, and never abort a pass.
    """

    def __init__(self, message: str, *, location: SourceLocation | None = None):
        super().__init__(message)
        self.message = message
        self.location = location


class InvalidContractError(SvcIndexError):
    """Explicit contract is not a class, or the provider does not derive from it."""


class ContractInferenceError(SvcIndexError):
    """No contract given and the bases do not name exactly one candidate."""


class InvalidPriorityError(SvcIndexError):
    """The ``priority=`` argument is not an integer literal."""


class SourceParseError(SvcIndexError):
    """A source file could not be read or parsed."""


class RegistryReadError(SvcIndexError):
    """An existing registry resource could not be read or decoded."""


class RegistryWriteError(SvcIndexError):
    """A registry resource could not be written."""


class IndexerStateError(RuntimeError):
    """The indexer was driven out of order (e.g. finalized twice)."""
