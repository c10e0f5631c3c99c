"""Runtime marker for service provider classes."""

from __future__ import annotations

from typing import Callable, TypeVar

ClassT = TypeVar("ClassT", bound=type)


def provides(contract: type | None = None, *, priority: int = 0) -> Callable[[ClassT], ClassT]:
    """Mark a class as a provider of ``contract``.

    The decorator is a no-op at runtime; ``svcindex build`` discovers it
    statically. With no contract, the contract is inferred from the single
    base class or the first abstract base. Higher priorities are listed first
    in the generated registry.
    """

    def _mark(cls: ClassT) -> ClassT:
        return cls

    return _mark
