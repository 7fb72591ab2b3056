"""
Identifier generation -- injectable transaction id sources.

Responsibility:
    Provides an id generator interface so engines never call a random
    source directly.  Output ids only need to be unique within one result
    set; a monotonic counter satisfies that and keeps runs reproducible.

Architecture position:
    Kernel > Domain -- pure functional core.  ``UUIDIdGenerator`` is the one
    sanctioned non-deterministic implementation, for callers that merge
    results from several runs.
"""

from abc import ABC, abstractmethod
from uuid import uuid4


class IdGenerator(ABC):
    """
    Abstract id source.

    Contract:
        ``next_id()`` never returns the same value twice for one instance.
    """

    @abstractmethod
    def next_id(self) -> str:
        """Return a fresh identifier."""
        ...


class SequentialIdGenerator(IdGenerator):
    """
    Counter-based generator: ``TX-000001``, ``TX-000002``, ...

    Not shared between engine calls unless the caller passes the same
    instance explicitly.
    """

    def __init__(self, prefix: str = "TX", start: int = 1, width: int = 6):
        self._prefix = prefix
        self._start = start
        self._next = start
        self._width = width

    def next_id(self) -> str:
        value = f"{self._prefix}-{self._next:0{self._width}d}"
        self._next += 1
        return value

    @property
    def issued(self) -> int:
        """Number of ids handed out so far."""
        return self._next - self._start


class UUIDIdGenerator(IdGenerator):
    """Random UUID4 ids, unique across runs."""

    def __init__(self, prefix: str = ""):
        self._prefix = prefix

    def next_id(self) -> str:
        return f"{self._prefix}{uuid4()}"
