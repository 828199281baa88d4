"""
Identifier generation.

Activity, audit log and backup identifiers come from an injected generator
so tests can supply deterministic IDs.
"""

import itertools
import uuid
from typing import Protocol


class IdGenerator(Protocol):
    """Produces unique string identifiers."""

    def new_id(self, prefix: str | None = None) -> str: ...


class UuidIdGenerator:
    """Random UUID4 identifiers, optionally prefixed."""

    def new_id(self, prefix: str | None = None) -> str:
        value = str(uuid.uuid4())
        return f"{prefix}_{value}" if prefix else value


class SequentialIdGenerator:
    """Deterministic identifiers: ``id-1``, ``id-2``, ... (or ``<prefix>-N``)."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def new_id(self, prefix: str | None = None) -> str:
        return f"{prefix or 'id'}-{next(self._counter)}"


default_id_generator = UuidIdGenerator()
