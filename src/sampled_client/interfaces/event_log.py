"""EventLog protocol - indexed access to the contract's append-only event log."""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from sampled_client.models.records import RawEvent


class EventLog(Protocol):
    """Reads the event log. Absence means "temporarily unknown", not "missing"."""

    async def get_event_count(self) -> int:
        ...

    async def get_event(self, index: int) -> bytes | None:
        ...

    def iter_events(self) -> AsyncIterator[RawEvent]:
        ...

    async def get_dictionary_value(self, dictionary_name: str, key: str) -> object | None:
        """Parsed value of a named contract dictionary entry, or None."""
        ...
