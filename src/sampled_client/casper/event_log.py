"""Event log accessor: event count and raw event bytes from contract storage."""

from __future__ import annotations

import logging
import time
from typing import AsyncIterator, Callable

from sampled_client.errors import SampledError
from sampled_client.interfaces.rpc import NodeRpc
from sampled_client.models.records import ChainStateReference, RawEvent

log = logging.getLogger(__name__)

EVENTS_DICTIONARY = "__events"
EVENTS_LENGTH_KEY = "__events_length"


class StateRootCache:
    """Caches the node's latest state root hash for ``ttl`` seconds.

    Concurrent callers that race past the TTL may both refresh; a refresh has
    no side effects, so that is harmless.
    """

    def __init__(
        self,
        rpc: NodeRpc,
        ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._rpc = rpc
        self._ttl = ttl
        self._clock = clock
        self._current: ChainStateReference | None = None

    @property
    def current(self) -> ChainStateReference | None:
        return self._current

    def is_fresh(self) -> bool:
        if self._current is None:
            return False
        return self._clock() - self._current.fetched_at < self._ttl

    async def get(self) -> ChainStateReference:
        """Return the cached reference, refreshing it first if stale."""
        if self.is_fresh():
            return self._current  # type: ignore[return-value]
        return await self.refresh()

    async def refresh(self) -> ChainStateReference:
        state_root_hash = await self._rpc.get_state_root_hash()
        self._current = ChainStateReference(
            state_root_hash=state_root_hash,
            fetched_at=self._clock(),
        )
        log.debug("State root refreshed: %s", state_root_hash[:16])
        return self._current

    def invalidate(self) -> None:
        self._current = None


def _clvalue(result: object) -> dict | None:
    """Extract ``stored_value.CLValue`` from a state query result."""
    if not isinstance(result, dict):
        return None
    stored = result.get("stored_value")
    if not isinstance(stored, dict):
        return None
    cl = stored.get("CLValue")
    return cl if isinstance(cl, dict) else None


def _event_bytes(clvalue: dict) -> bytes | None:
    """Raw event record from a dictionary CLValue.

    Events are stored either as ``Any`` (the record itself) or as a
    ``List<U8>``, whose bytes carry an extra u32 length prefix.
    """
    raw_hex = clvalue.get("bytes")
    if isinstance(raw_hex, str):
        data = bytes.fromhex(raw_hex)
        if clvalue.get("cl_type") == {"List": "U8"}:
            if len(data) < 4 or int.from_bytes(data[:4], "little") != len(data) - 4:
                raise ValueError("List<U8> length prefix does not match payload")
            data = data[4:]
        return data

    parsed = clvalue.get("parsed")
    if isinstance(parsed, list) and all(isinstance(b, int) for b in parsed):
        return bytes(parsed)
    if isinstance(parsed, str):
        return bytes.fromhex(parsed)
    return None


class ContractEventLog:
    """Reads the marketplace contract's event log from global state.

    The count lives under the contract's ``__events_length`` named key, the
    records in the ``__events`` dictionary keyed by decimal index. Every
    read is anchored to a cached state root. Transport, RPC and format
    errors are logged and reported as 0 / None.
    """

    def __init__(
        self,
        rpc: NodeRpc,
        contract_hash: str,
        state_roots: StateRootCache | None = None,
        events_uref: str = "",
    ) -> None:
        self._rpc = rpc
        self._contract_hash = contract_hash.removeprefix("hash-")
        self._state_roots = state_roots or StateRootCache(rpc)
        self._events_uref = events_uref

    @property
    def contract_key(self) -> str:
        return f"hash-{self._contract_hash}"

    @property
    def state_roots(self) -> StateRootCache:
        return self._state_roots

    def _events_identifier(self, index: int) -> dict:
        if self._events_uref:
            return {
                "URef": {
                    "seed_uref": self._events_uref,
                    "dictionary_item_key": str(index),
                }
            }
        return self._named_identifier(EVENTS_DICTIONARY, str(index))

    def _named_identifier(self, dictionary_name: str, key: str) -> dict:
        return {
            "ContractNamedKey": {
                "key": self.contract_key,
                "dictionary_name": dictionary_name,
                "dictionary_item_key": key,
            }
        }

    async def get_event_count(self) -> int:
        """Number of events in the log. 0 when the node cannot answer."""
        if not self._contract_hash:
            log.warning("get_event_count: no contract hash configured")
            return 0
        try:
            ref = await self._state_roots.get()
            result = await self._rpc.get_item(
                ref.state_root_hash, self.contract_key, [EVENTS_LENGTH_KEY],
            )
            cl = _clvalue(result)
            if cl is None:
                return 0
            return int(cl.get("parsed") or 0)
        except (SampledError, ValueError, TypeError) as exc:
            log.warning("get_event_count failed: %s", exc)
            return 0

    async def get_event(self, index: int) -> bytes | None:
        """Raw bytes of event ``index``, or None if it could not be read."""
        if not self._contract_hash and not self._events_uref:
            return None
        try:
            ref = await self._state_roots.get()
            result = await self._rpc.get_dictionary_item(
                ref.state_root_hash, self._events_identifier(index),
            )
            cl = _clvalue(result)
            if cl is None:
                return None
            return _event_bytes(cl)
        except (SampledError, ValueError, TypeError) as exc:
            log.warning("get_event(%d) failed: %s", index, exc)
            return None

    async def iter_events(self) -> AsyncIterator[RawEvent]:
        """Yield every readable event from 0 to count-1, in order."""
        count = await self.get_event_count()
        for index in range(count):
            data = await self.get_event(index)
            if data is None:
                continue
            yield RawEvent(index=index, data=data)

    async def get_dictionary_value(self, dictionary_name: str, key: str) -> object | None:
        """Parsed CLValue of a named contract dictionary entry, or None."""
        if not self._contract_hash:
            return None
        try:
            ref = await self._state_roots.get()
            result = await self._rpc.get_dictionary_item(
                ref.state_root_hash, self._named_identifier(dictionary_name, key),
            )
            cl = _clvalue(result)
            return None if cl is None else cl.get("parsed")
        except (SampledError, ValueError, TypeError) as exc:
            log.warning("get_dictionary_value(%s, %s) failed: %s", dictionary_name, key, exc)
            return None
