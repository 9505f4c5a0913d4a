"""Binary event decoder for the marketplace's on-chain event log.

Every record starts with a length-prefixed type tag (``event_<Name>``)
followed by the event's fields in declaration order. The log interleaves
several event kinds, so decoding dispatches on the tag.
"""

from __future__ import annotations

import logging
from typing import Callable, Union

from sampled_client.casper.bytesrepr import ByteReader, ByteWriter
from sampled_client.errors import DecodeError
from sampled_client.models.events import (
    EarningsWithdrawn,
    LicenseMinted,
    PriceUpdated,
    SampleDeactivated,
    SamplePurchased,
    SampleUploaded,
    UnknownEvent,
)

log = logging.getLogger(__name__)

DecodedEvent = Union[
    SampleUploaded,
    SamplePurchased,
    LicenseMinted,
    PriceUpdated,
    SampleDeactivated,
    EarningsWithdrawn,
    UnknownEvent,
]

EVENT_TAG_PREFIX = "event_"

TAG_SAMPLE_UPLOADED = "event_SampleUploaded"
TAG_SAMPLE_PURCHASED = "event_SamplePurchased"
TAG_LICENSE_MINTED = "event_LicenseMinted"
TAG_PRICE_UPDATED = "event_PriceUpdated"
TAG_SAMPLE_DEACTIVATED = "event_SampleDeactivated"
TAG_EARNINGS_WITHDRAWN = "event_EarningsWithdrawn"


def _read_sample_uploaded(r: ByteReader) -> SampleUploaded:
    return SampleUploaded(
        sample_id=r.u64(),
        seller=r.account(),
        price=r.u512(),
        title=r.string(),
        ipfs_link=r.string(),
        cover_image=r.string(),
        timestamp=r.u64(),
    )


def _read_sample_purchased(r: ByteReader) -> SamplePurchased:
    return SamplePurchased(
        sample_id=r.u64(),
        buyer=r.account(),
        seller=r.account(),
        price=r.u512(),
        platform_fee=r.u512(),
        timestamp=r.u64(),
    )


def _read_license_minted(r: ByteReader) -> LicenseMinted:
    return LicenseMinted(
        license_id=r.u64(),
        sample_id=r.u64(),
        license_type=r.u8(),
        buyer=r.account(),
        creator=r.account(),
        price=r.u512(),
        timestamp=r.u64(),
    )


def _read_price_updated(r: ByteReader) -> PriceUpdated:
    return PriceUpdated(
        sample_id=r.u64(),
        old_price=r.u512(),
        new_price=r.u512(),
        timestamp=r.u64(),
    )


def _read_sample_deactivated(r: ByteReader) -> SampleDeactivated:
    return SampleDeactivated(sample_id=r.u64(), seller=r.account(), timestamp=r.u64())


def _read_earnings_withdrawn(r: ByteReader) -> EarningsWithdrawn:
    return EarningsWithdrawn(user=r.account(), amount=r.u512(), timestamp=r.u64())


_READERS: dict[str, Callable[[ByteReader], DecodedEvent]] = {
    TAG_SAMPLE_UPLOADED: _read_sample_uploaded,
    TAG_SAMPLE_PURCHASED: _read_sample_purchased,
    TAG_LICENSE_MINTED: _read_license_minted,
    TAG_PRICE_UPDATED: _read_price_updated,
    TAG_SAMPLE_DEACTIVATED: _read_sample_deactivated,
    TAG_EARNINGS_WITHDRAWN: _read_earnings_withdrawn,
}

TAG_FOR_TYPE: dict[type, str] = {
    SampleUploaded: TAG_SAMPLE_UPLOADED,
    SamplePurchased: TAG_SAMPLE_PURCHASED,
    LicenseMinted: TAG_LICENSE_MINTED,
    PriceUpdated: TAG_PRICE_UPDATED,
    SampleDeactivated: TAG_SAMPLE_DEACTIVATED,
    EarningsWithdrawn: TAG_EARNINGS_WITHDRAWN,
}


def read_tag(data: bytes) -> str | None:
    """Return the type tag of an event buffer, or None if it is unreadable."""
    r = ByteReader(data)
    try:
        return r.read(r.u32()).decode("ascii")
    except (DecodeError, UnicodeDecodeError):
        return None


class EventDecoder:
    """Turns raw event buffers into typed events.

    ``legacy_u64`` reproduces readers that consumed 8 bytes for identifiers
    and timestamps but folded only the low 4 into the value.
    """

    def __init__(self, legacy_u64: bool = False) -> None:
        self._legacy_u64 = legacy_u64

    def decode(self, data: bytes) -> DecodedEvent | None:
        """Decode any known event.

        Returns UnknownEvent for well-formed buffers with an unrecognized tag
        and None for malformed or truncated ones.
        """
        r = ByteReader(data, legacy_u64=self._legacy_u64)
        try:
            tag = r.read(r.u32()).decode("ascii")
        except (DecodeError, UnicodeDecodeError) as exc:
            log.debug("Unreadable event tag: %s", exc)
            return None

        reader = _READERS.get(tag)
        if reader is None:
            return UnknownEvent(tag=tag)

        try:
            return reader(r)
        except DecodeError as exc:
            log.debug("Malformed %s event: %s", tag, exc)
            return None

    def try_decode(self, data: bytes, shape: type) -> DecodedEvent | None:
        """Decode only if the buffer's tag matches ``shape``; otherwise None."""
        expected = TAG_FOR_TYPE.get(shape)
        if expected is None:
            raise ValueError(f"{shape.__name__} is not a decodable event type")
        event = self.decode(data)
        if isinstance(event, shape):
            return event
        return None


_default_decoder = EventDecoder()


def decode_event(data: bytes) -> DecodedEvent | None:
    """Decode with the default (full-width u64) decoder."""
    return _default_decoder.decode(data)


def try_decode(data: bytes, shape: type) -> DecodedEvent | None:
    return _default_decoder.try_decode(data, shape)


# ── Encoding (fixtures, round-trip checks) ─────────────────────


def encode_event(event: DecodedEvent) -> bytes:
    """Serialize a decoded event back into the on-chain layout."""
    tag = TAG_FOR_TYPE.get(type(event))
    if tag is None:
        raise ValueError(f"cannot encode {type(event).__name__}")

    w = ByteWriter().string(tag, encoding="ascii")
    if isinstance(event, SampleUploaded):
        (w.u64(event.sample_id).account(event.seller).u512(event.price)
         .string(event.title, "latin-1").string(event.ipfs_link, "latin-1")
         .string(event.cover_image, "latin-1").u64(event.timestamp))
    elif isinstance(event, SamplePurchased):
        (w.u64(event.sample_id).account(event.buyer).account(event.seller)
         .u512(event.price).u512(event.platform_fee).u64(event.timestamp))
    elif isinstance(event, LicenseMinted):
        (w.u64(event.license_id).u64(event.sample_id).u8(event.license_type)
         .account(event.buyer).account(event.creator).u512(event.price)
         .u64(event.timestamp))
    elif isinstance(event, PriceUpdated):
        (w.u64(event.sample_id).u512(event.old_price).u512(event.new_price)
         .u64(event.timestamp))
    elif isinstance(event, SampleDeactivated):
        w.u64(event.sample_id).account(event.seller).u64(event.timestamp)
    elif isinstance(event, EarningsWithdrawn):
        w.account(event.user).u512(event.amount).u64(event.timestamp)
    return w.getvalue()
