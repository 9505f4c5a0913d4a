"""Contract event models decoded from the on-chain event log."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class LicenseType(IntEnum):
    """Usage rights granted by a license NFT."""

    PERSONAL = 0  # demos, non-commercial
    COMMERCIAL = 1  # commercial releases
    BROADCAST = 2  # TV, radio, streaming, ads
    EXCLUSIVE = 3  # sample leaves the marketplace

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class SampleUploaded:
    """Emitted when a seller lists a new sample (event_SampleUploaded)."""

    sample_id: int
    seller: str  # account hash hex
    price: int  # motes
    title: str
    ipfs_link: str
    cover_image: str
    timestamp: int  # block time, ms


@dataclass(frozen=True)
class SamplePurchased:
    """Emitted for every sale. A buyer may appear more than once per sample."""

    sample_id: int
    buyer: str
    seller: str
    price: int  # motes
    platform_fee: int  # motes
    timestamp: int


@dataclass(frozen=True)
class LicenseMinted:
    """Emitted by the license contract when a license NFT is minted."""

    license_id: int
    sample_id: int
    license_type: int  # raw u8; see LicenseType
    buyer: str
    creator: str
    price: int  # motes
    timestamp: int


@dataclass(frozen=True)
class PriceUpdated:
    """Emitted when a seller changes a sample's price."""

    sample_id: int
    old_price: int
    new_price: int
    timestamp: int


@dataclass(frozen=True)
class SampleDeactivated:
    """Emitted when a seller soft-deletes a sample."""

    sample_id: int
    seller: str
    timestamp: int


@dataclass(frozen=True)
class EarningsWithdrawn:
    """Emitted when a seller withdraws accumulated earnings."""

    user: str
    amount: int
    timestamp: int


@dataclass(frozen=True)
class UnknownEvent:
    """A well-formed record whose type tag we do not decode."""

    tag: str
