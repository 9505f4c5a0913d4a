"""Derived views, operation results and transient submission state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sampled_client.models.events import LicenseType


@dataclass(frozen=True)
class RawEvent:
    """One entry of the append-only event log, as stored on chain."""

    index: int
    data: bytes


@dataclass
class SampleRecord:
    """A catalog entry rebuilt from the first SampleUploaded event for its id."""

    sample_id: int
    seller: str
    price: int  # motes
    ipfs_link: str
    title: str
    bpm: int = 0
    genre: str = ""
    cover_image: str = ""
    video_preview_link: str = ""
    total_sales: int = 0
    is_active: bool = True
    created_at: int = 0
    event_index: int = -1


@dataclass(frozen=True)
class PurchaseRecord:
    """One SamplePurchased event."""

    sample_id: int
    buyer: str
    seller: str
    price: int
    platform_fee: int
    timestamp: int
    event_index: int = -1

    @property
    def seller_amount(self) -> int:
        return self.price - self.platform_fee


@dataclass
class LicenseRecord:
    """One LicenseMinted event, optionally joined with its catalog sample."""

    license_id: int
    sample_id: int
    license_type: LicenseType | int
    buyer: str
    creator: str
    price: int
    timestamp: int
    sample: SampleRecord | None = None
    event_index: int = -1


@dataclass
class MarketplaceStats:
    """Marketplace-wide totals. All amounts are exact integers in motes."""

    sample_count: int = 0
    purchase_count: int = 0
    total_volume: int = 0
    platform_fee_collected: int = 0


@dataclass
class LicensePricing:
    """Per-license-type multipliers, in percent of the base price (100 = 1x)."""

    personal_multiplier: int = 100
    commercial_multiplier: int = 250
    broadcast_multiplier: int = 500
    exclusive_multiplier: int = 2000

    def multiplier_for(self, license_type: LicenseType | int) -> int:
        lt = LicenseType(license_type)
        return {
            LicenseType.PERSONAL: self.personal_multiplier,
            LicenseType.COMMERCIAL: self.commercial_multiplier,
            LicenseType.BROADCAST: self.broadcast_multiplier,
            LicenseType.EXCLUSIVE: self.exclusive_multiplier,
        }[lt]


@dataclass
class AllLicensePrices:
    """All four license prices for one sample, in motes."""

    personal: int
    commercial: int
    broadcast: int
    exclusive: int

    def as_dict(self) -> dict[LicenseType, int]:
        return {
            LicenseType.PERSONAL: self.personal,
            LicenseType.COMMERCIAL: self.commercial,
            LicenseType.BROADCAST: self.broadcast,
            LicenseType.EXCLUSIVE: self.exclusive,
        }


@dataclass(frozen=True)
class ChainStateReference:
    """A state root hash and the (cache clock) time it was fetched."""

    state_root_hash: str
    fetched_at: float


@dataclass(frozen=True)
class PendingTransaction:
    """A deploy accepted by the node but not yet known to have executed."""

    hash: str
    submitted_at: float


@dataclass(frozen=True)
class SignatureResponse:
    """What an external signer returns for a sign request."""

    cancelled: bool
    signature_hex: str | None = None


class ExecutionStatus(str, Enum):
    """Terminal (and pending) states of a submitted deploy."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ExecutionResult:
    """Schema-independent view of one execution result from info_get_deploy."""

    succeeded: bool
    error_message: str | None = None
    cost: int | None = None


@dataclass
class ExecutionOutcome:
    """Final answer of the completion tracker for one deploy."""

    status: ExecutionStatus
    deploy_hash: str
    error_message: str | None = None
    cost: int | None = None
    polls: int = 0
    elapsed: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is ExecutionStatus.SUCCEEDED


@dataclass
class TxReceipt:
    """Result of a marketplace mutation handed back to the caller."""

    entry_point: str
    deploy_hash: str
    outcome: ExecutionOutcome
    attached_value: int | None = None
    extra: dict = field(default_factory=dict)
