"""Data models for the sampled_client package."""

from sampled_client.models.events import (
    EarningsWithdrawn,
    LicenseMinted,
    LicenseType,
    PriceUpdated,
    SampleDeactivated,
    SamplePurchased,
    SampleUploaded,
    UnknownEvent,
)
from sampled_client.models.records import (
    AllLicensePrices,
    ChainStateReference,
    ExecutionOutcome,
    ExecutionResult,
    ExecutionStatus,
    LicensePricing,
    LicenseRecord,
    MarketplaceStats,
    PendingTransaction,
    PurchaseRecord,
    RawEvent,
    SampleRecord,
    SignatureResponse,
    TxReceipt,
)
from sampled_client.models.config import ClientConfig, GasBudgets, MOTES_PER_CSPR, NETWORKS

__all__ = [
    "EarningsWithdrawn", "LicenseMinted", "LicenseType", "PriceUpdated",
    "SampleDeactivated", "SamplePurchased", "SampleUploaded", "UnknownEvent",
    "AllLicensePrices", "ChainStateReference", "ExecutionOutcome",
    "ExecutionResult", "ExecutionStatus", "LicensePricing", "LicenseRecord",
    "MarketplaceStats", "PendingTransaction", "PurchaseRecord", "RawEvent",
    "SampleRecord", "SignatureResponse", "TxReceipt",
    "ClientConfig", "GasBudgets", "MOTES_PER_CSPR", "NETWORKS",
]
