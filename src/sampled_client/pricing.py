"""License pricing and mote/CSPR conversions. Exact integer arithmetic only."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sampled_client.models.config import MOTES_PER_CSPR
from sampled_client.models.events import LicenseType
from sampled_client.models.records import AllLicensePrices, LicensePricing

MULTIPLIER_DENOMINATOR = 100

DEFAULT_PRICING = LicensePricing()


def calculate_license_price(base_price: int, multiplier: int) -> int:
    """floor(base_price * multiplier / 100)."""
    if base_price < 0 or multiplier < 0:
        raise ValueError("price and multiplier must be non-negative")
    return int(base_price) * int(multiplier) // MULTIPLIER_DENOMINATOR


def price_for(
    base_price: int,
    license_type: LicenseType | int,
    pricing: LicensePricing | None = None,
) -> int:
    pricing = pricing or DEFAULT_PRICING
    return calculate_license_price(base_price, pricing.multiplier_for(license_type))


def all_license_prices(base_price: int, pricing: LicensePricing | None = None) -> AllLicensePrices:
    pricing = pricing or DEFAULT_PRICING
    return AllLicensePrices(
        personal=calculate_license_price(base_price, pricing.personal_multiplier),
        commercial=calculate_license_price(base_price, pricing.commercial_multiplier),
        broadcast=calculate_license_price(base_price, pricing.broadcast_multiplier),
        exclusive=calculate_license_price(base_price, pricing.exclusive_multiplier),
    )


def pricing_from_parsed(data: object) -> LicensePricing | None:
    """Build LicensePricing from a parsed CLValue.

    Structs come back either as a mapping or as a list of [field, value] pairs.
    """
    if isinstance(data, list):
        try:
            data = {k: v for k, v in data}
        except (TypeError, ValueError):
            return None
    if not isinstance(data, dict):
        return None
    try:
        return LicensePricing(
            personal_multiplier=int(data["personal_multiplier"]),
            commercial_multiplier=int(data["commercial_multiplier"]),
            broadcast_multiplier=int(data["broadcast_multiplier"]),
            exclusive_multiplier=int(data["exclusive_multiplier"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


def motes_to_cspr_str(motes: int, decimals: int = 4) -> str:
    """Format motes as CSPR without going through float."""
    motes = int(motes)
    sign = "-" if motes < 0 else ""
    whole, frac = divmod(abs(motes), MOTES_PER_CSPR)
    if decimals <= 0:
        return f"{sign}{whole} CSPR"
    frac_str = f"{frac:09d}"[:decimals]
    return f"{sign}{whole}.{frac_str} CSPR"


def cspr_to_motes(amount: str | int | Decimal) -> int:
    """Parse a CSPR amount ("12.5") into motes. Sub-mote digits are rejected."""
    try:
        value = Decimal(str(amount)) * MOTES_PER_CSPR
    except InvalidOperation:
        raise ValueError(f"not a CSPR amount: {amount!r}") from None
    if value != value.to_integral_value():
        raise ValueError(f"{amount} CSPR is not a whole number of motes")
    if value < 0:
        raise ValueError("amount must be non-negative")
    return int(value)
