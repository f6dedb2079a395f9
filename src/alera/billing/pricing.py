"""Regional subscription pricing.

India, South Africa and Turkey get local-currency prices; every other
country sees the USD default. Each regional price id falls back to the
base id for its tier and interval when no override is configured.
"""

from typing import Optional

from alera.config import settings

TIERS = ("plus", "pro")
INTERVALS = ("monthly", "yearly")

# Amounts per (tier, interval). Price ids are resolved from settings at call time.
_REGIONS: dict[str, dict] = {
    "IN": {
        "country": "India",
        "currency": "INR",
        "settings_key": "india",
        "amounts": {
            ("plus", "monthly"): 249,
            ("plus", "yearly"): 2499,
            ("pro", "monthly"): 499,
            ("pro", "yearly"): 4999,
        },
    },
    "ZA": {
        "country": "South Africa",
        "currency": "ZAR",
        "settings_key": "sa",
        "amounts": {
            ("plus", "monthly"): 79,
            ("plus", "yearly"): 799,
            ("pro", "monthly"): 149,
            ("pro", "yearly"): 1499,
        },
    },
    "TR": {
        "country": "Turkey",
        "currency": "TRY",
        "settings_key": "turkey",
        "amounts": {
            ("plus", "monthly"): 99.99,
            ("plus", "yearly"): 999.99,
            ("pro", "monthly"): 199.99,
            ("pro", "yearly"): 1999.99,
        },
    },
}

_DEFAULT_AMOUNTS = {
    ("plus", "monthly"): 4.99,
    ("plus", "yearly"): 49.99,
    ("pro", "monthly"): 14.99,
    ("pro", "yearly"): 149.99,
}

# Flat monthly value of a paid seat, used for the admin MRR estimate.
MRR_TIER_PRICES = {"plus": 9.99, "pro": 19.99}


def _base_price_id(tier: str, interval: str) -> str:
    suffix = "price_id" if interval == "monthly" else "yearly_price_id"
    return getattr(settings, f"stripe_{tier}_{suffix}")


def _regional_price_id(region_key: str, tier: str, interval: str) -> str:
    override = getattr(settings, f"stripe_{tier}_{region_key}_{interval}_price_id")
    return override or _base_price_id(tier, interval)


def normalize_country(country: Optional[str]) -> str:
    return (country or "US").strip().upper()


def is_country_supported(country: Optional[str]) -> bool:
    return normalize_country(country) in _REGIONS


def supported_countries() -> list[str]:
    # US is listed so clients can offer it explicitly; it maps to the default.
    return list(_REGIONS) + ["US"]


def get_pricing_for_country(country: Optional[str]) -> dict:
    """Return {tier: {interval: {amount, currency, priceId}}} for a country."""
    region = _REGIONS.get(normalize_country(country))
    pricing: dict = {}
    for tier in TIERS:
        pricing[tier] = {}
        for interval in INTERVALS:
            if region is None:
                entry = {
                    "amount": _DEFAULT_AMOUNTS[(tier, interval)],
                    "currency": "USD",
                    "priceId": _base_price_id(tier, interval),
                }
            else:
                entry = {
                    "amount": region["amounts"][(tier, interval)],
                    "currency": region["currency"],
                    "priceId": _regional_price_id(
                        region["settings_key"], tier, interval
                    ),
                }
            pricing[tier][interval] = entry
    return pricing


def get_price_id(tier: str, interval: str = "monthly", country: Optional[str] = None) -> str:
    """Price id for a tier and interval in a country. Raises ValueError if unset."""
    if tier not in TIERS or interval not in INTERVALS:
        raise ValueError(f"Unknown plan: {tier}/{interval}")
    price_id = get_pricing_for_country(country)[tier][interval]["priceId"]
    if not price_id:
        raise ValueError(f"No Stripe price configured for {tier}/{interval}")
    return price_id


def get_tier_from_price_id(price_id: Optional[str]) -> Optional[str]:
    """Map any configured price id (base or regional) back to its tier."""
    if not price_id:
        return None
    for tier in TIERS:
        for interval in INTERVALS:
            if price_id == _base_price_id(tier, interval):
                return tier
            for region in _REGIONS.values():
                if price_id == _regional_price_id(region["settings_key"], tier, interval):
                    return tier
    return None
