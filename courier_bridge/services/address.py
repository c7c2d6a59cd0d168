"""
Address normalisation for the courier API: ISO country codes and South
African province abbreviations.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

COUNTRY_CODES: Dict[str, str] = {
    "south africa": "ZA",
    "southafrica": "ZA",
    "za": "ZA",
}

ZONE_ABBREVIATIONS: Dict[str, str] = {
    "gauteng": "GP",
    "western cape": "WC",
    "kwazulu-natal": "KZN",
    "kzn": "KZN",
    "eastern cape": "EC",
    "limpopo": "LP",
    "mpumalanga": "MP",
    "north west": "NW",
    "free state": "FS",
    "northern cape": "NC",
}


def normalize_address(address: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return a copy with ``country`` and ``zone`` in the courier's format."""
    if not address:
        return address

    normalized = dict(address)

    country = normalized.get("country")
    if country:
        country_lower = str(country).lower().strip()
        if country_lower in COUNTRY_CODES:
            normalized["country"] = COUNTRY_CODES[country_lower]
        elif len(country_lower) == 2:
            normalized["country"] = country_lower.upper()

    zone = normalized.get("zone")
    if zone:
        zone_lower = str(zone).lower().strip()
        if zone_lower in ZONE_ABBREVIATIONS:
            normalized["zone"] = ZONE_ABBREVIATIONS[zone_lower]
        elif len(zone_lower) <= 3:
            normalized["zone"] = zone_lower.upper()

    return normalized


def prepare_delivery_address(address: Dict[str, Any]) -> Dict[str, Any]:
    """Fill ``street_address``/``code`` from storefront aliases, then normalise."""
    prepared = dict(address)
    if not prepared.get("street_address") and prepared.get("address"):
        prepared["street_address"] = prepared["address"]
    if not prepared.get("code"):
        prepared["code"] = (
            prepared.get("postal_code")
            or prepared.get("pincode")
            or prepared.get("zip")
            or ""
        )
    return normalize_address(prepared)
