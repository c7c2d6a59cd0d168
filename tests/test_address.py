"""
Address normalisation for courier payloads.
"""
from __future__ import annotations

import pytest

from courier_bridge.services.address import normalize_address, prepare_delivery_address


@pytest.mark.parametrize(
    "country, expected",
    [
        ("South Africa", "ZA"),
        ("southafrica", "ZA"),
        (" za ", "ZA"),
        ("na", "NA"),
        ("Namibia", "Namibia"),
    ],
)
def test_country_codes(country, expected):
    assert normalize_address({"country": country})["country"] == expected


@pytest.mark.parametrize(
    "zone, expected",
    [
        ("Gauteng", "GP"),
        ("Western Cape", "WC"),
        ("KwaZulu-Natal", "KZN"),
        ("kzn", "KZN"),
        ("free state", "FS"),
        ("wc", "WC"),
        ("Some Region", "Some Region"),
    ],
)
def test_zone_abbreviations(zone, expected):
    assert normalize_address({"zone": zone})["zone"] == expected


def test_normalize_does_not_mutate_input():
    original = {"country": "South Africa", "zone": "Gauteng", "city": "Pretoria"}
    result = normalize_address(original)
    assert original["country"] == "South Africa"
    assert result == {"country": "ZA", "zone": "GP", "city": "Pretoria"}


def test_normalize_empty_address_passthrough():
    assert normalize_address(None) is None
    assert normalize_address({}) == {}


def test_prepare_delivery_address_fills_aliases():
    prepared = prepare_delivery_address(
        {"address": "12 Long St", "pincode": "8001", "country": "south africa", "zone": "western cape"}
    )
    assert prepared["street_address"] == "12 Long St"
    assert prepared["code"] == "8001"
    assert prepared["country"] == "ZA"
    assert prepared["zone"] == "WC"


def test_prepare_delivery_address_code_precedence():
    prepared = prepare_delivery_address({"postal_code": "2000", "zip": "9999"})
    assert prepared["code"] == "2000"
    assert prepare_delivery_address({"city": "Durban"})["code"] == ""


def test_prepare_keeps_explicit_street_and_code():
    prepared = prepare_delivery_address(
        {"street_address": "1 Loop St", "address": "ignored", "code": "8000", "zip": "1"}
    )
    assert prepared["street_address"] == "1 Loop St"
    assert prepared["code"] == "8000"
