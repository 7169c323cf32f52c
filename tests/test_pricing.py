"""Tests for lowest-price flagging and aggregation."""
import pytest

from core.pricing import anonymize_vendors, flag_lowest_prices, lowest_prices, vendor_label


def listing(price, vendor_id="v1"):
    return {"price": price, "vendor_id": vendor_id}


def test_only_minimum_is_flagged():
    flagged = flag_lowest_prices([listing(9000), listing(8500), listing(12000)])
    assert [l["is_lowest"] for l in flagged] == [False, True, False]


def test_ties_are_all_flagged():
    flagged = flag_lowest_prices([listing(8500, "v1"), listing(9000, "v2"), listing(8500, "v3")])
    assert [l["is_lowest"] for l in flagged] == [True, False, True]


def test_single_listing_is_lowest():
    assert flag_lowest_prices([listing(100)])[0]["is_lowest"] is True


def test_empty_set_is_not_an_error():
    assert flag_lowest_prices([]) == []


def test_flagging_does_not_mutate_input():
    listings = [listing(1)]
    flag_lowest_prices(listings)
    assert "is_lowest" not in listings[0]


@pytest.mark.parametrize("index, label", [(0, "Vendor A"), (25, "Vendor Z"), (26, "Vendor AA"), (27, "Vendor AB")])
def test_vendor_label(index, label):
    assert vendor_label(index) == label


def test_anonymize_keeps_label_per_vendor():
    anonymized = anonymize_vendors([listing(1, "x"), listing(2, "y"), listing(3, "x")])
    assert [l["vendor_name"] for l in anonymized] == ["Vendor A", "Vendor B", "Vendor A"]


def test_lowest_prices_groups_and_sorts():
    rows = [
        {"standard_product_id": 1, "standard_name": "청양고추 1kg", "category": "채소", "price": 9000},
        {"standard_product_id": 2, "standard_name": "대파 한단", "category": "채소", "price": 3000},
        {"standard_product_id": 1, "standard_name": "청양고추 1kg", "category": "채소", "price": 8500},
    ]

    summaries = lowest_prices(rows)

    assert [s["standard_name"] for s in summaries] == ["대파 한단", "청양고추 1kg"]
    assert summaries[1]["lowest_price"] == 8500
    assert summaries[1]["product_count"] == 2
