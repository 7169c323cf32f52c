import pytest

from core.standardize import extract_unit, standardize_product_name


@pytest.mark.parametrize("original, expected", [
    ("청양고추 1키로", "청양고추 1kg"),
    ("청양고추  1kg", "청양고추 1kg"),
    ("청양고추1킬로그램", "청양고추 1kg"),
    ("사과10 개", "사과 10개"),
    ("양파 500그램", "양파 500g"),
    ("감자 1 박스", "감자 1박스"),
    ("대파 한단", "대파 한단"),
])
def test_standardize_product_name(original, expected):
    assert standardize_product_name(original) == expected


def test_equivalent_names_collapse():
    assert standardize_product_name("청양고추 1키로") == standardize_product_name("청양고추1kg")


def test_empty_name_is_rejected():
    with pytest.raises(ValueError):
        standardize_product_name("   ")


def test_extract_unit():
    assert extract_unit("청양고추 1kg") == "kg"
    assert extract_unit("사과 10개") == "개"
    assert extract_unit("대파 한단") is None
