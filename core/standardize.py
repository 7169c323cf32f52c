"""Rule-based standardization of raw produce listing names.

Vendors type names like ``"청양고추  1키로"`` or ``"사과10 개"``; equivalent
listings must collapse onto one canonical name (``"청양고추 1kg"``,
``"사과 10개"``) so their prices can be compared.
"""
import re

UNIT_ALIASES = {
    "키로그램": "kg",
    "킬로그램": "kg",
    "키로": "kg",
    "킬로": "kg",
    "kilogram": "kg",
    "kilo": "kg",
    "kg": "kg",
    "그램": "g",
    "gram": "g",
    "g": "g",
    "개입": "개",
    "개": "개",
    "ea": "개",
    "박스": "박스",
    "box": "박스",
    "팩": "팩",
    "봉지": "봉",
    "봉": "봉",
    "포기": "포기",
    "단": "단",
    "마리": "마리",
    "근": "근",
}

STANDARD_UNITS = ("kg", "g", "개", "박스", "팩", "봉", "포기", "단", "마리", "근")

# Longest alias first so "키로그램" wins over "키로".
_UNIT_PATTERN = "|".join(sorted((re.escape(a) for a in UNIT_ALIASES), key=len, reverse=True))
_QUANTITY_RE = re.compile(rf"(\d+(?:\.\d+)?)\s*({_UNIT_PATTERN})(?![a-z])", re.IGNORECASE)
_UNIT_RE = re.compile(rf"(\d+(?:\.\d+)?)\s*({'|'.join(STANDARD_UNITS)})")


def standardize_product_name(original_name):
    """Canonical form of ``original_name``: product name followed by quantity and unit."""
    name = re.sub(r"\s+", " ", (original_name or "").strip())
    if not name:
        raise ValueError("original_name must not be empty")

    def _unify(match):
        return f" {match.group(1)}{UNIT_ALIASES[match.group(2).lower()]}"

    name = _QUANTITY_RE.sub(_unify, name)
    return re.sub(r"\s+", " ", name).strip()


def extract_unit(standard_name):
    """Unit of a standardized name (``"청양고추 1kg"`` -> ``"kg"``), or ``None``."""
    match = _UNIT_RE.search(standard_name or "")
    return match.group(2) if match else None


_QUANTITY_TAIL_RE = re.compile(rf"\s*\d+(?:\.\d+)?\s*(?:{'|'.join(STANDARD_UNITS)})$")


def base_product_name(standard_name):
    """Product part of a standardized name, without its trailing quantity."""
    return _QUANTITY_TAIL_RE.sub("", standard_name or "").strip() or standard_name
