"""Lowest-price aggregation over vendor listings."""


def flag_lowest_prices(listings):
    """Copy ``listings`` adding ``is_lowest`` to each.

    Every listing whose price equals the minimum price of the set is flagged;
    ties are all flagged.
    """
    if not listings:
        return []
    lowest = min(listing["price"] for listing in listings)
    return [dict(listing, is_lowest=listing["price"] == lowest) for listing in listings]


def vendor_label(index):
    """``Vendor A`` .. ``Vendor Z``, then ``Vendor AA``, ``Vendor AB``..."""
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return f"Vendor {letters}"


def anonymize_vendors(listings):
    """Replace vendor names with labels assigned in order of first appearance."""
    labels = {}
    anonymized = []
    for listing in listings:
        vendor_id = listing["vendor_id"]
        if vendor_id not in labels:
            labels[vendor_id] = vendor_label(len(labels))
        anonymized.append(dict(listing, vendor_name=labels[vendor_id]))
    return anonymized


def lowest_prices(rows):
    """Group product-price rows by standard product.

    Returns one summary per standard product with ``lowest_price`` and
    ``product_count``, sorted by ``lowest_price`` ascending. Input order is
    kept among equal prices.
    """
    grouped = {}
    for row in rows:
        key = row["standard_product_id"]
        summary = grouped.get(key)
        if summary is None:
            grouped[key] = {
                "standard_product_id": key,
                "standard_name": row["standard_name"],
                "category": row.get("category"),
                "lowest_price": row["price"],
                "product_count": 1,
            }
        else:
            summary["lowest_price"] = min(summary["lowest_price"], row["price"])
            summary["product_count"] += 1
    return sorted(grouped.values(), key=lambda s: s["lowest_price"])
