from collections import defaultdict
from typing import Dict, Iterable, Tuple

from marketplace.config import settings


def compute_final_price(selling_price: float, vendor_discount: float, website_discount: float) -> float:
    """Selling price minus both percentage discounts, never below zero."""
    vendor_discount_amount = (selling_price * vendor_discount) / 100
    website_discount_amount = (selling_price * website_discount) / 100
    return round(max(selling_price - vendor_discount_amount - website_discount_amount, 0), 2)


def shipping_for_vendor(vendor_subtotal: float) -> float:
    # SHIPPING RULE
    if vendor_subtotal >= settings.FREE_SHIPPING_THRESHOLD:
        return 0
    return settings.FLAT_SHIPPING_CHARGE


def compute_shipping(lines: Iterable[Tuple[int, float]]) -> Tuple[float, Dict[int, float]]:
    """
    Per-vendor shipping from ``(vendor_id, line_total)`` pairs.

    Returns the total charge and the charge for each vendor.
    """
    vendor_subtotals = defaultdict(float)
    for vendor_id, line_total in lines:
        vendor_subtotals[vendor_id] += line_total

    per_vendor = {
        vendor_id: shipping_for_vendor(round(subtotal, 2))
        for vendor_id, subtotal in vendor_subtotals.items()
    }
    return round(sum(per_vendor.values()), 2), per_vendor
