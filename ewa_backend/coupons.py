"""
Coupon applicability.

:func:`evaluate_coupon` decides applicability from a coupon document and a
snapshot of the cart; it never touches the database. :func:`check_coupon`
loads those from Mongo. Checks run in order and stop at the first failure:
existence, expiry, status, minimum purchase amount, then scope.
"""

from collections import namedtuple
from datetime import datetime
from typing import Dict, Iterable, Optional, Sequence

from .helpers import normalize_object_id, parse_iso_date, safe_float, utcnow

DISCOUNT_TYPES = ("fixed", "percentage")
COUPON_STATUSES = ("active", "inactive")
SCOPE_FIELDS = ("applicableCategory", "applicableBrand", "applicableProduct")

REASON_APPLICABLE = "applicable"
REASON_NOT_FOUND = "not found"
REASON_EXPIRED = "expired"
REASON_INACTIVE = "inactive"
REASON_MINIMUM_NOT_MET = "minimum not met"
REASON_NOT_APPLICABLE = "not applicable to provided products"

REASON_MESSAGES = {
    REASON_NOT_FOUND: "Coupon not found.",
    REASON_EXPIRED: "Coupon is expired.",
    REASON_INACTIVE: "Coupon is inactive.",
    REASON_MINIMUM_NOT_MET: "Minimum purchase amount not met.",
    REASON_NOT_APPLICABLE: "Coupon is not applicable for the provided products.",
}

CouponCheck = namedtuple("CouponCheck", ["applicable", "reason", "coupon"])


def _reference_key(value) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        value = value.get("_id")
        if value is None:
            return None
    return str(value)


def coupon_scope(coupon: Dict) -> Dict[str, str]:
    scope = {}
    for field in SCOPE_FIELDS:
        key = _reference_key(coupon.get(field))
        if key is not None:
            scope[field] = key
    return scope


def describe(check: CouponCheck) -> str:
    if check.applicable:
        if coupon_scope(check.coupon or {}):
            return "Coupon is applicable for the provided products."
        return "Coupon is applicable for all orders."
    return REASON_MESSAGES.get(check.reason, "Coupon is not applicable.")


def check_coupon_terms(
    coupon: Optional[Dict], purchase_amount, now: Optional[datetime] = None
) -> Optional[CouponCheck]:
    """Run the checks that need only the coupon itself.

    Returns the failing verdict, an applicable verdict for unscoped coupons,
    or None when the scope still has to be checked against products.
    """
    if not coupon:
        return CouponCheck(False, REASON_NOT_FOUND, None)

    now = now or utcnow()
    end_date = parse_iso_date(coupon.get("endDate"))
    if end_date is not None and end_date < now:
        return CouponCheck(False, REASON_EXPIRED, None)

    if coupon.get("status") != "active":
        return CouponCheck(False, REASON_INACTIVE, None)

    minimum = safe_float(coupon.get("minimumPurchaseAmount"), 0.0)
    if minimum and safe_float(purchase_amount, 0.0) < minimum:
        return CouponCheck(False, REASON_MINIMUM_NOT_MET, None)

    if not coupon_scope(coupon):
        return CouponCheck(True, REASON_APPLICABLE, coupon)

    return None


def product_matches_scope(product: Dict, scope: Dict[str, str]) -> bool:
    category = scope.get("applicableCategory")
    if category is not None:
        categories = product.get("proCategories") or []
        if not isinstance(categories, list):
            categories = [categories]
        if category not in {_reference_key(item) for item in categories}:
            return False

    brand = scope.get("applicableBrand")
    product_brand = _reference_key(product.get("proBrand"))
    if brand is not None and product_brand is not None and brand != product_brand:
        return False

    target = scope.get("applicableProduct")
    if target is not None and target != _reference_key(product.get("_id")):
        return False

    return True


def check_coupon_scope(coupon: Dict, products: Sequence[Dict]) -> CouponCheck:
    # Vacuously applicable when no products were found.
    scope = coupon_scope(coupon)
    if all(product_matches_scope(product, scope) for product in products):
        return CouponCheck(True, REASON_APPLICABLE, coupon)
    return CouponCheck(False, REASON_NOT_APPLICABLE, None)


def evaluate_coupon(
    coupon: Optional[Dict],
    product_ids: Iterable,
    products: Sequence[Dict],
    purchase_amount,
    now: Optional[datetime] = None,
) -> CouponCheck:
    verdict = check_coupon_terms(coupon, purchase_amount, now)
    if verdict is not None:
        return verdict
    requested = {_reference_key(item) for item in product_ids or []}
    selected = [product for product in products if _reference_key(product.get("_id")) in requested]
    return check_coupon_scope(coupon, selected)


def check_coupon(db, coupon_code, product_ids, purchase_amount, now=None) -> CouponCheck:
    code = str(coupon_code or "").strip()
    coupon = db.couponCodes.find_one({"couponCode": code}) if code else None

    verdict = check_coupon_terms(coupon, purchase_amount, now)
    if verdict is not None:
        return verdict

    product_ids = list(product_ids or [])
    object_ids = [
        object_id
        for object_id in (normalize_object_id(item) for item in product_ids)
        if object_id is not None
    ]
    products = list(db.products.find({"_id": {"$in": object_ids}})) if object_ids else []
    return check_coupon_scope(coupon, products)
