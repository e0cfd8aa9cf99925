from flask import Blueprint, request

from ..coupons import COUPON_STATUSES, DISCOUNT_TYPES, check_coupon, describe
from ..errors import ValidationError
from ..helpers import (
    find_or_404,
    optional_reference,
    parse_iso_date,
    parse_json_list,
    require_choice,
    require_fields,
    respond,
    respond_paginated,
    safe_float,
    utcnow,
)
from ..pagination import (
    PopulateSpec,
    build_text_search_query,
    combine_filters,
    paginate_query,
    populate_documents,
)

REQUIRED_FIELDS = ("couponCode", "discountType", "discountAmount", "endDate", "status")


def create_blueprint(db) -> Blueprint:
    bp = Blueprint("coupons", __name__)

    def populate_specs():
        return (
            PopulateSpec("applicableCategory", db.categories, ("name",)),
            PopulateSpec("applicableBrand", db.brands, ("name",)),
            PopulateSpec("applicableProduct", db.products, ("name",)),
        )

    def coupon_fields(payload, coupon_id=None):
        require_fields(
            payload,
            *REQUIRED_FIELDS,
            message="Code, discountType, discountAmount, endDate, and status are required.",
        )

        code = str(payload["couponCode"]).strip()
        duplicate_query = {"couponCode": code}
        if coupon_id is not None:
            duplicate_query["_id"] = {"$ne": coupon_id}
        if db.couponCodes.find_one(duplicate_query, {"_id": 1}):
            raise ValidationError("A coupon with this code already exists.")

        end_date = parse_iso_date(payload["endDate"])
        if end_date is None:
            raise ValidationError("endDate must be an ISO 8601 date.")

        discount_amount = safe_float(payload["discountAmount"], -1.0)
        if discount_amount <= 0:
            raise ValidationError("discountAmount must be a positive number.")
        discount_type = require_choice(payload["discountType"], DISCOUNT_TYPES, "discountType")
        if discount_type == "percentage" and discount_amount > 100:
            raise ValidationError("A percentage discount cannot exceed 100.")

        minimum = payload.get("minimumPurchaseAmount")
        return {
            "couponCode": code,
            "discountType": discount_type,
            "discountAmount": discount_amount,
            "minimumPurchaseAmount": safe_float(minimum, 0.0) if minimum not in (None, "") else None,
            "endDate": end_date,
            "status": require_choice(payload["status"], COUPON_STATUSES, "status"),
            "applicableCategory": optional_reference(payload.get("applicableCategory"), "category"),
            "applicableBrand": optional_reference(payload.get("applicableBrand"), "brand"),
            "applicableProduct": optional_reference(payload.get("applicableProduct"), "product"),
        }

    @bp.route("", methods=["GET"])
    def list_coupons():
        search_query = build_text_search_query(request.args.get("search"), ["couponCode"])
        status = str(request.args.get("status") or "").strip()
        status_query = {"status": status} if status else None
        page = paginate_query(
            db.couponCodes,
            request.args,
            combine_filters(search_query, status_query),
            populate=populate_specs(),
        )
        return respond_paginated("Coupons retrieved successfully", page)

    @bp.route("/<coupon_id>", methods=["GET"])
    def get_coupon(coupon_id: str):
        coupon = find_or_404(db.couponCodes, coupon_id, "Coupon")
        populate_documents([coupon], populate_specs())
        return respond("Coupon retrieved successfully.", coupon)

    @bp.route("", methods=["POST"])
    def create_coupon():
        document = coupon_fields(request.get_json(silent=True) or {})
        now = utcnow()
        document.update({"createdAt": now, "updatedAt": now})
        document["_id"] = db.couponCodes.insert_one(document).inserted_id
        return respond("Coupon created successfully.", document, 201)

    @bp.route("/<coupon_id>", methods=["PUT"])
    def update_coupon(coupon_id: str):
        coupon = find_or_404(db.couponCodes, coupon_id, "Coupon")
        changes = coupon_fields(request.get_json(silent=True) or {}, coupon["_id"])
        changes["updatedAt"] = utcnow()
        db.couponCodes.update_one({"_id": coupon["_id"]}, {"$set": changes})
        coupon.update(changes)
        return respond("Coupon updated successfully.", coupon)

    @bp.route("/<coupon_id>", methods=["DELETE"])
    def delete_coupon(coupon_id: str):
        coupon = find_or_404(db.couponCodes, coupon_id, "Coupon")
        db.couponCodes.delete_one({"_id": coupon["_id"]})
        return respond("Coupon deleted successfully.")

    @bp.route("/check-coupon", methods=["POST"])
    def check_coupon_route():
        payload = request.get_json(silent=True) or {}
        result = check_coupon(
            db,
            payload.get("couponCode"),
            parse_json_list(payload.get("productIds")),
            payload.get("purchaseAmount"),
        )
        return respond(
            describe(result), result.coupon, success=result.applicable, reason=result.reason
        )

    return bp
