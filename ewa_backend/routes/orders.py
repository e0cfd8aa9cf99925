from typing import Dict, List

from flask import Blueprint, request

from ..errors import ValidationError
from ..helpers import (
    find_or_404,
    optional_reference,
    require_choice,
    require_fields,
    require_object_id,
    respond,
    respond_paginated,
    safe_float,
    safe_positive_int,
    utcnow,
)
from ..pagination import (
    PopulateSpec,
    build_text_search_query,
    combine_filters,
    paginate_query,
    populate_documents,
)

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
PAYMENT_METHODS = ("cod", "prepaid")
ADDRESS_FIELDS = ("phone", "street", "city", "state", "postalCode", "country")


def normalize_order_items(raw_items) -> List[Dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("An order needs at least one item.")

    items: List[Dict] = []
    for entry in raw_items:
        if not isinstance(entry, dict):
            raise ValidationError("Order items must be objects.")
        items.append(
            {
                "productID": require_object_id(
                    entry.get("productID") or entry.get("productId"), "product"
                ),
                "productName": str(entry.get("productName") or "").strip(),
                "quantity": safe_positive_int(entry.get("quantity"), 1) or 1,
                "price": round(safe_float(entry.get("price"), 0.0), 2),
                "variant": str(entry.get("variant") or "").strip(),
            }
        )
    return items


def normalize_shipping_address(payload) -> Dict[str, str]:
    if not isinstance(payload, dict):
        raise ValidationError("shippingAddress must be an object.")
    return {field: str(payload.get(field) or "").strip() for field in ADDRESS_FIELDS}


def normalize_order_total(payload, fallback_total: float) -> Dict[str, float]:
    payload = payload if isinstance(payload, dict) else {}
    subtotal = round(safe_float(payload.get("subtotal"), fallback_total), 2)
    discount = round(safe_float(payload.get("discount"), 0.0), 2)
    total = round(safe_float(payload.get("total"), subtotal - discount), 2)
    return {"subtotal": subtotal, "discount": discount, "total": total}


def create_blueprint(db) -> Blueprint:
    bp = Blueprint("orders", __name__)

    def populate_specs():
        return (
            PopulateSpec(
                "couponCode", db.couponCodes, ("couponCode", "discountType", "discountAmount")
            ),
            PopulateSpec("userID", db.users, ("name", "email")),
        )

    @bp.route("", methods=["GET"])
    def list_orders():
        search_query = build_text_search_query(request.args.get("search"), ["items.productName"])
        status = str(request.args.get("status") or "").strip()
        status_query = {"orderStatus": status} if status else None
        page = paginate_query(
            db.orders,
            request.args,
            combine_filters(search_query, status_query),
            populate=populate_specs(),
            default_sort="_id",
        )
        return respond_paginated("Orders retrieved successfully", page)

    @bp.route("/orderByUserId/<user_id>", methods=["GET"])
    def list_orders_for_user(user_id: str):
        user_object_id = require_object_id(user_id, "user")
        orders = list(db.orders.find({"userID": user_object_id}).sort("_id", -1))
        populate_documents(orders, populate_specs())
        return respond("Orders retrieved successfully.", orders)

    @bp.route("/<order_id>", methods=["GET"])
    def get_order(order_id: str):
        order = find_or_404(db.orders, order_id, "Order")
        populate_documents([order], populate_specs())
        return respond("Order retrieved successfully.", order)

    @bp.route("", methods=["POST"])
    def create_order():
        payload = request.get_json(silent=True) or {}
        require_fields(
            payload,
            "userID",
            "items",
            "totalPrice",
            "shippingAddress",
            "paymentMethod",
            "orderTotal",
            message="User ID, items, totalPrice, shippingAddress, paymentMethod, and orderTotal are required.",
        )

        user_id = require_object_id(payload["userID"], "user")
        total_price = round(safe_float(payload["totalPrice"], 0.0), 2)
        now = utcnow()
        document = {
            "userID": user_id,
            "orderDate": now,
            "orderStatus": require_choice(
                payload.get("orderStatus") or "pending", ORDER_STATUSES, "orderStatus"
            ),
            "items": normalize_order_items(payload["items"]),
            "totalPrice": total_price,
            "shippingAddress": normalize_shipping_address(payload["shippingAddress"]),
            "paymentMethod": require_choice(payload["paymentMethod"], PAYMENT_METHODS, "paymentMethod"),
            "couponCode": optional_reference(payload.get("couponCode"), "coupon"),
            "orderTotal": normalize_order_total(payload["orderTotal"], total_price),
            "trackingUrl": str(payload.get("trackingUrl") or "").strip(),
            "createdAt": now,
            "updatedAt": now,
        }
        document["_id"] = db.orders.insert_one(document).inserted_id
        return respond("Order created successfully.", document, 201)

    @bp.route("/<order_id>", methods=["PUT"])
    def update_order(order_id: str):
        order = find_or_404(db.orders, order_id, "Order")
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "orderStatus", message="Order Status required.")

        changes = {
            "orderStatus": require_choice(payload["orderStatus"], ORDER_STATUSES, "orderStatus"),
            "trackingUrl": str(payload.get("trackingUrl") or order.get("trackingUrl") or "").strip(),
            "updatedAt": utcnow(),
        }
        db.orders.update_one({"_id": order["_id"]}, {"$set": changes})
        order.update(changes)
        return respond("Order updated successfully.", order)

    @bp.route("/<order_id>", methods=["DELETE"])
    def delete_order(order_id: str):
        order = find_or_404(db.orders, order_id, "Order")
        db.orders.delete_one({"_id": order["_id"]})
        return respond("Order deleted successfully.")

    return bp
