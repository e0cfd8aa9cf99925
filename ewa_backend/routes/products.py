import os
import re
from typing import Dict, List

from flask import Blueprint, current_app, request

from ..errors import ValidationError
from ..helpers import (
    find_or_404,
    is_blank,
    optional_reference,
    parse_json_list,
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
    build_pagination_response,
    build_text_search_query,
    combine_filters,
    paginate_query,
    parse_pagination_params,
    parse_search_params,
    populate_documents,
)


def normalize_images(raw_value) -> List[Dict[str, str]]:
    images: List[Dict[str, str]] = []
    for entry in parse_json_list(raw_value):
        if isinstance(entry, dict):
            url = str(entry.get("url") or "").strip()
            name = str(entry.get("image") or "").strip() or os.path.basename(url)
        else:
            url = str(entry or "").strip()
            name = os.path.basename(url)
        if url:
            images.append({"image": name or str(len(images) + 1), "url": url})
    return images


def normalize_category_ids(raw_value) -> List:
    return [require_object_id(value, "category") for value in parse_json_list(raw_value)]


def create_blueprint(db) -> Blueprint:
    bp = Blueprint("products", __name__)

    def populate_specs():
        return (
            PopulateSpec("proCategories", db.categories, None),
            PopulateSpec("proBrand", db.brands, ("name",)),
        )

    def search_with_references(search: str, base_filter: Dict):
        params = parse_pagination_params(request.args)
        sort_params = parse_search_params(request.args)
        pattern = {"$regex": re.escape(search), "$options": "i"}

        pipeline = [
            {"$match": base_filter},
            {
                "$lookup": {
                    "from": "categories",
                    "localField": "proCategories",
                    "foreignField": "_id",
                    "as": "proCategories",
                }
            },
            {
                "$lookup": {
                    "from": "brands",
                    "localField": "proBrand",
                    "foreignField": "_id",
                    "as": "proBrand",
                }
            },
            {"$unwind": {"path": "$proBrand", "preserveNullAndEmptyArrays": True}},
            {
                "$match": {
                    "$or": [
                        {"name": pattern},
                        {"description": pattern},
                        {"proBrand.name": pattern},
                        {"proCategories.name": pattern},
                    ]
                }
            },
        ]
        count_result = list(db.products.aggregate(pipeline + [{"$count": "total"}]))
        total_items = count_result[0]["total"] if count_result else 0

        page_pipeline = pipeline + [
            {"$sort": {sort_params["sort_by"]: sort_params["sort_order"]}},
            {"$skip": params["skip"]},
            {"$limit": params["limit"]},
        ]
        data = list(db.products.aggregate(page_pipeline))
        return {
            "data": data,
            "pagination": build_pagination_response(params["page"], total_items, params["limit"]),
        }

    def product_fields(payload: Dict, existing: Dict = None) -> Dict:
        existing = existing or {}
        fields: Dict = {}
        if not is_blank(payload.get("name")):
            fields["name"] = str(payload["name"]).strip()
        if payload.get("description") is not None:
            fields["description"] = str(payload["description"]).strip()
        if not is_blank(payload.get("quantity")):
            fields["quantity"] = safe_positive_int(payload["quantity"], 0)
        if not is_blank(payload.get("price")):
            fields["price"] = round(safe_float(payload["price"], 0.0), 2)
        if not is_blank(payload.get("offerPrice")):
            fields["offerPrice"] = round(safe_float(payload["offerPrice"], 0.0), 2)
        if not is_blank(payload.get("proCategories")):
            fields["proCategories"] = normalize_category_ids(payload["proCategories"])
        if not is_blank(payload.get("proBrand")):
            fields["proBrand"] = optional_reference(payload["proBrand"], "brand")
        image_source = payload.get("imageUrls", payload.get("images"))
        if not is_blank(image_source):
            fields["images"] = normalize_images(image_source)

        price = fields.get("price", existing.get("price"))
        offer_price = fields.get("offerPrice", existing.get("offerPrice"))
        if price is not None and offer_price is not None and offer_price > price:
            raise ValidationError("Offer price cannot be higher than the price.")
        return fields

    @bp.route("", methods=["GET"])
    def list_products():
        base_filter: Dict = {}
        category = request.args.get("category")
        brand = request.args.get("brand")
        if category:
            base_filter["proCategories"] = require_object_id(category, "category")
        if brand:
            base_filter["proBrand"] = require_object_id(brand, "brand")

        search = str(request.args.get("search") or "").strip()
        if search:
            page = search_with_references(search, base_filter)
        else:
            page = paginate_query(
                db.products, request.args, combine_filters(base_filter), populate=populate_specs()
            )
        return respond_paginated("Products retrieved successfully", page)

    @bp.route("/search", methods=["GET"])
    def search_products():
        name = str(request.args.get("name") or "").strip()
        if not name:
            raise ValidationError("Query parameter 'name' is required.")
        documents = list(db.products.find(build_text_search_query(name, ["name"])))
        populate_documents(documents, populate_specs())
        return respond("Products retrieved successfully.", documents)

    @bp.route("/<product_id>", methods=["GET"])
    def get_product(product_id: str):
        product = find_or_404(db.products, product_id, "Product")
        populate_documents([product], populate_specs())
        return respond("Product retrieved successfully.", product)

    @bp.route("", methods=["POST"])
    def create_product():
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "name", "price", "quantity", "proCategories")

        document = product_fields(payload)
        document.setdefault("description", "")
        document.setdefault("images", [])
        document.setdefault("proBrand", None)
        now = utcnow()
        document["createdAt"] = now
        document["updatedAt"] = now

        document["_id"] = db.products.insert_one(document).inserted_id
        current_app.logger.info("Created product %s", document["name"])
        return respond("Product created successfully.", document, 201)

    @bp.route("/<product_id>", methods=["PUT"])
    def update_product(product_id: str):
        product = find_or_404(db.products, product_id, "Product")
        payload = request.get_json(silent=True) or {}

        changes = product_fields(payload, product)
        changes["updatedAt"] = utcnow()
        db.products.update_one({"_id": product["_id"]}, {"$set": changes})
        product.update(changes)
        return respond("Product updated successfully.", product)

    @bp.route("/<product_id>", methods=["DELETE"])
    def delete_product(product_id: str):
        product = find_or_404(db.products, product_id, "Product")
        db.products.delete_one({"_id": product["_id"]})
        current_app.logger.info("Deleted product %s", product.get("name", ""))
        return respond("Product deleted successfully.")

    return bp
