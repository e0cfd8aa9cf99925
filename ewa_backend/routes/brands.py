from flask import Blueprint, current_app, request

from ..errors import ReferentialIntegrityError
from ..helpers import find_or_404, require_fields, respond, respond_paginated, utcnow
from ..pagination import build_text_search_query, paginate_query


def create_blueprint(db) -> Blueprint:
    bp = Blueprint("brands", __name__)

    @bp.route("", methods=["GET"])
    def list_brands():
        search_query = build_text_search_query(request.args.get("search"), ["name"])
        page = paginate_query(db.brands, request.args, search_query)
        return respond_paginated("Brands retrieved successfully", page)

    @bp.route("/<brand_id>", methods=["GET"])
    def get_brand(brand_id: str):
        return respond("Brand retrieved successfully.", find_or_404(db.brands, brand_id, "Brand"))

    @bp.route("", methods=["POST"])
    def create_brand():
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "name", message="Brand name is required.")

        now = utcnow()
        document = {
            "name": str(payload["name"]).strip(),
            "image": payload.get("image") or payload.get("imageUrl"),
            "createdAt": now,
            "updatedAt": now,
        }
        document["_id"] = db.brands.insert_one(document).inserted_id
        return respond("Brand created successfully.", document, 201)

    @bp.route("/<brand_id>", methods=["PUT"])
    def update_brand(brand_id: str):
        brand = find_or_404(db.brands, brand_id, "Brand")
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "name", message="Brand name is required.")

        changes = {
            "name": str(payload["name"]).strip(),
            "image": payload.get("image") or payload.get("imageUrl") or brand.get("image"),
            "updatedAt": utcnow(),
        }
        db.brands.update_one({"_id": brand["_id"]}, {"$set": changes})
        brand.update(changes)
        return respond("Brand updated successfully.", brand)

    @bp.route("/<brand_id>", methods=["DELETE"])
    def delete_brand(brand_id: str):
        brand = find_or_404(db.brands, brand_id, "Brand")

        if db.products.find_one({"proBrand": brand["_id"]}, {"_id": 1}):
            raise ReferentialIntegrityError("Cannot delete brand. Products are referencing it.")

        db.brands.delete_one({"_id": brand["_id"]})
        current_app.logger.info("Deleted brand %s", brand.get("name", ""))
        return respond("Brand deleted successfully.")

    return bp
