from flask import Blueprint, current_app, request

from ..errors import ReferentialIntegrityError
from ..helpers import find_or_404, require_fields, respond, respond_paginated, utcnow
from ..pagination import build_text_search_query, paginate_query


def create_blueprint(db) -> Blueprint:
    bp = Blueprint("categories", __name__)

    @bp.route("", methods=["GET"])
    def list_categories():
        search_query = build_text_search_query(request.args.get("search"), ["name"])
        page = paginate_query(db.categories, request.args, search_query)
        return respond_paginated("Categories retrieved successfully", page)

    @bp.route("/<category_id>", methods=["GET"])
    def get_category(category_id: str):
        category = find_or_404(db.categories, category_id, "Category")
        return respond("Category retrieved successfully.", category)

    @bp.route("", methods=["POST"])
    def create_category():
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "name", message="Name is required.")

        now = utcnow()
        document = {
            "name": str(payload["name"]).strip(),
            "image": payload.get("imageUrl") or payload.get("image"),
            "createdAt": now,
            "updatedAt": now,
        }
        document["_id"] = db.categories.insert_one(document).inserted_id
        current_app.logger.info("Created category %s", document["name"])
        return respond("Category created successfully.", document, 201)

    @bp.route("/<category_id>", methods=["PUT"])
    def update_category(category_id: str):
        category = find_or_404(db.categories, category_id, "Category")
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "name", message="Name is required.")

        changes = {
            "name": str(payload["name"]).strip(),
            "image": payload.get("imageUrl") or payload.get("image") or category.get("image"),
            "updatedAt": utcnow(),
        }
        db.categories.update_one({"_id": category["_id"]}, {"$set": changes})
        category.update(changes)
        return respond("Category updated successfully.", category)

    @bp.route("/<category_id>", methods=["DELETE"])
    def delete_category(category_id: str):
        category = find_or_404(db.categories, category_id, "Category")

        if db.products.find_one({"proCategories": category["_id"]}, {"_id": 1}):
            raise ReferentialIntegrityError(
                "Cannot delete category. Products are referencing it."
            )

        db.categories.delete_one({"_id": category["_id"]})
        current_app.logger.info("Deleted category %s", category.get("name", ""))
        return respond("Category deleted successfully.")

    return bp
