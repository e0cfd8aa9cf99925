from flask import Blueprint, request

from ..helpers import find_or_404, require_fields, respond, respond_paginated, utcnow
from ..pagination import build_text_search_query, paginate_query


def create_blueprint(db) -> Blueprint:
    bp = Blueprint("posters", __name__)

    def poster_fields(payload):
        require_fields(payload, "posterName", "imageUrl", message="Name and image are required.")
        return {
            "posterName": str(payload["posterName"]).strip(),
            "imageUrl": str(payload["imageUrl"]).strip(),
            "targetUrl": str(payload.get("targetUrl") or "").strip(),
        }

    @bp.route("", methods=["GET"])
    def list_posters():
        search_query = build_text_search_query(
            request.args.get("search"), ["posterName", "targetUrl"]
        )
        page = paginate_query(db.posters, request.args, search_query)
        return respond_paginated("Posters retrieved successfully", page)

    @bp.route("/<poster_id>", methods=["GET"])
    def get_poster(poster_id: str):
        return respond("Poster retrieved successfully.", find_or_404(db.posters, poster_id, "Poster"))

    @bp.route("", methods=["POST"])
    def create_poster():
        document = poster_fields(request.get_json(silent=True) or {})
        now = utcnow()
        document.update({"createdAt": now, "updatedAt": now})
        document["_id"] = db.posters.insert_one(document).inserted_id
        return respond("Poster created successfully.", document, 201)

    @bp.route("/<poster_id>", methods=["PUT"])
    def update_poster(poster_id: str):
        poster = find_or_404(db.posters, poster_id, "Poster")
        changes = poster_fields(request.get_json(silent=True) or {})
        changes["updatedAt"] = utcnow()
        db.posters.update_one({"_id": poster["_id"]}, {"$set": changes})
        poster.update(changes)
        return respond("Poster updated successfully.", poster)

    @bp.route("/<poster_id>", methods=["DELETE"])
    def delete_poster(poster_id: str):
        poster = find_or_404(db.posters, poster_id, "Poster")
        db.posters.delete_one({"_id": poster["_id"]})
        return respond("Poster deleted successfully.")

    return bp
