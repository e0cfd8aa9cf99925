from flask import Blueprint, request

from ..helpers import find_or_404, require_fields, respond, respond_paginated, utcnow
from ..pagination import build_text_search_query, paginate_query
from ..push import android_delivery_stats


def create_blueprint(db, push_client) -> Blueprint:
    bp = Blueprint("notifications", __name__)

    @bp.route("/send-notification", methods=["POST"])
    def send_notification():
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "title", "description")

        title = str(payload["title"]).strip()
        description = str(payload["description"]).strip()
        image_url = str(payload.get("imageUrl") or "").strip() or None

        notification_id = push_client.send_to_all(title, description, image_url)

        now = utcnow()
        document = {
            "notificationId": notification_id,
            "title": title,
            "description": description,
            "imageUrl": image_url,
            "createdAt": now,
            "updatedAt": now,
        }
        document["_id"] = db.notifications.insert_one(document).inserted_id
        return respond("Notification sent successfully", document)

    @bp.route("/track-notification/<notification_id>", methods=["GET"])
    def track_notification(notification_id: str):
        return respond("success", android_delivery_stats(push_client.view(notification_id)))

    @bp.route("/all-notification", methods=["GET"])
    def list_notifications():
        search_query = build_text_search_query(
            request.args.get("search"), ["title", "description"]
        )
        page = paginate_query(db.notifications, request.args, search_query, default_sort="_id")
        return respond_paginated("Notifications retrieved successfully", page)

    @bp.route("/delete-notification/<notification_id>", methods=["DELETE"])
    def delete_notification(notification_id: str):
        notification = find_or_404(db.notifications, notification_id, "Notification")
        db.notifications.delete_one({"_id": notification["_id"]})
        return respond("Notification deleted successfully.")

    return bp
