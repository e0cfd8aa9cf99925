from flask import Blueprint, current_app, request
from flask_jwt_extended import current_user, jwt_required

from ..errors import ValidationError
from ..helpers import respond, safe_float
from ..store_settings import (
    BRANDING_FIELDS,
    CURRENCY_FIELDS,
    PUBLIC_FIELDS,
    format_currency,
    get_settings,
    pick,
    reset_settings,
    update_settings,
)


def create_blueprint(db) -> Blueprint:
    bp = Blueprint("settings", __name__)

    @bp.route("", methods=["GET"])
    def read_settings():
        return respond("Settings retrieved successfully", get_settings(db.settings))

    @bp.route("", methods=["POST", "PUT"])
    @jwt_required()
    def write_settings():
        settings = update_settings(db.settings, request.get_json(silent=True) or {})
        current_app.logger.info("Settings updated by %s", current_user.get("email"))
        return respond("Settings updated successfully", settings)

    @bp.route("/public", methods=["GET"])
    def public_settings():
        return respond(
            "Public settings retrieved successfully", pick(get_settings(db.settings), PUBLIC_FIELDS)
        )

    @bp.route("/currency", methods=["GET"])
    def currency_settings():
        return respond(
            "Currency settings retrieved successfully",
            pick(get_settings(db.settings), CURRENCY_FIELDS),
        )

    @bp.route("/branding", methods=["GET"])
    def branding_settings():
        return respond(
            "Branding settings retrieved successfully",
            pick(get_settings(db.settings), BRANDING_FIELDS),
        )

    @bp.route("/reset", methods=["POST"])
    @jwt_required()
    def reset():
        settings = reset_settings(db.settings)
        current_app.logger.warning("Settings reset to defaults by %s", current_user.get("email"))
        return respond("Settings reset to defaults successfully", settings)

    @bp.route("/test-currency/<amount>", methods=["GET"])
    def test_currency(amount: str):
        value = safe_float(amount, None)
        if value is None:
            raise ValidationError("Invalid amount provided")

        settings = get_settings(db.settings)
        return respond(
            "Currency formatting test completed",
            {
                "originalAmount": value,
                "formattedAmount": format_currency(settings, value),
                **pick(settings, CURRENCY_FIELDS),
            },
        )

    return bp
