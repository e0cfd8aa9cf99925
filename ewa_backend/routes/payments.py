from flask import Blueprint, current_app, request

from ..errors import GatewayError, ValidationError
from ..helpers import is_valid_email, require_fields, respond, safe_positive_int
from ..payments import create_stripe_payment_sheet


def create_blueprint(config) -> Blueprint:
    bp = Blueprint("payments", __name__)

    @bp.route("/stripe", methods=["POST"])
    def stripe_payment_sheet():
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "email", "name", "amount", "currency")

        if not is_valid_email(payload["email"]):
            raise ValidationError("Please provide a valid email address.")
        amount = safe_positive_int(payload["amount"], 0)
        if amount <= 0:
            raise ValidationError("amount must be a positive integer in the smallest currency unit.")

        address = payload.get("address") if isinstance(payload.get("address"), dict) else None
        sheet = create_stripe_payment_sheet(
            config.stripe_secret_key,
            config.stripe_publishable_key,
            config.stripe_api_version,
            email=str(payload["email"]).strip().lower(),
            name=str(payload["name"]).strip(),
            amount=amount,
            currency=str(payload["currency"]).strip().lower(),
            description=payload.get("description"),
            address=address,
        )
        current_app.logger.info("Created Stripe payment intent for customer %s", sheet["customer"])
        return respond("Payment intent created successfully.", sheet)

    @bp.route("/razorpay", methods=["POST"])
    def razorpay_key():
        if not config.razorpay_key:
            raise GatewayError("Razorpay configuration is incomplete. Please contact support.")
        return respond("Razorpay key retrieved successfully.", {"key": config.razorpay_key})

    return bp
