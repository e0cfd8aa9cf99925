from typing import Dict, Optional

import stripe

from .errors import GatewayError


def create_stripe_payment_sheet(
    secret_key: str,
    publishable_key: str,
    api_version: str,
    email: str,
    name: str,
    amount: int,
    currency: str,
    description: Optional[str] = None,
    address: Optional[Dict] = None,
) -> Dict:
    if not secret_key:
        raise GatewayError("Stripe configuration is incomplete. Please contact support.")

    try:
        customer = stripe.Customer.create(
            api_key=secret_key, email=email, name=name, address=address or None
        )
        ephemeral_key = stripe.EphemeralKey.create(
            api_key=secret_key, customer=customer.id, stripe_version=api_version
        )
        payment_intent = stripe.PaymentIntent.create(
            api_key=secret_key,
            amount=amount,
            currency=currency,
            customer=customer.id,
            description=description,
            automatic_payment_methods={"enabled": True},
        )
    except stripe.StripeError as exc:
        raise GatewayError(getattr(exc, "user_message", None) or str(exc))

    return {
        "paymentIntent": payment_intent.client_secret,
        "ephemeralKey": ephemeral_key.secret,
        "customer": customer.id,
        "publishableKey": publishable_key,
    }
