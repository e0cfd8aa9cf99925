import re
from typing import Dict, List

from pymongo import ReturnDocument

from .errors import ValidationError
from .helpers import safe_float, utcnow

SETTINGS_DEFAULTS = {
    "appName": "EWA Dash",
    "appDescription": "E-commerce Admin Panel for managing products, orders, and customers",
    "appLogo": "",
    "favicon": "",
    "serverUrl": "",
    "currency": "USD",
    "currencySymbol": "$",
    "currencyPosition": "before",
    "dateFormat": "MM/DD/YYYY",
    "timeFormat": "12h",
    "timezone": "UTC",
    "language": "en",
    "supportEmail": "",
    "companyName": "",
    "companyAddress": "",
    "companyPhone": "",
    "companyWebsite": "",
    "isActive": True,
}

SETTINGS_CHOICES = {
    "currency": ("USD", "PKR", "EUR", "GBP", "JPY", "CAD", "AUD", "CHF", "CNY", "INR"),
    "currencyPosition": ("before", "after"),
    "dateFormat": ("MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD", "DD MMM YYYY"),
    "timeFormat": ("12h", "24h"),
    "language": ("en", "es", "fr", "de", "it", "pt", "ru", "zh", "ja", "ko"),
}

PUBLIC_FIELDS = (
    "appName",
    "appDescription",
    "appLogo",
    "favicon",
    "currency",
    "currencySymbol",
    "currencyPosition",
    "dateFormat",
    "timeFormat",
    "timezone",
    "language",
    "companyName",
    "companyWebsite",
)
BRANDING_FIELDS = ("appName", "appDescription", "appLogo", "favicon", "companyName")
CURRENCY_FIELDS = ("currency", "currencySymbol", "currencyPosition")

support_email_regex = re.compile(r"^[\w\-.]+@([\w-]+\.)+[\w-]{2,4}$")
website_regex = re.compile(r"^https?://.+\..+")


def _validate(update: Dict) -> Dict:
    cleaned: Dict = {}
    errors: List[str] = []
    for field, value in update.items():
        if field == "isActive":
            cleaned[field] = bool(value)
            continue
        text = "" if value is None else str(value).strip()
        if field == "supportEmail":
            text = text.lower()
            if text and not support_email_regex.match(text):
                errors.append("Please enter a valid email address")
        elif field == "companyWebsite":
            if text and not website_regex.match(text):
                errors.append("Please enter a valid website URL")
        elif field in SETTINGS_CHOICES and text not in SETTINGS_CHOICES[field]:
            errors.append(f"`{text}` is not a valid value for {field}.")
        cleaned[field] = text
    if errors:
        raise ValidationError("Validation error", errors=errors)
    return cleaned


def get_settings(collection) -> Dict:
    now = utcnow()
    return collection.find_one_and_update(
        {},
        {"$setOnInsert": {**SETTINGS_DEFAULTS, "createdAt": now, "updatedAt": now}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


def update_settings(collection, payload: Dict) -> Dict:
    update = {
        field: payload[field]
        for field in SETTINGS_DEFAULTS
        if isinstance(payload, dict) and field in payload
    }
    cleaned = _validate(update)
    current = get_settings(collection)
    if not cleaned:
        return current
    cleaned["updatedAt"] = utcnow()
    return collection.find_one_and_update(
        {"_id": current["_id"]}, {"$set": cleaned}, return_document=ReturnDocument.AFTER
    )


def reset_settings(collection) -> Dict:
    collection.delete_many({})
    return get_settings(collection)


def pick(settings: Dict, fields) -> Dict:
    return {field: settings.get(field, SETTINGS_DEFAULTS.get(field)) for field in fields}


def format_currency(settings: Dict, amount) -> str:
    formatted = f"{safe_float(amount, 0.0):.2f}"
    symbol = settings.get("currencySymbol", SETTINGS_DEFAULTS["currencySymbol"])
    if settings.get("currencyPosition", "before") == "before":
        return f"{symbol}{formatted}"
    return f"{formatted}{symbol}"
