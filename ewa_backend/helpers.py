import json
import math
import re
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from bson import ObjectId
from bson.errors import InvalidId
from flask import jsonify

from .errors import NotFoundError, ValidationError

email_regex = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def utcnow() -> datetime:
    return datetime.utcnow()


def normalize_email(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def is_valid_email(value: Optional[str]) -> bool:
    normalized = normalize_email(value)
    return bool(normalized and email_regex.match(normalized))


def normalize_object_id(value) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, dict):
        value = value.get("_id")
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def require_object_id(value, label: str) -> ObjectId:
    object_id = normalize_object_id(value)
    if object_id is None:
        raise ValidationError(f"Invalid {label} identifier.")
    return object_id


def find_or_404(collection, document_id, label: str, projection=None) -> Dict:
    object_id = require_object_id(document_id, label.lower())
    document = collection.find_one({"_id": object_id}, projection)
    if not document:
        raise NotFoundError(f"{label} not found.")
    return document


def optional_reference(value, label: str) -> Optional[ObjectId]:
    if value in (None, "", "null"):
        return None
    return require_object_id(value, label)


def parse_iso_date(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    else:
        if not value:
            return None
        candidate = str(value).strip()
        if not candidate:
            return None
        normalized = candidate.replace("Z", "+00:00")
        if re.fullmatch(r"\d{4}-\d{2}-\d{2}", candidate):
            normalized = f"{candidate}T00:00:00"
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def safe_float(value, default=0.0):
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return default
    if math.isfinite(numeric):
        return numeric
    return default


def safe_positive_int(value, default=0):
    try:
        numeric = int(float(value))
    except (TypeError, ValueError):
        return default
    return max(default, numeric)


def parse_json_list(value):
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [item for item in value]
    if isinstance(value, (bytes, bytearray)):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            value = ""
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return []
        try:
            parsed = json.loads(candidate)
            if isinstance(parsed, list):
                return parsed
        except (json.JSONDecodeError, ValueError):
            pass
        if "," in candidate:
            return [item.strip() for item in candidate.split(",") if item and item.strip()]
        return [candidate]
    return [value]


def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def require_fields(payload: Dict, *fields: str, message: Optional[str] = None):
    missing = [name for name in fields if is_blank(payload.get(name))]
    if missing:
        raise ValidationError(
            message or f"Missing required fields: {', '.join(missing)}.",
            errors=[f"{name} is required." for name in missing],
        )


def require_choice(value, choices: Iterable[str], label: str) -> str:
    allowed = tuple(choices)
    normalized = str(value or "").strip()
    if normalized not in allowed:
        raise ValidationError(f"{label} must be one of: {', '.join(allowed)}.")
    return normalized


def serialize_document(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat() + ("Z" if value.tzinfo is None else "")
    if isinstance(value, (bytes, bytearray)):
        return None
    if isinstance(value, dict):
        return {key: serialize_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_document(item) for item in value]
    return value


def respond(message: str, data=None, status_code: int = 200, **extra):
    body = {"success": True, "message": message, "data": serialize_document(data)}
    body.update(extra)
    return jsonify(body), status_code


def respond_paginated(message: str, page: Dict):
    return respond(message, page["data"], pagination=page["pagination"])
