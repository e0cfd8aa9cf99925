from typing import Dict, Optional, Tuple

import bcrypt
from flask import jsonify
from flask_jwt_extended import create_access_token, create_refresh_token, decode_token

from .errors import AuthenticationError
from .helpers import normalize_object_id

# Fields that never leave the users collection.
SECRET_FIELDS = ("password", "refreshTokenJti")
ACCOUNT_PROJECTION = {name: 0 for name in SECRET_FIELDS}


def hash_password(password: str) -> bytes:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())


def check_password(password: str, hashed) -> bool:
    if not password or not hashed:
        return False
    if isinstance(hashed, str):
        hashed = hashed.encode("utf-8")
    try:
        return bcrypt.checkpw(password.encode("utf-8"), bytes(hashed))
    except ValueError:
        return False


def public_account(user_document: Optional[Dict]) -> Dict:
    if not user_document:
        return {}
    return {key: value for key, value in user_document.items() if key not in SECRET_FIELDS}


def issue_tokens(users, user_document) -> Tuple[str, str]:
    """Create an access/refresh pair and remember the refresh token's jti.

    Only the most recently issued refresh token is accepted afterwards.
    """
    identity = str(user_document["_id"])
    access_token = create_access_token(identity=identity)
    refresh_token = create_refresh_token(identity=identity)
    refresh_jti = decode_token(refresh_token)["jti"]
    users.update_one({"_id": user_document["_id"]}, {"$set": {"refreshTokenJti": refresh_jti}})
    return access_token, refresh_token


def resolve_refresh_token(users, encoded_token: Optional[str]) -> Dict:
    if not encoded_token:
        raise AuthenticationError("Unauthorized request.")

    decoded = decode_token(encoded_token)
    if decoded.get("type") != "refresh":
        raise AuthenticationError("Invalid refresh token.")

    user_id = normalize_object_id(decoded.get("sub"))
    user = users.find_one({"_id": user_id}) if user_id else None
    if not user:
        raise AuthenticationError("Invalid refresh token.")
    if user.get("refreshTokenJti") != decoded.get("jti"):
        raise AuthenticationError("Refresh token is expired or used.")
    return user


def init_auth(jwt, users, logger):
    def unauthorized(message: str):
        return jsonify({"success": False, "message": message, "data": None}), 401

    @jwt.user_lookup_loader
    def load_account(_jwt_header, jwt_data):
        user_id = normalize_object_id(jwt_data.get("sub"))
        if user_id is None:
            return None
        return users.find_one({"_id": user_id}, ACCOUNT_PROJECTION)

    @jwt.user_lookup_error_loader
    def account_not_found(_jwt_header, jwt_data):
        logger.warning("Access token presented for unknown account %s", jwt_data.get("sub"))
        return unauthorized("Invalid access token.")

    @jwt.unauthorized_loader
    def missing_token(reason: str):
        return unauthorized(f"Access token is missing. {reason}".strip())

    @jwt.invalid_token_loader
    def invalid_token(reason: str):
        return unauthorized(f"Invalid access token. {reason}".strip())

    @jwt.expired_token_loader
    def expired_token(_jwt_header, _jwt_data):
        return unauthorized("Access token has expired.")

    @jwt.needs_fresh_token_loader
    def stale_token(_jwt_header, _jwt_data):
        return unauthorized("A fresh access token is required.")

    @jwt.revoked_token_loader
    def revoked_token(_jwt_header, _jwt_data):
        return unauthorized("Access token has been revoked.")

    @jwt.token_verification_failed_loader
    def verification_failed(_jwt_header, _jwt_data):
        return unauthorized("Access token verification failed.")
