from flask import Blueprint, current_app, request
from flask_jwt_extended import (
    current_user,
    jwt_required,
    set_access_cookies,
    set_refresh_cookies,
    unset_jwt_cookies,
)

from ..auth import (
    ACCOUNT_PROJECTION,
    check_password,
    hash_password,
    issue_tokens,
    public_account,
    resolve_refresh_token,
)
from ..errors import AuthenticationError, ValidationError
from ..helpers import (
    find_or_404,
    is_valid_email,
    normalize_email,
    require_fields,
    respond,
    respond_paginated,
    utcnow,
)
from ..pagination import build_text_search_query, paginate_query

MIN_PASSWORD_LENGTH = 6


def create_blueprint(db, storage) -> Blueprint:
    bp = Blueprint("users", __name__)
    users = db.users

    def validated_email(value, exclude_id=None) -> str:
        email = normalize_email(value)
        if not is_valid_email(email):
            raise ValidationError("Please provide a valid email address.")
        duplicate_query = {"email": email}
        if exclude_id is not None:
            duplicate_query["_id"] = {"$ne": exclude_id}
        if users.find_one(duplicate_query, {"_id": 1}):
            raise ValidationError("An account with this email already exists.")
        return email

    def validated_password(value) -> str:
        password = str(value or "")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Passwords must be at least {MIN_PASSWORD_LENGTH} characters long."
            )
        return password

    def session_response(message: str, user_document):
        access_token, refresh_token = issue_tokens(users, user_document)
        response, status_code = respond(
            message,
            {
                "user": public_account(user_document),
                "accessToken": access_token,
                "refreshToken": refresh_token,
            },
        )
        set_access_cookies(response, access_token)
        set_refresh_cookies(response, refresh_token)
        return response, status_code

    @bp.route("", methods=["GET"])
    def list_users():
        search_query = build_text_search_query(request.args.get("search"), ["name", "email"])
        page = paginate_query(users, request.args, search_query)
        page["data"] = [public_account(document) for document in page["data"]]
        return respond_paginated("Users retrieved successfully.", page)

    @bp.route("/register", methods=["POST"])
    def register():
        payload = request.get_json(silent=True) or {}
        require_fields(
            payload, "name", "email", "password", message="Name, email, and password are required."
        )

        now = utcnow()
        document = {
            "name": str(payload["name"]).strip(),
            "email": validated_email(payload["email"]),
            "phone": str(payload.get("phone") or "").strip(),
            "password": hash_password(validated_password(payload["password"])),
            "profile": "",
            "createdAt": now,
            "updatedAt": now,
        }
        document["_id"] = users.insert_one(document).inserted_id
        current_app.logger.info("Registered new account %s", document["email"])
        return respond("User created successfully.", public_account(document), 201)

    @bp.route("/login", methods=["POST"])
    def login():
        payload = request.get_json(silent=True) or {}
        password = str(payload.get("password") or "")
        email = normalize_email(payload.get("email"))
        name = str(payload.get("name") or "").strip()
        if not password or not (email or name):
            raise ValidationError("Email (or name) and password are required.")

        user = users.find_one({"email": email} if email else {"name": name})
        if not user or not check_password(password, user.get("password")):
            raise AuthenticationError("Invalid credentials.")

        users.update_one({"_id": user["_id"]}, {"$set": {"lastLoginAt": utcnow()}})
        current_app.logger.info(
            "Signed in %s from %s",
            user.get("email"),
            request.headers.get("X-Forwarded-For", request.remote_addr),
        )
        return session_response("Login successful.", user)

    @bp.route("/logout", methods=["POST"])
    @jwt_required()
    def logout():
        users.update_one({"_id": current_user["_id"]}, {"$unset": {"refreshTokenJti": ""}})
        response, status_code = respond("Logged out successfully.")
        unset_jwt_cookies(response)
        return response, status_code

    @bp.route("/refresh-token", methods=["POST"])
    def refresh_access_token():
        payload = request.get_json(silent=True) or {}
        incoming_token = (
            request.cookies.get(current_app.config["JWT_REFRESH_COOKIE_NAME"])
            or payload.get("refreshToken")
        )
        user = resolve_refresh_token(users, incoming_token)
        return session_response("Access token refreshed", user)

    @bp.route("/change-password", methods=["POST"])
    @jwt_required()
    def change_password():
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "oldPassword", "newPassword")

        user = users.find_one({"_id": current_user["_id"]})
        if not check_password(str(payload["oldPassword"]), user.get("password")):
            raise ValidationError("Invalid old password")

        users.update_one(
            {"_id": user["_id"]},
            {
                "$set": {
                    "password": hash_password(validated_password(payload["newPassword"])),
                    "updatedAt": utcnow(),
                }
            },
        )
        return respond("Password changed successfully")

    @bp.route("/current-user", methods=["GET"])
    @jwt_required()
    def get_current_user():
        return respond("User fetched successfully", current_user)

    @bp.route("/update-account", methods=["PATCH"])
    @jwt_required()
    def update_account():
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "name", "email", message="All fields are required")

        changes = {
            "name": str(payload["name"]).strip(),
            "email": validated_email(payload["email"], current_user["_id"]),
            "updatedAt": utcnow(),
        }
        if payload.get("phone") is not None:
            changes["phone"] = str(payload["phone"]).strip()
        users.update_one({"_id": current_user["_id"]}, {"$set": changes})
        user = users.find_one({"_id": current_user["_id"]}, ACCOUNT_PROJECTION)
        return respond("Account details updated successfully", user)

    @bp.route("/profile", methods=["PATCH"])
    @jwt_required()
    def update_profile():
        upload = request.files.get("profile")
        if not upload:
            raise ValidationError("Profile is missing")

        file_info = storage.save(upload, "users")
        users.update_one(
            {"_id": current_user["_id"]},
            {"$set": {"profile": file_info["url"], "updatedAt": utcnow()}},
        )
        previous = str(current_user.get("profile") or "").rsplit("/", 1)[-1]
        if previous:
            storage.remove(previous, "users")
        user = users.find_one({"_id": current_user["_id"]}, ACCOUNT_PROJECTION)
        return respond("Profile image updated successfully", user)

    @bp.route("/<user_id>", methods=["GET"])
    def get_user(user_id: str):
        user = find_or_404(users, user_id, "User", ACCOUNT_PROJECTION)
        return respond("User retrieved successfully.", user)

    @bp.route("/<user_id>", methods=["PUT"])
    def update_user(user_id: str):
        user = find_or_404(users, user_id, "User")
        payload = request.get_json(silent=True) or {}
        require_fields(payload, "name", "password", message="Name, and password are required.")

        changes = {
            "name": str(payload["name"]).strip(),
            "password": hash_password(validated_password(payload["password"])),
            "updatedAt": utcnow(),
        }
        if payload.get("email"):
            changes["email"] = validated_email(payload["email"], user["_id"])
        if payload.get("phone") is not None:
            changes["phone"] = str(payload["phone"]).strip()
        users.update_one({"_id": user["_id"]}, {"$set": changes})
        user.update(changes)
        return respond("User updated successfully.", public_account(user))

    @bp.route("/<user_id>", methods=["DELETE"])
    def delete_user(user_id: str):
        user = find_or_404(users, user_id, "User")
        users.delete_one({"_id": user["_id"]})
        current_app.logger.info("Deleted account %s", user.get("email"))
        return respond("User deleted successfully.")

    return bp
