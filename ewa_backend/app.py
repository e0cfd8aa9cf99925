from typing import Optional

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_pymongo import PyMongo
from werkzeug.middleware.proxy_fix import ProxyFix

from .auth import init_auth
from .config import AppConfig
from .errors import NotFoundError, register_error_handlers
from .media import MediaStorage
from .push import OneSignalClient
from .routes import (
    brands,
    categories,
    coupons,
    media,
    notifications,
    orders,
    payments,
    posters,
    products,
    settings,
    users,
)


def ensure_indexes(app: Flask, db):
    try:
        db.couponCodes.create_index("couponCode", unique=True)
    except Exception as exc:
        app.logger.warning("Unable to ensure unique index for coupon codes: %s", exc)

    try:
        db.users.create_index("email", unique=True)
    except Exception as exc:
        app.logger.warning("Unable to ensure unique index for user emails: %s", exc)


def create_app(config: Optional[AppConfig] = None, database=None) -> Flask:
    """Create and configure the Flask application.

    ``database`` replaces the PyMongo connection when given (tests pass a
    mongomock database here).
    """
    config = config or AppConfig.from_env()
    app = Flask(__name__)

    # Honor proxy headers so generated image URLs keep the public origin.
    if config.trusted_proxy_hops:
        hops = config.trusted_proxy_hops
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_port=hops)

    app.config.update(config.flask_settings())
    app.logger.setLevel(config.log_level)

    CORS(app, supports_credentials=True, origins=list(config.cors_origins) or "*")

    jwt = JWTManager(app)
    if database is None:
        database = PyMongo(app).db
    db = database

    init_auth(jwt, db.users, app.logger)
    register_error_handlers(app)
    ensure_indexes(app, db)

    storage = MediaStorage(config.upload_root, config.public_base_url, config.max_upload_bytes)
    storage.ensure_folders()
    push_client = OneSignalClient(
        config.onesignal_app_id,
        config.onesignal_api_key,
        config.onesignal_api_url,
        app.logger,
    )

    prefix = config.api_prefix
    app.register_blueprint(categories.create_blueprint(db), url_prefix=f"{prefix}/categories")
    app.register_blueprint(brands.create_blueprint(db), url_prefix=f"{prefix}/brands")
    app.register_blueprint(coupons.create_blueprint(db), url_prefix=f"{prefix}/couponCodes")
    app.register_blueprint(products.create_blueprint(db), url_prefix=f"{prefix}/products")
    app.register_blueprint(posters.create_blueprint(db), url_prefix=f"{prefix}/posters")
    app.register_blueprint(users.create_blueprint(db, storage), url_prefix=f"{prefix}/users")
    app.register_blueprint(orders.create_blueprint(db), url_prefix=f"{prefix}/orders")
    app.register_blueprint(payments.create_blueprint(config), url_prefix=f"{prefix}/payment")
    app.register_blueprint(
        notifications.create_blueprint(db, push_client), url_prefix=f"{prefix}/notification"
    )
    app.register_blueprint(media.create_blueprint(storage), url_prefix=f"{prefix}/media")
    app.register_blueprint(settings.create_blueprint(db), url_prefix=f"{prefix}/settings")

    @app.route("/image/<folder>/<path:filename>")
    def serve_image(folder: str, filename: str):
        directory = storage.directory_for_folder(folder)
        if directory is None:
            raise NotFoundError("File not found.")
        return send_from_directory(directory, filename)

    @app.route("/")
    def index():
        return jsonify({"success": True, "message": "API working successfully", "data": None})

    @app.route("/health")
    def health():
        return {"status": "ok"}, 200

    app.logger.info("API mounted under %s", prefix or "/")
    return app
