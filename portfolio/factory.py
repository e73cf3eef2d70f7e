import logging
import threading
from pathlib import Path

from flask import Flask, jsonify, send_from_directory
from werkzeug.exceptions import RequestEntityTooLarge

from portfolio import config
from portfolio.admin.routes import admin_bp
from portfolio.errors import StoreUnavailableError
from portfolio.public.routes import public_bp
from portfolio.services.asset_service import AssetStore
from portfolio.services.email_service import SmtpMailer
from portfolio.services.notification_service import NotificationDispatcher
from portfolio.services.subscriber_service import SubscriberRegistry, UnsubscribeResolver
from portfolio.services.subscriber_store import JsonSubscriberStore

logger = logging.getLogger(__name__)


def create_app(overrides=None, mailer=None):
    """Build the Flask app. overrides replace settings from portfolio.config."""
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=config.SECRET_KEY,
        DATA_DIR=config.DATA_DIR,
        UPLOADS_DIR=config.UPLOADS_DIR,
        ADMIN_USER=config.ADMIN_USER,
        ADMIN_PASS_HASH=config.ADMIN_PASS_HASH,
        TOKEN_MAX_AGE=config.TOKEN_MAX_AGE,
        CONTACT_EMAIL=config.CONTACT_EMAIL,
        PUBLIC_BASE_URL=config.PUBLIC_BASE_URL,
        SITE_NAME=config.SITE_NAME,
        MAIL_MAX_WORKERS=config.MAIL_MAX_WORKERS,
        MAX_CONTENT_LENGTH=config.MAX_UPLOAD_MB * 1024 * 1024,
        NOTIFY_INLINE=False,
        RATE_LIMIT_MAX=10,
    )
    app.config.update(overrides or {})

    if not app.config["SECRET_KEY"]:
        raise RuntimeError("SECRET_KEY environment variable is required")
    if not app.config["ADMIN_PASS_HASH"]:
        logger.warning("ADMIN_PASS_HASH is not set; admin login is disabled")

    data_dir = Path(app.config["DATA_DIR"])
    uploads_dir = Path(app.config["UPLOADS_DIR"])
    data_dir.mkdir(parents=True, exist_ok=True)
    for section in config.UPLOAD_SECTIONS:
        (uploads_dir / section).mkdir(parents=True, exist_ok=True)

    if mailer is None:
        mailer = SmtpMailer(config.SMTP_HOST, config.SMTP_PORT, config.SMTP_USER,
                            config.SMTP_PASS, config.MAIL_FROM, timeout=config.SMTP_TIMEOUT)
    if not mailer.configured:
        logger.warning("SMTP not configured; emails will be recorded as failed")

    registry = SubscriberRegistry(JsonSubscriberStore(data_dir / "subscribers.json"))
    app.extensions["portfolio"] = {
        "registry": registry,
        "resolver": UnsubscribeResolver(registry),
        "assets": AssetStore(uploads_dir, data_dir),
        "mailer": mailer,
        "dispatcher": NotificationDispatcher(
            registry, mailer,
            site_name=app.config["SITE_NAME"],
            max_workers=app.config["MAIL_MAX_WORKERS"],
            inline=app.config["NOTIFY_INLINE"],
        ),
        "rate_limit": {},
        "rate_limit_lock": threading.Lock(),
    }

    @app.route("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(uploads_dir, filename)

    @app.errorhandler(StoreUnavailableError)
    def store_unavailable(e):
        logger.error("Store failure: %s", e)
        return jsonify({"error": "Service temporarily unavailable"}), 503

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(e):
        limit_mb = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
        return jsonify({"error": f"File too large. Maximum size is {limit_mb}MB."}), 400

    app.register_blueprint(public_bp)
    app.register_blueprint(admin_bp)
    return app
