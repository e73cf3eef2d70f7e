import logging
import time

from flask import Blueprint, current_app, jsonify, request

from portfolio.errors import MailTransportError
from portfolio.services import subscriber_service
from portfolio.services.email_service import compose_inquiry
from portfolio.utils.helpers import length_error, normalize_email, sanitize

logger = logging.getLogger(__name__)

public_bp = Blueprint("public", __name__)

RATE_LIMIT_WINDOW = 60  # seconds


def _services():
    return current_app.extensions["portfolio"]


def _check_rate_limit(ip):
    """Sliding window per client IP; RATE_LIMIT_MAX requests per window."""
    hits = _services()["rate_limit"]
    now = time.time()
    with _services()["rate_limit_lock"]:
        # Forget clients that have been quiet for a whole window
        for quiet in [k for k, v in hits.items() if not v or now - v[-1] >= RATE_LIMIT_WINDOW]:
            del hits[quiet]
        recent = [t for t in hits.get(ip, []) if now - t < RATE_LIMIT_WINDOW]
        if len(recent) >= current_app.config["RATE_LIMIT_MAX"]:
            hits[ip] = recent
            return False
        recent.append(now)
        hits[ip] = recent
        return True


def _rate_limited():
    return jsonify({"error": "Too many requests. Please try again later."}), 429


def _payload():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else request.form


def public_base_url():
    return current_app.config["PUBLIC_BASE_URL"] or request.host_url


# --- About / Portfolio ---

@public_bp.route("/about-data")
def about_data():
    return jsonify(_services()["assets"].get_about())


@public_bp.route("/portfolio-images")
def portfolio_images():
    return jsonify(_services()["assets"].list_portfolio())


# --- Subscriptions ---

@public_bp.route("/subscribe", methods=["POST"])
def subscribe():
    if not _check_rate_limit(request.remote_addr):
        return _rate_limited()

    data = _payload()
    result = _services()["registry"].subscribe(data.get("name", ""), data.get("email", ""))

    if result.outcome == subscriber_service.INVALID:
        return jsonify({"success": False, "errors": result.errors}), 400
    if result.outcome == subscriber_service.ALREADY_ACTIVE:
        return jsonify({"success": False, "error": "This email is already subscribed."}), 409

    dispatcher = _services()["dispatcher"]
    dispatcher.dispatch(dispatcher.send_welcome, result.subscriber, public_base_url())

    status = 201 if result.outcome == subscriber_service.CREATED else 200
    return jsonify({
        "success": True,
        "status": result.outcome,
        "message": "Subscribed successfully",
    }), status


@public_bp.route("/unsubscribe", defaults={"token": None})
@public_bp.route("/unsubscribe/<token>")
def unsubscribe(token):
    if not _check_rate_limit(request.remote_addr):
        return _rate_limited()

    if token is None:
        token = request.args.get("token")
    result = _services()["resolver"].resolve(token)

    if result.outcome == subscriber_service.INVALID_REQUEST:
        return jsonify({"success": False, "error": "Unsubscribe token is required"}), 400
    if result.outcome == subscriber_service.NOT_FOUND:
        return jsonify({"success": False, "error": "Subscription not found or already cancelled"}), 404

    return jsonify({
        "success": True,
        "message": f"{result.name}, you have been unsubscribed.",
        "name": result.name,
        "email": result.email,
    })


# --- Contact form ---

@public_bp.route("/contact", methods=["POST"])
def contact():
    if not _check_rate_limit(request.remote_addr):
        return _rate_limited()

    data = _payload()
    name = sanitize(data.get("name", ""))
    email = normalize_email(data.get("email", ""))
    message = sanitize(data.get("message", ""))

    errors = [
        e for e in (
            length_error("name", name, 2, 100, "Name"),
            None if email else {"field": "email", "msg": "Valid email is required"},
            length_error("message", message, 10, 1000, "Message"),
        ) if e
    ]
    if errors:
        return jsonify({"success": False, "errors": errors}), 400

    mailer = _services()["mailer"]
    if not mailer.configured:
        logger.error("Contact form used but SMTP is not configured")
        return jsonify({"success": False, "error": "Email service not configured"}), 500

    subject, text, html = compose_inquiry(name, email, message)
    try:
        mailer.send(current_app.config["CONTACT_EMAIL"], subject, text, html, reply_to=email)
    except MailTransportError as e:
        logger.error("Contact form delivery failed: %s", e.reason)
        return jsonify({"success": False, "error": "Failed to send message. Please try again later."}), 500

    return jsonify({"success": True, "message": "Message sent successfully"})
