import logging
from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request

from portfolio.public.routes import public_base_url
from portfolio.services import auth_service
from portfolio.services.asset_service import allowed_type, artwork_kind

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)


def _services():
    return current_app.extensions["portfolio"]


# --- Authentication ---

def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            token = auth_service.token_from_header(request.headers.get("Authorization"))
            g.admin = auth_service.verify_token(
                current_app.config["SECRET_KEY"], token, current_app.config["TOKEN_MAX_AGE"])
        except auth_service.AuthError as e:
            return jsonify({"error": str(e)}), 401
        return f(*args, **kwargs)
    return decorated_function


@admin_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = request.form
    username = data.get("username", "")
    password = data.get("password", "")

    errors = []
    if not username or not isinstance(username, str):
        errors.append({"field": "username", "msg": "Username is required"})
    if not password or not isinstance(password, str):
        errors.append({"field": "password", "msg": "Password is required"})
    if errors:
        return jsonify({"errors": errors}), 400

    if not auth_service.check_credentials(username, password, current_app.config["ADMIN_USER"],
                                          current_app.config["ADMIN_PASS_HASH"]):
        logger.warning("Failed admin login from %s", request.remote_addr)
        return jsonify({"error": "Invalid credentials"}), 401

    token = auth_service.issue_token(current_app.config["SECRET_KEY"], username)
    return jsonify({"token": token, "message": "Login successful"})


# --- Uploads ---

def _uploaded_file():
    """Return (file, error_response)."""
    file = request.files.get("file")
    if not file or not file.filename:
        return None, (jsonify({"error": "No file uploaded"}), 400)
    if not allowed_type(file.mimetype):
        return None, (jsonify({"error": "Invalid file type. Only images and videos are allowed."}), 400)
    return file, None


@admin_bp.route("/upload/about", methods=["POST"])
@admin_required
def upload_about():
    file, error = _uploaded_file()
    if error:
        return error
    about = _services()["assets"].save_about(file)
    return jsonify({"success": True, "url": about["image"]})


@admin_bp.route("/upload/portfolio", methods=["POST"])
@admin_required
def upload_portfolio():
    file, error = _uploaded_file()
    if error:
        return error
    item = _services()["assets"].add_portfolio_item(file)

    # The item is on disk before anyone is told about it
    dispatcher = _services()["dispatcher"]
    dispatcher.dispatch(dispatcher.broadcast_new_artwork, artwork_kind(item["file_type"]), public_base_url())
    return jsonify(item)


@admin_bp.route("/portfolio/<item_id>", methods=["DELETE"])
@admin_required
def delete_portfolio_item(item_id):
    _services()["assets"].delete_portfolio_item(item_id)
    return jsonify({"success": True})


# --- Subscribers ---

@admin_bp.route("/subscribers")
@admin_required
def subscriber_counts():
    return jsonify(_services()["registry"].counts())
