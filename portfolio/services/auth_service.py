import hmac
import logging

import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

TOKEN_SALT = "admin-auth"

# bcrypt only looks at the first 72 bytes; newer releases refuse longer input
BCRYPT_MAX_BYTES = 72


class AuthError(Exception):
    """Bearer token missing, malformed or expired. str(e) is safe to show the client."""


def check_credentials(username, password, admin_user, admin_pass_hash):
    if not admin_pass_hash:
        logger.error("ADMIN_PASS_HASH is not set; admin login is disabled")
        return False
    if not isinstance(username, str) or not isinstance(password, str):
        return False
    if not hmac.compare_digest(username.encode(), str(admin_user).encode()):
        return False

    secret = password.encode()
    if len(secret) > BCRYPT_MAX_BYTES:
        logger.warning("Rejected admin password longer than %d bytes", BCRYPT_MAX_BYTES)
        return False
    try:
        return bcrypt.checkpw(secret, admin_pass_hash.encode())
    except ValueError:
        logger.error("ADMIN_PASS_HASH is not a valid bcrypt hash")
        return False


def issue_token(secret_key, username):
    serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
    return serializer.dumps({"username": username, "role": "admin"})


def verify_token(secret_key, token, max_age):
    """Return the token payload, or raise AuthError."""
    serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
    try:
        return serializer.loads(token, max_age=max_age)
    except SignatureExpired:
        raise AuthError("Token expired")
    except BadSignature:
        raise AuthError("Invalid token")


def token_from_header(header):
    if not header or not header.startswith("Bearer "):
        raise AuthError("Access token required")
    return header[len("Bearer "):]
