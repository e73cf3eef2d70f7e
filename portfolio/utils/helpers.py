import html
import secrets
import time
import uuid
import bleach
from datetime import datetime, timezone
from email_validator import validate_email, EmailNotValidError


def generate_id():
    return str(uuid.uuid4())


def generate_token():
    """256-bit URL-safe secret, used as an unsubscribe capability."""
    return secrets.token_urlsafe(32)


def generate_upload_name(extension):
    """Unique file name for an upload: <ms timestamp>-<random>.<ext>"""
    stamp = int(time.time() * 1000)
    return f"{stamp}-{secrets.randbelow(10**9)}{extension.lower()}"


def now_iso():
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def sanitize(text):
    """Strip markup from user input, returning plain text.

    The result is not HTML-safe; escape it when building HTML.
    """
    if text is None:
        return ""
    return html.unescape(bleach.clean(str(text), tags=[], strip=True)).strip()


def normalize_email(address):
    """Return the canonical lowercase form of an address, or None if invalid."""
    if not address:
        return None
    try:
        result = validate_email(str(address).strip(), check_deliverability=False)
    except EmailNotValidError:
        return None
    return result.normalized.lower()


def length_error(field, value, low, high, label):
    """express-validator style error dict for a length check, or None."""
    if low <= len(value) <= high:
        return None
    return {"field": field, "msg": f"{label} must be {low}-{high} characters"}
