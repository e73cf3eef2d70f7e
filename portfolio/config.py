import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
UPLOADS_DIR = Path(os.getenv("UPLOADS_DIR", BASE_DIR / "uploads"))
UPLOAD_SECTIONS = ("about", "portfolio")

# Signs admin bearer tokens; create_app refuses to start without it
SECRET_KEY = os.getenv("SECRET_KEY", "")

# Single admin account; ADMIN_PASS_HASH is a bcrypt hash
ADMIN_USER = os.getenv("ADMIN_USER", "admin")
ADMIN_PASS_HASH = os.getenv("ADMIN_PASS_HASH", "")
TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", 24 * 60 * 60))

# Email config
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
SMTP_TIMEOUT = int(os.getenv("SMTP_TIMEOUT", 30))
MAIL_FROM = os.getenv("MAIL_FROM", SMTP_USER)
CONTACT_EMAIL = os.getenv("CONTACT_EMAIL", SMTP_USER)
MAIL_MAX_WORKERS = int(os.getenv("MAIL_MAX_WORKERS", 8))

# Used to build unsubscribe links; falls back to the request host when empty
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")
SITE_NAME = os.getenv("SITE_NAME", "the portfolio")

PORT = int(os.getenv("PORT", 5000))
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", 50))
