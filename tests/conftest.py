import threading

import bcrypt
import pytest

from portfolio.errors import MailTransportError
from portfolio.factory import create_app
from portfolio.services.notification_service import NotificationDispatcher
from portfolio.services.subscriber_service import SubscriberRegistry, UnsubscribeResolver
from portfolio.services.subscriber_store import JsonSubscriberStore

ADMIN_PASSWORD = "correct horse"
BASE_URL = "https://art.example.com"


class FakeMailer:
    """Records every send; addresses in fail_for raise MailTransportError."""

    def __init__(self, configured=True):
        self.configured = configured
        self.fail_for = set()
        self.sent = []
        self.attempts = []
        self._lock = threading.Lock()

    def send(self, to, subject, text, html, reply_to=None):
        with self._lock:
            self.attempts.append(to)
        if to in self.fail_for:
            raise MailTransportError(to, "550 mailbox unavailable")
        with self._lock:
            self.sent.append({"to": to, "subject": subject, "text": text,
                              "html": html, "reply_to": reply_to})

    def sent_to(self, address):
        return [m for m in self.sent if m["to"] == address]


@pytest.fixture
def store(tmp_path):
    return JsonSubscriberStore(tmp_path / "subscribers.json")


@pytest.fixture
def registry(store):
    return SubscriberRegistry(store)


@pytest.fixture
def resolver(registry):
    return UnsubscribeResolver(registry)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def dispatcher(registry, mailer):
    return NotificationDispatcher(registry, mailer, site_name="Studio", inline=True)


@pytest.fixture
def app(tmp_path, mailer):
    pass_hash = bcrypt.hashpw(ADMIN_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode()
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "DATA_DIR": tmp_path / "data",
        "UPLOADS_DIR": tmp_path / "uploads",
        "ADMIN_USER": "artist",
        "ADMIN_PASS_HASH": pass_hash,
        "CONTACT_EMAIL": "studio@example.com",
        "PUBLIC_BASE_URL": BASE_URL,
        "SITE_NAME": "Studio",
        "NOTIFY_INLINE": True,
        "RATE_LIMIT_MAX": 1000,
    }, mailer=mailer)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(client):
    resp = client.post("/login", json={"username": "artist", "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}
