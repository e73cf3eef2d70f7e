import json
import time

from conftest import BASE_URL


def _token_for(app, email):
    return app.extensions["portfolio"]["registry"].store.find_by_email(email)["unsubscribe_token"]


def test_subscribe_then_unsubscribe_twice(app, client, mailer):
    resp = client.post("/subscribe", json={"name": "Jane Doe", "email": "jane@example.com"})
    assert resp.status_code == 201
    assert resp.get_json()["status"] == "created"

    (welcome,) = mailer.sent_to("jane@example.com")
    token = _token_for(app, "jane@example.com")
    assert f"{BASE_URL}/unsubscribe/{token}" in welcome["html"]

    resp = client.get(f"/unsubscribe/{token}")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["name"] == "Jane Doe"
    assert "Jane Doe" in body["message"]
    store = app.extensions["portfolio"]["registry"].store
    assert store.find_by_email("jane@example.com")["is_active"] is False

    resp = client.get(f"/unsubscribe/{token}")
    assert resp.status_code == 404


def test_unsubscribe_accepts_query_parameter(app, client):
    client.post("/subscribe", data={"name": "Jane Doe", "email": "jane@example.com"})
    token = _token_for(app, "jane@example.com")

    resp = client.get("/unsubscribe", query_string={"token": token})

    assert resp.status_code == 200


def test_unsubscribe_without_token_is_bad_request(client):
    assert client.get("/unsubscribe").status_code == 400
    assert client.get("/unsubscribe?token=").status_code == 400


def test_subscribe_twice_conflicts(client):
    client.post("/subscribe", json={"name": "Jane Doe", "email": "jane@example.com"})
    resp = client.post("/subscribe", json={"name": "Jane Doe", "email": "jane@example.com"})
    assert resp.status_code == 409


def test_resubscribe_returns_reactivated(app, client):
    client.post("/subscribe", json={"name": "Jane Doe", "email": "jane@example.com"})
    client.get(f"/unsubscribe/{_token_for(app, 'jane@example.com')}")

    resp = client.post("/subscribe", json={"name": "Jane Doe", "email": "jane@example.com"})

    assert resp.status_code == 200
    assert resp.get_json()["status"] == "reactivated"


def test_subscribe_validation_errors(client, mailer):
    resp = client.post("/subscribe", json={"name": "J", "email": "nope"})

    assert resp.status_code == 400
    fields = {e["field"] for e in resp.get_json()["errors"]}
    assert fields == {"name", "email"}
    assert mailer.attempts == []


def test_welcome_failure_does_not_fail_subscription(app, client, mailer):
    mailer.fail_for.add("jane@example.com")

    resp = client.post("/subscribe", json={"name": "Jane Doe", "email": "jane@example.com"})

    assert resp.status_code == 201
    assert app.extensions["portfolio"]["registry"].store.find_by_email("jane@example.com")["is_active"]


def test_store_outage_is_a_generic_503(app, client):
    (app.config["DATA_DIR"] / "subscribers.json").write_text("{broken")

    resp = client.post("/subscribe", json={"name": "Jane Doe", "email": "jane@example.com"})

    assert resp.status_code == 503
    assert "broken" not in resp.get_data(as_text=True)


def test_rate_limit(app, client):
    app.config["RATE_LIMIT_MAX"] = 2
    for _ in range(2):
        client.get("/unsubscribe/whatever")
    assert client.get("/unsubscribe/whatever").status_code == 429


def test_about_and_portfolio_defaults(client):
    assert client.get("/about-data").get_json() == {"image": ""}
    assert client.get("/portfolio-images").get_json() == []


def test_contact_form_sends_to_studio(client, mailer):
    resp = client.post("/contact", json={
        "name": "Ann Buyer",
        "email": "ann@example.com",
        "message": "Is the blue painting still available?",
    })

    assert resp.status_code == 200
    (message,) = mailer.sent_to("studio@example.com")
    assert message["subject"] == "New Inquiry from Ann Buyer"
    assert message["reply_to"] == "ann@example.com"


def test_contact_form_validation(client, mailer):
    resp = client.post("/contact", json={"name": "Ann", "email": "ann@example.com", "message": "short"})

    assert resp.status_code == 400
    assert [e["field"] for e in resp.get_json()["errors"]] == ["message"]
    assert mailer.sent == []


def test_contact_form_delivery_failure(client, mailer):
    mailer.fail_for.add("studio@example.com")

    resp = client.post("/contact", json={
        "name": "Ann Buyer", "email": "ann@example.com", "message": "Hello there, lovely work!",
    })

    assert resp.status_code == 500
    assert json.loads(resp.data)["error"] == "Failed to send message. Please try again later."


def test_contact_form_without_smtp(client, mailer):
    mailer.configured = False

    resp = client.post("/contact", json={
        "name": "Ann Buyer", "email": "ann@example.com", "message": "Hello there, lovely work!",
    })

    assert resp.status_code == 500
    assert resp.get_json()["error"] == "Email service not configured"


def test_undecodable_store_is_a_503(app, client):
    (app.config["DATA_DIR"] / "subscribers.json").write_bytes(b"\xff\xfe\x00")

    resp = client.post("/subscribe", json={"name": "Jane Doe", "email": "jane@example.com"})

    assert resp.status_code == 503


def test_unsubscribe_confirmation_shows_plain_name(app, client):
    client.post("/subscribe", json={"name": "Tom & Jerry", "email": "tom@example.com"})

    resp = client.get(f"/unsubscribe/{_token_for(app, 'tom@example.com')}")

    assert resp.get_json()["name"] == "Tom & Jerry"


def test_contact_form_keeps_ampersands(client, mailer):
    resp = client.post("/contact", json={
        "name": "Ann & Co", "email": "ann@example.com", "message": "Prints & originals, please.",
    })

    assert resp.status_code == 200
    (message,) = mailer.sent_to("studio@example.com")
    assert message["subject"] == "New Inquiry from Ann & Co"
    assert "Prints &amp; originals" in message["html"]


def test_rate_limit_forgets_quiet_clients(app, client):
    hits = app.extensions["portfolio"]["rate_limit"]
    hits["10.0.0.9"] = [time.time() - 120]

    client.get("/unsubscribe/whatever", environ_base={"REMOTE_ADDR": "10.0.0.1"})

    assert "10.0.0.9" not in hits
    assert len(hits["10.0.0.1"]) == 1
