"""HTTP-level tests wiring the routers to in-memory services."""
from __future__ import annotations

import gzip
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from vocabulary_center.app.downloads import AssetStreamer
from vocabulary_center.app.identity import ExternalProfile, Role
from vocabulary_center.app.purchases import CHECKOUT_COMPLETED_EVENT, sign_webhook_payload
from vocabulary_center.app.routes import auth as auth_routes
from vocabulary_center.app.routes import catalog as catalog_routes
from vocabulary_center.app.routes import dependencies
from vocabulary_center.app.routes import downloads as download_routes
from vocabulary_center.app.routes import orders as order_routes
from vocabulary_center.config import load_app_config
from vocabulary_center.errors import UpstreamFailure
from vocabulary_center.main import create_app

PDF_BYTES = b"%PDF-1.7 vocabulary"


@pytest.fixture
def app_config():
    return load_app_config({"APP_ENV": "test", "JWT_SECRET": "test-secret"})


@pytest.fixture
def client(monkeypatch, app_config, auth_service, catalog_service, purchase_service, download_gate):
    def asset_handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/missing.pdf"):
            return httpx.Response(403)
        if request.url.path.endswith("/compressed.pdf"):
            return httpx.Response(200, content=gzip.compress(PDF_BYTES), headers={"Content-Encoding": "gzip"})
        return httpx.Response(200, content=PDF_BYTES)

    streamer = AssetStreamer(client=httpx.Client(transport=httpx.MockTransport(asset_handler)))

    for module in (auth_routes, dependencies):
        monkeypatch.setattr(module, "get_app_config", lambda: app_config)
        monkeypatch.setattr(module, "get_auth_service", lambda: auth_service)
    monkeypatch.setattr(auth_routes, "get_google_client", lambda: None)
    monkeypatch.setattr(catalog_routes, "get_catalog_service", lambda: catalog_service)
    monkeypatch.setattr(order_routes, "get_purchase_service", lambda: purchase_service)
    monkeypatch.setattr(download_routes, "get_download_gate", lambda: download_gate)
    monkeypatch.setattr(download_routes, "get_asset_streamer", lambda: streamer)

    return TestClient(create_app(app_config, init_schema=False))


def _bearer(auth_service, identity) -> dict:
    return {"Authorization": f"Bearer {auth_service.issue_session(identity)}"}


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "OK", "message": "Server is running"}


def test_register_sets_session_cookie(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Alice", "email": "alice@example.com", "password": "wonderland"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User registered successfully"
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["purchasedPdfs"] == []
    cookie = response.headers["set-cookie"].lower()
    assert cookie.startswith("token=")
    assert "httponly" in cookie
    assert "samesite=strict" in cookie
    assert "max-age=604800" in cookie


def test_register_validation_errors_are_400(client):
    response = client.post("/api/auth/register", json={"name": "A", "email": "nope", "password": "123"})

    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"email", "password"} <= fields


def test_register_duplicate_email_is_conflict(client, alice):
    response = client.post(
        "/api/auth/register",
        json={"name": "Alice", "email": "alice@example.com", "password": "wonderland"},
    )

    assert response.status_code == 409


def test_login_and_me_with_bearer(client, alice):
    login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wonderland"})
    client.cookies.clear()

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {login.json()['token']}"})

    assert login.status_code == 200
    assert me.status_code == 200
    assert me.json()["user"]["id"] == alice.id


def test_login_with_wrong_password(client, alice):
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


def test_me_requires_session(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_logout_clears_cookie(client):
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"
    assert 'token=""' in response.headers["set-cookie"] or "max-age=0" in response.headers["set-cookie"].lower()


def test_forgot_password_same_answer_for_unknown_email(client, alice):
    known = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_google_login_redirects_when_unconfigured(client):
    response = client.get("/api/auth/google", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "http://localhost:3000/login?error=oauth_not_configured"


def test_public_catalog_hides_asset_location(client, spanish_guide):
    listing = client.get("/api/pdfs", params={"language": "Spanish"})
    detail = client.get(f"/api/pdfs/{spanish_guide.id}")

    assert listing.status_code == 200
    assert [pdf["id"] for pdf in listing.json()["pdfs"]] == [spanish_guide.id]
    assert "pdfFileUrl" not in listing.json()["pdfs"][0]
    assert "pdfFileUrl" not in detail.json()["pdf"]
    assert detail.json()["pdf"]["price"] == "9.99"
    assert client.get("/api/pdfs/languages/list").json() == {"languages": ["Spanish"]}


def test_unknown_pdf_is_404(client):
    response = client.get("/api/pdfs/missing")

    assert response.status_code == 404
    assert response.json()["message"] == "PDF not found"


def test_catalog_writes_require_admin(client, auth_service, identities, alice):
    payload = {
        "title": "Korean Basics",
        "language": "Korean",
        "price": 7.5,
        "description": "Hangul and first words.",
        "coverImageUrl": "https://cdn.example.com/covers/korean.jpg",
        "pdfFileUrl": "https://cdn.example.com/raw/korean.pdf",
    }

    anonymous = client.post("/api/pdfs", json=payload)
    customer = client.post("/api/pdfs", json=payload, headers=_bearer(auth_service, alice))
    admin = identities.records[alice.id].model_copy(update={"role": Role.ADMIN})
    identities.records[alice.id] = admin
    created = client.post("/api/pdfs", json=payload, headers=_bearer(auth_service, admin))

    assert anonymous.status_code == 401
    assert customer.status_code == 403
    assert created.status_code == 201
    assert created.json()["message"] == "PDF created successfully"
    assert created.json()["pdf"]["pdfFileUrl"] == "https://cdn.example.com/raw/korean.pdf"


def test_checkout_verify_and_download(client, auth_service, sandbox, alice, spanish_guide):
    headers = _bearer(auth_service, alice)

    denied = client.get(f"/api/download/{spanish_guide.id}", headers=headers)
    checkout = client.post("/api/orders/create-checkout-session", json={"pdfId": spanish_guide.id}, headers=headers)
    session_id = checkout.json()["sessionId"]
    sandbox.mark_paid(session_id, "pi_route")
    verified = client.post("/api/orders/verify-payment", json={"sessionId": session_id}, headers=headers)
    again = client.post("/api/orders/verify-payment", json={"sessionId": session_id}, headers=headers)
    orders = client.get("/api/orders/my-orders", headers=headers)
    download = client.get(f"/api/download/{spanish_guide.id}", headers=headers)

    assert denied.status_code == 403
    assert checkout.status_code == 200
    assert verified.json()["message"] == "Payment verified and order created"
    assert verified.json()["alreadyProcessed"] is False
    assert again.json()["alreadyProcessed"] is True
    assert [order["pdf"]["id"] for order in orders.json()["orders"]] == [spanish_guide.id]
    assert download.status_code == 200
    assert download.headers["content-type"] == "application/pdf"
    assert 'filename="Spanish_Vocabulary_Essentials.pdf"' in download.headers["content-disposition"]
    assert download.content == PDF_BYTES


def test_download_upstream_failure_is_502(client, auth_service, catalog_repository, ledger, alice, spanish_guide):
    broken = catalog_repository.save(
        spanish_guide.model_copy(update={"id": "pdf-broken", "pdf_file_url": "https://cdn.example.com/raw/missing.pdf"})
    )
    ledger.grant_item(alice.id, broken.id)

    response = client.get(f"/api/download/{broken.id}", headers=_bearer(auth_service, alice))

    assert response.status_code == 502
    assert response.json()["message"] == "Failed to fetch PDF from storage"


def test_webhook_rejects_bad_signature(client, ledger):
    body = json.dumps({"id": "evt_1", "type": CHECKOUT_COMPLETED_EVENT, "data": {"object": {}}}).encode("utf-8")

    response = client.post(
        "/api/orders/webhook",
        content=body,
        headers={"Stripe-Signature": sign_webhook_payload(body, "whsec_wrong")},
    )

    assert response.status_code == 400
    assert ledger.orders == {}


def test_webhook_reconciles_paid_session(client, purchase_service, sandbox, ledger, alice, spanish_guide):
    checkout = purchase_service.create_checkout_session(alice, spanish_guide.id)
    session = sandbox.mark_paid(checkout.session_id, "pi_hook")
    body = json.dumps(
        {
            "id": "evt_hook",
            "type": CHECKOUT_COMPLETED_EVENT,
            "data": {
                "object": {
                    "id": session.session_id,
                    "payment_status": "paid",
                    "payment_intent": "pi_hook",
                    "amount_total": 999,
                    "metadata": session.metadata,
                }
            },
        }
    ).encode("utf-8")

    response = client.post(
        "/api/orders/webhook",
        content=body,
        headers={"Stripe-Signature": sign_webhook_payload(body, "whsec_test_secret")},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert "pi_hook" in ledger.orders
    assert ledger.has_item(alice.id, spanish_guide.id)


def test_stale_cookie_does_not_mask_valid_bearer(client, auth_service, alice):
    client.cookies.set("token", "stale.invalid.jwt")

    response = client.get("/api/auth/me", headers=_bearer(auth_service, alice))

    assert response.status_code == 200
    assert response.json()["user"]["id"] == alice.id


def test_webhook_purchase_end_to_end(client, sandbox, spanish_guide):
    registered = client.post(
        "/api/auth/register",
        json={"name": "Dana", "email": "dana@example.com", "password": "wonderland"},
    )
    headers = {"Authorization": f"Bearer {registered.json()['token']}"}
    checkout = client.post("/api/orders/create-checkout-session", json={"pdfId": spanish_guide.id}, headers=headers)
    session = sandbox.mark_paid(checkout.json()["sessionId"], "pi_e2e")
    body = json.dumps(
        {
            "id": "evt_e2e",
            "type": CHECKOUT_COMPLETED_EVENT,
            "data": {
                "object": {
                    "id": session.session_id,
                    "payment_status": "paid",
                    "payment_intent": "pi_e2e",
                    "amount_total": 999,
                    "metadata": session.metadata,
                }
            },
        }
    ).encode("utf-8")

    hook = client.post(
        "/api/orders/webhook",
        content=body,
        headers={"Stripe-Signature": sign_webhook_payload(body, "whsec_test_secret")},
    )
    orders = client.get("/api/orders/my-orders", headers=headers).json()["orders"]
    download = client.get(f"/api/download/{spanish_guide.id}", headers=headers)

    assert registered.status_code == 201
    assert hook.status_code == 200
    assert len(orders) == 1
    assert orders[0]["amount"] == "9.99"
    assert orders[0]["status"] == "completed"
    assert orders[0]["pdf"]["id"] == spanish_guide.id
    assert download.status_code == 200
    assert download.content == PDF_BYTES


def test_download_of_compressed_asset_has_consistent_length(
    client, auth_service, catalog_repository, ledger, alice, spanish_guide
):
    packed = catalog_repository.save(
        spanish_guide.model_copy(update={"id": "pdf-packed", "pdf_file_url": "https://cdn.example.com/raw/compressed.pdf"})
    )
    ledger.grant_item(alice.id, packed.id)

    response = client.get(f"/api/download/{packed.id}", headers=_bearer(auth_service, alice))

    assert response.status_code == 200
    assert response.content == PDF_BYTES
    assert response.headers.get("content-length", str(len(PDF_BYTES))) == str(len(PDF_BYTES))


class FakeGoogleClient:
    def __init__(self) -> None:
        self.codes = []

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.google.test/auth?state={state}"

    def fetch_profile(self, code: str) -> ExternalProfile:
        self.codes.append(code)
        if code == "bad":
            raise UpstreamFailure("Google token exchange failed")
        return ExternalProfile(external_id="g-123", email="carol@example.com", display_name="Carol")


@pytest.fixture
def google(monkeypatch, client):
    fake = FakeGoogleClient()
    monkeypatch.setattr(auth_routes, "get_google_client", lambda: fake)
    return fake


def test_google_login_sets_state_cookie(client, google):
    response = client.get("/api/auth/google", follow_redirects=False)

    state = parse_qs(urlparse(response.headers["location"]).query)["state"][0]
    assert response.status_code == 302
    assert response.headers["location"].startswith("https://accounts.google.test/auth")
    assert f"oauth_state={state}" in response.headers["set-cookie"]


def test_google_callback_rejects_state_mismatch(client, google):
    client.cookies.set("oauth_state", "abc")

    response = client.get(
        "/api/auth/google/callback", params={"state": "xyz", "code": "good"}, follow_redirects=False
    )

    assert response.status_code == 302
    assert response.headers["location"] == "http://localhost:3000/login?error=oauth_failed"
    assert google.codes == []


def test_google_callback_signs_in(client, google, identities):
    client.cookies.set("oauth_state", "abc")

    response = client.get(
        "/api/auth/google/callback", params={"state": "abc", "code": "good"}, follow_redirects=False
    )

    location = response.headers["location"]
    token = parse_qs(urlparse(location).query)["token"][0]
    assert response.status_code == 302
    assert location.startswith("http://localhost:3000/auth/google/callback?token=")
    assert any(cookie.startswith(f"token={token}") for cookie in response.headers.get_list("set-cookie"))
    assert [identity.email for identity in identities.records.values()] == ["carol@example.com"]

    client.cookies.clear()
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["user"]["email"] == "carol@example.com"


def test_google_callback_profile_failure_redirects(client, google, identities):
    client.cookies.set("oauth_state", "abc")

    response = client.get(
        "/api/auth/google/callback", params={"state": "abc", "code": "bad"}, follow_redirects=False
    )

    assert response.status_code == 302
    assert response.headers["location"] == "http://localhost:3000/login?error=oauth_failed"
    assert google.codes == ["bad"]
    assert identities.records == {}
