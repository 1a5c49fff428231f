from decimal import Decimal

from database import SessionLocal
from exceptions import UpstreamTimeout
from models import Company, CompanyMember, PayoutRequest
from schemas.auth import Role
from services.provisioning_service import GENERIC_ERROR
from tests.conftest import auth_headers, make_token, seed_company


def _partner(identity, email="partner@example.com"):
    return identity.add_user(email=email, role=Role.PARTNER)


def _upload_payout(client, token, amount="25.00", filename="inv.pdf", content_type="application/pdf"):
    return client.post(
        "/api/payouts",
        data={"amount": amount, "description": "May"},
        files={"invoice": (filename, b"%PDF-1.4 test", content_type)},
        headers=auth_headers(token),
    )


# ---------------------------------------------------------------------------
# Platform
# ---------------------------------------------------------------------------

def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": True}


def test_unknown_route(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Route not found"}


# ---------------------------------------------------------------------------
# Session and role assignment
# ---------------------------------------------------------------------------

def test_assign_role_requires_session(client):
    response = client.post("/api/assign-role")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_assign_role_first_login_then_verified(client, identity):
    principal, token = identity.add_user(role=Role.UNSET)

    first = client.post("/api/assign-role", headers=auth_headers(token), json={"role": "admin"})
    assert first.status_code == 200
    assert first.json() == {"success": True, "role": "partner", "action": "assigned"}

    second = client.post("/api/assign-role", headers=auth_headers(token))
    assert second.json() == {"success": True, "role": "partner", "action": "verified"}
    assert identity.role_writes == [(principal.id, Role.PARTNER)]


def test_assign_role_leaves_admin_alone(client, identity):
    _, token = identity.add_user(role=Role.ADMIN)
    response = client.post("/api/assign-role", headers=auth_headers(token))
    assert response.json() == {"success": True, "role": "admin", "action": "rejected"}
    assert identity.role_writes == []


def test_token_with_bad_signature_is_rejected(client, identity):
    principal, _ = identity.add_user(role=Role.PARTNER)
    forged = make_token(principal.id, secret="not-the-secret")
    identity.tokens[forged] = principal.id

    response = client.get("/api/company", headers=auth_headers(forged))
    assert response.status_code == 401


def test_token_unknown_to_identity_service_is_rejected(client):
    response = client.get("/api/company", headers=auth_headers(make_token("ghost")))
    assert response.status_code == 401


def test_assign_role_verification_failure(client, identity):
    _, token = identity.add_user(role=Role.UNSET)
    identity.ignore_role_write = True

    response = client.post("/api/assign-role", headers=auth_headers(token))
    assert response.status_code == 500
    assert response.json() == {"error": "Role assignment verification failed"}


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------

def test_login_sets_cookie_usable_for_later_calls(client, identity):
    principal, _ = identity.add_user(email="p@example.com", role=Role.PARTNER, password="pw-123456")

    response = client.post("/api/login", json={"email": " P@example.com ", "password": "pw-123456"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "user_id": principal.id, "role": "partner"}
    assert "access_token" in response.cookies

    company = client.get("/api/company")
    assert company.status_code == 200
    assert company.json() == {"company": None, "hasMinimalData": False}

    client.post("/api/logout")
    assert client.get("/api/company").status_code == 401


def test_login_wrong_password_then_rate_limited(client, identity):
    identity.add_user(email="p@example.com", password="right-password")

    for _ in range(3):
        response = client.post("/api/login", json={"email": "p@example.com", "password": "wrong"})
        assert response.status_code == 401
        assert response.json()["error"].startswith("Invalid email or password")

    blocked = client.post("/api/login", json={"email": "p@example.com", "password": "right-password"})
    assert blocked.status_code == 429


def test_login_body_is_validated(client):
    response = client.post("/api/login", json={"email": "p@example.com"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request"}


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

def test_admin_routes_reject_partners(client, identity):
    _, token = _partner(identity)
    assert client.get("/api/admin/companies", headers=auth_headers(token)).status_code == 403
    response = client.post("/api/admin/create-user", headers=auth_headers(token), json={})
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}


def test_admin_routes_reject_anonymous(client):
    assert client.get("/api/admin/companies").status_code == 401


def test_admin_creates_partner_user(client, identity):
    _, token = identity.add_user(email="admin@example.com", role=Role.ADMIN)
    company_id = seed_company(name="C1")

    companies = client.get("/api/admin/companies", headers=auth_headers(token))
    assert companies.json() == {"companies": [{"id": company_id, "name": "C1"}]}

    response = client.post(
        "/api/admin/create-user",
        headers=auth_headers(token),
        json={"email": "new@example.com", "company_id": company_id, "role": "admin"},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    with SessionLocal() as session:
        member = session.query(CompanyMember).one()
        assert member.company_id == company_id
        assert member.role.value == "admin"
    assert identity.users[member.user_id].role is Role.PARTNER


def test_admin_create_user_generic_errors(client, identity):
    _, token = identity.add_user(email="admin@example.com", role=Role.ADMIN)

    for body in ({"email": "bad", "company_id": "x"}, [1, 2], {"email": "a@b.co"}):
        response = client.post("/api/admin/create-user", headers=auth_headers(token), json=body)
        assert response.status_code == 400
        assert response.json() == {"error": GENERIC_ERROR}


# ---------------------------------------------------------------------------
# Company profile
# ---------------------------------------------------------------------------

def test_company_profile_created_on_first_save(client, identity):
    principal, token = _partner(identity)
    body = {"name": "Tirana Car Hire", "email": "hello@tch.al", "phone": "+355 1"}

    created = client.put("/api/company", headers=auth_headers(token), json=body)
    assert created.status_code == 200
    payload = created.json()
    assert payload["hasMinimalData"] is True
    assert payload["company"]["owner_id"] == principal.id
    assert payload["company"]["verification_status"] == "pending"

    updated = client.put("/api/company", headers=auth_headers(token), json={**body, "phone": "+355 2"})
    assert updated.json()["company"]["phone"] == "+355 1"

    with SessionLocal() as session:
        assert session.query(Company).filter(Company.owner_id == principal.id).count() == 1


def test_company_profile_partial_save_keeps_omitted_fields(client, identity):
    principal, token = _partner(identity)
    seed_company(
        owner_id=principal.id,
        name="Old name",
        email="old@example.com",
        phone="+355 1",
        city="Tirana",
        description="Old desc",
    )

    response = client.put(
        "/api/company",
        headers=auth_headers(token),
        json={"name": "New name", "email": "new@example.com", "phone": "+355 9"},
    )
    assert response.status_code == 200
    company = response.json()["company"]
    assert company["name"] == "New name"
    assert company["city"] == "Tirana"
    assert company["description"] == "Old desc"
    assert company["phone"] == "+355 1"


def test_company_profile_requires_fields(client, identity):
    _, token = _partner(identity)
    response = client.put("/api/company", headers=auth_headers(token), json={"name": "x", "email": "a@b.co", "phone": " "})
    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------

def test_payout_with_invoice(client, identity, storage):
    principal, token = _partner(identity)
    company_id = seed_company(owner_id=principal.id, balance="100.00")

    response = _upload_payout(client, token)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True

    balance = client.get("/api/payouts/balance", headers=auth_headers(token)).json()
    assert Decimal(balance["availableBalance"]) == Decimal("75.00")

    payouts = client.get("/api/payouts", headers=auth_headers(token)).json()["payouts"]
    assert [p["id"] for p in payouts] == [body["payoutId"]]
    assert payouts[0]["status"] == "pending"
    assert payouts[0]["company_id"] == company_id
    assert payouts[0]["invoice_url"] in storage.blobs


def test_payout_without_invoice(client, identity, storage):
    principal, token = _partner(identity)
    seed_company(owner_id=principal.id, balance="10.00")

    response = client.post("/api/payouts", data={"amount": "10"}, headers=auth_headers(token))
    assert response.status_code == 200
    assert storage.blobs == {}


def test_payout_exceeding_balance(client, identity):
    principal, token = _partner(identity)
    company_id = seed_company(owner_id=principal.id, balance="500.00")

    assert client.post("/api/payouts", data={"amount": "500.00"}, headers=auth_headers(token)).status_code == 200
    response = client.post("/api/payouts", data={"amount": "0.01"}, headers=auth_headers(token))
    assert response.status_code == 400
    assert response.json() == {"error": "Payout exceeds available balance."}

    with SessionLocal() as session:
        assert Decimal(str(session.get(Company, company_id).available_balance)) == Decimal("0")
        assert session.query(PayoutRequest).count() == 1


def test_payout_without_company(client, identity):
    _, token = _partner(identity)
    response = client.post("/api/payouts", data={"amount": "5"}, headers=auth_headers(token))
    assert response.status_code == 404
    assert response.json() == {"error": "No company linked to your account. Complete profile setup first."}


def test_payout_rejects_bad_file_type(client, identity, storage):
    principal, token = _partner(identity)
    seed_company(owner_id=principal.id, balance="100.00")

    response = _upload_payout(client, token, filename="a.gif", content_type="image/gif")
    assert response.status_code == 400
    assert storage.blobs == {}


def test_balance_is_zero_without_company(client, identity):
    _, token = _partner(identity)
    response = client.get("/api/payouts/balance", headers=auth_headers(token))
    assert response.status_code == 200
    assert Decimal(response.json()["availableBalance"]) == 0


def test_invoice_proxy_and_signed_url_are_owner_only(client, identity, storage):
    owner, owner_token = _partner(identity, "owner@example.com")
    _, other_token = _partner(identity, "other@example.com")
    seed_company(owner_id=owner.id, balance="100.00")
    _upload_payout(client, owner_token)
    key = next(iter(storage.blobs))

    proxied = client.get("/api/payouts/invoice", params={"path": key}, headers=auth_headers(owner_token))
    assert proxied.status_code == 200
    assert proxied.content == b"%PDF-1.4 test"
    assert proxied.headers["content-type"] == "application/pdf"

    assert client.get("/api/payouts/invoice", params={"path": key}, headers=auth_headers(other_token)).status_code == 403
    assert client.get("/api/payouts/invoice", params={"path": key}).status_code == 401

    signed = client.get("/api/payouts/invoice/signed-url", params={"path": key}, headers=auth_headers(owner_token))
    assert signed.status_code == 200
    url = signed.json()["url"]
    assert signed.json()["expires_in"] == 3600

    # The signed URL maps back to the same key for the owner and nobody else
    again = client.get("/api/payouts/invoice", params={"path": url}, headers=auth_headers(owner_token))
    assert again.status_code == 200
    denied = client.get("/api/payouts/invoice/signed-url", params={"path": url}, headers=auth_headers(other_token))
    assert denied.status_code == 403


def test_invoice_proxy_rejects_bad_paths(client, identity):
    principal, token = _partner(identity)
    for path in (None, "", f"{principal.id}/../x/a.pdf"):
        params = {"path": path} if path is not None else {}
        response = client.get("/api/payouts/invoice", params=params, headers=auth_headers(token))
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid path"}


def test_invoice_proxy_missing_file(client, identity):
    principal, token = _partner(identity)
    response = client.get(
        "/api/payouts/invoice", params={"path": f"{principal.id}/missing.pdf"}, headers=auth_headers(token)
    )
    assert response.status_code == 404
    assert response.json() == {"error": "File not found"}


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

def test_forgot_password_same_answer_for_known_and_unknown(client, identity):
    identity.add_user(email="p@example.com")

    known = client.post("/api/forgot-password", json={"email": "P@example.com"})
    unknown = client.post("/api/forgot-password", json={"email": "nobody@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert known.json()["message"].startswith("If an account exists")
    assert identity.reset_requests[0] == ("p@example.com", "http://localhost:3000/auth/callback")


def test_forgot_password_rejects_malformed_email(client, identity):
    response = client.post("/api/forgot-password", json={"email": "not-an-email"})
    assert response.status_code == 400
    assert response.json() == {"error": "Please enter a valid email address."}
    assert identity.reset_requests == []


def test_forgot_password_reports_connection_problem(client, identity):
    identity.reset_error = UpstreamTimeout(detail="read timed out")
    response = client.post("/api/forgot-password", json={"email": "p@example.com"})
    assert response.status_code == 502
    assert response.json()["error"].startswith("Connection couldn't be made")


def test_forgot_password_is_rate_limited(client):
    for _ in range(3):
        assert client.post("/api/forgot-password", json={"email": "p@example.com"}).status_code == 200
    assert client.post("/api/forgot-password", json={"email": "p@example.com"}).status_code == 429
