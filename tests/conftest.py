import base64
import os
import time
import uuid

# Must be set before the app modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_AUDIENCE"] = "authenticated"
os.environ["AUTH_URL"] = "http://auth.test"
os.environ["SITE_URL"] = "http://localhost:3000"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["SESSION_COOKIE_SECURE"] = "false"
os.environ["AZURE_STORAGE_ACCOUNT"] = "testaccount"
os.environ["AZURE_STORAGE_KEY"] = base64.b64encode(b"k" * 32).decode()

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from azure_blob import build_invoice_key
from database import SessionLocal, engine, get_session_context
from dependencies import get_identity_service, get_invoice_storage, get_rate_limiter
from exceptions import NotFound
from main import app
from models import Base, Company
from schemas.auth import Principal, Role
from services.identity_service import IdentityServiceError
from services.rate_limiter import InMemoryCounterStore, RateLimiter


def make_token(user_id: str, secret: str = "test-secret", expires_in: int = 3600) -> str:
    return jwt.encode(
        {"sub": user_id, "aud": "authenticated", "exp": int(time.time()) + expires_in},
        secret,
        algorithm="HS256",
    )


class FakeIdentityService:
    """In-memory stand-in for the auth server."""

    def __init__(self):
        self.users = {}
        self.passwords = {}
        self.tokens = {}
        self.deleted = []
        self.invited = []
        self.role_writes = []
        self.fail_role_write = False
        self.fail_delete = False
        self.ignore_role_write = False
        self.reset_requests = []
        self.reset_error = None

    def add_user(self, email="partner@example.com", role=Role.UNSET, password="secret-pass"):
        user_id = str(uuid.uuid4())
        self.users[user_id] = Principal(id=user_id, email=email, role=role)
        self.passwords[email] = (user_id, password)
        token = make_token(user_id)
        self.tokens[token] = user_id
        return self.users[user_id], token

    def get_user(self, access_token):
        user_id = self.tokens.get(access_token)
        if user_id is None or user_id not in self.users:
            raise IdentityServiceError(401, "bad_jwt", "invalid JWT")
        return self.users[user_id]

    def sign_in(self, email, password):
        entry = self.passwords.get(email)
        if entry is None or entry[1] != password:
            raise IdentityServiceError(400, "invalid_credentials", "Invalid login credentials")
        user_id = entry[0]
        token = make_token(user_id)
        self.tokens[token] = user_id
        user = self.users[user_id]
        return {
            "access_token": token,
            "expires_in": 3600,
            "user": {"id": user.id, "email": user.email, "app_metadata": {"role": user.role.claim}},
        }

    def send_password_reset(self, email, redirect_to=None):
        self.reset_requests.append((email, redirect_to))
        if self.reset_error is not None:
            raise self.reset_error
        if email not in self.passwords:
            raise IdentityServiceError(404, "user_not_found", "User not found")

    def get_user_by_id(self, user_id):
        return self.users[user_id]

    def set_role_claim(self, user_id, role):
        self.role_writes.append((user_id, role))
        if self.fail_role_write:
            raise IdentityServiceError(500, "unexpected_failure", "database error updating user")
        if not self.ignore_role_write:
            self.users[user_id] = self.users[user_id].model_copy(update={"role": role})
        return self.users[user_id]

    def invite_user(self, email):
        if any(user.email == email for user in self.users.values()):
            raise IdentityServiceError(422, "email_exists", "A user with this email address has already been registered")
        principal, _ = self.add_user(email=email)
        self.invited.append(principal.id)
        return principal

    def delete_user(self, user_id):
        if self.fail_delete:
            raise IdentityServiceError(500, "unexpected_failure", "delete failed")
        self.deleted.append(user_id)
        self.users.pop(user_id, None)


class FakeInvoiceStorage:
    container = "invoices"

    def __init__(self):
        self.blobs = {}

    def build_invoice_key(self, owner_id, filename):
        return build_invoice_key(owner_id, filename)

    def upload(self, key, data, content_type):
        self.blobs[key] = (data, content_type)
        return key

    def download(self, key):
        if key not in self.blobs:
            raise NotFound("File not found")
        return self.blobs[key][0]

    def delete(self, key):
        self.blobs.pop(key, None)

    def signed_url(self, key, ttl_seconds=3600):
        return f"https://testaccount.blob.core.windows.net/{self.container}/{key}?se={ttl_seconds}&sp=r&sig=fake"


def seed_company(owner_id=None, balance="0", name="Acme Rentals", **fields):
    """Insert a company in its own committed session; returns its id."""
    with get_session_context() as session:
        company = Company(
            name=name,
            owner_id=owner_id,
            available_balance=Decimal(balance),
            **fields,
        )
        session.add(company)
        session.flush()
        company_id = company.id
    return company_id


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def identity():
    return FakeIdentityService()


@pytest.fixture
def storage():
    return FakeInvoiceStorage()


@pytest.fixture
def limiter():
    return RateLimiter(InMemoryCounterStore())


@pytest.fixture
def client(identity, storage, limiter):
    app.dependency_overrides[get_identity_service] = lambda: identity
    app.dependency_overrides[get_invoice_storage] = lambda: storage
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
