"""
Pytest configuration and shared fixtures.
"""
import os

# Settings are read once at import time, so the environment is set first.
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["PAYSTACK_SECRET_KEY"] = "test-paystack-secret"
os.environ["REMITA_MERCHANT_ID"] = "2547916"
os.environ["REMITA_API_KEY"] = "1946"
os.environ["REMITA_SERVICE_TYPE_ID"] = "4430731"
os.environ["EMAILS_ENABLED"] = "false"

import hashlib
import hmac
import json

import pytest
from fastapi.testclient import TestClient
from remie.core.security import create_access_token
from remie.database import Base, SessionLocal, engine, get_db
from remie.main import app
from remie.models.user import UserRole, UserStatus
from remie.services.user_service import UserService


@pytest.fixture(scope="function")
def test_db():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(test_db):
    """
    Create a test client with database dependency override.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(test_db):
    """
    Factory for users with a wallet, optionally pre-funded.
    """
    counter = {"n": 0}

    def _make_user(
            email=None,
            password="password123",
            role=UserRole.STUDENT,
            status=UserStatus.ACTIVE,
            balance=0.0,
            **profile,
    ):
        counter["n"] += 1
        user = UserService.create_user(
            test_db,
            email=email or f"student{counter['n']}@example.com",
            password=password,
            first_name=profile.pop("first_name", "Student"),
            last_name=profile.pop("last_name", str(counter["n"])),
            role=role,
            user_status=status,
            **profile,
        )
        if balance:
            user.wallet.credit(balance)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make_user


def auth_headers_for(user):
    token = create_access_token(data={
        "sub": user.id,
        "user_id": user.id,
        "email": user.email,
        "role": user.role.value,
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student(make_user):
    return make_user(email="ada@example.com", first_name="Ada", last_name="Obi", balance=20000.0)


@pytest.fixture
def student_headers(student):
    return auth_headers_for(student)


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", first_name="Admin", last_name="User", role=UserRole.ADMIN)


@pytest.fixture
def admin_headers(admin):
    return auth_headers_for(admin)


def sign_paystack(payload: dict):
    """
    Serialize a webhook payload and sign it the way Paystack does.
    """
    body = json.dumps(payload).encode()
    signature = hmac.new(b"test-paystack-secret", body, hashlib.sha512).hexdigest()
    return body, {"x-paystack-signature": signature, "Content-Type": "application/json"}


@pytest.fixture
def headers_for():
    return auth_headers_for


@pytest.fixture
def paystack_signed():
    return sign_paystack
