"""
Pytest fixtures: a fresh in-memory database per test, a Flask test client and
helpers to register accounts and build bearer headers.
"""
import os
import tempfile

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "primeearn-test-logs"))
os.environ.setdefault("FLASK_ENV", "testing")

import pytest

from app import create_app
from config import TestingConfig
from extensions import db
from models import Account


API = TestingConfig.API_PREFIX

REGISTRATION = {
    "name": "Ada Obi",
    "email": "ada@example.com",
    "phone": "08030000000",
    "password": "secret123",
    "referralCode": "earn800",
}


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    """Pushed application context for tests that talk to the models directly."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def lifecycle(app_ctx):
    return app_ctx.extensions["account_lifecycle"]


@pytest.fixture
def account(lifecycle):
    """Registered, non-premium account with the welcome balance."""
    account, _ = lifecycle.register(**{
        "name": REGISTRATION["name"],
        "email": REGISTRATION["email"],
        "phone": REGISTRATION["phone"],
        "password": REGISTRATION["password"],
        "referral_code": REGISTRATION["referralCode"],
    })
    return account


@pytest.fixture
def premium_account(lifecycle, account):
    lifecycle.upgrade_to_premium(account.id, "receipt-001")
    return db.session.get(Account, account.id)


def fund(account, balance):
    account.balance = balance
    db.session.commit()
    return account


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token(client):
    response = client.post(f"{API}/register", json=REGISTRATION)
    assert response.status_code == 201
    return response.get_json()["token"]


@pytest.fixture
def headers(token):
    return auth_headers(token)
