from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from academy.admin.auth import create_access_token
from academy.core.config import Config
from academy.core.database import AppContext
from academy.main import create_app
from academy.notifications.mailer import EmailResult

TEST_ENV = {
    "MONGODB_URI": "mongodb://localhost:27017",
    "MONGODB_DB": "academy_test",
    "REMOTE_MONGODB_URI": "mongodb://remote.invalid:27017",
    "JWT_SECRET": "test-secret",
    "PASSWORD_STRATEGY": "random",
}


class FakeMailer:
    """Records every send; set fail_with / raise_error to simulate outages"""

    def __init__(self):
        self.sent = []
        self.fail_with = None
        self.raise_error = None

    async def send(self, to, subject, text, html):
        if self.raise_error is not None:
            raise self.raise_error
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})
        if self.fail_with:
            return EmailResult(ok=False, error=self.fail_with)
        return EmailResult(ok=True, message_id=f"msg-{len(self.sent)}", status_code=202)


def make_config(**overrides):
    return Config({**TEST_ENV, **overrides})


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def ctx(config, mailer):
    client = AsyncMongoMockClient()
    return AppContext(
        config,
        db=client[config.MONGODB_DB],
        remote_db=client["remote_users"],
        mailer=mailer,
    )


@pytest.fixture
def client(ctx):
    with TestClient(create_app(ctx)) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(config):
    token = create_access_token(config, "admin-1", "admin@rhinogeeks.com", "admin", "Admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(config):
    token = create_access_token(config, "user-1", "someone@example.com", "user", "Someone")
    return {"Authorization": f"Bearer {token}"}


async def insert_promo(db, code="SAVE20", discount_type="percent", amount=20, **extra):
    doc = {
        "code": code,
        "discountType": discount_type,
        "amount": amount,
        "active": True,
        "expiresAt": None,
        "usesCount": 0,
        "createdAt": datetime.utcnow(),
        **extra,
    }
    await db.promocodes.insert_one(doc)
    return doc


def yesterday():
    return datetime.utcnow() - timedelta(days=1)
