# tests/conftest.py
# Общие фикстуры: SQLite в памяти, записывающий транспорт уведомлений, управляемые часы.
import os
import re
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from foodmandu.api.deps import get_clock, get_notifier
from foodmandu.core.clock import utcnow
from foodmandu.core.config import AuthConfig
from foodmandu.core.security import get_auth_config
from foodmandu.db.base import Base
from foodmandu.db.session import get_db
from foodmandu.main import app
from foodmandu.models.account import Account
from foodmandu.services.credentials import CredentialService
from foodmandu.services.notifications import Notifier

OTP_RE = re.compile(r"\b(\d{6})\b")


class RecordingTransport:
    """Запоминает сообщения; при fail=True имитирует сбой провайдера."""

    def __init__(self):
        self.sms = []
        self.emails = []
        self.fail = False

    def send_sms(self, to, body):
        if self.fail:
            raise RuntimeError("sms provider down")
        self.sms.append((to, body))

    def send_email(self, to, subject, html):
        if self.fail:
            raise RuntimeError("email provider down")
        self.emails.append((to, subject, html))

    def last_sms_code(self):
        return OTP_RE.search(self.sms[-1][1]).group(1)

    def last_email_code(self):
        return OTP_RE.search(self.emails[-1][2]).group(1)


class FakeClock:
    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def notifier(transport):
    return Notifier(transport, transport, app_name="FoodMandu AI", frontend_url="http://frontend.test")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return AuthConfig(secret_key="test-secret")


@pytest.fixture
def service(db, config, notifier, clock):
    return CredentialService(db, config, notifier, clock=clock)


@pytest.fixture
def make_client(session_factory, config, notifier, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_auth_config] = lambda: config

    def _make(**kwargs):
        return TestClient(app, **kwargs)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def fetch_account(session_factory):
    """Читает запись свежей сессией, мимо кеша сессии запроса."""
    def _fetch(email):
        session = session_factory()
        try:
            return session.query(Account).filter(Account.email == email).first()
        finally:
            session.close()
    return _fetch
