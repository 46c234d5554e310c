import os

# Must be set before shipquote builds its engine and settings
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "unit-test-secret-with-at-least-32-bytes"
os.environ["LOOKUP_RETRY_BACKOFF_SECONDS"] = "0"
os.environ.pop("REDIS_URL", None)

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from shipquote.auth_local import CredentialService, hash_password
from shipquote.core_settings import get_settings
from shipquote.domain.models import Base, Tariff, User
from shipquote.infrastructure import db as db_module
from shipquote.infrastructure.cache import CacheLayer, LocalCacheStore, TokenRevocationSet, get_cache_store
from shipquote.infrastructure.db import get_db

PASSWORD = "s3cret-pass"


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db_session():
    Base.metadata.create_all(db_module.engine)
    session = db_module.SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(db_module.engine)


@pytest.fixture
def cache_store():
    return LocalCacheStore()


@pytest.fixture
def cache(cache_store, settings):
    return CacheLayer(cache_store, settings)


@pytest.fixture
def credentials(cache_store, settings):
    return CredentialService(TokenRevocationSet(cache_store), settings)


@pytest.fixture
def tariff(db_session):
    route = Tariff(origin="Bogota", destination="Medellin", price_per_kg=Decimal("200.00"))
    db_session.add(route)
    db_session.commit()
    return route


def make_user(db_session, email="ana@example.com"):
    user = User(
        nickname=email.split("@")[0],
        names="Ana",
        lastnames="Perez",
        email=email,
        password_hash=hash_password(PASSWORD, rounds=4),
        city="Bogota",
        phone="3001234567",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def user(db_session):
    return make_user(db_session)


@pytest.fixture
def other_user(db_session):
    return make_user(db_session, email="luis@example.com")


@pytest.fixture
def client(db_session, cache_store):
    from shipquote.main import app

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_cache_store] = lambda: cache_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user, credentials):
    return {"Authorization": f"Bearer {credentials.issue_token(user.id)}"}


@pytest.fixture
def shipment_payload():
    return {
        "weight": "2.5",
        "length": "30",
        "width": "20",
        "height": "15",
        "origin": "Bogota",
        "destination": "Medellin",
        "quotedPrice": "800",
    }
