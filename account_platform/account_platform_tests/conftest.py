"""
Shared fixtures: an in-memory SQLite database, the FastAPI app built on it,
and in-memory store doubles for service-level tests.
"""
import pytest
from fastapi.testclient import TestClient

from account_platform.account_platform.account_service.auth import PasswordHasher
from account_platform.account_platform.account_service.config import Settings
from account_platform.account_platform.account_service.db import Base, Database
from account_platform.account_platform.account_service.main import create_app
from account_platform.account_platform.account_service.memory_store import (
    InMemoryCountryStore,
    InMemoryUserStore,
)
from account_platform.account_platform.account_service.models import Country
from account_platform.account_platform.account_service.service import AccountService
from account_platform.account_platform.account_service.tokens import TokenService

TEST_SECRET = "test-signing-secret-0123456789abcdef"
TEST_HASH_ROUNDS = 1000


def make_countries():
    return [
        Country(id=1, name="United States", shortname="US", currency_code="USD", currency_symbol="$"),
        Country(id=2, name="United Kingdom", shortname="GB", currency_code="GBP", currency_symbol="£"),
        Country(id=3, name="Japan", shortname="JP", currency_code="JPY", currency_symbol="¥"),
    ]


def seed_countries(database: Database) -> None:
    with database.session() as db:
        db.add_all(make_countries())
        db.commit()


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        JWT_SECRET=TEST_SECRET,
        PASSWORD_HASH_ROUNDS=TEST_HASH_ROUNDS,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def database(settings):
    db = Database.from_settings(settings)
    db.init_db()
    seed_countries(db)
    yield db
    Base.metadata.drop_all(bind=db.engine)
    db.dispose()


@pytest.fixture
def client(settings, database):
    app = create_app(settings=settings, database=database)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def token_service():
    return TokenService(TEST_SECRET)


@pytest.fixture
def hasher():
    return PasswordHasher(TEST_HASH_ROUNDS)


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def country_store():
    return InMemoryCountryStore(make_countries())


@pytest.fixture
def account_service(user_store, country_store, token_service, hasher):
    return AccountService(user_store, country_store, token_service, hasher)
