"""
Tests for AccountService business rules, run against the in-memory stores.
"""
import threading
from datetime import datetime, timedelta, timezone

import pytest

from account_platform.account_platform.account_service.errors import (
    DuplicateEmail,
    HashingFailure,
    InvalidCredentials,
    NotFound,
    StoreError,
    StoreFailure,
    TokenExpired,
    ValidationError,
)
from account_platform.account_platform.account_service.memory_store import InMemoryUserStore
from account_platform.account_platform.account_service.repository import SqlCountryStore, SqlUserStore
from account_platform.account_platform.account_service.schemas import SignInRequest, SignUpRequest
from account_platform.account_platform.account_service.service import (
    SIGNIN_MESSAGE,
    SIGNUP_MESSAGE,
    AccountService,
    format_timestamp,
)


def signup_request(email="a@b.com", password="secret1", name="A", **extra):
    return SignUpRequest(email=email, password=password, name=name, **extra)


class RacingUserStore(InMemoryUserStore):
    """Never sees existing rows on lookup, as if another request inserted in between."""

    def find_user_by_email(self, email):
        raise NotFound("user not found")


class BrokenUserStore(InMemoryUserStore):
    def find_user_by_email(self, email):
        raise StoreError("connection reset")


def test_sign_up_returns_user_and_token(account_service, token_service):
    result = account_service.sign_up(signup_request(phone="555-0100"))

    assert result.message == SIGNUP_MESSAGE
    assert result.user.email == "a@b.com"
    assert result.user.name == "A"
    assert result.user.phone == "555-0100"
    assert result.user.created_at.endswith("Z")
    assert "password" not in result.model_dump()["user"]

    claims = token_service.verify(result.token)
    assert claims.subject == result.user.uuid


def test_sign_up_stores_verifiable_hash(account_service, user_store, hasher):
    account_service.sign_up(signup_request(password="secret1"))

    stored = user_store.find_user_by_email("a@b.com")
    assert stored.password != "secret1"
    assert hasher.verify_password("secret1", stored.password)
    assert not hasher.verify_password("secret2", stored.password)


def test_sign_up_duplicate_email(account_service):
    account_service.sign_up(signup_request())
    with pytest.raises(DuplicateEmail) as exc_info:
        account_service.sign_up(signup_request(name="B"))
    assert exc_info.value.message == "email already registered"


def test_sign_up_constraint_violation_maps_to_duplicate(country_store, token_service, hasher):
    store = RacingUserStore()
    service = AccountService(store, country_store, token_service, hasher)

    service.sign_up(signup_request())
    # The lookup misses, so only the store's uniqueness check stops the second insert
    with pytest.raises(DuplicateEmail):
        service.sign_up(signup_request())
    assert len(store.rows) == 1


def test_concurrent_sign_ups_exactly_one_wins(account_service):
    barrier = threading.Barrier(8)
    outcomes = []
    lock = threading.Lock()

    def attempt():
        barrier.wait()
        try:
            account_service.sign_up(signup_request(email="race@example.com"))
            result = "ok"
        except DuplicateEmail:
            result = "duplicate"
        except Exception as e:  # pragma: no cover - reported through the assertion
            result = repr(e)
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("duplicate") == 7


def test_concurrent_sign_ups_against_sqlite_file(tmp_path, token_service, hasher):
    from account_platform.account_platform.account_service.db import Database

    database = Database(f"sqlite:///{tmp_path / 'race.db'}")
    database.init_db()
    service = AccountService(SqlUserStore(database), SqlCountryStore(database), token_service, hasher)

    barrier = threading.Barrier(4)
    outcomes = []
    lock = threading.Lock()

    def attempt():
        barrier.wait()
        try:
            service.sign_up(signup_request(email="race@example.com"))
            result = "ok"
        except DuplicateEmail:
            result = "duplicate"
        except Exception as e:  # pragma: no cover - reported through the assertion
            result = repr(e)
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    database.dispose()

    assert sorted(outcomes) == ["duplicate", "duplicate", "duplicate", "ok"]


def test_sign_up_with_known_country_links_it(account_service, user_store):
    account_service.sign_up(signup_request(country="GB"))
    assert user_store.find_user_by_email("a@b.com").mobile_country_id == 2


def test_sign_up_with_unknown_country_still_succeeds(account_service, user_store):
    result = account_service.sign_up(signup_request(country="ZZ"))
    assert result.user.email == "a@b.com"
    assert user_store.find_user_by_email("a@b.com").mobile_country_id is None


@pytest.mark.parametrize("field, value", [
    ("password", "12345"),
    ("password", "x" * 1025),
    ("name", "   "),
    ("email", ""),
])
def test_sign_up_boundary_validation(account_service, field, value):
    # model_construct skips pydantic so the service's own checks are exercised
    data = {"email": "a@b.com", "password": "secret1", "name": "A", "phone": "", "country": ""}
    data[field] = value
    with pytest.raises(ValidationError):
        account_service.sign_up(SignUpRequest.model_construct(**data))


def test_sign_up_store_failure_is_opaque(country_store, token_service, hasher):
    service = AccountService(BrokenUserStore(), country_store, token_service, hasher)
    with pytest.raises(StoreFailure) as exc_info:
        service.sign_up(signup_request())
    assert exc_info.value.to_dict() == {"error": "internal server error"}


def test_sign_up_hashing_failure(account_service, monkeypatch):
    def boom(password):
        raise HashingFailure("failed to process password")

    monkeypatch.setattr(account_service.hasher, "hash_password", boom)
    with pytest.raises(HashingFailure):
        account_service.sign_up(signup_request())


def test_sign_in_success(account_service, token_service):
    signed_up = account_service.sign_up(signup_request())
    result = account_service.sign_in(SignInRequest(email="a@b.com", password="secret1"))

    assert result.message == SIGNIN_MESSAGE
    assert result.user.uuid == signed_up.user.uuid
    assert result.user.created_at == signed_up.user.created_at
    assert token_service.verify(result.token).subject == signed_up.user.uuid


def test_sign_in_token_rejected_after_expiry(account_service, token_service):
    account_service.sign_up(signup_request())
    result = account_service.sign_in(SignInRequest(email="a@b.com", password="secret1"))

    later = datetime.now(timezone.utc) + timedelta(minutes=61)
    with pytest.raises(TokenExpired):
        token_service.verify(result.token, now=later)


def test_sign_in_wrong_password_and_unknown_email_are_identical(account_service):
    account_service.sign_up(signup_request())

    with pytest.raises(InvalidCredentials) as wrong_password:
        account_service.sign_in(SignInRequest(email="a@b.com", password="wrong-password"))
    with pytest.raises(InvalidCredentials) as unknown_email:
        account_service.sign_in(SignInRequest(email="nobody@b.com", password="secret1"))

    assert type(wrong_password.value) is type(unknown_email.value)
    assert wrong_password.value.to_dict() == unknown_email.value.to_dict()
    assert wrong_password.value.status_code == unknown_email.value.status_code == 401


def test_sign_in_unknown_email_still_hashes(account_service, monkeypatch):
    calls = []
    monkeypatch.setattr(account_service.hasher, "dummy_verify", lambda: calls.append(1))
    with pytest.raises(InvalidCredentials):
        account_service.sign_in(SignInRequest(email="nobody@b.com", password="secret1"))
    assert calls == [1]


def test_sign_in_deleted_user_is_invalid(account_service, user_store):
    account_service.sign_up(signup_request())
    user_store.soft_delete_user(user_store.find_user_by_email("a@b.com").id)
    with pytest.raises(InvalidCredentials):
        account_service.sign_in(SignInRequest(email="a@b.com", password="secret1"))


def test_get_profile_includes_country(account_service):
    signed_up = account_service.sign_up(signup_request(country="JP"))
    profile = account_service.get_profile(signed_up.user.uuid)

    assert profile.user.uuid == signed_up.user.uuid
    assert profile.user.country is not None
    assert profile.user.country.shortname == "JP"
    assert profile.user.country.currency_code == "JPY"


def test_get_profile_without_country(account_service):
    signed_up = account_service.sign_up(signup_request())
    assert account_service.get_profile(signed_up.user.uuid).user.country is None


def test_get_profile_unknown_user(account_service):
    with pytest.raises(NotFound):
        account_service.get_profile("00000000-0000-0000-0000-000000000000")


def test_format_timestamp_naive_is_utc():
    assert format_timestamp(datetime(2024, 12, 5, 8, 0, 0)) == "2024-12-05T08:00:00Z"
    aware = datetime(2024, 12, 5, 10, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(aware) == "2024-12-05T08:00:00Z"
