"""In-memory implementations of UserStore and CountryStore for testing."""

import threading
from typing import Dict, Iterable, List, Optional

from .errors import ConstraintViolation, NotFound
from .models import Country, User, utcnow
from .repository import new_public_id


def _detached_copy(row):
    """Fresh copy of a mapped row so callers cannot mutate what the store holds."""
    model = type(row)
    return model(**{c.name: getattr(row, c.name) for c in model.__table__.columns})


class InMemoryUserStore:
    def __init__(self):
        self.rows: Dict[int, User] = {}
        self._next_id = 1
        # Guards rows for readers and stands in for the database's unique index
        self._lock = threading.Lock()

    def _email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        return any(
            u.email == email and not u.is_deleted and u.id != exclude_id
            for u in self.rows.values()
        )

    # ── write operations ─────────────────────────────────────

    def create_user(self, user: User) -> User:
        with self._lock:
            if self._email_taken(user.email):
                raise ConstraintViolation("email uniqueness constraint violated")

            now = utcnow()
            user.id = self._next_id
            user.uuid = new_public_id()
            user.phone = user.phone or ""
            user.created_at = now
            user.updated_at = now
            user.deleted_at = None
            self._next_id += 1
            self.rows[user.id] = _detached_copy(user)
        return user

    def update_user(self, user: User) -> User:
        with self._lock:
            row = self.rows.get(user.id)
            if row is None or row.is_deleted:
                raise NotFound("user not found")
            if self._email_taken(user.email, exclude_id=user.id):
                raise ConstraintViolation("email uniqueness constraint violated")

            row.email = user.email
            row.password = user.password
            row.name = user.name
            row.phone = user.phone or ""
            row.mobile_country_id = user.mobile_country_id
            row.updated_at = utcnow()
            return _detached_copy(row)

    def soft_delete_user(self, user_id: int) -> None:
        with self._lock:
            row = self.rows.get(user_id)
            if row is None or row.is_deleted:
                raise NotFound("user not found")
            now = utcnow()
            row.deleted_at = now
            row.updated_at = now

    # ── read operations ──────────────────────────────────────

    def _find(self, predicate) -> User:
        with self._lock:
            for user in self.rows.values():
                if not user.is_deleted and predicate(user):
                    return _detached_copy(user)
        raise NotFound("user not found")

    def find_user_by_email(self, email: str) -> User:
        return self._find(lambda u: u.email == email)

    def find_user_by_id(self, user_id: int) -> User:
        return self._find(lambda u: u.id == user_id)

    def find_user_by_public_id(self, public_id: str) -> User:
        return self._find(lambda u: u.uuid == public_id)


class InMemoryCountryStore:
    def __init__(self, countries: Iterable[Country] = ()):
        self.rows: Dict[int, Country] = {c.id: _detached_copy(c) for c in countries}

    def find_country_by_short_code(self, code: str) -> Country:
        for country in self.rows.values():
            if country.shortname == code:
                return _detached_copy(country)
        raise NotFound(f"country {code!r} not found")

    def find_country_by_id(self, country_id: int) -> Country:
        country = self.rows.get(country_id)
        if country is None:
            raise NotFound(f"country {country_id} not found")
        return _detached_copy(country)

    def list_countries(self) -> List[Country]:
        return [_detached_copy(c) for c in sorted(self.rows.values(), key=lambda c: c.name or "")]
