"""
Account Store: repository protocols and their SQLAlchemy implementations.

AccountService depends only on the UserStore / CountryStore protocols, so a
test double (see memory_store.py) can stand in for the SQL adapters.
"""
from contextlib import contextmanager
from typing import Iterator, List, Protocol
import logging
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .db import Database
from .errors import ConstraintViolation, NotFound, StoreError
from .models import Country, User, utcnow

logger = logging.getLogger(__name__)


class UserStore(Protocol):
    """Protocol defining the interface for user data access."""

    def create_user(self, user: User) -> User:
        """Insert a new user and assign its public identifier.
        Raise ConstraintViolation if the email is already used by an active user."""
        ...

    def find_user_by_email(self, email: str) -> User:
        """Return the active user with this email. Raise NotFound otherwise."""
        ...

    def find_user_by_id(self, user_id: int) -> User:
        """Return the active user with this internal key. Raise NotFound otherwise."""
        ...

    def find_user_by_public_id(self, public_id: str) -> User:
        """Return the active user with this public identifier. Raise NotFound otherwise."""
        ...

    def update_user(self, user: User) -> User:
        """Persist the mutable fields of an active user. The public identifier never changes."""
        ...

    def soft_delete_user(self, user_id: int) -> None:
        """Mark an active user as deleted. Raise NotFound if there is none."""
        ...


class CountryStore(Protocol):
    """Protocol defining read-only access to country reference data."""

    def find_country_by_short_code(self, code: str) -> Country:
        """Return the country with this short code (e.g. "US"). Raise NotFound otherwise."""
        ...

    def find_country_by_id(self, country_id: int) -> Country:
        """Return the country with this key. Raise NotFound otherwise."""
        ...

    def list_countries(self) -> List[Country]:
        """Return all countries ordered by name."""
        ...


def new_public_id() -> str:
    return str(uuid.uuid4())


def _is_email_conflict(exc: IntegrityError) -> bool:
    detail = str(exc.orig).lower()
    return "email" in detail or "uq_users_email_active" in detail


@contextmanager
def _translate_errors(db: Session, operation: str) -> Iterator[None]:
    """Roll back and convert SQLAlchemy errors into store errors."""
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        if _is_email_conflict(e):
            raise ConstraintViolation(
                "email uniqueness constraint violated", details={"operation": operation}
            ) from e
        logger.error(f"Integrity error during {operation}: {e.orig}")
        raise StoreError(f"{operation} failed", details={"operation": operation}) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage error during {operation}: {e}")
        raise StoreError(f"{operation} failed", details={"operation": operation}) from e


def _active_users(db: Session):
    return db.query(User).filter(User.deleted_at.is_(None))


class SqlUserStore:
    def __init__(self, database: Database):
        self.database = database

    # ── write operations ─────────────────────────────────────

    def create_user(self, user: User) -> User:
        now = utcnow()
        user.uuid = new_public_id()
        user.created_at = now
        user.updated_at = now
        user.deleted_at = None
        if user.phone is None:
            user.phone = ""

        with self.database.session() as db:
            with _translate_errors(db, "create_user"):
                db.add(user)
                db.commit()
                db.refresh(user)
                db.expunge(user)
        return user

    def update_user(self, user: User) -> User:
        with self.database.session() as db:
            with _translate_errors(db, "update_user"):
                row = _active_users(db).filter(User.id == user.id).first()
                if row is None:
                    raise NotFound("user not found")
                row.email = user.email
                row.password = user.password
                row.name = user.name
                row.phone = user.phone or ""
                row.mobile_country_id = user.mobile_country_id
                row.updated_at = utcnow()
                db.commit()
                db.refresh(row)
                db.expunge(row)
        return row

    def soft_delete_user(self, user_id: int) -> None:
        with self.database.session() as db:
            with _translate_errors(db, "soft_delete_user"):
                row = _active_users(db).filter(User.id == user_id).first()
                if row is None:
                    raise NotFound("user not found")
                now = utcnow()
                row.deleted_at = now
                row.updated_at = now
                db.commit()

    # ── read operations ──────────────────────────────────────

    def _find_one(self, operation: str, *criteria) -> User:
        with self.database.session() as db:
            with _translate_errors(db, operation):
                user = _active_users(db).filter(*criteria).first()
                if user is None:
                    raise NotFound("user not found")
                db.expunge(user)
        return user

    def find_user_by_email(self, email: str) -> User:
        return self._find_one("find_user_by_email", User.email == email)

    def find_user_by_id(self, user_id: int) -> User:
        return self._find_one("find_user_by_id", User.id == user_id)

    def find_user_by_public_id(self, public_id: str) -> User:
        return self._find_one("find_user_by_public_id", User.uuid == public_id)


class SqlCountryStore:
    def __init__(self, database: Database):
        self.database = database

    def find_country_by_short_code(self, code: str) -> Country:
        with self.database.session() as db:
            with _translate_errors(db, "find_country_by_short_code"):
                country = db.query(Country).filter(Country.shortname == code).first()
                if country is None:
                    raise NotFound(f"country {code!r} not found")
                db.expunge(country)
        return country

    def find_country_by_id(self, country_id: int) -> Country:
        with self.database.session() as db:
            with _translate_errors(db, "find_country_by_id"):
                country = db.get(Country, country_id)
                if country is None:
                    raise NotFound(f"country {country_id} not found")
                db.expunge(country)
        return country

    def list_countries(self) -> List[Country]:
        with self.database.session() as db:
            with _translate_errors(db, "list_countries"):
                countries = db.query(Country).order_by(Country.name.asc()).all()
                db.expunge_all()
        return countries
