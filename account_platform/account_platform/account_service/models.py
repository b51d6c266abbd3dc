from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Index, text
from datetime import datetime, timezone

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    # Public identifier; set once by the store on insert
    uuid = Column(String(36), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    # Password hash, never the plaintext
    password = Column(String, nullable=False)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False, default="")
    mobile_country_id = Column(Integer, ForeignKey("country.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    # Email is unique among active rows only; soft-deleted rows keep their email
    __table_args__ = (
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self):
        # password deliberately omitted
        return f"<User(id={self.id}, uuid={self.uuid}, email={self.email})>"


class Country(Base):
    """Reference data, seeded and maintained outside this service."""
    __tablename__ = "country"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=True)
    shortname = Column(String(255), nullable=True, index=True)
    country_code = Column(Integer, nullable=True)

    # Currency
    currency_name = Column(String(255), nullable=True)
    currency_code = Column(String(255), nullable=True)
    currency_symbol = Column(String(255), nullable=True)
    currency_rate = Column(Float, nullable=True)

    # Locale
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    timezone_name = Column(String(255), nullable=True)
    gmt = Column(String(255), nullable=True)
    name_variant = Column(String(255), nullable=True)
    name_zh_cn = Column(String(255), nullable=True)
    name_zh_tw = Column(String(255), nullable=True)
    name_ja_jp = Column(String(255), nullable=True)
    name_ko_kr = Column(String(255), nullable=True)
    name_th = Column(String(255), nullable=True)
    name_cs_cz = Column(String(255), nullable=True)

    created_time = Column(DateTime, nullable=True)
    last_modified = Column(String(255), nullable=True)

    def to_dict(self) -> dict:
        """Compact representation used in profile responses."""
        return {
            "id": self.id,
            "name": self.name,
            "shortname": self.shortname,
            "currency_code": self.currency_code,
            "currency_symbol": self.currency_symbol,
            "timezone_name": self.timezone_name,
        }

    def __repr__(self):
        return f"<Country(id={self.id}, shortname={self.shortname})>"
