from passlib.context import CryptContext
import logging

from .errors import HashingFailure

logger = logging.getLogger(__name__)

DEFAULT_HASH_ROUNDS = 29000


class PasswordHasher:
    """
    Salted, slow one-way password hashing with a fixed work factor.

    Uses pbkdf2_sha256 to avoid external bcrypt backend issues in some environments.
    """

    def __init__(self, rounds: int = DEFAULT_HASH_ROUNDS):
        self.rounds = rounds
        self.context = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__rounds=rounds,
        )

    def hash_password(self, password: str) -> str:
        try:
            return self.context.hash(password)
        except (ValueError, TypeError) as e:
            raise HashingFailure("failed to process password") from e

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Constant-time comparison; a corrupt stored hash counts as a mismatch."""
        try:
            return self.context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            logger.warning("Stored password hash could not be parsed")
            return False

    def dummy_verify(self) -> None:
        """Spend the same time as a real verification when there is no user."""
        self.context.dummy_verify()
