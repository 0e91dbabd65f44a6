"""Password hashing with a per-account salt."""

import bcrypt

from identity_core.core.security import constant_time_equals

# bcrypt only reads the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


class CredentialHasher:
    """Deterministic one-way transform of a password and an account salt.

    The salt is a bcrypt salt string (cost and random part), stored with the
    account so the hash can be recomputed on login.
    """

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def generate_salt(self) -> str:
        return bcrypt.gensalt(rounds=self._rounds).decode("ascii")

    def hash(self, plaintext: str, salt: str) -> str:
        """Hash ``plaintext`` with ``salt``. Same inputs always give the same hash."""
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt.encode("ascii")).decode(
            "ascii"
        )

    def verify(self, plaintext: str, salt: str, expected_hash: str) -> bool:
        """Re-hash ``plaintext`` and compare it to ``expected_hash``."""
        return constant_time_equals(self.hash(plaintext, salt), expected_hash)
