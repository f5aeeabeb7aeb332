"""Credential adapters for the ``CredentialVerifier`` port.

Passwords are hashed with bcrypt; the hash is the account's
``credential_handle``. ``SnapshotCredentialVerifier`` answers
``verify(principal, secret)`` against the accounts of the snapshot loaded
for the current operation, so a credential check always sees the same data
as the mutation it guards.
"""

from typing import Optional

import bcrypt

from .domain import CredentialVerifier, Snapshot


class BcryptPasswordHasher:
    """Hash and check passwords with bcrypt.

    Args:
        rounds: bcrypt cost factor. Tests use the minimum (4) to stay fast.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def check(self, password: Optional[str], password_hash: Optional[str]) -> bool:
        """Return True if ``password`` matches ``password_hash``.

        Missing values and malformed hashes are a mismatch, not an error.
        """
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # not a bcrypt hash (e.g. a placeholder left in a data file)
            return False


class SnapshotCredentialVerifier(CredentialVerifier):
    """Verify principals against the accounts of one snapshot."""

    def __init__(self, snapshot: Snapshot, hasher: BcryptPasswordHasher):
        self.snapshot = snapshot
        self.hasher = hasher

    def verify(self, principal: str, secret: Optional[str]) -> bool:
        account = self.snapshot.find_account(principal)
        if account is None:
            return False
        return self.hasher.check(secret, account.credential_handle)
