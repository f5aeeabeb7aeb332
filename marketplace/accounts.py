"""Account signup/login and server-side wishlists."""

import logging
from typing import Iterable, List, Optional

from .adapters import BcryptPasswordHasher
from .domain import ADMIN, Account, Snapshot, is_guest, normalize_principal
from .exceptions import AuthenticationFailed, InvalidInput

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4
MIN_FULL_NAME_LENGTH = 2


class AccountManager:
    """Accounts of one snapshot.

    Args:
        snapshot: The snapshot loaded for the current operation.
        hasher: Password hasher producing and checking credential handles.
    """

    def __init__(self, snapshot: Snapshot, hasher: BcryptPasswordHasher):
        self.snapshot = snapshot
        self.hasher = hasher

    def create_or_login(self, username: str, password: str, full_name: Optional[str] = None) -> Account:
        """Log into an existing account, or create it on first use.

        Raises:
            InvalidInput: Blank or ``guest`` username, password shorter than
                4 characters, or a new account without a full name.
            AuthenticationFailed: Existing account, wrong password.
        """
        if not isinstance(username, str) or not username.strip() or is_guest(username):
            raise InvalidInput("invalid username")
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"password required (min length {MIN_PASSWORD_LENGTH})")

        existing = self.snapshot.find_account(username)
        if existing is not None:
            if not self.hasher.check(password, existing.credential_handle):
                logger.warning("login failed", extra={"username": existing.username})
                raise AuthenticationFailed("invalid password for existing account")
            return existing

        name = (full_name or "").strip()
        if len(name) < MIN_FULL_NAME_LENGTH:
            raise InvalidInput("full name required for new accounts")
        account = Account(
            username=username.strip(),
            full_name=name,
            is_admin=normalize_principal(username) == ADMIN,
            credential_handle=self.hasher.hash(password),
        )
        self.snapshot.accounts.append(account)
        logger.info("account created", extra={"username": account.username, "is_admin": account.is_admin})
        return account

    def authenticate(self, username: Optional[str], password: Optional[str]) -> Account:
        account = None if is_guest(username) else self.snapshot.find_account(username)
        if account is None or not self.hasher.check(password, account.credential_handle):
            logger.warning("authentication failed")
            raise AuthenticationFailed("authentication required")
        return account

    def get_wishlist(self, username: Optional[str], password: Optional[str]) -> List[int]:
        # guests keep their wishlist client-side
        if is_guest(username):
            return []
        return list(self.authenticate(username, password).wishlist)

    def set_wishlist(self, username: Optional[str], password: Optional[str], item_ids: Iterable) -> List[int]:
        if is_guest(username):
            raise InvalidInput("invalid username for server-side wishlist")
        account = self.authenticate(username, password)
        wishlist: List[int] = []
        for raw in item_ids or []:
            try:
                item_id = int(raw)
            except (TypeError, ValueError):
                raise InvalidInput(f"invalid item id in wishlist: {raw!r}")
            if item_id not in wishlist:
                wishlist.append(item_id)
        account.wishlist = wishlist
        return list(wishlist)
