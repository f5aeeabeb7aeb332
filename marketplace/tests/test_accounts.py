"""Unit tests for the AccountManager: signup/login and wishlists."""

import pytest

from marketplace.accounts import AccountManager
from marketplace.domain import Snapshot
from marketplace.exceptions import AuthenticationFailed, InvalidInput


@pytest.fixture
def accounts(hasher):
    return AccountManager(Snapshot(), hasher)


def test_signup_creates_account_with_hashed_password(accounts):
    account = accounts.create_or_login("Bob", "secret", " Bob Stone ")
    assert account.username == "Bob"
    assert account.full_name == "Bob Stone"
    assert account.is_admin is False
    assert account.credential_handle.startswith("$2")
    assert "secret" not in account.credential_handle


def test_admin_flag_follows_username(accounts):
    assert accounts.create_or_login(" Admin ", "secret", "Boss").is_admin is True


def test_login_existing_account_case_insensitive(accounts):
    created = accounts.create_or_login("Bob", "secret", "Bob Stone")
    assert accounts.create_or_login("BOB", "secret") is created
    assert len(accounts.snapshot.accounts) == 1


def test_login_with_wrong_password(accounts):
    accounts.create_or_login("Bob", "secret", "Bob Stone")
    with pytest.raises(AuthenticationFailed):
        accounts.create_or_login("bob", "wrong-one")


@pytest.mark.parametrize(
    "username,password,full_name",
    [
        ("", "secret", "Bob Stone"),
        ("guest", "secret", "Bob Stone"),
        ("bob", "abc", "Bob Stone"),
        ("bob", "secret", None),
        ("bob", "secret", " B "),
    ],
)
def test_signup_validation(accounts, username, password, full_name):
    with pytest.raises(InvalidInput):
        accounts.create_or_login(username, password, full_name)
    assert accounts.snapshot.accounts == []


def test_wishlist_is_deduplicated_in_first_seen_order(accounts):
    accounts.create_or_login("bob", "secret", "Bob Stone")
    assert accounts.set_wishlist("bob", "secret", [3, "1", 3, 2, 1]) == [3, 1, 2]
    assert accounts.get_wishlist("Bob", "secret") == [3, 1, 2]


def test_wishlist_requires_credentials(accounts):
    accounts.create_or_login("bob", "secret", "Bob Stone")
    with pytest.raises(AuthenticationFailed):
        accounts.get_wishlist("bob", "nope")
    with pytest.raises(AuthenticationFailed):
        accounts.set_wishlist("ghost", "secret", [1])


def test_guest_wishlist(accounts):
    """Guests keep wishlists client-side: reads are empty, writes rejected."""
    assert accounts.get_wishlist("guest", None) == []
    assert accounts.get_wishlist(None, None) == []
    with pytest.raises(InvalidInput):
        accounts.set_wishlist("guest", None, [1])


def test_wishlist_rejects_non_numeric_ids(accounts):
    accounts.create_or_login("bob", "secret", "Bob Stone")
    with pytest.raises(InvalidInput):
        accounts.set_wishlist("bob", "secret", ["one"])
