"""Unit tests for the AuthorizationResolver.

A stub verifier with a fixed credential table stands in for bcrypt so each
path of the policy (admin, owner, guest token, deny) is exercised in
isolation.
"""

import pytest
from decimal import Decimal

from marketplace.authorization import AuthDecision, AuthorizationResolver
from marketplace.domain import Order
from marketplace.exceptions import AuthenticationFailed


class StubVerifier:
    """Verifier that accepts the passwords of a fixed table."""

    def __init__(self, table):
        self.table = table

    def verify(self, principal, secret):
        return bool(secret) and self.table.get((principal or "").lower()) == secret


CREDS = {"admin": "root-pw", "bob": "bob-pw", "carol": "carol-pw"}


def _order(username="bob", token=None):
    return Order(
        id=1, item_id=1, item_name="Widget", username=username, buyer_name="B",
        quantity=1, amount=Decimal("10.00"), cancel_token=token,
    )


@pytest.fixture
def resolver():
    return AuthorizationResolver(StubVerifier(CREDS))


def test_admin_with_password_may_cancel_any_order(resolver):
    decision = resolver.decide_cancel("ADMIN", "root-pw", None, _order("bob"))
    assert decision == AuthDecision.permit("admin")


def test_admin_with_wrong_password_is_denied(resolver):
    assert resolver.decide_cancel("admin", "nope", None, _order("bob")).permitted is False


def test_owner_with_password_may_cancel_own_order(resolver):
    """Owner path is case-insensitive on the username."""
    decision = resolver.decide_cancel("Bob", "bob-pw", None, _order("bob"))
    assert decision.permitted and decision.path == "owner"


def test_owner_without_password_is_denied(resolver):
    decision = resolver.decide_cancel("bob", None, None, _order("bob"))
    assert decision.permitted is False
    assert "password" in decision.reason


def test_owner_without_password_allowed_when_secret_not_required():
    resolver = AuthorizationResolver(StubVerifier(CREDS), owner_requires_secret=False)
    assert resolver.decide_cancel("bob", None, None, _order("bob")).path == "owner"


def test_other_account_cannot_cancel(resolver):
    assert resolver.decide_cancel("carol", "carol-pw", None, _order("bob")).permitted is False


def test_guest_username_never_matches_owner_path(resolver):
    """Claiming to be ``guest`` grants nothing without the token."""
    order = _order("guest", token="t" * 24)
    assert resolver.decide_cancel("guest", None, None, order).permitted is False


def test_guest_token_permits(resolver):
    order = _order("guest", token="abc123" * 4)
    decision = resolver.decide_cancel(None, None, "abc123" * 4, order)
    assert decision == AuthDecision.permit("guest_token")


@pytest.mark.parametrize("token", ["", None, "wrong-token", "ABC123" * 4, "abc123" * 4 + "x", "é" * 24])
def test_wrong_or_empty_token_is_denied(resolver, token):
    order = _order("guest", token="abc123" * 4)
    decision = resolver.decide_cancel(None, None, token, order)
    assert decision.permitted is False
    assert decision.reason == "not authorized to cancel this order"


def test_token_does_not_work_on_account_orders(resolver):
    """Account orders carry no token, so any supplied token is refused."""
    assert resolver.decide_cancel(None, None, "anything", _order("bob")).permitted is False


def test_require_admin(resolver):
    resolver.require_admin("admin", "root-pw")
    with pytest.raises(AuthenticationFailed):
        resolver.require_admin("admin", "bad")
    with pytest.raises(AuthenticationFailed):
        resolver.require_admin("bob", "bob-pw")
