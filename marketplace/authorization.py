"""Authorization resolver for cancelling orders and admin actions.

Who may cancel an order, checked in this order:

1. the administrator, with a verified password: any order;
2. the registered owner of the order, with a verified password;
3. anyone holding the order's guest cancel token.

The three paths are mutually exclusive in practice (an order belongs to
``admin``, another account or ``guest``), so the order only decides which
path is reported.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from .domain import ADMIN, CredentialVerifier, Order, normalize_principal
from .exceptions import AuthenticationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthDecision:
    """Outcome of an authorization check.

    Attributes:
        permitted: Whether the action may proceed.
        path: ``admin``, ``owner`` or ``guest_token`` when permitted.
        reason: Human-readable explanation when denied.
    """

    permitted: bool
    path: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def permit(cls, path: str) -> "AuthDecision":
        return cls(True, path=path)

    @classmethod
    def deny(cls, reason: str = "not authorized to cancel this order") -> "AuthDecision":
        return cls(False, reason=reason)


class AuthorizationResolver:
    """Pure permit/deny decisions over a credential verifier.

    Args:
        verifier: Port checking ``(principal, secret)`` pairs.
        owner_requires_secret: When False, the owner path trusts a matching
            username alone, as the first version of the marketplace did.
    """

    def __init__(self, verifier: CredentialVerifier, owner_requires_secret: bool = True):
        self.verifier = verifier
        self.owner_requires_secret = owner_requires_secret

    def is_admin(self, principal: Optional[str], secret: Optional[str]) -> bool:
        return normalize_principal(principal) == ADMIN and self.verifier.verify(ADMIN, secret)

    def require_admin(self, principal: Optional[str], secret: Optional[str]) -> None:
        """Raise AuthenticationFailed unless the admin credentials verify."""
        if not self.is_admin(principal, secret):
            logger.warning("admin authentication failed")
            raise AuthenticationFailed("admin authentication required (username & password)")

    def decide_cancel(
        self,
        principal: Optional[str],
        secret: Optional[str],
        token: Optional[str],
        order: Order,
    ) -> AuthDecision:
        if self.is_admin(principal, secret):
            return AuthDecision.permit("admin")

        acting = normalize_principal(principal)
        if acting and not order.is_guest and acting == normalize_principal(order.username):
            if not self.owner_requires_secret or self.verifier.verify(acting, secret):
                return AuthDecision.permit("owner")
            return AuthDecision.deny("password required to cancel your own order")

        if token and order.cancel_token and hmac.compare_digest(token.encode("utf-8"), order.cancel_token.encode("utf-8")):
            return AuthDecision.permit("guest_token")

        return AuthDecision.deny()
