"""
Actor resolution and order read access.

A request is made by exactly one of: an admin, a personnel member, a
registered customer, or an anonymous guest. The actor is resolved once from
the bearer token and every access decision matches on its role.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.security import decode_access_token
from app.models.order import Order
from app.repositories.customer import CustomerRepository

logger = get_logger(__name__)


class ActorRole(str, Enum):
    ADMIN = "admin"
    PERSONNEL = "personnel"
    CUSTOMER = "customer"
    GUEST = "guest"


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    id: Optional[int] = None

    @classmethod
    def guest(cls) -> "Actor":
        return cls(role=ActorRole.GUEST)

    @property
    def is_staff(self) -> bool:
        return self.role in (ActorRole.ADMIN, ActorRole.PERSONNEL)

    @property
    def is_customer(self) -> bool:
        return self.role == ActorRole.CUSTOMER

    @property
    def is_guest(self) -> bool:
        return self.role == ActorRole.GUEST


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_actor(
    session: AsyncSession,
    authorization: Optional[str],
) -> Actor:
    """
    Map an Authorization header to an Actor.

    Anything that does not resolve to a known principal (no header, bad
    signature, expired token, inactive customer) is treated as a guest,
    since order creation and lookup are public endpoints.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        return Actor.guest()

    claims = decode_access_token(token)
    if not claims:
        return Actor.guest()

    try:
        role = ActorRole(claims.get("role", ""))
        principal_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        logger.warning("Bearer token with unusable claims", claims=list(claims))
        return Actor.guest()

    if role == ActorRole.GUEST:
        return Actor.guest()

    if role == ActorRole.CUSTOMER:
        customer = await CustomerRepository(session).get_active(principal_id)
        if customer is None:
            logger.info("Token for unknown or inactive customer", customer_id=principal_id)
            return Actor.guest()

    return Actor(role=role, id=principal_id)


def can_view_order(
    actor: Actor,
    order: Order,
    guest_email: Optional[str] = None,
) -> AccessDecision:
    """Read access for a single order. Never reveals why access failed."""
    if actor.is_staff:
        return AccessDecision(True, "staff")

    if actor.is_customer:
        if order.belongs_to_customer(actor.id):
            return AccessDecision(True, "owner")

        # A logged-in customer may still open a guest order with its email
        if order.belongs_to_guest(guest_email):
            return AccessDecision(True, "guest_email")
        return AccessDecision(False, "denied")

    if order.belongs_to_guest(guest_email):
        return AccessDecision(True, "guest_email")
    return AccessDecision(False, "denied")
