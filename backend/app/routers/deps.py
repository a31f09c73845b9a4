"""
Shared router dependencies.
"""
from typing import Annotated, Optional

from fastapi import Depends, Header

from app.core.database import DbSession
from app.core.exceptions import AuthenticationRequiredError, OrderAccessDeniedError
from app.services.access import Actor, resolve_actor


async def get_current_actor(
    session: DbSession,
    authorization: Annotated[Optional[str], Header()] = None,
) -> Actor:
    """Resolve the caller from the bearer token; guests need no token."""
    return await resolve_actor(session, authorization)


CurrentActor = Annotated[Actor, Depends(get_current_actor)]


async def require_customer(actor: CurrentActor) -> Actor:
    if not actor.is_customer:
        raise AuthenticationRequiredError()
    return actor


async def require_staff(actor: CurrentActor) -> Actor:
    if actor.is_guest:
        raise AuthenticationRequiredError()
    if not actor.is_staff:
        raise OrderAccessDeniedError("Unauthorized. Admin access required.")
    return actor
