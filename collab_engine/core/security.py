"""
Authorization guard.

Tokens are issued by the authentication service; this module only verifies
the bearer token of each request and extracts the caller's identity. The
caller's role on a given collaboration (owner, partner or none) is resolved
by `collab_engine.domain.aggregate.resolve_role`.
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from collab_engine.core.config import JWT_ALGORITHM, JWT_SECRET
from collab_engine.core.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class Actor(BaseModel):
    """Authenticated caller."""

    id: str
    user_type: Optional[str] = None


def decode_actor(token: str) -> Actor:
    """
    Verifies a bearer token and returns the actor it identifies.

    The actor id is read from the `sub` claim (or `id`, as issued by older
    tokens).

    Raises:
        UnauthenticatedError: If the token is invalid, expired or carries
        no identity.
    """

    try:
        claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as exc:
        logger.debug("Rejected bearer token: %s", exc)
        raise UnauthenticatedError("Invalid or expired token")

    actor_id = claims.get("sub") or claims.get("id")
    if not actor_id:
        raise UnauthenticatedError("Token carries no identity")
    return Actor(id=str(actor_id), user_type=claims.get("user_type"))


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    """FastAPI dependency resolving the authenticated caller."""

    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Unauthorized")
    return decode_actor(credentials.credentials)
