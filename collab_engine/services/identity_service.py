"""
Identity lookup.

Resolves a user's display name and avatar from the `users` collection to
enrich activity views and notification texts. A lookup never fails the
calling operation: any error degrades to a generic label.
"""

import logging
from typing import Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

logger = logging.getLogger(__name__)

GENERIC_NAME = "Someone"


class Identity(BaseModel):
    """Display information about a user."""

    id: str
    name: str = GENERIC_NAME
    avatar: Optional[str] = None


def display_name(user: dict) -> str:
    first_name = user.get("first_name")
    if first_name:
        return f"{first_name} {user.get('last_name') or ''}".strip()
    return user.get("email") or GENERIC_NAME


class MongoIdentityLookup:

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def identify(self, user_id: str) -> Identity:
        try:
            if not ObjectId.is_valid(user_id):
                return Identity(id=user_id)
            user = await self.db["users"].find_one(
                {"_id": ObjectId(user_id)},
                {"first_name": 1, "last_name": 1, "email": 1, "profile_image": 1},
            )
        except Exception:
            logger.warning("Identity lookup failed for user %s", user_id, exc_info=True)
            return Identity(id=user_id)

        if not user:
            return Identity(id=user_id)
        return Identity(id=user_id, name=display_name(user), avatar=user.get("profile_image"))
