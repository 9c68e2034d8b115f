"""
Subject registry.

Read-only access to the listings (`properties`) and client search ads
(`search_ads`) owned by other services. The collaboration engine only needs
to know whether a subject exists and who owns it, and only when a
collaboration is proposed.
"""

from typing import Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from collab_engine.core.errors import NotFoundError
from collab_engine.models.collaboration import SubjectRef

# Collection and owner field per subject kind
SUBJECT_SOURCES = {
    "property": ("properties", "owner"),
    "search_ad": ("search_ads", "authorId"),
}

SUBJECT_LABELS = {"property": "Property", "search_ad": "Search ad"}


class MongoSubjectRegistry:
    """Looks subjects up in the shared MongoDB database."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def _find(self, subject: SubjectRef) -> Optional[dict]:
        if not ObjectId.is_valid(subject.id):
            return None
        collection, owner_field = SUBJECT_SOURCES[subject.kind]
        return await self.db[collection].find_one({"_id": ObjectId(subject.id)}, {owner_field: 1})

    async def exists(self, subject: SubjectRef) -> bool:
        return await self._find(subject) is not None

    async def get_owner(self, subject: SubjectRef) -> str:
        """
        Returns the identifier of the subject's owner.

        Raises:
            NotFoundError: If the subject does not exist or has no owner.
        """

        document = await self._find(subject)
        if not document:
            raise NotFoundError(f"{SUBJECT_LABELS[subject.kind]} not found")
        _, owner_field = SUBJECT_SOURCES[subject.kind]
        owner = document.get(owner_field)
        if owner is None:
            raise NotFoundError(f"{SUBJECT_LABELS[subject.kind]} has no owner")
        return str(owner)
