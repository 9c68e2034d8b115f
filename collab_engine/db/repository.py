"""
Collaboration repository backed by MongoDB.

Stores one document per collaboration in the `collaborations` collection,
keyed by a BSON ObjectId. Writes are conditional on the stored `revision`
so that a writer holding a stale snapshot is detected instead of silently
overwriting a concurrent change.

A `live_subject_key` field is kept on the document while the collaboration
is pending, accepted or active; a unique partial index on it guarantees that
a subject never has two live collaborations, even across worker processes.
"""

import logging
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from collab_engine.core.errors import ConcurrentModification, ConflictError
from collab_engine.models.collaboration import LIVE_STATUSES, Collaboration, SubjectRef

logger = logging.getLogger(__name__)

COLLECTION = "collaborations"


def new_collaboration_id() -> str:
    return str(ObjectId())


def to_document(collaboration: Collaboration) -> dict:
    """Converts a collaboration into its MongoDB document."""

    document = collaboration.model_dump(exclude={"id"})
    document["_id"] = ObjectId(collaboration.id)
    document["live_subject_key"] = collaboration.subject.key if collaboration.is_live else None
    return document


def from_document(document: dict) -> Collaboration:
    """Parses a MongoDB document into a `Collaboration`."""

    data = dict(document)
    data["id"] = str(data.pop("_id"))
    data.pop("live_subject_key", None)
    return Collaboration.model_validate(data)


class MongoCollaborationRepository:
    """Persists collaborations through Motor."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[COLLECTION]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("subject.id", ASCENDING), ("status", ASCENDING)])
        await self.collection.create_index([("owner_id", ASCENDING), ("status", ASCENDING)])
        await self.collection.create_index([("partner_id", ASCENDING), ("status", ASCENDING)])
        await self.collection.create_index(
            "live_subject_key",
            unique=True,
            partialFilterExpression={"live_subject_key": {"$type": "string"}},
        )

    async def insert(self, collaboration: Collaboration) -> Collaboration:
        """
        Inserts a new collaboration.

        Raises:
            ConflictError: If the subject already has a live collaboration.
        """

        try:
            await self.collection.insert_one(to_document(collaboration))
        except DuplicateKeyError:
            raise ConflictError("Subject already under collaboration")
        return collaboration

    async def get(self, collaboration_id: str) -> Optional[Collaboration]:
        if not ObjectId.is_valid(collaboration_id):
            return None
        document = await self.collection.find_one({"_id": ObjectId(collaboration_id)})
        return from_document(document) if document else None

    async def save(self, collaboration: Collaboration) -> Collaboration:
        """
        Writes back a modified collaboration if nobody changed it meanwhile.

        On success the in-memory revision is bumped to match the store.

        Raises:
            ConcurrentModification: If the stored revision moved on.
        """

        expected = collaboration.revision
        collaboration.revision = expected + 1
        document = to_document(collaboration)
        document.pop("_id")

        result = await self.collection.update_one(
            {"_id": ObjectId(collaboration.id), "revision": expected},
            {"$set": document},
        )
        if result.matched_count == 0:
            collaboration.revision = expected
            raise ConcurrentModification(collaboration.id)
        return collaboration

    async def find_live_for_subject(self, subject: SubjectRef) -> Optional[Collaboration]:
        document = await self.collection.find_one(
            {"subject.kind": subject.kind, "subject.id": subject.id, "status": {"$in": list(LIVE_STATUSES)}}
        )
        return from_document(document) if document else None

    async def list_for_user(self, user_id: str, status: Optional[str] = None) -> List[Collaboration]:
        query = {"$or": [{"owner_id": user_id}, {"partner_id": user_id}]}
        if status:
            query["status"] = status
        cursor = self.collection.find(query).sort("updated_at", DESCENDING)
        return [from_document(document) async for document in cursor]

    async def list_for_subject(self, subject: SubjectRef) -> List[Collaboration]:
        cursor = self.collection.find({"subject.kind": subject.kind, "subject.id": subject.id})
        cursor = cursor.sort("created_at", DESCENDING)
        return [from_document(document) async for document in cursor]
