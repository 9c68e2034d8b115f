"""MongoDB adapters, exercised against a minimal fake of the Motor collection API."""

from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from collab_engine.core.errors import ConcurrentModification, ConflictError, NotFoundError
from collab_engine.db.repository import MongoCollaborationRepository, from_document, to_document
from collab_engine.domain import aggregate
from collab_engine.models.collaboration import Compensation, SubjectRef
from collab_engine.services.identity_service import MongoIdentityLookup
from collab_engine.services.subject_registry import MongoSubjectRegistry

from conftest import OWNER, PARTNER, PROPERTY, TickingClock

pytestmark = pytest.mark.anyio


class FakeCollection:

    def __init__(self, documents=()):
        self.documents = {document["_id"]: dict(document) for document in documents}
        self.fail_with = None

    async def find_one(self, query, projection=None):
        if self.fail_with:
            raise self.fail_with
        document = self.documents.get(query.get("_id"))
        return dict(document) if document else None

    async def insert_one(self, document):
        key = document.get("live_subject_key")
        if key and any(stored.get("live_subject_key") == key for stored in self.documents.values()):
            raise DuplicateKeyError("E11000 duplicate key error")
        self.documents[document["_id"]] = dict(document)

    async def update_one(self, query, update):
        stored = self.documents.get(query["_id"])
        if stored is None or stored.get("revision") != query["revision"]:
            return SimpleNamespace(matched_count=0)
        stored.update(update["$set"])
        return SimpleNamespace(matched_count=1)


class FakeDatabase(dict):

    def __missing__(self, name):
        self[name] = FakeCollection()
        return self[name]


def new_collaboration(subject=PROPERTY):
    clock = TickingClock()
    collaboration, _ = aggregate.propose(
        str(ObjectId()), PARTNER, subject, OWNER, Compensation(percentage=30), None, clock()
    )
    return collaboration


def test_document_round_trip_keeps_live_key():
    collaboration = new_collaboration()
    document = to_document(collaboration)

    assert document["_id"] == ObjectId(collaboration.id)
    assert document["live_subject_key"] == "property:" + PROPERTY.id
    assert "id" not in document
    assert from_document(document) == collaboration


def test_terminal_collaboration_releases_live_key():
    collaboration = new_collaboration()
    aggregate.cancel(collaboration, OWNER, collaboration.created_at)
    assert to_document(collaboration)["live_subject_key"] is None


async def test_insert_maps_duplicate_live_subject_to_conflict():
    repository = MongoCollaborationRepository(FakeDatabase())
    await repository.insert(new_collaboration())

    with pytest.raises(ConflictError):
        await repository.insert(new_collaboration())


async def test_save_is_conditional_on_revision():
    repository = MongoCollaborationRepository(FakeDatabase())
    collaboration = new_collaboration()
    await repository.insert(collaboration)

    first = await repository.get(collaboration.id)
    second = await repository.get(collaboration.id)

    aggregate.respond(first, OWNER, "accepted", first.created_at)
    await repository.save(first)
    assert first.revision == 1

    aggregate.respond(second, OWNER, "rejected", second.created_at)
    with pytest.raises(ConcurrentModification):
        await repository.save(second)
    assert second.revision == 0
    assert (await repository.get(collaboration.id)).status == "accepted"


async def test_get_with_malformed_id_returns_none():
    repository = MongoCollaborationRepository(FakeDatabase())
    assert await repository.get("not-an-object-id") is None


async def test_subject_registry_reads_owner_fields():
    property_id, ad_id = ObjectId(), ObjectId()
    db = FakeDatabase()
    db["properties"] = FakeCollection([{"_id": property_id, "owner": ObjectId(OWNER)}])
    db["search_ads"] = FakeCollection([{"_id": ad_id, "authorId": ObjectId(PARTNER)}])
    registry = MongoSubjectRegistry(db)

    assert await registry.exists(SubjectRef(kind="property", id=str(property_id)))
    assert await registry.get_owner(SubjectRef(kind="property", id=str(property_id))) == OWNER
    assert await registry.get_owner(SubjectRef(kind="search_ad", id=str(ad_id))) == PARTNER
    assert not await registry.exists(SubjectRef(kind="search_ad", id=str(property_id)))
    with pytest.raises(NotFoundError, match="Search ad not found"):
        await registry.get_owner(SubjectRef(kind="search_ad", id="bogus"))


async def test_identity_lookup_degrades_to_generic_label():
    db = FakeDatabase()
    db["users"] = FakeCollection(
        [
            {"_id": ObjectId(OWNER), "first_name": "Alice", "last_name": "Martin", "profile_image": "a.png"},
            {"_id": ObjectId(PARTNER), "email": "bruno@example.com"},
        ]
    )
    lookup = MongoIdentityLookup(db)

    owner = await lookup.identify(OWNER)
    assert owner.name == "Alice Martin"
    assert owner.avatar == "a.png"
    assert (await lookup.identify(PARTNER)).name == "bruno@example.com"
    assert (await lookup.identify(str(ObjectId()))).name == "Someone"

    db["users"].fail_with = RuntimeError("connection reset")
    assert (await lookup.identify(OWNER)).name == "Someone"


async def test_subject_without_owner_field_is_not_found():
    ad_id = ObjectId()
    db = FakeDatabase()
    db["search_ads"] = FakeCollection([{"_id": ad_id, "title": "T3 lumineux"}])
    registry = MongoSubjectRegistry(db)
    subject = SubjectRef(kind="search_ad", id=str(ad_id))

    assert await registry.exists(subject)
    with pytest.raises(NotFoundError, match="Search ad has no owner"):
        await registry.get_owner(subject)
