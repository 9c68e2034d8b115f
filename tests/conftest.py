"""Shared fixtures: in-memory store, fake collaborators and a ticking clock."""

from datetime import datetime, timedelta, timezone

import pytest

from collab_engine.core.errors import NotFoundError
from collab_engine.db.memory import InMemoryCollaborationRepository
from collab_engine.models.collaboration import Compensation, SubjectRef
from collab_engine.services.collaboration_service import CollaborationService
from collab_engine.services.identity_service import Identity
from collab_engine.services.notification_service import Notifier

OWNER = "65f000000000000000000001"
PARTNER = "65f000000000000000000002"
OTHER_PARTNER = "65f000000000000000000003"
STRANGER = "65f000000000000000000004"

PROPERTY = SubjectRef(kind="property", id="66a000000000000000000001")
SEARCH_AD = SubjectRef(kind="search_ad", id="66a000000000000000000002")


class FakeRegistry:

    def __init__(self, owners):
        self.owners = dict(owners)

    async def exists(self, subject):
        return subject.key in self.owners

    async def get_owner(self, subject):
        if subject.key not in self.owners:
            raise NotFoundError("Subject not found")
        return self.owners[subject.key]


class FakeIdentities:

    def __init__(self, names):
        self.names = dict(names)

    async def identify(self, user_id):
        if user_id not in self.names:
            return Identity(id=user_id)
        return Identity(id=user_id, name=self.names[user_id], avatar=f"https://cdn.example/{user_id}.png")


class RecordingDispatcher:

    def __init__(self):
        self.requests = []

    async def notify(self, request):
        self.requests.append(request)

    def types(self):
        return [request.event_type for request in self.requests]


class FailingDispatcher:

    def __init__(self):
        self.calls = 0

    async def notify(self, request):
        self.calls += 1
        raise ConnectionError("dispatcher unreachable")


class TickingClock:
    """Returns a new, strictly later UTC instant on every call."""

    def __init__(self, start=datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def repository():
    return InMemoryCollaborationRepository()


@pytest.fixture
def registry():
    return FakeRegistry({PROPERTY.key: OWNER, SEARCH_AD.key: OWNER})


@pytest.fixture
def identities():
    return FakeIdentities({OWNER: "Alice Martin", PARTNER: "Bruno Petit", OTHER_PARTNER: "Chloé Durand"})


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def service(repository, registry, identities, dispatcher, clock):
    return CollaborationService(
        repository=repository,
        registry=registry,
        identities=identities,
        notifier=Notifier(dispatcher, identities),
        clock=clock,
    )


async def make_pending(service, subject=PROPERTY, partner=PARTNER, percentage=30):
    return await service.propose(partner, subject, Compensation(percentage=percentage), "J'ai un acquéreur")


async def make_accepted(service, **kwargs):
    collaboration = await make_pending(service, **kwargs)
    return await service.respond(collaboration.id, OWNER, "accepted")


async def make_active(service, **kwargs):
    collaboration = await make_accepted(service, **kwargs)
    await service.sign(collaboration.id, OWNER)
    return await service.sign(collaboration.id, kwargs.get("partner", PARTNER))
