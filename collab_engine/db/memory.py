"""
In-memory collaboration repository.

Same contract as `MongoCollaborationRepository` (revision-checked writes,
one live collaboration per subject) without a database. Used by the test
suite and for running the API locally without MongoDB.
"""

from typing import Dict, List, Optional

from collab_engine.core.errors import ConcurrentModification, ConflictError
from collab_engine.models.collaboration import Collaboration, SubjectRef


class InMemoryCollaborationRepository:

    def __init__(self):
        self._items: Dict[str, Collaboration] = {}

    async def ensure_indexes(self) -> None:
        return None

    async def insert(self, collaboration: Collaboration) -> Collaboration:
        if collaboration.is_live and await self.find_live_for_subject(collaboration.subject):
            raise ConflictError("Subject already under collaboration")
        self._items[collaboration.id] = collaboration.model_copy(deep=True)
        return collaboration

    async def get(self, collaboration_id: str) -> Optional[Collaboration]:
        stored = self._items.get(collaboration_id)
        return stored.model_copy(deep=True) if stored else None

    async def save(self, collaboration: Collaboration) -> Collaboration:
        stored = self._items.get(collaboration.id)
        if stored is None or stored.revision != collaboration.revision:
            raise ConcurrentModification(collaboration.id)
        collaboration.revision += 1
        self._items[collaboration.id] = collaboration.model_copy(deep=True)
        return collaboration

    async def find_live_for_subject(self, subject: SubjectRef) -> Optional[Collaboration]:
        for stored in self._items.values():
            if stored.subject == subject and stored.is_live:
                return stored.model_copy(deep=True)
        return None

    async def list_for_user(self, user_id: str, status: Optional[str] = None) -> List[Collaboration]:
        items = [
            stored
            for stored in self._items.values()
            if user_id in (stored.owner_id, stored.partner_id) and (not status or stored.status == status)
        ]
        items.sort(key=lambda item: item.updated_at, reverse=True)
        return [item.model_copy(deep=True) for item in items]

    async def list_for_subject(self, subject: SubjectRef) -> List[Collaboration]:
        items = [stored for stored in self._items.values() if stored.subject == subject]
        items.sort(key=lambda item: item.created_at, reverse=True)
        return [item.model_copy(deep=True) for item in items]
