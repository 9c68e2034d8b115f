"""
Collaboration service.

This module orchestrates every collaboration operation: it loads the
aggregate, applies one state-machine transition from
`collab_engine.domain.aggregate` under a per-collaboration lock, writes the
result back with an optimistic revision check, and finally hands the
resulting events to the notifier, outside the lock and after the write.

Concurrency:
    - Mutations of one collaboration are serialized by an in-process lock
      keyed by its id. Writers in other processes are detected by the
      revision check; the operation is then re-run against a fresh snapshot,
      a bounded number of times.
    - Proposals are serialized per subject, and backed by the store's
      one-live-collaboration-per-subject constraint.
    - Reads take no lock and may observe a slightly stale snapshot.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from collab_engine.core.config import WRITE_ATTEMPTS
from collab_engine.core.errors import ConcurrentModification, ConflictError, NotFoundError
from collab_engine.db.repository import new_collaboration_id
from collab_engine.domain import aggregate, signatures
from collab_engine.domain.aggregate import Event
from collab_engine.models.collaboration import Collaboration, Compensation, SubjectRef
from collab_engine.schemas.contract import ContractParty, ContractView
from collab_engine.util.locks import KeyedLocks

logger = logging.getLogger(__name__)

Operation = Callable[[Collaboration, datetime], List[Event]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CollaborationService:
    """
    Entry point of the collaboration engine.

    Args:
        repository: Collaboration store (MongoDB or in-memory).
        registry: Subject registry (`exists`, `get_owner`).
        identities: Identity lookup (`identify`).
        notifier: Background notification scheduler.
        write_attempts: Optimistic write attempts per operation.
        clock: Source of the current UTC time.
    """

    def __init__(self, repository, registry, identities, notifier, write_attempts: int = WRITE_ATTEMPTS, clock=utcnow):
        self.repository = repository
        self.registry = registry
        self.identities = identities
        self.notifier = notifier
        self.write_attempts = max(1, write_attempts)
        self.clock = clock
        self._locks = KeyedLocks()

    # ------------------------------------------------------------------
    # Core read-modify-write cycle
    # ------------------------------------------------------------------

    async def _load(self, collaboration_id: str) -> Collaboration:
        collaboration = await self.repository.get(collaboration_id)
        if collaboration is None:
            raise NotFoundError("Collaboration not found")
        return collaboration

    async def _mutate(self, collaboration_id: str, operation: Operation) -> Tuple[Collaboration, List[Event]]:
        """
        Applies `operation` to the latest snapshot and persists the result.

        Nothing is written when the operation left the aggregate unchanged
        (idempotent calls). Domain errors propagate untouched.
        """

        async with self._locks.hold(collaboration_id):
            for attempt in range(1, self.write_attempts + 1):
                collaboration = await self._load(collaboration_id)
                before = collaboration.model_dump()
                now = self.clock()

                events = operation(collaboration, now)
                if collaboration.model_dump() == before:
                    return collaboration, events

                collaboration.updated_at = now
                try:
                    await self.repository.save(collaboration)
                except ConcurrentModification:
                    logger.warning(
                        "Concurrent write on collaboration %s (attempt %d/%d)",
                        collaboration_id,
                        attempt,
                        self.write_attempts,
                    )
                    continue
                return collaboration, events

        raise ConflictError("Collaboration was modified concurrently, please retry")

    async def _run(self, collaboration_id: str, operation: Operation, action: str, actor_id: str) -> Collaboration:
        collaboration, events = await self._mutate(collaboration_id, operation)
        if events:
            logger.info(
                "Collaboration %s: %s by %s",
                collaboration_id,
                action,
                actor_id,
                extra={"data": {"status": collaboration.status, "events": [event.type for event in events]}},
            )
        self.notifier.schedule(collaboration_id, events)
        return collaboration

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def propose(
        self,
        actor_id: str,
        subject: SubjectRef,
        compensation: Compensation,
        message: Optional[str] = None,
    ) -> Collaboration:
        """
        Creates a pending collaboration on `subject` with `actor_id` as partner.

        Raises:
            NotFoundError: If the subject does not exist.
            ForbiddenError: If the actor owns the subject.
            ConflictError: If the subject already has a live collaboration.
            ValidationError: If the compensation or message is invalid.
        """

        if not await self.registry.exists(subject):
            raise NotFoundError(f"{subject.kind.replace('_', ' ').capitalize()} not found")
        owner_id = await self.registry.get_owner(subject)

        async with self._locks.hold(subject.key):
            collaboration, events = aggregate.propose(
                new_collaboration_id(),
                actor_id,
                subject,
                owner_id,
                compensation,
                message,
                self.clock(),
            )

            existing = await self.repository.find_live_for_subject(subject)
            if existing is not None:
                if existing.partner_id == actor_id:
                    raise ConflictError("Collaboration already exists")
                raise ConflictError("Subject already under collaboration")

            await self.repository.insert(collaboration)

        logger.info("Collaboration %s proposed by %s on %s", collaboration.id, actor_id, subject.key)
        self.notifier.schedule(collaboration.id, events)
        return collaboration

    async def respond(self, collaboration_id: str, actor_id: str, decision: str) -> Collaboration:
        return await self._run(
            collaboration_id,
            lambda collaboration, now: aggregate.respond(collaboration, actor_id, decision, now),
            f"respond({decision})",
            actor_id,
        )

    async def add_note(self, collaboration_id: str, actor_id: str, text: str) -> Collaboration:
        return await self._run(
            collaboration_id,
            lambda collaboration, now: aggregate.add_note(collaboration, actor_id, text, now),
            "add_note",
            actor_id,
        )

    async def cancel(self, collaboration_id: str, actor_id: str) -> Collaboration:
        return await self._run(
            collaboration_id,
            lambda collaboration, now: aggregate.cancel(collaboration, actor_id, now),
            "cancel",
            actor_id,
        )

    async def complete(self, collaboration_id: str, actor_id: str) -> Collaboration:
        return await self._run(
            collaboration_id,
            lambda collaboration, now: aggregate.complete(collaboration, actor_id, now),
            "complete",
            actor_id,
        )

    async def sign(self, collaboration_id: str, actor_id: str) -> Collaboration:
        return await self._run(
            collaboration_id,
            lambda collaboration, now: aggregate.sign(collaboration, actor_id, now),
            "sign",
            actor_id,
        )

    async def advance(
        self,
        collaboration_id: str,
        actor_id: str,
        target_step: str,
        validated_by: str,
        notes: Optional[str] = None,
    ) -> Collaboration:
        return await self._run(
            collaboration_id,
            lambda collaboration, now: aggregate.advance(
                collaboration, actor_id, target_step, notes, validated_by, now
            ),
            f"advance({target_step}, {validated_by})",
            actor_id,
        )

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def get_contract(self, collaboration_id: str, actor_id: str) -> ContractView:
        """
        Returns the contract, materializing the default text on first read.

        The default text of a terminal collaboration is rendered for display
        but never stored.
        """

        collaboration = await self._load(collaboration_id)
        aggregate.require_party(collaboration, actor_id)
        owner, partner = await self._parties(collaboration)

        if not (collaboration.contract_text and collaboration.contract_text.strip()):
            if collaboration.is_terminal:
                collaboration.contract_text = aggregate.default_contract(collaboration, owner.name, partner.name)
            else:
                collaboration, _ = await self._mutate(
                    collaboration_id,
                    lambda current, now: self._init_contract(current, owner.name, partner.name),
                )

        return self._contract_view(collaboration, actor_id, owner, partner)

    @staticmethod
    def _init_contract(collaboration: Collaboration, owner_name: str, partner_name: str) -> List[Event]:
        aggregate.ensure_contract(collaboration, owner_name, partner_name)
        return []

    async def edit_contract(
        self,
        collaboration_id: str,
        actor_id: str,
        text: Optional[str],
        terms: Optional[str],
    ) -> Tuple[ContractView, bool]:
        """
        Edits the contract. Returns the contract view and whether both
        parties must sign again.
        """

        collaboration, events = await self._mutate(
            collaboration_id,
            lambda current, now: aggregate.edit_contract(current, actor_id, text, terms, now),
        )
        if events:
            logger.info("Collaboration %s: contract modified by %s, signatures reset", collaboration_id, actor_id)
        self.notifier.schedule(collaboration_id, events)
        return await self.describe_contract(collaboration, actor_id), bool(events)

    async def describe_contract(self, collaboration: Collaboration, actor_id: str) -> ContractView:
        owner, partner = await self._parties(collaboration)
        return self._contract_view(collaboration, actor_id, owner, partner)

    async def _parties(self, collaboration: Collaboration):
        owner = await self.identities.identify(collaboration.owner_id)
        partner = await self.identities.identify(collaboration.partner_id)
        return owner, partner

    @staticmethod
    def _contract_view(collaboration: Collaboration, actor_id: str, owner, partner) -> ContractView:
        role = aggregate.resolve_role(actor_id, collaboration)
        ledger = collaboration.signatures
        return ContractView(
            id=collaboration.id,
            contract_text=collaboration.contract_text,
            additional_terms=collaboration.additional_terms,
            contract_modified=collaboration.contract_modified,
            contract_last_modified_by=collaboration.contract_last_modified_by,
            contract_last_modified_at=collaboration.contract_last_modified_at,
            owner_signed=ledger.owner.signed,
            owner_signed_at=ledger.owner.signed_at,
            partner_signed=ledger.partner.signed,
            partner_signed_at=ledger.partner.signed_at,
            status=collaboration.status,
            current_step=collaboration.current_step,
            owner=ContractParty(id=owner.id, name=owner.name, avatar=owner.avatar),
            partner=ContractParty(id=partner.id, name=partner.name, avatar=partner.avatar),
            **signatures.derived_flags(collaboration, role),
        )

    # ------------------------------------------------------------------
    # Queries (no lock)
    # ------------------------------------------------------------------

    async def get(self, collaboration_id: str, actor_id: str) -> Collaboration:
        collaboration = await self._load(collaboration_id)
        aggregate.require_party(collaboration, actor_id)
        return collaboration

    async def list_for_user(self, actor_id: str, status: Optional[str] = None) -> List[Collaboration]:
        return await self.repository.list_for_user(actor_id, status)

    async def list_for_subject(self, subject: SubjectRef, actor_id: str) -> List[Collaboration]:
        """Collaborations on `subject` that `actor_id` takes part in (all of them for the subject owner)."""

        collaborations = await self.repository.list_for_subject(subject)
        return [c for c in collaborations if aggregate.resolve_role(actor_id, c) != "none"]
