"""
Collaboration aggregate: the lifecycle state machine.

Every operation here is a pure, synchronous transition on an in-memory
`Collaboration`. It checks the caller's role and the current status, applies
the change to the activity log, the progress tracker and the signature
ledger together, and returns the events the other party should be notified
about. Loading, locking, persisting and dispatching are the service layer's
job (`collab_engine.services.collaboration_service`).

Transitions:
    pending  --respond(accept)-->  accepted
    pending  --respond(reject)-->  rejected        (terminal)
    accepted --second sign-->      active
    pending|accepted|active --cancel--> cancelled  (terminal)
    active   --complete-->         completed       (terminal)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from collab_engine.core.errors import ForbiddenError, InvalidStateError, ValidationError
from collab_engine.domain import progress, signatures
from collab_engine.domain.activity_log import append_activity, check_activity_message
from collab_engine.domain.contract_template import format_amount, render_default_contract
from collab_engine.models.collaboration import Collaboration, Compensation, Role, SubjectRef

MAX_PROPOSAL_MESSAGE_LENGTH = 500
MAX_NOTE_LENGTH = 500
MAX_PERCENTAGE = 50

STEP_LABELS = {
    "pending": "proposal",
    "accepted": "contract_signing",
    "active": "active",
    "completed": "completed",
    "rejected": "closed",
    "cancelled": "closed",
}

ROLE_LABELS = {"owner": "property owner", "partner": "partner"}

DECISIONS = {"accept": "accepted", "accepted": "accepted", "reject": "rejected", "rejected": "rejected"}


@dataclass(frozen=True)
class Event:
    """Something the other party should hear about after a transition."""

    type: str
    actor_id: str
    recipient_ids: tuple
    data: dict = field(default_factory=dict)


# ------------------------------------------------------------------------------
# Roles and guards
# ------------------------------------------------------------------------------

def resolve_role(actor_id: Optional[str], collaboration: Collaboration) -> Role:
    """Single place where an actor is matched against the two parties."""

    if not actor_id:
        return "none"
    if actor_id == collaboration.owner_id:
        return "owner"
    if actor_id == collaboration.partner_id:
        return "partner"
    return "none"


def other_party(collaboration: Collaboration, role: str) -> str:
    return collaboration.partner_id if role == "owner" else collaboration.owner_id


def require_party(collaboration: Collaboration, actor_id: str) -> str:
    role = resolve_role(actor_id, collaboration)
    if role == "none":
        raise ForbiddenError("Not authorized to act on this collaboration")
    return role


def require_mutable(collaboration: Collaboration) -> None:
    if collaboration.is_terminal:
        raise InvalidStateError(f"Collaboration is {collaboration.status} and can no longer change")


def require_status(collaboration: Collaboration, *allowed: str, message: str) -> None:
    if collaboration.status not in allowed:
        raise InvalidStateError(message)


def set_status(collaboration: Collaboration, status: str) -> None:
    collaboration.status = status
    collaboration.current_step = STEP_LABELS[status]


# ------------------------------------------------------------------------------
# Proposal
# ------------------------------------------------------------------------------

def check_compensation(compensation: Compensation) -> Compensation:
    if compensation.type == "percentage":
        if not 0 <= compensation.percentage <= MAX_PERCENTAGE:
            raise ValidationError(f"Commission must be between 0 and {MAX_PERCENTAGE}%")
    elif compensation.amount is None or compensation.amount <= 0:
        raise ValidationError("Compensation amount must be greater than 0")
    return compensation


def proposal_message(compensation: Compensation) -> str:
    if compensation.type == "fixed_amount":
        return f"Collaboration proposée avec {format_amount(compensation.amount)}€ de compensation"
    if compensation.type == "gift_vouchers":
        return f"Collaboration proposée avec {format_amount(compensation.amount)} chèques cadeaux"
    return f"Collaboration proposée avec {format_amount(compensation.percentage)}% de commission"


def propose(
    collaboration_id: str,
    actor_id: str,
    subject: SubjectRef,
    owner_id: str,
    compensation: Compensation,
    message: Optional[str],
    now: datetime,
) -> tuple[Collaboration, list[Event]]:
    """
    Builds a new pending collaboration.

    Uniqueness of the live collaboration on the subject is checked by the
    caller, which owns the store.
    """

    if actor_id == owner_id:
        raise ForbiddenError("Cannot collaborate on your own listing")
    check_compensation(compensation)
    if message and len(message) > MAX_PROPOSAL_MESSAGE_LENGTH:
        raise ValidationError(f"Proposal message too long (max {MAX_PROPOSAL_MESSAGE_LENGTH} characters)")

    collaboration = Collaboration(
        id=collaboration_id,
        subject=subject,
        owner_id=owner_id,
        partner_id=actor_id,
        compensation=compensation,
        proposal_message=message,
        progress_steps=progress.initial_steps(),
        created_at=now,
        updated_at=now,
    )
    set_status(collaboration, "pending")
    append_activity(collaboration, "proposal", proposal_message(compensation), actor_id, now)

    event = Event(
        type="collab:proposal_received",
        actor_id=actor_id,
        recipient_ids=(owner_id,),
        data={
            "subject_id": subject.id,
            "subject_kind": subject.kind,
            "compensation_type": compensation.type,
            "commission_percentage": compensation.percentage,
            "compensation_amount": compensation.amount,
        },
    )
    return collaboration, [event]


def respond(collaboration: Collaboration, actor_id: str, decision: str, now: datetime) -> list[Event]:
    role = require_party(collaboration, actor_id)
    require_mutable(collaboration)
    if role != "owner":
        raise ForbiddenError("Only the owner can respond to a proposal")
    require_status(collaboration, "pending", message="Can only respond to pending proposals")

    status = DECISIONS.get(decision)
    if status is None:
        raise ValidationError('Response must be either "accepted" or "rejected"')

    set_status(collaboration, status)
    verb = "acceptée" if status == "accepted" else "refusée"
    append_activity(collaboration, "status_update", f"Proposition {verb} par le propriétaire", actor_id, now)

    event_type = "collab:proposal_accepted" if status == "accepted" else "collab:proposal_rejected"
    return [Event(type=event_type, actor_id=actor_id, recipient_ids=(collaboration.partner_id,))]


# ------------------------------------------------------------------------------
# Free-form notes, cancellation and completion
# ------------------------------------------------------------------------------

def add_note(collaboration: Collaboration, actor_id: str, text: str, now: datetime) -> list[Event]:
    role = require_party(collaboration, actor_id)
    require_mutable(collaboration)
    require_status(collaboration, "active", message="Cannot add notes until the collaboration is active")

    content = (text or "").strip()
    if not content:
        raise ValidationError("Note content is required")
    if len(content) > MAX_NOTE_LENGTH:
        raise ValidationError(f"Note too long (max {MAX_NOTE_LENGTH} characters)")

    append_activity(collaboration, "note", content, actor_id, now)
    return [
        Event(
            type="collab:note_added",
            actor_id=actor_id,
            recipient_ids=(other_party(collaboration, role),),
            data={"content": content},
        )
    ]


def cancel(collaboration: Collaboration, actor_id: str, now: datetime) -> list[Event]:
    role = require_party(collaboration, actor_id)
    require_mutable(collaboration)

    set_status(collaboration, "cancelled")
    collaboration.cancelled_at = now
    append_activity(collaboration, "status_update", f"Collaboration cancelled by {ROLE_LABELS[role]}", actor_id, now)
    return [Event(type="collab:cancelled", actor_id=actor_id, recipient_ids=(other_party(collaboration, role),))]


def complete(collaboration: Collaboration, actor_id: str, now: datetime) -> list[Event]:
    """
    Closes an active collaboration.

    Every progress step is forced to completed and validated by both parties,
    whatever their individual state, for deals closed outside the
    step-by-step flow.
    """

    role = require_party(collaboration, actor_id)
    require_mutable(collaboration)
    require_status(collaboration, "active", message="Can only complete active collaborations")

    set_status(collaboration, "completed")
    collaboration.completed_at = now
    progress.complete_all(collaboration, now)
    append_activity(collaboration, "status_update", f"Collaboration completed by {ROLE_LABELS[role]}", actor_id, now)
    return [Event(type="collab:completed", actor_id=actor_id, recipient_ids=(other_party(collaboration, role),))]


# ------------------------------------------------------------------------------
# Contract and signatures
# ------------------------------------------------------------------------------

def ensure_contract(collaboration: Collaboration, owner_name: str, partner_name: str) -> bool:
    """
    Materializes the default contract when none is stored yet.

    Returns True when the contract text was created by this call. A terminal
    collaboration is never written to.
    """

    if collaboration.contract_text and collaboration.contract_text.strip():
        return False
    if collaboration.is_terminal:
        return False

    collaboration.contract_text = default_contract(collaboration, owner_name, partner_name)
    collaboration.contract_modified = False
    return True


def default_contract(collaboration: Collaboration, owner_name: str, partner_name: str) -> str:
    return render_default_contract(owner_name, partner_name, collaboration.compensation, collaboration.created_at)


def edit_contract(
    collaboration: Collaboration,
    actor_id: str,
    text: Optional[str],
    terms: Optional[str],
    now: datetime,
) -> list[Event]:
    """
    Replaces the contract text and additional terms.

    A substantive change resets both signatures in the same update; an
    unchanged text is only reassigned.
    """

    role = require_party(collaboration, actor_id)
    require_mutable(collaboration)
    require_status(collaboration, "accepted", message="Contract can only be edited for accepted collaborations")

    if not signatures.contract_differs(collaboration, text, terms):
        collaboration.contract_text = text
        collaboration.additional_terms = terms
        return []

    was_signed = signatures.reset_signatures(collaboration.signatures)
    collaboration.contract_text = text
    collaboration.additional_terms = terms
    collaboration.contract_modified = True
    collaboration.contract_last_modified_by = actor_id
    collaboration.contract_last_modified_at = now

    message = f"Contract modified by {ROLE_LABELS[role]}"
    if was_signed:
        message += " - signatures reset, both parties must sign again"
    append_activity(collaboration, "note", message, actor_id, now)

    return [
        Event(
            type="contract:updated",
            actor_id=actor_id,
            recipient_ids=(other_party(collaboration, role),),
            data={"signatures_reset": was_signed},
        )
    ]


def sign(collaboration: Collaboration, actor_id: str, now: datetime) -> list[Event]:
    """
    Records the actor's signature; the second signature activates the
    collaboration. Signing again is a no-op.
    """

    role = require_party(collaboration, actor_id)
    require_mutable(collaboration)
    require_status(collaboration, "accepted", message="Collaboration must be accepted first")

    if not signatures.record_signature(collaboration.signatures, role, now):
        return []

    append_activity(collaboration, "signing", f"Contract signed by {ROLE_LABELS[role]}", actor_id, now)
    events = [Event(type="contract:signed", actor_id=actor_id, recipient_ids=(other_party(collaboration, role),))]

    if collaboration.signatures.both_signed:
        set_status(collaboration, "active")
        append_activity(
            collaboration,
            "status_update",
            "Collaboration activated - both parties have signed the contract",
            actor_id,
            now,
        )
        events.append(
            Event(
                type="collab:activated",
                actor_id=actor_id,
                recipient_ids=(collaboration.owner_id, collaboration.partner_id),
            )
        )
    return events


# ------------------------------------------------------------------------------
# Progress
# ------------------------------------------------------------------------------

def advance(
    collaboration: Collaboration,
    actor_id: str,
    target_step: str,
    notes: Optional[str],
    validated_by: str,
    now: datetime,
) -> list[Event]:
    """
    Confirms a milestone on behalf of the caller.

    A party can only validate on its own behalf; the step is completed once
    both parties have validated it.
    """

    progress.check_validator_role(validated_by)
    progress.check_step_name(target_step)

    role = require_party(collaboration, actor_id)
    require_mutable(collaboration)
    if role != validated_by:
        raise ForbiddenError("validatedBy does not match the caller's role")
    require_status(
        collaboration,
        "accepted",
        "active",
        message="Can only update progress for accepted or active collaborations",
    )

    label = "Propriétaire" if validated_by == "owner" else "Partenaire"
    message = f"{label} a validé: {progress.STEP_TITLES[target_step]}"
    if notes and notes.strip():
        message += f" - {notes.strip()}"
    check_activity_message(message)

    step = progress.record_validation(collaboration, target_step, validated_by, actor_id, notes, now)
    if step is None:
        return []

    append_activity(collaboration, "status_update", message, actor_id, now)

    return [
        Event(
            type="collab:progress_updated",
            actor_id=actor_id,
            recipient_ids=(other_party(collaboration, role),),
            data={
                "target_step": target_step,
                "notes": (notes or "").strip(),
                "validated_by": validated_by,
                "step_completed": step.completed,
            },
        )
    ]
