"""
Collaboration model definition.

This module defines the `Collaboration` aggregate and the records it owns:
the activity trail, the ten-step progress checklist, the signature ledger,
the subject reference and the proposed compensation.

A collaboration binds the owner of a listing (or of a client search ad) and
a partner who brings a prospective client. The models only hold state; the
rules that mutate them live in `collab_engine.domain`.

The models use Pydantic for type validation and serialization.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


SubjectKind = Literal["property", "search_ad"]

CollaborationStatus = Literal["pending", "accepted", "rejected", "active", "completed", "cancelled"]

ActivityKind = Literal["proposal", "note", "signing", "status_update"]

CompensationType = Literal["percentage", "fixed_amount", "gift_vouchers"]

Role = Literal["owner", "partner", "none"]

ProgressStepName = Literal[
    "accord_collaboration",
    "premier_contact",
    "visite_programmee",
    "visite_realisee",
    "retour_client",
    "offre_en_cours",
    "negociation_en_cours",
    "compromis_signe",
    "signature_notaire",
    "affaire_conclue",
]

LIVE_STATUSES = ("pending", "accepted", "active")
TERMINAL_STATUSES = ("rejected", "completed", "cancelled")


class SubjectRef(BaseModel):
    """
    Reference to the listing or search ad a collaboration is about.

    Example:
        >>> subject = SubjectRef(kind="property", id="65f0c0ffee")
        >>> subject.key
        'property:65f0c0ffee'
    """

    model_config = ConfigDict(frozen=True)

    kind: SubjectKind
    """Whether the subject is a property listing or a client search ad."""

    id: str
    """Identifier of the subject in the external registry."""

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.id}"


class Compensation(BaseModel):
    """
    Compensation proposed by the partner.

    A `percentage` compensation is the partner's share of the commission;
    `fixed_amount` is an amount in euros and `gift_vouchers` a number of
    vouchers, both carried in `amount`.
    """

    model_config = ConfigDict(frozen=True)

    type: CompensationType = "percentage"
    percentage: float = 0
    amount: Optional[float] = None


class Activity(BaseModel):
    """One entry of the activity trail. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    kind: ActivityKind
    message: str
    actor_id: str
    created_at: datetime


class StepNote(BaseModel):
    """A note attached to a progress step by one of the parties."""

    model_config = ConfigDict(frozen=True)

    note: str
    created_by: str
    created_at: datetime


class ProgressStep(BaseModel):
    """
    One milestone of the deal progression.

    `completed` is only ever true when both `owner_validated` and
    `partner_validated` are true, or after the collaboration was completed.
    """

    name: ProgressStepName
    completed: bool = False
    owner_validated: bool = False
    partner_validated: bool = False
    notes: Optional[str] = None
    """Latest note attached when the step was validated."""

    validated_at: Optional[datetime] = None
    note_history: List[StepNote] = Field(default_factory=list)


class SignatureEntry(BaseModel):
    """Signature state of one party."""

    signed: bool = False
    signed_at: Optional[datetime] = None


class SignatureLedger(BaseModel):
    """Signature state of both parties."""

    owner: SignatureEntry = Field(default_factory=SignatureEntry)
    partner: SignatureEntry = Field(default_factory=SignatureEntry)

    @property
    def both_signed(self) -> bool:
        return self.owner.signed and self.partner.signed


class Collaboration(BaseModel):
    """
    Collaboration aggregate root.

    Example:
        >>> collaboration = Collaboration(
        ...     id="6650f1e2a3b4c5d6e7f80910",
        ...     subject=SubjectRef(kind="property", id="p-1"),
        ...     owner_id="owner-1",
        ...     partner_id="partner-1",
        ...     compensation=Compensation(percentage=30),
        ...     created_at=now,
        ...     updated_at=now,
        ... )
        >>> collaboration.status
        'pending'
    """

    id: str
    """Identifier of the collaboration (hex string of a BSON ObjectId)."""

    subject: SubjectRef
    """Listing or search ad the collaboration is about. Immutable."""

    owner_id: str
    """Owner of the subject, who accepts or rejects the proposal. Immutable."""

    partner_id: str
    """Partner who proposed the collaboration. Immutable."""

    status: CollaborationStatus = "pending"

    current_step: str = "proposal"
    """Display label mirroring the status. Derived, not authoritative."""

    current_progress_step: ProgressStepName = "accord_collaboration"
    """Furthest completed milestone in canonical order. Derived."""

    compensation: Compensation
    proposal_message: Optional[str] = None

    activities: List[Activity] = Field(default_factory=list)
    progress_steps: List[ProgressStep] = Field(default_factory=list)

    contract_text: Optional[str] = None
    additional_terms: Optional[str] = None
    contract_modified: bool = False
    contract_last_modified_by: Optional[str] = None
    contract_last_modified_at: Optional[datetime] = None

    signatures: SignatureLedger = Field(default_factory=SignatureLedger)

    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    revision: int = 0
    """Optimistic concurrency counter. Internal."""

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
