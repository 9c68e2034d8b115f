"""
Progress tracker.

Maintains the fixed ten-step milestone checklist of a collaboration and the
dual-validation rule: a step is only completed once both the owner and the
partner have confirmed it, each on their own behalf.

Steps may be validated in any order; only the per-step dual confirmation is
enforced.
"""

from datetime import datetime
from typing import Optional

from collab_engine.core.errors import ValidationError
from collab_engine.models.collaboration import Collaboration, ProgressStep, StepNote

CANONICAL_STEPS = (
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
)

STEP_TITLES = {
    "accord_collaboration": "Accord de collaboration",
    "premier_contact": "Premier contact client",
    "visite_programmee": "Visite programmée",
    "visite_realisee": "Visite réalisée",
    "retour_client": "Retour client",
    "offre_en_cours": "Offre en cours",
    "negociation_en_cours": "Négociation en cours",
    "compromis_signe": "Compromis signé",
    "signature_notaire": "Signature notaire",
    "affaire_conclue": "Affaire conclue",
}

VALIDATOR_ROLES = ("owner", "partner")

MAX_NOTE_LENGTH = 500


def initial_steps() -> list[ProgressStep]:
    """Returns the ten canonical steps, all unvalidated."""

    return [ProgressStep(name=name) for name in CANONICAL_STEPS]


def check_step_name(target_step: str) -> str:
    if target_step not in CANONICAL_STEPS:
        raise ValidationError(f"Invalid target step: {target_step!r}")
    return target_step


def check_validator_role(validated_by: str) -> str:
    if validated_by not in VALIDATOR_ROLES:
        raise ValidationError('validatedBy must be either "owner" or "partner"')
    return validated_by


def get_step(collaboration: Collaboration, name: str) -> ProgressStep:
    for step in collaboration.progress_steps:
        if step.name == name:
            return step
    raise ValidationError(f"Progress step not found: {name!r}")


def record_validation(
    collaboration: Collaboration,
    name: str,
    validated_by: str,
    actor_id: str,
    notes: Optional[str],
    at: datetime,
) -> Optional[ProgressStep]:
    """
    Records one party's confirmation of a step.

    Returns the updated step, or None when the party had already validated
    the step and no new note was supplied (nothing changed).
    """

    step = get_step(collaboration, name)
    note = notes.strip() if notes else ""
    if len(note) > MAX_NOTE_LENGTH:
        raise ValidationError(f"Note too long (max {MAX_NOTE_LENGTH} characters)")

    already = step.owner_validated if validated_by == "owner" else step.partner_validated
    if already and not note:
        return None

    if validated_by == "owner":
        step.owner_validated = True
    else:
        step.partner_validated = True

    step.validated_at = at
    if note:
        step.notes = note
        step.note_history.append(StepNote(note=note, created_by=actor_id, created_at=at))

    # Once completed a step stays completed
    if step.owner_validated and step.partner_validated:
        step.completed = True

    collaboration.current_progress_step = furthest_completed(collaboration)
    return step


def complete_all(collaboration: Collaboration, at: datetime) -> None:
    """Marks every step completed and validated by both parties."""

    for step in collaboration.progress_steps:
        if not step.completed:
            step.validated_at = step.validated_at or at
        step.completed = True
        step.owner_validated = True
        step.partner_validated = True
    collaboration.current_progress_step = CANONICAL_STEPS[-1]


def furthest_completed(collaboration: Collaboration) -> str:
    completed = {step.name for step in collaboration.progress_steps if step.completed}
    for name in reversed(CANONICAL_STEPS):
        if name in completed:
            return name
    return CANONICAL_STEPS[0]
