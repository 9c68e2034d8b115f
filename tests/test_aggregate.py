"""State machine tests on the pure aggregate, without storage."""

from datetime import datetime, timedelta, timezone

import pytest

from collab_engine.core.errors import ForbiddenError, InvalidStateError, ValidationError
from collab_engine.domain import aggregate
from collab_engine.domain.activity_log import activities_of_kind
from collab_engine.domain.progress import CANONICAL_STEPS
from collab_engine.models.collaboration import Compensation

from conftest import OWNER, PARTNER, PROPERTY, STRANGER

T0 = datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)


def at(minutes):
    return T0 + timedelta(minutes=minutes)


def pending(compensation=None):
    collaboration, _ = aggregate.propose(
        "6650f1e2a3b4c5d6e7f80910",
        PARTNER,
        PROPERTY,
        OWNER,
        compensation or Compensation(percentage=30),
        "J'ai un acquéreur",
        T0,
    )
    return collaboration


def accepted():
    collaboration = pending()
    aggregate.respond(collaboration, OWNER, "accepted", at(1))
    return collaboration


def active():
    collaboration = accepted()
    aggregate.sign(collaboration, OWNER, at(2))
    aggregate.sign(collaboration, PARTNER, at(3))
    return collaboration


def test_propose_initializes_pending_collaboration():
    collaboration = pending()

    assert collaboration.status == "pending"
    assert collaboration.current_step == "proposal"
    assert collaboration.partner_id == PARTNER
    assert collaboration.owner_id == OWNER
    assert [step.name for step in collaboration.progress_steps] == list(CANONICAL_STEPS)
    assert not any(step.completed or step.owner_validated or step.partner_validated for step in collaboration.progress_steps)
    assert len(collaboration.activities) == 1
    assert collaboration.activities[0].kind == "proposal"
    assert collaboration.activities[0].message == "Collaboration proposée avec 30% de commission"


def test_propose_on_own_subject_is_forbidden():
    with pytest.raises(ForbiddenError):
        aggregate.propose("id", OWNER, PROPERTY, OWNER, Compensation(percentage=10), None, T0)


@pytest.mark.parametrize(
    "compensation",
    [
        Compensation(percentage=51),
        Compensation(percentage=-1),
        Compensation(type="fixed_amount"),
        Compensation(type="gift_vouchers", amount=0),
    ],
)
def test_propose_rejects_invalid_compensation(compensation):
    with pytest.raises(ValidationError):
        aggregate.propose("id", PARTNER, PROPERTY, OWNER, compensation, None, T0)


def test_propose_describes_fixed_compensation():
    collaboration = pending(Compensation(type="fixed_amount", amount=500))
    assert collaboration.activities[0].message == "Collaboration proposée avec 500€ de compensation"


def test_propose_rejects_overlong_message():
    with pytest.raises(ValidationError):
        aggregate.propose("id", PARTNER, PROPERTY, OWNER, Compensation(percentage=10), "x" * 501, T0)


def test_only_owner_can_respond():
    collaboration = pending()
    with pytest.raises(ForbiddenError):
        aggregate.respond(collaboration, PARTNER, "accepted", at(1))
    with pytest.raises(ForbiddenError):
        aggregate.respond(collaboration, STRANGER, "accepted", at(1))
    assert collaboration.status == "pending"


def test_reject_is_terminal():
    collaboration = pending()
    events = aggregate.respond(collaboration, OWNER, "reject", at(1))

    assert collaboration.status == "rejected"
    assert events[0].type == "collab:proposal_rejected"
    assert events[0].recipient_ids == (PARTNER,)
    with pytest.raises(InvalidStateError):
        aggregate.respond(collaboration, OWNER, "accepted", at(2))


def test_respond_rejects_unknown_decision():
    with pytest.raises(ValidationError):
        aggregate.respond(pending(), OWNER, "maybe", at(1))


def test_scenario_a_two_signatures_activate():
    collaboration = accepted()
    assert collaboration.current_step == "contract_signing"

    first = aggregate.sign(collaboration, OWNER, at(2))
    assert collaboration.status == "accepted"
    assert [event.type for event in first] == ["contract:signed"]

    second = aggregate.sign(collaboration, PARTNER, at(3))
    assert collaboration.status == "active"
    assert collaboration.current_step == "active"
    assert collaboration.signatures.owner.signed and collaboration.signatures.partner.signed
    assert len(activities_of_kind(collaboration, "signing")) == 2
    activations = [a for a in collaboration.activities if a.message.startswith("Collaboration activated")]
    assert len(activations) == 1
    assert activations[0].kind == "status_update"
    assert [event.type for event in second] == ["contract:signed", "collab:activated"]
    assert set(second[1].recipient_ids) == {OWNER, PARTNER}


def test_signing_twice_is_idempotent():
    collaboration = accepted()
    aggregate.sign(collaboration, OWNER, at(2))
    signed_at = collaboration.signatures.owner.signed_at
    activity_count = len(collaboration.activities)

    assert aggregate.sign(collaboration, OWNER, at(5)) == []
    assert collaboration.signatures.owner.signed_at == signed_at
    assert len(collaboration.activities) == activity_count


def test_signing_requires_accepted_status():
    with pytest.raises(InvalidStateError):
        aggregate.sign(pending(), OWNER, at(1))
    with pytest.raises(InvalidStateError):
        aggregate.sign(active(), OWNER, at(9))


def test_scenario_c_edit_resets_signatures():
    collaboration = accepted()
    collaboration.signatures.owner.signed = True
    collaboration.signatures.owner.signed_at = at(2)
    collaboration.signatures.partner.signed = True
    collaboration.signatures.partner.signed_at = at(2)

    events = aggregate.edit_contract(collaboration, OWNER, "Nouveau texte", None, at(3))

    assert collaboration.status == "accepted"
    assert not collaboration.signatures.owner.signed
    assert not collaboration.signatures.partner.signed
    assert collaboration.signatures.owner.signed_at is None
    assert collaboration.contract_modified
    assert collaboration.contract_last_modified_by == OWNER
    assert collaboration.contract_last_modified_at == at(3)
    assert collaboration.activities[-1].kind == "note"
    assert "signatures reset" in collaboration.activities[-1].message
    assert events[0].type == "contract:updated"
    assert events[0].recipient_ids == (PARTNER,)


def test_edit_with_identical_text_keeps_signatures():
    collaboration = accepted()
    aggregate.edit_contract(collaboration, OWNER, "Texte", "Clause", at(2))
    aggregate.sign(collaboration, PARTNER, at(3))
    activity_count = len(collaboration.activities)

    assert aggregate.edit_contract(collaboration, OWNER, "Texte", "Clause", at(4)) == []
    assert collaboration.signatures.partner.signed
    assert len(collaboration.activities) == activity_count


def test_contract_is_not_editable_once_active():
    with pytest.raises(InvalidStateError):
        aggregate.edit_contract(active(), OWNER, "Autre texte", None, at(9))


def test_notes_require_active_status():
    with pytest.raises(InvalidStateError):
        aggregate.add_note(accepted(), OWNER, "Bonjour", at(2))

    collaboration = active()
    events = aggregate.add_note(collaboration, PARTNER, "  Visite confirmée  ", at(4))
    assert collaboration.activities[-1].kind == "note"
    assert collaboration.activities[-1].message == "Visite confirmée"
    assert events[0].recipient_ids == (OWNER,)


def test_empty_note_is_rejected():
    with pytest.raises(ValidationError):
        aggregate.add_note(active(), OWNER, "   ", at(4))


def test_cancel_from_live_states():
    for build in (pending, accepted, active):
        collaboration = build()
        aggregate.cancel(collaboration, PARTNER, at(10))
        assert collaboration.status == "cancelled"
        assert collaboration.cancelled_at == at(10)
        assert collaboration.activities[-1].kind == "status_update"


def test_stranger_cannot_cancel():
    with pytest.raises(ForbiddenError):
        aggregate.cancel(pending(), STRANGER, at(1))


def test_scenario_d_complete_overrides_progress():
    collaboration = active()
    aggregate.advance(collaboration, OWNER, "premier_contact", None, "owner", at(4))

    aggregate.complete(collaboration, OWNER, at(5))

    assert collaboration.status == "completed"
    assert collaboration.completed_at == at(5)
    assert collaboration.current_progress_step == "affaire_conclue"
    assert len(collaboration.progress_steps) == 10
    for step in collaboration.progress_steps:
        assert step.completed and step.owner_validated and step.partner_validated
    assert collaboration.activities[-1].kind == "status_update"


def test_complete_requires_active_status():
    with pytest.raises(InvalidStateError):
        aggregate.complete(accepted(), OWNER, at(2))


def test_scenario_b_dual_validation_completes_one_step():
    collaboration = active()

    aggregate.advance(collaboration, OWNER, "visite_programmee", "Samedi 10h", "owner", at(4))
    step = next(s for s in collaboration.progress_steps if s.name == "visite_programmee")
    assert step.owner_validated and not step.completed

    aggregate.advance(collaboration, PARTNER, "visite_programmee", None, "partner", at(5))
    assert step.completed
    assert step.notes == "Samedi 10h"
    assert collaboration.current_progress_step == "visite_programmee"
    others = [s for s in collaboration.progress_steps if s.name != "visite_programmee"]
    assert not any(s.completed or s.owner_validated or s.partner_validated for s in others)
    assert collaboration.activities[-1].message == "Partenaire a validé: Visite programmée"


def test_progress_allowed_while_accepted():
    collaboration = accepted()
    aggregate.advance(collaboration, PARTNER, "premier_contact", None, "partner", at(2))
    assert collaboration.progress_steps[1].partner_validated


def test_cannot_validate_on_behalf_of_other_party():
    with pytest.raises(ForbiddenError):
        aggregate.advance(active(), OWNER, "premier_contact", None, "partner", at(4))


@pytest.mark.parametrize(
    "target_step, validated_by",
    [("visite_virtuelle", "owner"), ("premier_contact", "collaborator"), ("premier_contact", "")],
)
def test_advance_rejects_malformed_parameters(target_step, validated_by):
    with pytest.raises(ValidationError):
        aggregate.advance(active(), OWNER, target_step, None, validated_by, at(4))


def test_progress_note_must_fit_in_activity_message():
    collaboration = active()
    activities = len(collaboration.activities)

    with pytest.raises(ValidationError):
        aggregate.advance(collaboration, OWNER, "premier_contact", "x" * 495, "owner", at(4))

    assert not collaboration.progress_steps[1].owner_validated
    assert len(collaboration.activities) == activities

    aggregate.advance(collaboration, OWNER, "premier_contact", "x" * 450, "owner", at(5))
    assert collaboration.activities[-1].message.endswith("x" * 450)


def test_progress_requires_accepted_or_active():
    with pytest.raises(InvalidStateError):
        aggregate.advance(pending(), OWNER, "premier_contact", None, "owner", at(1))


@pytest.mark.parametrize("terminal", ["rejected", "cancelled", "completed"])
def test_terminal_collaborations_are_immutable(terminal):
    if terminal == "rejected":
        collaboration = pending()
        aggregate.respond(collaboration, OWNER, "rejected", at(1))
    elif terminal == "cancelled":
        collaboration = active()
        aggregate.cancel(collaboration, OWNER, at(4))
    else:
        collaboration = active()
        aggregate.complete(collaboration, OWNER, at(4))

    operations = [
        lambda: aggregate.respond(collaboration, OWNER, "accepted", at(20)),
        lambda: aggregate.add_note(collaboration, OWNER, "note", at(20)),
        lambda: aggregate.cancel(collaboration, PARTNER, at(20)),
        lambda: aggregate.complete(collaboration, PARTNER, at(20)),
        lambda: aggregate.sign(collaboration, PARTNER, at(20)),
        lambda: aggregate.edit_contract(collaboration, OWNER, "texte", None, at(20)),
        lambda: aggregate.advance(collaboration, OWNER, "premier_contact", None, "owner", at(20)),
        lambda: aggregate.advance(collaboration, OWNER, "premier_contact", None, "partner", at(20)),
    ]
    for operation in operations:
        with pytest.raises(InvalidStateError):
            operation()
    assert collaboration.status == terminal


def test_resolve_role():
    collaboration = pending()
    assert aggregate.resolve_role(OWNER, collaboration) == "owner"
    assert aggregate.resolve_role(PARTNER, collaboration) == "partner"
    assert aggregate.resolve_role(STRANGER, collaboration) == "none"
    assert aggregate.resolve_role(None, collaboration) == "none"
