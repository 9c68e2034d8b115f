"""Titles and messages of collaboration notifications."""

from collab_engine.domain.contract_template import format_amount
from collab_engine.domain.progress import STEP_TITLES


def render(event_type: str, actor_name: str, data: dict) -> tuple[str, str]:
    """Returns the `(title, message)` pair for an event."""

    if event_type == "collab:proposal_received":
        if data.get("compensation_type") == "fixed_amount":
            offer = f"a €{format_amount(data.get('compensation_amount') or 0)} compensation"
        elif data.get("compensation_type") == "gift_vouchers":
            offer = f"{format_amount(data.get('compensation_amount') or 0)} gift vouchers"
        else:
            offer = f"a {format_amount(data.get('commission_percentage') or 0)}% commission"
        return "New collaboration proposal", f"{actor_name} proposed a collaboration with {offer}."
    if event_type == "collab:proposal_accepted":
        return f"{actor_name} accepted your proposal", "You can now review and sign the contract."
    if event_type == "collab:proposal_rejected":
        return f"{actor_name} declined your proposal", "The collaboration proposal was rejected."
    if event_type == "collab:note_added":
        return f"New note from {actor_name}", data.get("content", "")
    if event_type == "collab:cancelled":
        return "Collaboration cancelled", f"{actor_name} cancelled the collaboration."
    if event_type == "collab:progress_updated":
        step = STEP_TITLES.get(data.get("target_step"), data.get("target_step"))
        return "Progress updated", f"{actor_name} validated the step: {step}."
    if event_type == "contract:signed":
        return "Contract signed", f"{actor_name} signed the contract."
    if event_type == "collab:activated":
        return "Collaboration activated", f"Collaboration is now active. Activated by {actor_name}."
    if event_type == "contract:updated":
        return "Contract updated", "Contract content changed. Signatures reset; both must sign again."
    if event_type == "collab:completed":
        return "Collaboration completed", f"{actor_name} marked the collaboration as completed."
    return "Collaboration update", f"{actor_name} updated the collaboration."
