"""
Signature ledger.

Tracks the owner's and the partner's signature of the collaboration contract
and the rule that any substantive edit of the contract invalidates both.
"""

from datetime import datetime
from typing import Optional

from collab_engine.models.collaboration import Collaboration, SignatureEntry, SignatureLedger


def entry_for(ledger: SignatureLedger, role: str) -> SignatureEntry:
    return ledger.owner if role == "owner" else ledger.partner


def record_signature(ledger: SignatureLedger, role: str, at: datetime) -> bool:
    """
    Marks `role` as signed.

    Returns False when the party had already signed; the original timestamp
    is kept in that case.
    """

    entry = entry_for(ledger, role)
    if entry.signed:
        return False
    entry.signed = True
    entry.signed_at = at
    return True


def reset_signatures(ledger: SignatureLedger) -> bool:
    """Clears both signatures. Returns whether any signature was set."""

    was_signed = ledger.owner.signed or ledger.partner.signed
    ledger.owner = SignatureEntry()
    ledger.partner = SignatureEntry()
    return was_signed


def contract_differs(collaboration: Collaboration, text: Optional[str], terms: Optional[str]) -> bool:
    return collaboration.contract_text != text or collaboration.additional_terms != terms


def derived_flags(collaboration: Collaboration, role: str) -> dict:
    """
    Read-only permissions shown next to the contract.

    Computed from the current state on every read, never stored.
    """

    is_party = role in ("owner", "partner")
    in_signing_window = collaboration.status == "accepted"
    ledger = collaboration.signatures
    return {
        "can_edit": is_party and in_signing_window,
        "can_sign": is_party and in_signing_window and not entry_for(ledger, role).signed,
        "requires_both_signatures": ledger.owner.signed != ledger.partner.signed,
    }
