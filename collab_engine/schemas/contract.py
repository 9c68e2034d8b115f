from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ContractUpdate(BaseModel):
    contract_text: Optional[str] = None
    additional_terms: Optional[str] = None


class ContractParty(BaseModel):
    id: str
    name: str
    avatar: Optional[str] = None


class ContractView(BaseModel):
    """
    Contract of a collaboration as seen by one of the parties.

    `can_edit`, `can_sign` and `requires_both_signatures` are derived from
    the collaboration state for the requesting party.
    """

    id: str
    contract_text: Optional[str] = None
    additional_terms: Optional[str] = None
    contract_modified: bool = False
    contract_last_modified_by: Optional[str] = None
    contract_last_modified_at: Optional[datetime] = None
    owner_signed: bool = False
    owner_signed_at: Optional[datetime] = None
    partner_signed: bool = False
    partner_signed_at: Optional[datetime] = None
    status: str
    current_step: str
    owner: ContractParty
    partner: ContractParty
    can_edit: bool
    can_sign: bool
    requires_both_signatures: bool


class ContractUpdateResponse(BaseModel):
    message: str
    contract: ContractView
    requires_resigning: bool
