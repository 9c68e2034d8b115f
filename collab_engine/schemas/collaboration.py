"""
Collaboration schemas.

Request bodies accepted by the collaboration endpoints and the response
shape returned for a collaboration. Values are only type-checked here; the
business rules (commission range, step names, roles) are enforced by the
domain so that they fail with a `validation_error` kind.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from collab_engine.models.collaboration import Collaboration, CompensationType


class ProposeCollaboration(BaseModel):
    """
    Proposal of a collaboration on a property or a search ad.

    Exactly one of `property_id` and `search_ad_id` must be given.

    Example:
        >>> ProposeCollaboration(property_id="65f0c0ffee0000000000abcd", commission_percentage=30)
    """

    property_id: Optional[str] = None
    search_ad_id: Optional[str] = None
    commission_percentage: float = 0
    compensation_type: CompensationType = "percentage"
    compensation_amount: Optional[float] = None
    message: Optional[str] = None

    @model_validator(mode="after")
    def _one_subject(self):
        if bool(self.property_id) == bool(self.search_ad_id):
            raise ValueError("Either property_id or search_ad_id must be provided")
        return self


class RespondToCollaboration(BaseModel):
    response: Literal["accepted", "rejected"]


class CollaborationNote(BaseModel):
    content: str


class ProgressStatusUpdate(BaseModel):
    """Validation of a milestone on behalf of the caller."""

    target_step: str
    validated_by: str
    notes: Optional[str] = None


class CollaborationResponse(Collaboration):
    """Collaboration as returned by the API (without internal fields)."""

    revision: int = Field(default=0, exclude=True)
