"""
Collaboration routes.

This module defines the API endpoints of the collaboration lifecycle:
proposing a collaboration on a property or a search ad, answering it,
cancelling or completing it, signing the contract, adding notes and
validating progress milestones.

All endpoints require a bearer token and delegate to
`collab_engine.services.collaboration_service`.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from collab_engine.core.security import Actor, get_current_actor
from collab_engine.models.collaboration import CollaborationStatus, Compensation, SubjectRef
from collab_engine.routes.dependencies import get_collaboration_service
from collab_engine.schemas.collaboration import (
    CollaborationNote,
    CollaborationResponse,
    ProgressStatusUpdate,
    ProposeCollaboration,
    RespondToCollaboration,
)
from collab_engine.services.collaboration_service import CollaborationService

router = APIRouter()


@router.post("", status_code=201, response_model=CollaborationResponse)
async def propose_collaboration_route(
    data: ProposeCollaboration,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """
    Propose a collaboration on a property or a search ad.

    The caller becomes the partner; the owner of the subject receives the
    proposal.

    Example:
        >>> POST /collaborations
        {
            "property_id": "65f0c0ffee0000000000abcd",
            "commission_percentage": 30,
            "message": "I have a buyer for this flat"
        }
    """

    if data.property_id:
        subject = SubjectRef(kind="property", id=data.property_id)
    else:
        subject = SubjectRef(kind="search_ad", id=data.search_ad_id)

    compensation = Compensation(
        type=data.compensation_type,
        percentage=data.commission_percentage,
        amount=data.compensation_amount,
    )
    return await service.propose(actor.id, subject, compensation, data.message)


@router.get("", response_model=List[CollaborationResponse])
async def list_my_collaborations(
    status: Optional[CollaborationStatus] = None,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Retrieve the collaborations the caller takes part in, most recently updated first."""

    return await service.list_for_user(actor.id, status)


@router.get("/property/{property_id}", response_model=List[CollaborationResponse])
async def list_property_collaborations(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.list_for_subject(SubjectRef(kind="property", id=property_id), actor.id)


@router.get("/search-ad/{search_ad_id}", response_model=List[CollaborationResponse])
async def list_search_ad_collaborations(
    search_ad_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.list_for_subject(SubjectRef(kind="search_ad", id=search_ad_id), actor.id)


@router.get("/{collaboration_id}", response_model=CollaborationResponse)
async def get_collaboration(
    collaboration_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Retrieve one collaboration. Only its two parties may read it."""

    return await service.get(collaboration_id, actor.id)


@router.post("/{collaboration_id}/respond", response_model=CollaborationResponse)
async def respond_to_collaboration(
    collaboration_id: str,
    data: RespondToCollaboration,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """
    Accept or reject a pending proposal. Owner only.

    Example:
        >>> POST /collaborations/6650f1e2a3b4c5d6e7f80910/respond
        {"response": "accepted"}
    """

    return await service.respond(collaboration_id, actor.id, data.response)


@router.post("/{collaboration_id}/notes", response_model=CollaborationResponse)
async def add_collaboration_note(
    collaboration_id: str,
    data: CollaborationNote,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Add a free-form note to an active collaboration."""

    return await service.add_note(collaboration_id, actor.id, data.content)


@router.delete("/{collaboration_id}/cancel", response_model=CollaborationResponse)
async def cancel_collaboration(
    collaboration_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.cancel(collaboration_id, actor.id)


@router.put("/{collaboration_id}/progress-status", response_model=CollaborationResponse)
async def update_progress_status(
    collaboration_id: str,
    data: ProgressStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """
    Validate a progress milestone on the caller's behalf.

    Example:
        >>> PUT /collaborations/6650f1e2a3b4c5d6e7f80910/progress-status
        {"target_step": "visite_programmee", "validated_by": "owner", "notes": "Saturday 10am"}
    """

    return await service.advance(collaboration_id, actor.id, data.target_step, data.validated_by, data.notes)


@router.post("/{collaboration_id}/sign", response_model=CollaborationResponse)
async def sign_collaboration(
    collaboration_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return await service.sign(collaboration_id, actor.id)


@router.post("/{collaboration_id}/complete", response_model=CollaborationResponse)
async def complete_collaboration(
    collaboration_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Close an active collaboration, marking every milestone as done."""

    return await service.complete(collaboration_id, actor.id)
