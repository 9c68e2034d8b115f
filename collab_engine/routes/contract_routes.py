"""
Contract routes.

Endpoints to read, edit and sign the contract of a collaboration. The
contract can only be edited and signed while the collaboration is
accepted; any substantive edit resets both signatures.
"""

from fastapi import APIRouter, Depends

from collab_engine.core.security import Actor, get_current_actor
from collab_engine.routes.dependencies import get_collaboration_service
from collab_engine.schemas.contract import ContractUpdate, ContractUpdateResponse, ContractView
from collab_engine.services.collaboration_service import CollaborationService

router = APIRouter()


@router.get("/{collaboration_id}", response_model=ContractView)
async def get_contract(
    collaboration_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """
    Retrieve the contract of a collaboration.

    The default contract is generated the first time it is requested.
    """

    return await service.get_contract(collaboration_id, actor.id)


@router.put("/{collaboration_id}", response_model=ContractUpdateResponse)
async def update_contract(
    collaboration_id: str,
    data: ContractUpdate,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """
    Edit the contract text and additional terms.

    Example:
        >>> PUT /contracts/6650f1e2a3b4c5d6e7f80910
        {"contract_text": "...", "additional_terms": "Visits on weekends only"}
    """

    contract, requires_resigning = await service.edit_contract(
        collaboration_id, actor.id, data.contract_text, data.additional_terms
    )
    message = "Contract updated successfully"
    if requires_resigning:
        message += " - both parties must sign again"
    return ContractUpdateResponse(message=message, contract=contract, requires_resigning=requires_resigning)


@router.post("/{collaboration_id}/sign", response_model=ContractView)
async def sign_contract(
    collaboration_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CollaborationService = Depends(get_collaboration_service),
):
    collaboration = await service.sign(collaboration_id, actor.id)
    return await service.describe_contract(collaboration, actor.id)
