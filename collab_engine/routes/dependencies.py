from fastapi import Request

from collab_engine.services.collaboration_service import CollaborationService


def get_collaboration_service(request: Request) -> CollaborationService:
    """Returns the service instance built at application startup."""
    return request.app.state.collaboration_service
