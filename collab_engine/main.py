"""
Collaboration Engine — FastAPI application entry point.

This module initializes the FastAPI application that brokers collaboration
agreements between the owner of a real-estate listing (or client search ad)
and a partner bringing a prospective client. It configures logging and CORS,
connects to MongoDB, wires the collaboration service with its external
collaborators, and registers the collaboration and contract routes.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from collab_engine.core.config import CORS_ORIGINS
from collab_engine.core.errors import CollaborationError
from collab_engine.core.logging_config import setup_logging
from collab_engine.db.client import close_mongo, get_db, init_mongo
from collab_engine.db.repository import MongoCollaborationRepository
from collab_engine.routes import collaboration_routes, contract_routes
from collab_engine.services.collaboration_service import CollaborationService
from collab_engine.services.identity_service import MongoIdentityLookup
from collab_engine.services.notification_service import Notifier, build_dispatcher
from collab_engine.services.subject_registry import MongoSubjectRegistry

setup_logging()
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# Application initialization
# ------------------------------------------------------------------------------

app = FastAPI(
    title="Collaboration Engine",
    description="API to broker collaborations between listing owners and partners",
    version="1.0.0"
)

# ------------------------------------------------------------------------------
# Middleware configuration
# ------------------------------------------------------------------------------

# CORS middleware: allowed origins come from CORS_ORIGINS.
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------------------------------------------------------------
# Error handling
# ------------------------------------------------------------------------------

@app.exception_handler(CollaborationError)
async def collaboration_error_handler(request: Request, exc: CollaborationError):
    """Render domain errors as `{"kind": ..., "detail": ...}` with their status code."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# ------------------------------------------------------------------------------
# Application lifecycle events
# ------------------------------------------------------------------------------

@app.on_event("startup")
async def startup():
    """
    Connect to MongoDB and build the collaboration service.

    A service already attached to `app.state` (e.g. an in-memory one) is kept.
    """
    if getattr(app.state, "collaboration_service", None) is not None:
        return

    await init_mongo()
    db = get_db()

    repository = MongoCollaborationRepository(db)
    await repository.ensure_indexes()

    identities = MongoIdentityLookup(db)
    app.state.collaboration_service = CollaborationService(
        repository=repository,
        registry=MongoSubjectRegistry(db),
        identities=identities,
        notifier=Notifier(build_dispatcher(), identities),
    )
    logger.info("Collaboration service ready")


@app.on_event("shutdown")
async def shutdown():
    """Wait for in-flight notifications, then close the MongoDB client."""
    service = getattr(app.state, "collaboration_service", None)
    if service is not None:
        await service.notifier.drain()
    close_mongo()

# ------------------------------------------------------------------------------
# API routes registration
# ------------------------------------------------------------------------------

app.include_router(collaboration_routes.router, prefix="/collaborations", tags=["Collaborations"])
app.include_router(contract_routes.router, prefix="/contracts", tags=["Contracts"])
