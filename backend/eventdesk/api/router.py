"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from eventdesk.api.routes import (
    auth,
    dashboard,
    event_kit,
    events,
    participants,
    reference,
    scanner,
    seating,
    vehicles,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(participants.router)
api_router.include_router(reference.router)
api_router.include_router(events.router)
api_router.include_router(scanner.router)
api_router.include_router(seating.router)
api_router.include_router(vehicles.router)
api_router.include_router(event_kit.router)
api_router.include_router(dashboard.router)
