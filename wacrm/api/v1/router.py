"""Main API router aggregating all v1 routes."""

from fastapi import APIRouter

from wacrm.api.v1 import conversations, debug, whatsapp_numbers, workflows

api_router = APIRouter()

# Include all route modules
api_router.include_router(conversations.router)
api_router.include_router(whatsapp_numbers.router)
api_router.include_router(workflows.router)
api_router.include_router(debug.router)
