"""API v1 router aggregation."""

from fastapi import APIRouter

from app.api.v1 import automation

api_router = APIRouter()

api_router.include_router(automation.router, prefix="/automations", tags=["automations"])
