"""Main API router aggregating all v1 routes."""

from fastapi import APIRouter

from clinic_inbox.api.v1 import conversations, debug, messages, provider, webhooks

api_router = APIRouter()

api_router.include_router(conversations.router)
api_router.include_router(messages.router)
api_router.include_router(provider.router)
api_router.include_router(webhooks.router)
api_router.include_router(debug.router)
