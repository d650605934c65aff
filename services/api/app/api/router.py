from __future__ import annotations

from fastapi import APIRouter

from app.api.routes import catalog, health, library

api_router = APIRouter()

# Keep this list in the order you want routes registered.
for _mod in (health, catalog, library):
    api_router.include_router(_mod.router)
