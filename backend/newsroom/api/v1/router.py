"""API v1 router."""
from fastapi import APIRouter

from newsroom.api.v1 import filters

api_router: APIRouter = APIRouter()
api_router.include_router(filters.router, tags=["filters"])
