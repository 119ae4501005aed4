"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from upload_proxy.api import uploads

api_router = APIRouter()

# The upload handler owns every path, so it is included without a prefix
api_router.include_router(uploads.router, tags=["uploads"])
