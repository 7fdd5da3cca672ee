# hallpass/api/v1/api.py

from fastapi import APIRouter
from hallpass.api.v1.endpoints import (
    checkin,
    destinations,
    waitlist,
)

# This is the main router for the v1 API.
api_router = APIRouter()

api_router.include_router(checkin.router)
api_router.include_router(waitlist.router)
api_router.include_router(destinations.router)
