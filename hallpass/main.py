# hallpass/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hallpass.api.v1.api import api_router
from hallpass.core.config import settings
from hallpass.core.exceptions import (
    AlreadyCheckedOut,
    CapacityConflict,
    DestinationBusy,
    DestinationNotFound,
    DestinationRequired,
    DuplicateDestination,
    EntryNotFound,
    HallpassError,
    InvalidAction,
    NotCheckedOut,
    NotEnrolled,
    ValidationError,
)
from hallpass.scheduler import get_scheduler_status, init_scheduler, shutdown_scheduler

logger = logging.getLogger(__name__)

# Most specific first; anything unlisted falls back to 400.
ERROR_STATUS = [
    (DestinationNotFound, status.HTTP_404_NOT_FOUND),
    (EntryNotFound, status.HTTP_404_NOT_FOUND),
    (DuplicateDestination, status.HTTP_409_CONFLICT),
    (CapacityConflict, status.HTTP_409_CONFLICT),
    (DestinationBusy, status.HTTP_423_LOCKED),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (DestinationRequired, status.HTTP_400_BAD_REQUEST),
    (NotEnrolled, status.HTTP_400_BAD_REQUEST),
    (AlreadyCheckedOut, status.HTTP_400_BAD_REQUEST),
    (NotCheckedOut, status.HTTP_400_BAD_REQUEST),
    (InvalidAction, status.HTTP_400_BAD_REQUEST),
]


def status_for(exc: HallpassError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    if settings.ENABLE_SCHEDULER:
        init_scheduler()
    yield
    shutdown_scheduler()
    logger.info("Application shutting down...")


app = FastAPI(
    title="Hallpass Check-in Service",
    version="1.0.0",
    description="""
        **Hallpass** tracks students leaving and returning to the classroom.

        ## Features

        * **Check-in / check-out** with destinations per classroom
        * **Waiting rooms**: one capacity-limited destination per classroom,
          with a fair first-come queue that promotes as slots free
        * **Teacher actions** on the queue: skip, remove, approve

        ## Authentication

        All endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        """,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HallpassError)
async def hallpass_error_handler(request: Request, exc: HallpassError):
    status_code = status_for(exc)
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, CapacityConflict):
        content["conflicting_destination"] = {
            "id": exc.conflicting_id,
            "name": exc.conflicting_name,
        }
    if isinstance(exc, InvalidAction):
        content["allowed"] = exc.allowed
    return JSONResponse(status_code=status_code, content=content)


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok", "scheduler": get_scheduler_status()["status"]}
