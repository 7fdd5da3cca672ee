# hallpass/api/v1/endpoints/destinations.py
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from hallpass.api import deps
from hallpass.models.classroom import Classroom
from hallpass.schemas import destination as destination_schemas
from hallpass.services.destination_registry import destination_registry

router = APIRouter(tags=["Destinations"])


@router.get(
    "/classrooms/{classroom_id}/destinations",
    response_model=List[destination_schemas.Destination],
)
def list_destinations(
    classroom_id: str,
    db: Session = Depends(deps.get_db),
    classroom: Classroom = Depends(deps.get_owned_classroom),
):
    return destination_registry.list_destinations(db, classroom_id=classroom.id)


@router.post(
    "/classrooms/{classroom_id}/destinations",
    response_model=destination_schemas.Destination,
    status_code=status.HTTP_201_CREATED,
)
def create_destination(
    classroom_id: str,
    destination_in: destination_schemas.DestinationCreate,
    db: Session = Depends(deps.get_db),
    classroom: Classroom = Depends(deps.get_owned_classroom),
):
    """
    Create a destination. A capacity makes it the classroom's waiting room.

    **Errors**:
    - 400: Empty name or invalid capacity
    - 409: Duplicate name, or another destination already has a capacity
    """
    return destination_registry.create_destination(
        db,
        classroom_id=classroom.id,
        name=destination_in.name,
        capacity=destination_in.capacity,
    )


@router.patch(
    "/classrooms/{classroom_id}/destinations/{destination_id}",
    response_model=destination_schemas.Destination,
)
def update_destination(
    classroom_id: str,
    destination_id: str,
    destination_in: destination_schemas.DestinationUpdate,
    db: Session = Depends(deps.get_db),
    classroom: Classroom = Depends(deps.get_owned_classroom),
):
    """Partial update; fields missing from the body are left alone."""
    # capacity: null is meaningful (unlimited), so look at what was sent, not at None.
    changes = destination_in.model_dump(exclude_unset=True)
    return destination_registry.update(
        db,
        classroom_id=classroom.id,
        destination_id=destination_id,
        **changes,
    )


@router.delete(
    "/classrooms/{classroom_id}/destinations/{destination_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_destination(
    classroom_id: str,
    destination_id: str,
    db: Session = Depends(deps.get_db),
    classroom: Classroom = Depends(deps.get_owned_classroom),
):
    destination_registry.delete_destination(
        db, classroom_id=classroom.id, destination_id=destination_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
