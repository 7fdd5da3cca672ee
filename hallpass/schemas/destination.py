# hallpass/schemas/destination.py
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Capacity arrives as a number, a numeric string or empty; the registry normalizes it.
CapacityInput = Optional[Union[int, str]]


class DestinationCreate(BaseModel):
    name: str
    capacity: CapacityInput = None


class DestinationUpdate(BaseModel):
    """Only the fields present in the request body are applied."""
    name: Optional[str] = None
    capacity: CapacityInput = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")

    model_config = ConfigDict(populate_by_name=True)


class Destination(BaseModel):
    id: str
    classroom_id: str
    name: str
    capacity: Optional[int] = None
    is_active: bool
    sort_order: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
