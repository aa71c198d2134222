"""Schemas for properties and rooms."""
from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from ..models.property import PropertyStatus


class FeeLine(BaseModel):
    name: str
    amount: Decimal = Field(ge=0)


class PropertyPolicies(BaseModel):
    fees: list[FeeLine] = Field(default_factory=list)
    house_rules: list[str] = Field(default_factory=list)
    check_in_time: str | None = None
    check_out_time: str | None = None
    notes: str | None = None


class BedConfig(BaseModel):
    type: Annotated[str, Field(pattern="^(single|double|queen|king|sofa|bunk)$")]
    count: int = Field(default=1, ge=1, le=10)


class CreatePropertyRequest(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    country: str | None = None
    policies: PropertyPolicies = Field(default_factory=PropertyPolicies)


class UpdatePropertyRequest(CreatePropertyRequest):
    """Full replacement of the editable property fields."""


class PropertyStatusRequest(BaseModel):
    status: PropertyStatus


class PropertyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    host_id: str
    name: str
    address: str
    city: str
    country: str | None = None
    status: PropertyStatus
    policies: PropertyPolicies = Field(default_factory=PropertyPolicies, validation_alias="policies_json")


class PropertyListResponse(BaseModel):
    items: list[PropertyOut]


class RoomFields(BaseModel):
    name: str = Field(min_length=1)
    room_type: str | None = None
    description: str | None = None
    max_occupancy: int = Field(default=2, ge=1, le=50)
    price_per_night: Decimal = Field(ge=0, decimal_places=2)
    beds: list[BedConfig] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)


class UpdateRoomRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    room_type: str | None = None
    description: str | None = None
    max_occupancy: int | None = Field(default=None, ge=1, le=50)
    price_per_night: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    beds: list[BedConfig] | None = None
    amenities: list[str] | None = None
    images: list[str] | None = None


class RoomOut(RoomFields):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str


class RoomListResponse(BaseModel):
    items: list[RoomOut]
