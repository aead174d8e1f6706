from typing import Optional
from pydantic import BaseModel, Field
from schemas.order_schemas import LocationSample


class RiderLocationRequest(BaseModel):
    order_id: int
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class PartyLocation(BaseModel):
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None


class RiderLocationView(BaseModel):
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    vehicle_type: Optional[str] = None
    current_location: Optional[LocationSample] = None


class OrderLocationsResponse(BaseModel):
    customer: PartyLocation
    restaurant: PartyLocation
    rider: Optional[RiderLocationView] = None
