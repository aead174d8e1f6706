from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from models.orders import OrderStatus


class OrderItemRequest(BaseModel):
    menu_item_id: int
    quantity: int = Field(default=1, ge=1)


class CreateOrderRequest(BaseModel):
    # Presence of restaurant_id, items and total_amount is checked by
    # OrderService so that a missing field is a 400, not a schema error.
    restaurant_id: Optional[int] = None
    items: Optional[List[OrderItemRequest]] = None
    total_amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    delivery_address: Optional[str] = None
    special_instructions: Optional[str] = None


class UpdateOrderStatusRequest(BaseModel):
    # Free text here, validated against the status vocabulary by the policy
    status: str


class AssignRiderRequest(BaseModel):
    rider_id: int


class CustomerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone_number: Optional[str] = None


class RestaurantSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None


class RiderSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    phone_number: Optional[str] = None
    vehicle_type: Optional[str] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    menu_item_id: int
    name: str
    price: float
    quantity: int


class LocationSample(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    latitude: float
    longitude: float
    recorded_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: OrderStatus
    total_amount: float
    delivery_address: str
    customer_phone: str
    special_instructions: Optional[str] = None
    items: List[OrderItemResponse]
    customer: CustomerSummary
    restaurant: RestaurantSummary
    rider: Optional[RiderSummary] = None
    current_location: Optional[LocationSample] = None
    created_at: datetime
    updated_at: datetime
    delivered_at: Optional[datetime] = None


def serialize_order(order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json")


def serialize_orders(orders) -> list[dict]:
    return [serialize_order(order) for order in orders]
