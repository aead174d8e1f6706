from fastapi import APIRouter, Request, status
from utils.deps import db_dependency, user_dependency, broker_dependency
from schemas.order_schemas import (CreateOrderRequest, UpdateOrderStatusRequest, AssignRiderRequest,
serialize_order, serialize_orders)
from services.order_service import OrderService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/orders",
    tags=["orders"]
)


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_order(request: Request, body: CreateOrderRequest, user: user_dependency,
    db: db_dependency, broker: broker_dependency):
    order = OrderService.create_order(db, user, body, broker)

    return {"message": "Order created successfully", "order": serialize_order(order)}


@router.get("/available-deliveries", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_available_deliveries(request: Request, user: user_dependency, db: db_dependency):
    """Ready orders no rider has taken yet, oldest first."""
    orders = OrderService.available_deliveries(db, user)
    return {"orders": serialize_orders(orders)}


@router.get("/customer/{customer_id}", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_customer_orders(request: Request, customer_id: int, user: user_dependency, db: db_dependency):
    orders = OrderService.orders_by_customer(db, user, customer_id)
    return {"orders": serialize_orders(orders)}


@router.get("/restaurant/{restaurant_id}", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_restaurant_orders(request: Request, restaurant_id: int, user: user_dependency, db: db_dependency):
    orders = OrderService.orders_by_restaurant(db, user, restaurant_id)
    return {"orders": serialize_orders(orders)}


@router.get("/rider/{rider_id}/deliveries", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_rider_deliveries(request: Request, rider_id: int, user: user_dependency, db: db_dependency):
    orders = OrderService.deliveries_by_rider(db, user, rider_id)
    return {"orders": serialize_orders(orders)}


@router.get("/rider/{rider_id}/history", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_rider_history(request: Request, rider_id: int, user: user_dependency, db: db_dependency):
    orders = OrderService.delivery_history_by_rider(db, user, rider_id)
    return {"orders": serialize_orders(orders)}


@router.patch("/{order_id}/assign-rider", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def assign_rider(request: Request, order_id: int, body: AssignRiderRequest, user: user_dependency,
    db: db_dependency, broker: broker_dependency):
    order = OrderService.assign_rider(db, user, order_id, body.rider_id, broker)

    return {"message": "Rider assigned successfully", "order": serialize_order(order)}


@router.patch("/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def update_order_status(request: Request, order_id: int, body: UpdateOrderStatusRequest,
    user: user_dependency, db: db_dependency, broker: broker_dependency):
    order = OrderService.update_order_status(db, user, order_id, body.status, broker)

    return {"message": "Order status updated successfully", "order": serialize_order(order)}


@router.get("/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_order(request: Request, order_id: int, user: user_dependency, db: db_dependency):
    order = OrderService.get_order_for_user(db, user, order_id)
    return {"order": serialize_order(order)}
