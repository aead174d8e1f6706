from fastapi import APIRouter, Request, status
from utils.deps import db_dependency, admin_dependency
from schemas.admin_schemas import ApprovalRequest, SetActiveRequest, DashboardStats
from schemas.auth_schemas import UserResponse
from schemas.catalog_schemas import RestaurantResponse
from schemas.order_schemas import serialize_orders
from services.admin_service import AdminService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/admin",
    tags=["admin"]
)


def _users(models) -> list[dict]:
    return [UserResponse.model_validate(m).model_dump() for m in models]


def _restaurants(models) -> list[dict]:
    return [RestaurantResponse.model_validate(m).model_dump(mode="json") for m in models]


@router.get("/dashboard", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_dashboard_stats(request: Request, admin: admin_dependency, db: db_dependency):
    stats = AdminService.dashboard_stats(db)
    return {"stats": DashboardStats(**stats).model_dump()}


@router.get("/users", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_all_users(request: Request, admin: admin_dependency, db: db_dependency):
    return {"users": _users(AdminService.list_users(db))}


@router.get("/restaurants", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_all_restaurants(request: Request, admin: admin_dependency, db: db_dependency):
    return {"restaurants": _restaurants(AdminService.list_restaurants(db))}


@router.get("/riders", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_all_riders(request: Request, admin: admin_dependency, db: db_dependency):
    return {"riders": _users(AdminService.list_riders(db))}


@router.get("/orders", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_all_orders(request: Request, admin: admin_dependency, db: db_dependency):
    return {"orders": serialize_orders(AdminService.list_orders(db))}


@router.get("/approvals/pending", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_pending_approvals(request: Request, admin: admin_dependency, db: db_dependency):
    pending = AdminService.pending_approvals(db)
    return {
        "restaurants": _restaurants(pending["restaurants"]),
        "riders": _users(pending["riders"])
    }


@router.put("/restaurants/{restaurant_id}/status", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def update_restaurant_status(request: Request, restaurant_id: int, body: ApprovalRequest,
    admin: admin_dependency, db: db_dependency):
    restaurant = AdminService.set_restaurant_status(db, restaurant_id, body.status)

    return {
        "message": f"Restaurant {body.status} successfully",
        "restaurant": _restaurants([restaurant])[0]
    }


@router.put("/riders/{rider_id}/status", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def update_rider_status(request: Request, rider_id: int, body: ApprovalRequest,
    admin: admin_dependency, db: db_dependency):
    rider = AdminService.set_rider_status(db, rider_id, body.status)

    return {
        "message": f"Rider {body.status} successfully",
        "rider": UserResponse.model_validate(rider).model_dump()
    }


@router.patch("/users/{user_id}/active", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def set_user_active(request: Request, user_id: int, body: SetActiveRequest,
    admin: admin_dependency, db: db_dependency):
    model = AdminService.set_user_active(db, admin.get("user_id"), user_id, body.is_active)

    state = "activated" if model.is_active else "deactivated"
    return {
        "message": f"User {state} successfully",
        "user": UserResponse.model_validate(model).model_dump()
    }
