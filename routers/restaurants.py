from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from utils.deps import db_dependency, require_role
from schemas.catalog_schemas import (RestaurantCreateRequest, RestaurantUpdateRequest,
RestaurantResponse, MenuItemResponse)
from services.catalog_service import CatalogService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)

owner_dependency = Annotated[dict, Depends(require_role("restaurant"))]


router = APIRouter(
    prefix="/restaurants",
    tags=["restaurants"]
)


def _restaurant(model) -> dict:
    return RestaurantResponse.model_validate(model).model_dump(mode="json")


@router.get("", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def list_restaurants(request: Request, db: db_dependency):
    """Approved, active restaurants (public)."""
    restaurants = CatalogService.list_visible_restaurants(db)
    return {"restaurants": [_restaurant(r) for r in restaurants]}


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def create_restaurant(request: Request, body: RestaurantCreateRequest, user: owner_dependency, db: db_dependency):
    restaurant = CatalogService.register_restaurant(db, user.get("user_id"), body)

    return {
        "message": "Restaurant created. Waiting for admin approval.",
        "restaurant": _restaurant(restaurant)
    }


@router.get("/me", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def get_my_restaurant(request: Request, user: owner_dependency, db: db_dependency):
    restaurant = CatalogService.get_owned_restaurant(db, user.get("user_id"))
    return {"restaurant": _restaurant(restaurant)}


@router.put("/me", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
async def update_my_restaurant(request: Request, body: RestaurantUpdateRequest, user: owner_dependency, db: db_dependency):
    restaurant = CatalogService.update_restaurant(db, user.get("user_id"), body)

    logger.info("Restaurant profile updated", extra={"restaurant_id": restaurant.id})

    return {
        "message": "Restaurant updated successfully",
        "restaurant": _restaurant(restaurant)
    }


@router.get("/{restaurant_id}", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_restaurant(request: Request, restaurant_id: int, db: db_dependency):
    restaurant = CatalogService.get_visible_restaurant(db, restaurant_id)
    return {"restaurant": _restaurant(restaurant)}


@router.get("/{restaurant_id}/menu", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_restaurant_menu(request: Request, restaurant_id: int, db: db_dependency):
    items = CatalogService.get_menu(db, restaurant_id)
    return {"menu": [MenuItemResponse.model_validate(item).model_dump() for item in items]}
