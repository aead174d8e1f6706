from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from utils.deps import db_dependency, require_role
from schemas.catalog_schemas import MenuItemCreateRequest, MenuItemUpdateRequest, MenuItemResponse
from services.catalog_service import CatalogService
from middleware.rate_limiter import limiter

owner_dependency = Annotated[dict, Depends(require_role("restaurant"))]


router = APIRouter(
    prefix="/menu",
    tags=["menu"]
)


def _item(model) -> dict:
    return MenuItemResponse.model_validate(model).model_dump()


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def add_menu_item(request: Request, body: MenuItemCreateRequest, user: owner_dependency, db: db_dependency):
    item = CatalogService.add_menu_item(db, user.get("user_id"), body)
    return {"message": "Menu item added", "item": _item(item)}


@router.get("/me", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def list_my_menu(request: Request, user: owner_dependency, db: db_dependency):
    items = CatalogService.list_owner_menu(db, user.get("user_id"))
    return {"menu": [_item(item) for item in items]}


@router.put("/{item_id}", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def update_menu_item(request: Request, item_id: int, body: MenuItemUpdateRequest,
    user: owner_dependency, db: db_dependency):
    item = CatalogService.update_menu_item(db, user.get("user_id"), item_id, body)
    return {"message": "Menu item updated", "item": _item(item)}


@router.delete("/{item_id}", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def delete_menu_item(request: Request, item_id: int, user: owner_dependency, db: db_dependency):
    CatalogService.delete_menu_item(db, user.get("user_id"), item_id)
    return {"message": "Menu item deleted"}


@router.patch("/{item_id}/availability", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def toggle_availability(request: Request, item_id: int, user: owner_dependency, db: db_dependency):
    item = CatalogService.toggle_menu_item(db, user.get("user_id"), item_id)
    state = "available" if item.is_available else "unavailable"
    return {"message": f"Menu item is now {state}", "item": _item(item)}
