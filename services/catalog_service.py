from typing import Iterable
from sqlalchemy.orm import Session
from core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from models.menu_items import MenuItem
from models.restaurants import Restaurant
from schemas.catalog_schemas import (RestaurantCreateRequest, RestaurantUpdateRequest,
MenuItemCreateRequest, MenuItemUpdateRequest)
from utils.logger import get_logger

logger = get_logger(__name__)


class CatalogService:
    """Restaurants and their menus."""

    # Restaurants

    @staticmethod
    def get_restaurant_by_owner(db: Session, owner_id: int) -> Restaurant | None:
        return db.query(Restaurant).filter(Restaurant.owner_id == owner_id).one_or_none()

    @staticmethod
    def get_owned_restaurant(db: Session, owner_id: int) -> Restaurant:
        restaurant = CatalogService.get_restaurant_by_owner(db, owner_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found for this user")
        return restaurant

    @staticmethod
    def list_visible_restaurants(db: Session) -> list[Restaurant]:
        return db.query(Restaurant).filter(
            Restaurant.status == "approved",
            Restaurant.is_active == True
        ).order_by(Restaurant.created_at.desc(), Restaurant.id.desc()).all()

    @staticmethod
    def get_visible_restaurant(db: Session, restaurant_id: int) -> Restaurant:
        restaurant = db.query(Restaurant).filter(Restaurant.id == restaurant_id).one_or_none()
        if restaurant is None or not restaurant.is_visible:
            raise NotFoundError("Restaurant not found")
        return restaurant

    @staticmethod
    def register_restaurant(db: Session, owner_id: int, body: RestaurantCreateRequest) -> Restaurant:
        if CatalogService.get_restaurant_by_owner(db, owner_id) is not None:
            logger.warning("Second restaurant registration rejected", extra={"owner_id": owner_id})
            raise ConflictError("You already have a registered restaurant")

        restaurant = Restaurant(
            owner_id=owner_id,
            status="pending",
            is_active=False,
            **body.model_dump()
        )
        db.add(restaurant)
        db.commit()
        db.refresh(restaurant)

        logger.info(
            "Restaurant registered, pending approval",
            extra={"restaurant_id": restaurant.id, "owner_id": owner_id}
        )

        return restaurant

    @staticmethod
    def update_restaurant(db: Session, owner_id: int, body: RestaurantUpdateRequest) -> Restaurant:
        restaurant = CatalogService.get_owned_restaurant(db, owner_id)

        changes = body.model_dump(exclude_none=True)
        if not changes:
            raise ValidationError("No valid fields to update")

        for field, value in changes.items():
            setattr(restaurant, field, value)

        db.commit()
        db.refresh(restaurant)
        return restaurant

    # Menu

    @staticmethod
    def get_menu(db: Session, restaurant_id: int) -> list[MenuItem]:
        """Available items of a restaurant customers can see."""
        CatalogService.get_visible_restaurant(db, restaurant_id)
        return db.query(MenuItem).filter(
            MenuItem.restaurant_id == restaurant_id,
            MenuItem.is_available == True
        ).order_by(MenuItem.category, MenuItem.name).all()

    @staticmethod
    def get_available_menu_items(db: Session, restaurant_id: int, item_ids: Iterable[int]) -> dict[int, MenuItem]:
        """Available items of ``restaurant_id`` among ``item_ids``, keyed by id."""
        ids = set(item_ids)
        if not ids:
            return {}
        items = db.query(MenuItem).filter(
            MenuItem.restaurant_id == restaurant_id,
            MenuItem.id.in_(ids),
            MenuItem.is_available == True
        ).all()
        return {item.id: item for item in items}

    @staticmethod
    def list_owner_menu(db: Session, owner_id: int) -> list[MenuItem]:
        restaurant = CatalogService.get_owned_restaurant(db, owner_id)
        return db.query(MenuItem).filter(
            MenuItem.restaurant_id == restaurant.id
        ).order_by(MenuItem.created_at.desc(), MenuItem.id.desc()).all()

    @staticmethod
    def add_menu_item(db: Session, owner_id: int, body: MenuItemCreateRequest) -> MenuItem:
        restaurant = CatalogService.get_owned_restaurant(db, owner_id)

        item = MenuItem(restaurant_id=restaurant.id, **body.model_dump())
        db.add(item)
        db.commit()
        db.refresh(item)

        logger.info("Menu item added", extra={"restaurant_id": restaurant.id, "menu_item_id": item.id})

        return item

    @staticmethod
    def _get_owned_menu_item(db: Session, owner_id: int, item_id: int) -> MenuItem:
        item = db.query(MenuItem).filter(MenuItem.id == item_id).one_or_none()
        if item is None:
            raise NotFoundError("Menu item not found")

        restaurant = CatalogService.get_restaurant_by_owner(db, owner_id)
        if restaurant is None or item.restaurant_id != restaurant.id:
            raise AuthorizationError("Forbidden: Menu item does not belong to your restaurant.")

        return item

    @staticmethod
    def update_menu_item(db: Session, owner_id: int, item_id: int, body: MenuItemUpdateRequest) -> MenuItem:
        item = CatalogService._get_owned_menu_item(db, owner_id, item_id)

        changes = body.model_dump(exclude_none=True)
        if not changes:
            raise ValidationError("No valid fields to update")

        for field, value in changes.items():
            setattr(item, field, value)

        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def delete_menu_item(db: Session, owner_id: int, item_id: int) -> None:
        item = CatalogService._get_owned_menu_item(db, owner_id, item_id)
        db.delete(item)
        db.commit()

        logger.info("Menu item deleted", extra={"menu_item_id": item_id})

    @staticmethod
    def toggle_menu_item(db: Session, owner_id: int, item_id: int) -> MenuItem:
        item = CatalogService._get_owned_menu_item(db, owner_id, item_id)
        item.is_available = not item.is_available
        db.commit()
        db.refresh(item)
        return item
