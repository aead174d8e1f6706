from sqlalchemy import func
from sqlalchemy.orm import Session
from core.exceptions import NotFoundError, ValidationError
from models.orders import Order, OrderStatus
from models.restaurants import Restaurant
from models.users import User
from services.order_service import OrderService
from services.token_service import TokenService
from utils.hashing import get_password_hash
from utils.logger import get_logger

logger = get_logger(__name__)


class AdminService:
    """Platform oversight: approvals, account overrides and statistics."""

    @staticmethod
    def dashboard_stats(db: Session) -> dict:
        def count_users(**filters) -> int:
            return db.query(func.count(User.id)).filter_by(**filters).scalar()

        def count_restaurants(**filters) -> int:
            return db.query(func.count(Restaurant.id)).filter_by(**filters).scalar()

        delivered = db.query(Order).filter(Order.status == OrderStatus.DELIVERED)
        revenue = db.query(func.coalesce(func.sum(Order.total_amount), 0)).filter(
            Order.status == OrderStatus.DELIVERED
        ).scalar()

        return {
            "total_users": count_users(),
            "total_restaurants": count_restaurants(),
            "total_orders": db.query(func.count(Order.id)).scalar(),
            "total_riders": count_users(role="rider"),
            "pending_restaurants": count_restaurants(status="pending"),
            "pending_riders": count_users(role="rider", status="pending"),
            "approved_restaurants": count_restaurants(status="approved"),
            "approved_riders": count_users(role="rider", status="approved"),
            "completed_orders": delivered.count(),
            "total_revenue": float(revenue or 0),
        }

    @staticmethod
    def list_users(db: Session) -> list[User]:
        return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()

    @staticmethod
    def list_restaurants(db: Session) -> list[Restaurant]:
        return db.query(Restaurant).order_by(Restaurant.created_at.desc(), Restaurant.id.desc()).all()

    @staticmethod
    def list_riders(db: Session) -> list[User]:
        return db.query(User).filter(User.role == "rider").order_by(
            User.created_at.desc(), User.id.desc()
        ).all()

    @staticmethod
    def list_orders(db: Session) -> list[Order]:
        return OrderService.all_orders(db)

    @staticmethod
    def pending_approvals(db: Session) -> dict:
        restaurants = db.query(Restaurant).filter(Restaurant.status == "pending").order_by(
            Restaurant.created_at.desc(), Restaurant.id.desc()
        ).all()
        riders = db.query(User).filter(User.role == "rider", User.status == "pending").order_by(
            User.created_at.desc(), User.id.desc()
        ).all()
        return {"restaurants": restaurants, "riders": riders}

    @staticmethod
    def set_restaurant_status(db: Session, restaurant_id: int, new_status: str) -> Restaurant:
        """
        Approves or rejects a restaurant together with its owner's account.

        Both rows are written in one commit.
        """
        restaurant = db.query(Restaurant).filter(Restaurant.id == restaurant_id).one_or_none()
        if restaurant is None:
            raise NotFoundError("Restaurant not found")

        restaurant.status = new_status
        restaurant.is_active = new_status == "approved"

        owner = restaurant.owner
        if owner is not None:
            owner.status = new_status

        db.commit()
        db.refresh(restaurant)

        logger.info(
            "Restaurant status changed",
            extra={"restaurant_id": restaurant.id, "owner_id": restaurant.owner_id, "status": new_status}
        )

        return restaurant

    @staticmethod
    def set_rider_status(db: Session, rider_id: int, new_status: str) -> User:
        rider = db.query(User).filter(User.id == rider_id, User.role == "rider").one_or_none()
        if rider is None:
            raise NotFoundError("Rider not found")

        rider.status = new_status
        db.commit()
        db.refresh(rider)

        logger.info("Rider status changed", extra={"rider_id": rider.id, "status": new_status})

        return rider

    @staticmethod
    def set_user_active(db: Session, admin_id: int, user_id: int, is_active: bool) -> User:
        if user_id == admin_id and not is_active:
            raise ValidationError("You cannot deactivate your own account")

        model = db.query(User).filter(User.id == user_id).one_or_none()
        if model is None:
            raise NotFoundError("User not found")

        model.is_active = is_active
        db.commit()

        if not is_active:
            TokenService.revoke_all_user_tokens(model.id, db)

        db.refresh(model)

        logger.info(
            "User active flag changed",
            extra={"user_id": model.id, "is_active": is_active, "admin_id": admin_id}
        )

        return model

    @staticmethod
    def ensure_admin(db: Session, email: str | None, password: str | None, name: str = "Administrator") -> User | None:
        """Creates the bootstrap admin if configured and missing. Safe to call repeatedly."""
        if not email or not password:
            return None

        email = email.lower().strip()
        existing = db.query(User).filter(User.email == email).one_or_none()
        if existing is not None:
            if existing.role != "admin":
                logger.warning("Bootstrap admin email belongs to a non-admin account", extra={"email": email})
            return existing

        admin = User(
            email=email,
            name=name,
            hashed_password=get_password_hash(password),
            role="admin",
            status="active",
            is_active=True
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)

        logger.info("Bootstrap admin created", extra={"user_id": admin.id, "email": email})

        return admin
