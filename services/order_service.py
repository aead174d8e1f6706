from decimal import Decimal
from sqlalchemy.orm import Session, Query, joinedload, selectinload
from core.broker import Broker, order_channel, publish_event
from core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from models.mixins import utcnow
from models.orders import Order, OrderStatus
from models.order_items import OrderItem
from models.restaurants import Restaurant
from schemas.order_schemas import CreateOrderRequest
from services.auth_service import AuthService
from services.catalog_service import CatalogService
from services.order_policy import OrderPolicy, ACTIVE_DELIVERY_STATUSES
from utils.logger import get_logger

logger = get_logger(__name__)

PLACEHOLDER = "Not specified"

# Largest accepted gap between the submitted total and the item sum
TOTAL_TOLERANCE = Decimal("0.01")


def _with_summaries(query: Query) -> Query:
    """Eager-load everything an order response shows."""
    return query.options(
        joinedload(Order.customer),
        joinedload(Order.restaurant),
        joinedload(Order.rider),
        selectinload(Order.items),
        selectinload(Order.location_updates),
    )


def _event(order: Order, event_type: str) -> dict:
    return {
        "type": event_type,
        "order_id": order.id,
        "status": OrderStatus(order.status).value,
        "rider_id": order.rider_id,
        "timestamp": utcnow().isoformat(),
    }


class OrderService:
    """
    Order lifecycle: placement, status changes, rider assignment and the
    per-role order listings.

    ``user`` arguments are the principal dicts produced by
    ``utils.deps.get_current_user``.
    """

    @staticmethod
    def get_order(db: Session, order_id: int) -> Order:
        order = _with_summaries(db.query(Order)).filter(Order.id == order_id).one_or_none()
        if order is None:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    def owns_restaurant(db: Session, user: dict, restaurant_id: int) -> bool:
        # Owner ids and restaurant ids are different things: always go
        # through the owned-restaurant lookup
        if user.get("user_role") != "restaurant":
            return False
        restaurant = CatalogService.get_restaurant_by_owner(db, user.get("user_id"))
        return restaurant is not None and restaurant.id == restaurant_id

    @staticmethod
    def is_participant(db: Session, user: dict, order: Order) -> bool:
        user_id = user.get("user_id")
        role = user.get("user_role")

        if role == "admin":
            return True
        if role == "customer":
            return order.customer_id == user_id
        if role == "rider":
            return order.rider_id is not None and order.rider_id == user_id
        if role == "restaurant":
            return OrderService.owns_restaurant(db, user, order.restaurant_id)
        return False

    @staticmethod
    def create_order(db: Session, user: dict, body: CreateOrderRequest, broker: Broker | None = None) -> Order:
        """
        Places a new order in ``pending``.

        Item names and prices are copied from the catalog; the submitted
        total must match their sum.
        """
        if user.get("user_role") != "customer":
            raise AuthorizationError("Forbidden: Only customers can place orders.")

        if not body.restaurant_id or not body.items or body.total_amount is None:
            raise ValidationError("Missing required fields")

        if body.total_amount <= 0:
            raise ValidationError("Total amount must be positive")

        customer = AuthService.get_current_active_user(db, user.get("user_id"))
        restaurant = CatalogService.get_visible_restaurant(db, body.restaurant_id)

        menu = CatalogService.get_available_menu_items(
            db, restaurant.id, (line.menu_item_id for line in body.items)
        )

        lines = []
        computed_total = Decimal("0")
        for line in body.items:
            menu_item = menu.get(line.menu_item_id)
            if menu_item is None:
                raise ValidationError(
                    f"Menu item {line.menu_item_id} is not available from this restaurant"
                )
            lines.append(OrderItem(
                menu_item_id=menu_item.id,
                name=menu_item.name,
                price=menu_item.price,
                quantity=line.quantity
            ))
            computed_total += Decimal(menu_item.price) * line.quantity

        if abs(computed_total - Decimal(body.total_amount)) > TOTAL_TOLERANCE:
            logger.warning(
                "Order total mismatch",
                extra={"submitted": str(body.total_amount), "computed": str(computed_total),
                       "customer_id": customer.id}
            )
            raise ValidationError(
                f"Total amount {body.total_amount} does not match the items total {computed_total}"
            )

        order = Order(
            customer_id=customer.id,
            restaurant_id=restaurant.id,
            rider_id=None,
            items=lines,
            total_amount=computed_total,
            status=OrderStatus.PENDING,
            delivery_address=(body.delivery_address or "").strip() or PLACEHOLDER,
            customer_phone=customer.phone_number or PLACEHOLDER,
            special_instructions=body.special_instructions or "",
        )
        db.add(order)
        db.commit()

        order = OrderService.get_order(db, order.id)

        logger.info(
            "Order placed",
            extra={"order_id": order.id, "customer_id": customer.id, "restaurant_id": restaurant.id,
                   "total_amount": str(order.total_amount)}
        )
        publish_event(broker, order_channel(order.id), _event(order, "order_created"))

        return order

    @staticmethod
    def update_order_status(db: Session, user: dict, order_id: int, status: str, broker: Broker | None = None) -> Order:
        role = user.get("user_role")
        user_id = user.get("user_id")

        OrderPolicy.parse_status(status)
        order = OrderService.get_order(db, order_id)
        OrderPolicy.check_role_target(role, status)

        if role == "restaurant":
            restaurant = CatalogService.get_owned_restaurant(db, user_id)
            if order.restaurant_id != restaurant.id:
                raise AuthorizationError("Forbidden: Order does not belong to this restaurant.")
        elif order.rider_id is None or order.rider_id != user_id:
            raise AuthorizationError("Forbidden: You are not assigned to this delivery.")

        current = OrderStatus(order.status)
        new_status = OrderPolicy.check_transition(role, current, status)

        now = utcnow()
        values = {Order.status: new_status, Order.updated_at: now}
        if new_status == OrderStatus.DELIVERED:
            values[Order.delivered_at] = now

        # Compare-and-set on the status we validated against
        updated = db.query(Order).filter(
            Order.id == order.id,
            Order.status == current
        ).update(values, synchronize_session=False)
        db.commit()

        if not updated:
            logger.warning(
                "Concurrent status change detected",
                extra={"order_id": order.id, "expected_status": current.value, "target": new_status.value}
            )
            raise ConflictError("Order status was changed by someone else. Reload and try again.")

        db.expire(order)
        order = OrderService.get_order(db, order.id)

        logger.info(
            "Order status updated",
            extra={"order_id": order.id, "from_status": current.value, "to_status": new_status.value,
                   "user_id": user_id, "role": role}
        )
        publish_event(broker, order_channel(order.id), _event(order, "order_status"))

        return order

    @staticmethod
    def assign_rider(db: Session, user: dict, order_id: int, rider_id: int, broker: Broker | None = None) -> Order:
        """
        Binds the calling rider to a ready, unassigned order.

        The check and the write are one UPDATE statement, so of several
        riders accepting the same order at once exactly one wins.
        """
        if user.get("user_role") != "rider" or user.get("user_id") != rider_id:
            raise AuthorizationError("Forbidden: Cannot assign delivery to a different user.")

        order = OrderService.get_order(db, order_id)

        updated = db.query(Order).filter(
            Order.id == order.id,
            Order.status == OrderStatus.READY,
            Order.rider_id.is_(None)
        ).update({Order.rider_id: rider_id, Order.updated_at: utcnow()}, synchronize_session=False)
        db.commit()

        if not updated:
            logger.info(
                "Rider assignment refused",
                extra={"order_id": order.id, "rider_id": rider_id}
            )
            raise ConflictError(
                "Order is not available for assignment (status must be 'ready' and no rider assigned)."
            )

        db.expire(order)
        order = OrderService.get_order(db, order.id)

        logger.info("Rider assigned", extra={"order_id": order.id, "rider_id": rider_id})
        publish_event(broker, order_channel(order.id), _event(order, "order_assigned"))

        return order

    @staticmethod
    def get_order_for_user(db: Session, user: dict, order_id: int) -> Order:
        order = OrderService.get_order(db, order_id)
        if not OrderService.is_participant(db, user, order):
            raise AuthorizationError("Forbidden: You don't have access to this order.")
        return order

    @staticmethod
    def available_deliveries(db: Session, user: dict) -> list[Order]:
        if user.get("user_role") != "rider":
            raise AuthorizationError("Forbidden: Only riders can view available deliveries.")

        return _with_summaries(db.query(Order)).filter(
            Order.status == OrderStatus.READY,
            Order.rider_id.is_(None)
        ).order_by(Order.created_at.asc(), Order.id.asc()).all()

    @staticmethod
    def _require_self_rider(user: dict, rider_id: int, what: str) -> None:
        if user.get("user_role") != "rider" or user.get("user_id") != rider_id:
            raise AuthorizationError(f"Forbidden: You can only view your own {what}.")

    @staticmethod
    def deliveries_by_rider(db: Session, user: dict, rider_id: int) -> list[Order]:
        OrderService._require_self_rider(user, rider_id, "assigned deliveries")

        return _with_summaries(db.query(Order)).filter(
            Order.rider_id == rider_id,
            Order.status.in_(ACTIVE_DELIVERY_STATUSES)
        ).order_by(Order.created_at.desc(), Order.id.desc()).all()

    @staticmethod
    def delivery_history_by_rider(db: Session, user: dict, rider_id: int) -> list[Order]:
        OrderService._require_self_rider(user, rider_id, "history")

        return _with_summaries(db.query(Order)).filter(
            Order.rider_id == rider_id,
            Order.status == OrderStatus.DELIVERED
        ).order_by(Order.delivered_at.desc(), Order.created_at.desc(), Order.id.desc()).all()

    @staticmethod
    def orders_by_restaurant(db: Session, user: dict, restaurant_id: int) -> list[Order]:
        if db.query(Restaurant.id).filter(Restaurant.id == restaurant_id).one_or_none() is None:
            raise NotFoundError("Restaurant not found")

        if user.get("user_role") != "admin" and not OrderService.owns_restaurant(db, user, restaurant_id):
            raise AuthorizationError("Forbidden: You don't have access to this restaurant's orders")

        return _with_summaries(db.query(Order)).filter(
            Order.restaurant_id == restaurant_id
        ).order_by(Order.created_at.desc(), Order.id.desc()).all()

    @staticmethod
    def orders_by_customer(db: Session, user: dict, customer_id: int) -> list[Order]:
        is_self = user.get("user_role") == "customer" and user.get("user_id") == customer_id
        if not is_self and user.get("user_role") != "admin":
            raise AuthorizationError("Forbidden: You can only view your own orders.")

        return _with_summaries(db.query(Order)).filter(
            Order.customer_id == customer_id
        ).order_by(Order.created_at.desc(), Order.id.desc()).all()

    @staticmethod
    def all_orders(db: Session) -> list[Order]:
        return _with_summaries(db.query(Order)).order_by(Order.created_at.desc(), Order.id.desc()).all()
