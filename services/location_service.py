from typing import Optional
from sqlalchemy.orm import Session
from core.broker import Broker, order_channel, publish_event
from core.config import settings
from core.exceptions import AuthorizationError
from models.rider_locations import RiderLocation
from schemas.location_schemas import RiderLocationRequest
from services.order_service import OrderService
from utils.logger import get_logger

logger = get_logger(__name__)


class LocationService:

    @staticmethod
    def record_rider_location(db: Session, user: dict, body: RiderLocationRequest,
                              broker: Broker | None = None,
                              history_limit: Optional[int] = None) -> RiderLocation:
        """
        Appends a position sample to an order and relays it to subscribers.

        Only the rider assigned to the order may report positions. When a
        history limit is configured the oldest samples beyond it are dropped.
        """
        order = OrderService.get_order(db, body.order_id)

        if user.get("user_role") != "rider" or order.rider_id is None or order.rider_id != user.get("user_id"):
            raise AuthorizationError("Forbidden: You are not assigned to this order.")

        sample = RiderLocation(
            order_id=order.id,
            rider_id=order.rider_id,
            latitude=body.latitude,
            longitude=body.longitude
        )
        db.add(sample)
        db.flush()

        if history_limit is None:
            history_limit = settings.LOCATION_HISTORY_LIMIT

        if history_limit:
            stale_ids = [
                row.id for row in db.query(RiderLocation.id).filter(
                    RiderLocation.order_id == order.id
                ).order_by(RiderLocation.id.desc()).offset(history_limit).all()
            ]
            if stale_ids:
                db.query(RiderLocation).filter(
                    RiderLocation.id.in_(stale_ids)
                ).delete(synchronize_session=False)

        db.commit()
        db.refresh(sample)

        logger.debug(
            "Rider location recorded",
            extra={"order_id": order.id, "rider_id": order.rider_id}
        )

        publish_event(broker, order_channel(order.id), {
            "type": "rider_location",
            "order_id": order.id,
            "latitude": sample.latitude,
            "longitude": sample.longitude,
            "timestamp": sample.recorded_at.isoformat(),
        })

        return sample

    @staticmethod
    def get_order_locations(db: Session, user: dict, order_id: int) -> dict:
        order = OrderService.get_order(db, order_id)

        if not OrderService.is_participant(db, user, order):
            raise AuthorizationError("Forbidden: You don't have access to this order's locations.")

        customer = order.customer
        restaurant = order.restaurant
        rider = order.rider

        locations = {
            "customer": {
                "name": customer.name,
                "latitude": customer.latitude,
                "longitude": customer.longitude,
                "address": order.delivery_address,
            },
            "restaurant": {
                "name": restaurant.name,
                "latitude": restaurant.latitude,
                "longitude": restaurant.longitude,
                "address": restaurant.address,
            },
            "rider": None,
        }

        if rider is not None:
            current = order.current_location
            locations["rider"] = {
                "name": rider.name,
                "latitude": rider.latitude,
                "longitude": rider.longitude,
                "vehicle_type": rider.vehicle_type,
                "current_location": current,
            }

        return locations

    @staticmethod
    def check_subscription_access(db: Session, user: dict, order_id: int) -> None:
        """Raises NotFoundError / AuthorizationError like get_order_locations."""
        order = OrderService.get_order(db, order_id)
        if not OrderService.is_participant(db, user, order):
            raise AuthorizationError("Forbidden: You don't have access to this order.")
