import enum
from core.database import Base
from sqlalchemy.orm import relationship
from sqlalchemy import (Column, Integer, String, ForeignKey, Numeric, Enum, DateTime)
from .mixins import CreatedAtMixin, UpdatedAtMixin


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    REJECTED = "rejected"
    PICKED_UP = "picked_up"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"


class Order(Base, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "orders"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    rider_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    #relationships
    customer = relationship("User", back_populates="orders", foreign_keys=[customer_id])
    rider = relationship("User", back_populates="deliveries", foreign_keys=[rider_id])
    restaurant = relationship("Restaurant", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")
    location_updates = relationship("RiderLocation", back_populates="order", order_by="RiderLocation.id")

    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=lambda e: [m.value for m in e]),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    delivery_address = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    special_instructions = Column(String, default="")
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def current_location(self):
        """Most recent rider position, or None before the first update."""
        return self.location_updates[-1] if self.location_updates else None
