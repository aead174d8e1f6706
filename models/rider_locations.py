from core.database import Base
from sqlalchemy import (Column, Integer, Float, ForeignKey, DateTime)
from sqlalchemy.orm import relationship
from .mixins import utcnow

class RiderLocation(Base):
    """One position sample sent by the rider while delivering an order."""
    __tablename__ = "rider_locations"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    rider_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    #relationships
    order = relationship("Order", back_populates="location_updates")

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    recorded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
