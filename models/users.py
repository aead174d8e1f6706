from core.database import Base
from sqlalchemy import (Column, Integer, String, Boolean, Float)
from sqlalchemy.orm import relationship
from .mixins import CreatedAtMixin, UpdatedAtMixin

ROLES = ("customer", "restaurant", "rider", "admin")

# Roles that need an admin approval before they can log in
APPROVAL_ROLES = ("restaurant", "rider")


class User(Base, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "users"

    #pk 
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user")
    restaurant = relationship("Restaurant", back_populates="owner", uselist=False)
    orders = relationship("Order", back_populates="customer", foreign_keys="Order.customer_id")
    deliveries = relationship("Order", back_populates="rider", foreign_keys="Order.rider_id")

    email = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, default="customer", nullable=False)
    # active (customers, admins) | pending | approved | rejected
    status = Column(String, default="active", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    phone_number = Column(String)
    address = Column(String)
    latitude = Column(Float)
    longitude = Column(Float)
    # Rider profile
    vehicle_type = Column(String)
    license_number = Column(String)

    @property
    def is_approved(self) -> bool:
        if self.role in APPROVAL_ROLES:
            return self.status == "approved"
        return self.status in ("active", "approved")
