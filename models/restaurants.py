from core.database import Base
from sqlalchemy import (Column, Integer, String, Boolean, Float, ForeignKey)
from sqlalchemy.orm import relationship
from .mixins import CreatedAtMixin, UpdatedAtMixin

class Restaurant(Base, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "restaurants"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    # unique: one restaurant per owner
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)

    #relationships
    owner = relationship("User", back_populates="restaurant")
    menu_items = relationship("MenuItem", back_populates="restaurant")
    orders = relationship("Order", back_populates="restaurant")

    name = Column(String, nullable=False)
    description = Column(String, default="")
    phone = Column(String, default="")
    address = Column(String, default="")
    category = Column(String, default="General")
    latitude = Column(Float)
    longitude = Column(Float)
    status = Column(String, default="pending", nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)

    @property
    def is_visible(self) -> bool:
        return self.status == "approved" and bool(self.is_active)
