from core.database import Base
from sqlalchemy import (Column, Integer, String, Boolean, ForeignKey, Numeric)
from sqlalchemy.orm import relationship
from .mixins import CreatedAtMixin, UpdatedAtMixin

class MenuItem(Base, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "menu_items"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)

    #relationships
    restaurant = relationship("Restaurant", back_populates="menu_items")

    name = Column(String, nullable=False)
    description = Column(String, default="")
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String, default="")
    image_url = Column(String)
    is_available = Column(Boolean, default=True, nullable=False)
