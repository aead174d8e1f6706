from core.database import Base
from sqlalchemy import (Column, Integer, String, ForeignKey, Numeric)
from sqlalchemy.orm import relationship

class OrderItem(Base):
    __tablename__ = "order_items"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    # plain id, the menu item may be deleted later
    menu_item_id = Column(Integer, nullable=False)

    #relationships
    order = relationship("Order", back_populates="items")

    # snapshots taken when the order was placed
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    @property
    def subtotal(self):
        return self.price * self.quantity
