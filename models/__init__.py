from models.users import User
from models.refresh_tokens import RefreshToken
from models.restaurants import Restaurant
from models.menu_items import MenuItem
from models.orders import Order, OrderStatus
from models.order_items import OrderItem
from models.rider_locations import RiderLocation

__all__ = ["User", "RefreshToken", "Restaurant", "MenuItem", "Order", "OrderStatus", "OrderItem", "RiderLocation"]
