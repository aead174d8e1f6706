from typing import Literal
from pydantic import BaseModel


class ApprovalRequest(BaseModel):
    status: Literal["approved", "rejected"]


class SetActiveRequest(BaseModel):
    is_active: bool


class DashboardStats(BaseModel):
    total_users: int
    total_restaurants: int
    total_orders: int
    total_riders: int
    pending_restaurants: int
    pending_riders: int
    approved_restaurants: int
    approved_riders: int
    completed_orders: int
    total_revenue: float
