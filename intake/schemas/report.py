from pydantic import BaseModel
from typing import Optional


class CreatorCount(BaseModel):
    user_id: Optional[str]
    full_name: Optional[str] = None
    count: int


class ReportSummary(BaseModel):
    total: int
    awaiting_dropoff: int
    checked_in: int
    checked_out: int
    cancelled: int
    by_creator: list[CreatorCount]


class DashboardClient(BaseModel):
    id: str
    name: str
    tax_id: Optional[str]
    pending_vehicles: int


class DashboardOut(BaseModel):
    total: int
    awaiting_dropoff: int
    checked_in: int
    checked_out: int
    cancelled: int
    pending_clients: list[DashboardClient]
