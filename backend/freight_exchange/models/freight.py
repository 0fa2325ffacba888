"""
Freight domain models.

WHAT: Loads, trucks, recommendations, trips, and KPIs
WHY: Consistent typing across route synthesis, services, and persistence
HOW: Pydantic v2 models with Literal lifecycle statuses
"""

from pydantic import BaseModel, Field, field_validator
from typing import Literal
from datetime import datetime


LoadStatus = Literal[
    "draft", "listed", "matched", "negotiating",
    "approved", "dispatched", "in-transit", "completed"
]
RecommendationStatus = Literal["pending", "accepted", "rejected"]
TripStatus = Literal["assigned", "started", "in-transit", "completed"]
CheckpointStatus = Literal["pending", "arrived", "departed"]


class PriceRange(BaseModel):
    """Expected price band for a load, in rupees."""

    min: float = Field(ge=0.0)
    max: float = Field(ge=0.0)


class Load(BaseModel):
    """A shipment request listed by a load owner."""

    id: str
    origin: str
    destination: str
    load_type: str
    weight: float = Field(ge=0.0)  # kg
    pickup_time: str = ""
    delivery_time: str = ""
    equipment: str | None = None
    owner_id: str | None = None
    status: LoadStatus = "draft"
    price_predicted: float | None = None
    price_range: PriceRange | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    matched_fleet_id: str | None = None
    recommendation_id: str | None = None
    negotiation_id: str | None = None
    finalized_price: int | None = None


class Truck(BaseModel):
    """A candidate vehicle for a load."""

    id: str
    capacity: float = Field(gt=0.0)  # kg
    current_location: str
    idle_hours: float = 0.0
    equipment: str | None = None
    driver_id: str | None = None


class Recommendation(BaseModel):
    """A candidate carrier/route match for a load."""

    id: str
    load_id: str
    origin: str
    destination: str
    load_type: str
    distance_km: float = Field(ge=0.0)
    detour_km: float = Field(ge=0.0)
    feasibility: float
    price_suggested: int = Field(ge=0)
    compliance_flags: list[str] = Field(default_factory=list)
    eta_hours: int = Field(ge=0)
    route_summary: str | None = None
    truck_id: str | None = None
    fleet_id: str | None = None
    status: RecommendationStatus = "pending"

    @field_validator("feasibility")
    @classmethod
    def clamp_feasibility(cls, v: float) -> float:
        """Feasibility is always reported inside [0, 1]."""
        return max(0.0, min(1.0, v))


class Checkpoint(BaseModel):
    """A waypoint on a trip."""

    id: str
    location: str
    eta: str
    status: CheckpointStatus = "pending"


class Trip(BaseModel):
    """A dispatched load assigned to a driver."""

    id: str
    load_id: str
    recommendation_id: str
    driver_id: str
    driver_name: str
    origin: str
    destination: str
    status: TripStatus = "assigned"
    start_time: str | None = None
    end_time: str | None = None
    payout: float = Field(ge=0.0)
    checkpoints: list[Checkpoint] = Field(default_factory=list)


class KPI(BaseModel):
    """Marketplace-wide operating metrics."""

    empty_mile_ratio: float = 0.35
    utilization: float = 0.68
    co2_saved: float = 1250
    avg_revenue_per_ton_km: float = 45


class PriceEstimate(BaseModel):
    """Predicted price band for a prospective load."""

    min: float
    max: float
    predicted: float
