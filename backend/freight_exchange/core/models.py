"""
ORM models for database persistence.

WHAT: SQLAlchemy models for all marketplace tables
WHY: Persist loads, recommendations, negotiations and their offers, trips, KPIs
HOW: Declarative models with constraints, relationships, and indexes
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, Text, JSON,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from .database import Base


class LoadRecord(Base):
    """
    Load table - shipment requests.

    WHAT: One row per load with its lifecycle status and pricing
    WHY: Loads are the root every recommendation and trip hangs off
    HOW: String primary key, status index for listing queries
    """
    __tablename__ = "loads"

    id = Column(String(64), primary_key=True)
    origin = Column(String(100), nullable=False)
    destination = Column(String(100), nullable=False)
    load_type = Column(String(100), nullable=False)
    weight = Column(Float, nullable=False)
    pickup_time = Column(String(40), nullable=False, default="")
    delivery_time = Column(String(40), nullable=False, default="")
    equipment = Column(String(100), nullable=True)
    owner_id = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="draft")
    price_predicted = Column(Float, nullable=True)
    price_range = Column(JSON, nullable=True)  # {"min": .., "max": ..}
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    matched_fleet_id = Column(String(100), nullable=True)
    recommendation_id = Column(String(100), nullable=True)
    negotiation_id = Column(String(100), nullable=True)
    finalized_price = Column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("weight >= 0", name="check_load_weight_non_negative"),
        Index("idx_load_status", "status"),
    )

    recommendations = relationship("RecommendationRecord", back_populates="load", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<LoadRecord(id={self.id}, {self.origin}→{self.destination}, status={self.status})>"


class RecommendationRecord(Base):
    """
    Recommendation table - candidate carrier matches for a load.

    WHAT: Feasibility, pricing, and ETA for one load/truck pairing
    WHY: Track which matches were offered and which were accepted
    HOW: Foreign key to LoadRecord with CASCADE delete
    """
    __tablename__ = "recommendations"

    id = Column(String(100), primary_key=True)
    load_id = Column(String(64), ForeignKey("loads.id", ondelete="CASCADE"), nullable=False)
    origin = Column(String(100), nullable=False)
    destination = Column(String(100), nullable=False)
    load_type = Column(String(100), nullable=False)
    distance_km = Column(Float, nullable=False)
    detour_km = Column(Float, nullable=False)
    feasibility = Column(Float, nullable=False)
    price_suggested = Column(Integer, nullable=False)
    compliance_flags = Column(JSON, nullable=False, default=list)
    eta_hours = Column(Integer, nullable=False)
    route_summary = Column(Text, nullable=True)
    truck_id = Column(String(100), nullable=True)
    fleet_id = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="pending")

    __table_args__ = (
        CheckConstraint("feasibility >= 0 AND feasibility <= 1", name="check_feasibility_range"),
        Index("idx_recommendation_load", "load_id"),
    )

    load = relationship("LoadRecord", back_populates="recommendations")

    def __repr__(self):
        return f"<RecommendationRecord(id={self.id}, feasibility={self.feasibility:.2f})>"


class NegotiationRecord(Base):
    """
    Negotiation table - bargaining over one recommendation.

    WHAT: Agents, status, round counter, and settlement price
    WHY: Offers hang off this row; status is terminal once not active
    HOW: Agents stored as JSON snapshots, offers in a child table
    """
    __tablename__ = "negotiations"

    id = Column(String(64), primary_key=True)
    recommendation_id = Column(String(100), nullable=False)
    buyer_agent = Column(JSON, nullable=False)
    seller_agent = Column(JSON, nullable=False)
    status = Column(String(20), nullable=False, default="active")
    current_round = Column(Integer, nullable=False, default=0)
    finalized_price = Column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_negotiation_status", "status"),
    )

    offers = relationship(
        "NegotiationOfferRecord",
        back_populates="negotiation",
        cascade="all, delete-orphan",
        order_by="NegotiationOfferRecord.sequence"
    )

    def __repr__(self):
        return f"<NegotiationRecord(id={self.id}, status={self.status}, round={self.current_round})>"


class NegotiationOfferRecord(Base):
    """
    NegotiationOffer table - append-only offer history.

    WHAT: One bid with its round and reasoning
    WHY: Replay and audit the negotiation ladder
    HOW: Ordered by per-negotiation sequence number
    """
    __tablename__ = "negotiation_offers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    negotiation_id = Column(String(64), ForeignKey("negotiations.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)
    offer_id = Column(String(64), nullable=False)
    agent_id = Column(String(100), nullable=False)
    agent_name = Column(String(100), nullable=False)
    price = Column(Integer, nullable=False)
    reasoning = Column(JSON, nullable=False, default=list)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)
    round = Column(Integer, nullable=False)
    converged = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_offer_price_non_negative"),
        CheckConstraint("round >= 1", name="check_offer_round_positive"),
        Index("idx_offer_negotiation_sequence", "negotiation_id", "sequence", unique=True),
    )

    negotiation = relationship("NegotiationRecord", back_populates="offers")

    def __repr__(self):
        return f"<NegotiationOfferRecord(agent={self.agent_name}, price={self.price}, round={self.round})>"


class TripRecord(Base):
    """
    Trip table - dispatched loads.

    WHAT: Driver assignment, payout, and checkpoint list
    WHY: Track execution once a load is dispatched
    HOW: Checkpoints stored as a JSON list
    """
    __tablename__ = "trips"

    id = Column(String(64), primary_key=True)
    load_id = Column(String(64), ForeignKey("loads.id", ondelete="CASCADE"), nullable=False)
    recommendation_id = Column(String(100), nullable=False)
    driver_id = Column(String(100), nullable=False)
    driver_name = Column(String(100), nullable=False)
    origin = Column(String(100), nullable=False)
    destination = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="assigned")
    start_time = Column(String(40), nullable=True)
    end_time = Column(String(40), nullable=True)
    payout = Column(Float, nullable=False)
    checkpoints = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("payout >= 0", name="check_trip_payout_non_negative"),
    )

    def __repr__(self):
        return f"<TripRecord(id={self.id}, driver={self.driver_name}, status={self.status})>"


class KPISnapshot(Base):
    """KPI table - single row of marketplace metrics."""
    __tablename__ = "kpi_snapshots"

    id = Column(Integer, primary_key=True)
    empty_mile_ratio = Column(Float, nullable=False)
    utilization = Column(Float, nullable=False)
    co2_saved = Column(Float, nullable=False)
    avg_revenue_per_ton_km = Column(Float, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<KPISnapshot(utilization={self.utilization}, empty_mile_ratio={self.empty_mile_ratio})>"
