"""
Record store for marketplace entities.

WHAT: CRUD access to loads, recommendations, negotiations, trips, and KPIs
WHY: Services depend on a store interface, never on storage details
HOW: RecordStore protocol plus a SQLAlchemy-backed implementation that
     converts between ORM rows and pydantic models
"""

from typing import Any, Protocol

from .database import get_db
from .models import (
    LoadRecord, RecommendationRecord, NegotiationRecord,
    NegotiationOfferRecord, TripRecord, KPISnapshot
)
from ..models.freight import Load, Recommendation, Trip, KPI
from ..models.negotiation import Agent, Negotiation, Offer
from ..utils.logger import get_logger

logger = get_logger(__name__)

KPI_ROW_ID = 1


class RecordStore(Protocol):
    """Storage operations the marketplace services rely on."""

    def get_load(self, load_id: str) -> Load | None: ...
    def list_loads(self) -> list[Load]: ...
    def create_load(self, load: Load) -> Load: ...
    def update_load(self, load_id: str, **updates: Any) -> Load | None: ...

    def get_recommendation(self, recommendation_id: str) -> Recommendation | None: ...
    def list_recommendations(self, load_id: str | None = None) -> list[Recommendation]: ...
    def create_recommendation(self, recommendation: Recommendation) -> Recommendation: ...
    def update_recommendation(self, recommendation_id: str, **updates: Any) -> Recommendation | None: ...

    def get_negotiation(self, negotiation_id: str) -> Negotiation | None: ...
    def list_negotiations(self) -> list[Negotiation]: ...
    def create_negotiation(self, negotiation: Negotiation) -> Negotiation: ...
    def save_negotiation(self, negotiation: Negotiation) -> Negotiation: ...

    def get_trip(self, trip_id: str) -> Trip | None: ...
    def list_trips(self) -> list[Trip]: ...
    def create_trip(self, trip: Trip) -> Trip: ...
    def update_trip(self, trip_id: str, **updates: Any) -> Trip | None: ...

    def get_kpis(self) -> KPI: ...
    def update_kpis(self, **updates: Any) -> KPI: ...


def _load_from_row(row: LoadRecord) -> Load:
    return Load(
        id=row.id,
        origin=row.origin,
        destination=row.destination,
        load_type=row.load_type,
        weight=row.weight,
        pickup_time=row.pickup_time,
        delivery_time=row.delivery_time,
        equipment=row.equipment,
        owner_id=row.owner_id,
        status=row.status,
        price_predicted=row.price_predicted,
        price_range=row.price_range,
        created_at=row.created_at,
        matched_fleet_id=row.matched_fleet_id,
        recommendation_id=row.recommendation_id,
        negotiation_id=row.negotiation_id,
        finalized_price=row.finalized_price,
    )


def _recommendation_from_row(row: RecommendationRecord) -> Recommendation:
    return Recommendation(
        id=row.id,
        load_id=row.load_id,
        origin=row.origin,
        destination=row.destination,
        load_type=row.load_type,
        distance_km=row.distance_km,
        detour_km=row.detour_km,
        feasibility=row.feasibility,
        price_suggested=row.price_suggested,
        compliance_flags=list(row.compliance_flags or []),
        eta_hours=row.eta_hours,
        route_summary=row.route_summary,
        truck_id=row.truck_id,
        fleet_id=row.fleet_id,
        status=row.status,
    )


def _offer_from_row(row: NegotiationOfferRecord) -> Offer:
    return Offer(
        id=row.offer_id,
        agent_id=row.agent_id,
        agent_name=row.agent_name,
        price=row.price,
        reasoning=list(row.reasoning or []),
        timestamp=row.timestamp,
        round=row.round,
        converged=row.converged,
    )


def _negotiation_from_row(row: NegotiationRecord) -> Negotiation:
    return Negotiation(
        id=row.id,
        recommendation_id=row.recommendation_id,
        buyer_agent=Agent(**row.buyer_agent),
        seller_agent=Agent(**row.seller_agent),
        offers=[_offer_from_row(offer) for offer in row.offers],
        status=row.status,
        current_round=row.current_round,
        finalized_price=row.finalized_price,
    )


def _trip_from_row(row: TripRecord) -> Trip:
    return Trip(
        id=row.id,
        load_id=row.load_id,
        recommendation_id=row.recommendation_id,
        driver_id=row.driver_id,
        driver_name=row.driver_name,
        origin=row.origin,
        destination=row.destination,
        status=row.status,
        start_time=row.start_time,
        end_time=row.end_time,
        payout=row.payout,
        checkpoints=list(row.checkpoints or []),
    )


def _offer_row(negotiation_id: str, sequence: int, offer: Offer) -> NegotiationOfferRecord:
    return NegotiationOfferRecord(
        negotiation_id=negotiation_id,
        sequence=sequence,
        offer_id=offer.id,
        agent_id=offer.agent_id,
        agent_name=offer.agent_name,
        price=offer.price,
        reasoning=list(offer.reasoning),
        timestamp=offer.timestamp,
        round=offer.round,
        converged=offer.converged,
    )


def _apply(row: Any, fields: dict[str, Any]) -> None:
    for field, value in fields.items():
        if hasattr(row, field):
            setattr(row, field, value)


class SqlRecordStore:
    """
    RecordStore over the SQLAlchemy session factory.

    Updates are last-write-wins. Partial updates are validated by rebuilding
    the pydantic model before anything is written, so an invalid status
    raises pydantic.ValidationError and leaves the row untouched.
    """

    # Loads

    def get_load(self, load_id: str) -> Load | None:
        with get_db() as db:
            row = db.get(LoadRecord, load_id)
            return _load_from_row(row) if row else None

    def list_loads(self) -> list[Load]:
        with get_db() as db:
            rows = db.query(LoadRecord).order_by(LoadRecord.created_at).all()
            return [_load_from_row(row) for row in rows]

    def create_load(self, load: Load) -> Load:
        with get_db() as db:
            db.add(LoadRecord(**load.model_dump()))
        logger.debug(f"Stored load {load.id}")
        return load

    def update_load(self, load_id: str, **updates: Any) -> Load | None:
        with get_db() as db:
            row = db.get(LoadRecord, load_id)
            if row is None:
                return None
            updated = Load.model_validate({**_load_from_row(row).model_dump(), **updates})
            _apply(row, updated.model_dump(exclude={"id"}))
            return updated

    # Recommendations

    def get_recommendation(self, recommendation_id: str) -> Recommendation | None:
        with get_db() as db:
            row = db.get(RecommendationRecord, recommendation_id)
            return _recommendation_from_row(row) if row else None

    def list_recommendations(self, load_id: str | None = None) -> list[Recommendation]:
        with get_db() as db:
            query = db.query(RecommendationRecord)
            if load_id is not None:
                query = query.filter_by(load_id=load_id)
            rows = query.order_by(RecommendationRecord.feasibility.desc()).all()
            return [_recommendation_from_row(row) for row in rows]

    def create_recommendation(self, recommendation: Recommendation) -> Recommendation:
        with get_db() as db:
            db.add(RecommendationRecord(**recommendation.model_dump()))
        logger.debug(f"Stored recommendation {recommendation.id}")
        return recommendation

    def update_recommendation(self, recommendation_id: str, **updates: Any) -> Recommendation | None:
        with get_db() as db:
            row = db.get(RecommendationRecord, recommendation_id)
            if row is None:
                return None
            updated = Recommendation.model_validate(
                {**_recommendation_from_row(row).model_dump(), **updates}
            )
            _apply(row, updated.model_dump(exclude={"id"}))
            return updated

    # Negotiations

    def get_negotiation(self, negotiation_id: str) -> Negotiation | None:
        with get_db() as db:
            row = db.get(NegotiationRecord, negotiation_id)
            return _negotiation_from_row(row) if row else None

    def list_negotiations(self) -> list[Negotiation]:
        with get_db() as db:
            rows = db.query(NegotiationRecord).all()
            return [_negotiation_from_row(row) for row in rows]

    def create_negotiation(self, negotiation: Negotiation) -> Negotiation:
        with get_db() as db:
            row = NegotiationRecord(
                id=negotiation.id,
                recommendation_id=negotiation.recommendation_id,
                buyer_agent=negotiation.buyer_agent.model_dump(),
                seller_agent=negotiation.seller_agent.model_dump(),
                status=negotiation.status,
                current_round=negotiation.current_round,
                finalized_price=negotiation.finalized_price,
            )
            row.offers = [
                _offer_row(negotiation.id, sequence, offer)
                for sequence, offer in enumerate(negotiation.offers)
            ]
            db.add(row)
        logger.debug(f"Stored negotiation {negotiation.id}")
        return negotiation

    def save_negotiation(self, negotiation: Negotiation) -> Negotiation:
        """
        Write a negotiation back, appending any new offers.

        Raises:
            KeyError: Negotiation does not exist
            ValueError: Offer history is shorter than what is stored
        """
        with get_db() as db:
            row = db.get(NegotiationRecord, negotiation.id)
            if row is None:
                raise KeyError(negotiation.id)

            stored = len(row.offers)
            if len(negotiation.offers) < stored:
                raise ValueError(
                    f"Offer history of negotiation {negotiation.id} is append-only "
                    f"({stored} stored, {len(negotiation.offers)} given)"
                )

            for sequence, offer in enumerate(negotiation.offers[stored:], start=stored):
                row.offers.append(_offer_row(negotiation.id, sequence, offer))

            row.status = negotiation.status
            row.current_round = negotiation.current_round
            row.finalized_price = negotiation.finalized_price

        logger.debug(f"Saved negotiation {negotiation.id} ({len(negotiation.offers) - stored} new offers)")
        return negotiation

    # Trips

    def get_trip(self, trip_id: str) -> Trip | None:
        with get_db() as db:
            row = db.get(TripRecord, trip_id)
            return _trip_from_row(row) if row else None

    def list_trips(self) -> list[Trip]:
        with get_db() as db:
            return [_trip_from_row(row) for row in db.query(TripRecord).all()]

    def create_trip(self, trip: Trip) -> Trip:
        with get_db() as db:
            db.add(TripRecord(**trip.model_dump()))
        logger.debug(f"Stored trip {trip.id}")
        return trip

    def update_trip(self, trip_id: str, **updates: Any) -> Trip | None:
        with get_db() as db:
            row = db.get(TripRecord, trip_id)
            if row is None:
                return None
            updated = Trip.model_validate({**_trip_from_row(row).model_dump(), **updates})
            _apply(row, updated.model_dump(exclude={"id"}))
            return updated

    # KPIs

    def get_kpis(self) -> KPI:
        with get_db() as db:
            row = db.get(KPISnapshot, KPI_ROW_ID)
            if row is None:
                return KPI()
            return KPI(
                empty_mile_ratio=row.empty_mile_ratio,
                utilization=row.utilization,
                co2_saved=row.co2_saved,
                avg_revenue_per_ton_km=row.avg_revenue_per_ton_km,
            )

    def update_kpis(self, **updates: Any) -> KPI:
        kpis = KPI.model_validate({**self.get_kpis().model_dump(), **updates})
        with get_db() as db:
            row = db.get(KPISnapshot, KPI_ROW_ID)
            if row is None:
                row = KPISnapshot(id=KPI_ROW_ID, **kpis.model_dump())
                db.add(row)
            else:
                _apply(row, kpis.model_dump())
        return kpis
