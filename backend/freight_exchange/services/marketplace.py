"""
Marketplace orchestration services.

WHAT: Load, recommendation, negotiation, trip, pricing, and KPI workflows
WHY: Tie the pure scoring/negotiation functions to stored records
HOW: Services over an injected RecordStore; missing records raise
     BusinessException subclasses
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from ..core.config import settings
from ..core.record_store import RecordStore
from ..models.freight import Load, Truck, Recommendation, Trip, KPI, PriceEstimate
from ..models.negotiation import Agent, Negotiation
from ..utils.exceptions import (
    LoadNotFoundException,
    RecommendationNotFoundException,
    NegotiationNotFoundException,
    NegotiationNotActiveException,
    TripNotFoundException,
    ValidationException,
)
from ..utils.logger import get_logger
from .compliance import CompatibleLoadsFinder, find_compatible_loads
from .distance import DistanceEstimator
from .feasibility import synthesize_routes
from .negotiation import simulate_negotiation, finalize_price, get_negotiation_status
from .pricing import predict_price

logger = get_logger(__name__)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


def _validation_error(message: str, error: ValidationError) -> ValidationException:
    field_errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in error.errors()
    ]
    return ValidationException(message, field_errors=field_errors)


class LoadService:
    """Create loads and move them through their lifecycle."""

    def __init__(self, store: RecordStore):
        self.store = store

    def create_load(self, load_data: dict[str, Any]) -> Load:
        """
        List a new load.

        Args:
            load_data: Load fields without id, created_at, or status

        Raises:
            ValidationException: Load fields are invalid
        """
        try:
            load = Load(
                **{k: v for k, v in load_data.items() if k not in ("id", "created_at", "status")},
                id=_new_id("load"),
                created_at=datetime.utcnow(),
                status="listed",
            )
        except ValidationError as e:
            raise _validation_error("Invalid load", e) from e

        self.store.create_load(load)
        logger.info(f"Listed load {load.id}: {load.origin}→{load.destination}, {load.weight:g}kg {load.load_type}")
        return load

    def get_load(self, load_id: str) -> Load:
        load = self.store.get_load(load_id)
        if load is None:
            raise LoadNotFoundException(load_id)
        return load

    def update_load_status(self, load_id: str, status: str) -> Load:
        try:
            load = self.store.update_load(load_id, status=status)
        except ValidationError as e:
            raise _validation_error(f"Invalid load status: {status}", e) from e
        if load is None:
            raise LoadNotFoundException(load_id)
        logger.info(f"Load {load_id} status -> {status}")
        return load


class RecommendationService:
    """Produce and track carrier recommendations for loads."""

    def __init__(
        self,
        store: RecordStore,
        distance_estimator: DistanceEstimator | None = None,
        compatible_loads_finder: CompatibleLoadsFinder = find_compatible_loads
    ):
        self.store = store
        self.distance_estimator = distance_estimator
        self.compatible_loads_finder = compatible_loads_finder

    def create_recommendation(
        self,
        load_id: str,
        recommendation_data: dict[str, Any],
        load_snapshot: Load | None = None
    ) -> Recommendation:
        """
        Store a recommendation for a load.

        If the load is unknown but a snapshot is supplied, the snapshot is
        stored first.

        Raises:
            LoadNotFoundException: Load unknown and no snapshot given
            ValidationException: Recommendation fields are invalid, or the
                snapshot is for a different load
        """
        if load_snapshot is not None and load_snapshot.id != load_id:
            raise ValidationException(
                f"Load snapshot {load_snapshot.id} does not match load {load_id}",
                field_errors=[{"field": "load_snapshot.id", "message": "must equal load_id"}],
            )

        load = self.store.get_load(load_id)
        if load is None and load_snapshot is not None:
            self.store.create_load(load_snapshot)
            load = self.store.get_load(load_id)
        if load is None:
            raise LoadNotFoundException(load_id)

        try:
            recommendation = Recommendation(
                **{k: v for k, v in recommendation_data.items() if k not in ("id", "load_id", "status")},
                id=_new_id("rec"),
                load_id=load_id,
                status="pending",
            )
        except ValidationError as e:
            raise _validation_error("Invalid recommendation", e) from e

        return self.store.create_recommendation(recommendation)

    def discover_fleets(self, load_id: str, trucks: list[Truck]) -> list[Recommendation]:
        """
        Match a load against candidate trucks and store the best matches.

        The load moves to "matched" pointing at the top recommendation. When
        no truck is feasible the load is left as it was.

        Raises:
            LoadNotFoundException: Load does not exist
        """
        load = self.store.get_load(load_id)
        if load is None:
            raise LoadNotFoundException(load_id)

        recommendations = synthesize_routes(
            load,
            trucks,
            distance_estimator=self.distance_estimator,
            compatible_loads_finder=self.compatible_loads_finder,
        )

        if not recommendations:
            logger.info(f"No feasible fleet for load {load_id} among {len(trucks)} trucks")
            return []

        for recommendation in recommendations:
            self.store.create_recommendation(recommendation)

        self.store.update_load(
            load_id,
            status="matched",
            recommendation_id=recommendations[0].id,
        )
        logger.info(
            f"Discovered {len(recommendations)} fleets for load {load_id}, "
            f"best feasibility {recommendations[0].feasibility:.2f}"
        )
        return recommendations

    def update_recommendation_status(self, recommendation_id: str, status: str) -> Recommendation:
        try:
            recommendation = self.store.update_recommendation(recommendation_id, status=status)
        except ValidationError as e:
            raise _validation_error(f"Invalid recommendation status: {status}", e) from e
        if recommendation is None:
            raise RecommendationNotFoundException(recommendation_id)
        return recommendation


class NegotiationService:
    """Create negotiations for recommendations and run them to a settlement."""

    def __init__(self, store: RecordStore, derive_status: bool | None = None):
        self.store = store
        self.derive_status = settings.DERIVE_NEGOTIATION_STATUS if derive_status is None else derive_status

    def create_negotiation(
        self,
        recommendation_id: str,
        buyer_agent: Agent,
        seller_agent: Agent
    ) -> Negotiation:
        """
        Open a negotiation over a recommendation.

        Raises:
            RecommendationNotFoundException: Recommendation does not exist
        """
        recommendation = self.store.get_recommendation(recommendation_id)
        if recommendation is None:
            raise RecommendationNotFoundException(recommendation_id)

        negotiation = Negotiation(
            id=_new_id("neg"),
            recommendation_id=recommendation_id,
            buyer_agent=buyer_agent,
            seller_agent=seller_agent,
        )
        self.store.create_negotiation(negotiation)

        if self.store.get_load(recommendation.load_id) is not None:
            self.store.update_load(
                recommendation.load_id,
                status="negotiating",
                negotiation_id=negotiation.id,
            )

        logger.info(f"Opened negotiation {negotiation.id} for recommendation {recommendation_id}")
        return negotiation

    def get_negotiation(self, negotiation_id: str) -> Negotiation:
        negotiation = self.store.get_negotiation(negotiation_id)
        if negotiation is None:
            raise NegotiationNotFoundException(negotiation_id)
        return negotiation

    def start_negotiation(
        self,
        negotiation_id: str,
        initial_buyer_price: float | None = None,
        initial_seller_price: float | None = None
    ) -> Negotiation:
        """
        Run the simulator and settle the negotiation.

        Opening prices default to the buyer's min_price and the seller's
        max_price. The finalized price is the rounded mean of the last two
        offers. The status is "converged" regardless of outcome unless status
        derivation is enabled, in which case a run that ends apart is "failed".

        Raises:
            NegotiationNotFoundException: Negotiation does not exist
            NegotiationNotActiveException: Negotiation already finished
        """
        negotiation = self.get_negotiation(negotiation_id)
        if negotiation.is_terminal:
            raise NegotiationNotActiveException(negotiation_id, negotiation.status)

        buyer = negotiation.buyer_agent.with_default_concession()
        seller = negotiation.seller_agent.with_default_concession()

        opening_buyer = buyer.min_price if initial_buyer_price is None else initial_buyer_price
        opening_seller = seller.max_price if initial_seller_price is None else initial_seller_price

        offers = simulate_negotiation(buyer, seller, opening_buyer, opening_seller)
        negotiation.append_offers(offers)

        if self.derive_status:
            derived = get_negotiation_status(negotiation)
            negotiation.status = "converged" if derived == "converged" else "failed"
        else:
            negotiation.status = "converged"

        negotiation.current_round = offers[-1].round
        negotiation.finalized_price = finalize_price(offers)
        self.store.save_negotiation(negotiation)

        recommendation = self.store.get_recommendation(negotiation.recommendation_id)
        if recommendation is not None and self.store.get_load(recommendation.load_id) is not None:
            self.store.update_load(
                recommendation.load_id,
                status="approved",
                finalized_price=negotiation.finalized_price,
            )

        logger.info(
            f"Negotiation {negotiation_id} finished: status={negotiation.status}, "
            f"rounds={negotiation.current_round}, price={negotiation.finalized_price}"
        )
        return negotiation


class TripService:
    """Dispatch settled loads as trips."""

    def __init__(self, store: RecordStore):
        self.store = store

    def create_trip(self, load_id: str, recommendation_id: str, trip_data: dict[str, Any]) -> Trip:
        """
        Assign a load to a driver.

        Payout is the load's finalized price, else its predicted price, else
        the configured default.

        Raises:
            LoadNotFoundException: Load does not exist
            ValidationException: Trip fields are invalid
        """
        load = self.store.get_load(load_id)
        if load is None:
            raise LoadNotFoundException(load_id)

        if load.finalized_price is not None:
            payout = load.finalized_price
        elif load.price_predicted is not None:
            payout = load.price_predicted
        else:
            payout = settings.DEFAULT_TRIP_PAYOUT
        reserved = ("id", "load_id", "recommendation_id", "status", "origin", "destination", "payout")

        try:
            trip = Trip(
                **{k: v for k, v in trip_data.items() if k not in reserved},
                id=_new_id("trip"),
                load_id=load_id,
                recommendation_id=recommendation_id,
                origin=load.origin,
                destination=load.destination,
                status="assigned",
                payout=payout,
            )
        except ValidationError as e:
            raise _validation_error("Invalid trip", e) from e

        self.store.create_trip(trip)
        self.store.update_load(load_id, status="dispatched")
        logger.info(f"Dispatched load {load_id} as trip {trip.id} to {trip.driver_name}, payout {payout}")
        return trip

    def update_trip_status(self, trip_id: str, status: str) -> Trip:
        try:
            trip = self.store.update_trip(trip_id, status=status)
        except ValidationError as e:
            raise _validation_error(f"Invalid trip status: {status}", e) from e
        if trip is None:
            raise TripNotFoundException(trip_id)
        return trip


class PricingService:
    """Price predictions for prospective loads."""

    def __init__(self, distance_estimator: DistanceEstimator | None = None):
        self.distance_estimator = distance_estimator

    def predict_price(self, load_data: dict[str, Any]) -> PriceEstimate:
        """
        Predict the price band for a prospective load.

        Args:
            load_data: Partial load fields; origin and destination are required

        Raises:
            ValidationException: origin or destination is missing
        """
        missing = [field for field in ("origin", "destination") if not load_data.get(field)]
        if missing:
            raise ValidationException(
                "Origin and destination are required for price prediction",
                field_errors=[{"field": field, "message": "Field required"} for field in missing],
            )
        return predict_price(
            load_data["origin"], load_data["destination"], distance_estimator=self.distance_estimator
        )


class KPIService:
    """Read and adjust marketplace KPIs."""

    def __init__(self, store: RecordStore):
        self.store = store

    def get_kpis(self) -> KPI:
        return self.store.get_kpis()

    def update_kpis(self, updates: dict[str, Any]) -> KPI:
        unknown = set(updates) - set(KPI.model_fields)
        if unknown:
            raise ValidationException(f"Unknown KPI fields: {', '.join(sorted(unknown))}")
        try:
            return self.store.update_kpis(**updates)
        except ValidationError as e:
            raise _validation_error("Invalid KPI values", e) from e
