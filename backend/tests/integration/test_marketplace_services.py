"""
Integration tests for the marketplace workflow services.

WHAT: List → discover → negotiate → dispatch against a real database
WHY: Validate load lifecycle transitions and persisted negotiation outcomes
HOW: Services over SqlRecordStore with the lookup distance table
"""

import pytest

from freight_exchange.models.freight import Truck
from freight_exchange.models.negotiation import Agent
from freight_exchange.services.marketplace import (
    LoadService,
    RecommendationService,
    NegotiationService,
    TripService,
    PricingService,
    KPIService,
)
from freight_exchange.utils.exceptions import (
    LoadNotFoundException,
    RecommendationNotFoundException,
    NegotiationNotFoundException,
    NegotiationNotActiveException,
    TripNotFoundException,
    ValidationException,
)
from freight_exchange.utils.money import round_half_up

LOAD_DATA = {
    "origin": "Pune",
    "destination": "Bangalore",
    "load_type": "General Cargo",
    "weight": 12000,
    "pickup_time": "2025-01-15T10:30:00",
    "delivery_time": "2025-01-17T18:00:00",
    "owner_id": "owner_1",
}


@pytest.fixture
def load_service(store):
    return LoadService(store)


@pytest.fixture
def recommendation_service(store, lookup_estimator):
    return RecommendationService(store, distance_estimator=lookup_estimator)


@pytest.fixture
def listed_load(load_service):
    return load_service.create_load(LOAD_DATA)


@pytest.fixture
def matched(store, recommendation_service, listed_load, nearby_trucks):
    """A listed load with stored recommendations; returns the top one."""
    return recommendation_service.discover_fleets(listed_load.id, nearby_trucks)[0]


@pytest.mark.integration
class TestLoadService:
    """Test load creation and status changes."""

    def test_create_load_is_listed(self, load_service, store):
        load = load_service.create_load({**LOAD_DATA, "id": "ignored", "status": "completed"})

        assert load.id.startswith("load_")
        assert load.id != "ignored"
        assert load.status == "listed"
        assert store.get_load(load.id) == load

    def test_invalid_load_raises_validation_exception(self, load_service):
        with pytest.raises(ValidationException) as exc_info:
            load_service.create_load({**LOAD_DATA, "weight": -1})

        assert exc_info.value.code == "VALIDATION_ERROR"
        fields = [err["field"] for err in exc_info.value.details["field_errors"]]
        assert "weight" in fields

    def test_get_missing_load(self, load_service):
        with pytest.raises(LoadNotFoundException) as exc_info:
            load_service.get_load("load_missing")

        assert exc_info.value.code == "LOAD_NOT_FOUND"
        assert exc_info.value.details == {"load_id": "load_missing"}

    def test_update_status(self, load_service, listed_load):
        assert load_service.update_load_status(listed_load.id, "completed").status == "completed"

    def test_update_to_unknown_status(self, load_service, listed_load):
        with pytest.raises(ValidationException):
            load_service.update_load_status(listed_load.id, "lost")

        assert load_service.get_load(listed_load.id).status == "listed"


@pytest.mark.integration
class TestRecommendationService:
    """Test fleet discovery and recommendation records."""

    def test_discover_fleets_matches_load(self, store, recommendation_service, listed_load, nearby_trucks):
        recs = recommendation_service.discover_fleets(listed_load.id, nearby_trucks)

        assert [rec.truck_id for rec in recs] == ["truck_mumbai", "truck_satara"]
        assert {rec.id for rec in store.list_recommendations(listed_load.id)} == {rec.id for rec in recs}

        load = store.get_load(listed_load.id)
        assert load.status == "matched"
        assert load.recommendation_id == recs[0].id

    def test_no_feasible_fleet_leaves_load_listed(self, store, recommendation_service, listed_load):
        recs = recommendation_service.discover_fleets(
            listed_load.id, [Truck(id="far", capacity=12000, current_location="Delhi")]
        )

        assert recs == []
        assert store.get_load(listed_load.id).status == "listed"
        assert store.list_recommendations(listed_load.id) == []

    def test_discover_for_unknown_load(self, recommendation_service, nearby_trucks):
        with pytest.raises(LoadNotFoundException):
            recommendation_service.discover_fleets("load_missing", nearby_trucks)

    def test_create_recommendation_with_snapshot(self, store, recommendation_service, pune_load):
        data = {
            "origin": "Pune",
            "destination": "Bangalore",
            "load_type": "General Cargo",
            "distance_km": 960,
            "detour_km": 120,
            "feasibility": 1.7,
            "price_suggested": 45600,
            "eta_hours": 16,
        }

        rec = recommendation_service.create_recommendation(pune_load.id, data, load_snapshot=pune_load)

        assert rec.status == "pending"
        assert rec.feasibility == 1.0
        assert store.get_load(pune_load.id) is not None

    def test_create_recommendation_for_unknown_load(self, recommendation_service):
        with pytest.raises(LoadNotFoundException):
            recommendation_service.create_recommendation("load_missing", {})

    def test_mismatched_snapshot_is_not_stored(self, store, recommendation_service, pune_load):
        with pytest.raises(ValidationException):
            recommendation_service.create_recommendation("load_other", {}, load_snapshot=pune_load)

        assert store.get_load(pune_load.id) is None
        assert store.list_loads() == []

    def test_update_status(self, recommendation_service, matched):
        updated = recommendation_service.update_recommendation_status(matched.id, "accepted")
        assert updated.status == "accepted"

    def test_update_missing_recommendation(self, recommendation_service):
        with pytest.raises(RecommendationNotFoundException):
            recommendation_service.update_recommendation_status("rec_missing", "accepted")


@pytest.mark.integration
class TestNegotiationService:
    """Test opening and running negotiations."""

    def test_create_negotiation_moves_load_to_negotiating(
        self, store, matched, buyer_agent, seller_agent
    ):
        service = NegotiationService(store)

        negotiation = service.create_negotiation(matched.id, buyer_agent, seller_agent)

        assert negotiation.status == "active"
        assert negotiation.offers == []
        load = store.get_load(matched.load_id)
        assert load.status == "negotiating"
        assert load.negotiation_id == negotiation.id

    def test_create_for_unknown_recommendation(self, store, buyer_agent, seller_agent):
        with pytest.raises(RecommendationNotFoundException):
            NegotiationService(store).create_negotiation("rec_missing", buyer_agent, seller_agent)

    def test_start_negotiation_settles_and_approves_load(
        self, store, matched, buyer_agent, seller_agent
    ):
        service = NegotiationService(store, derive_status=False)
        negotiation = service.create_negotiation(matched.id, buyer_agent, seller_agent)

        result = service.start_negotiation(negotiation.id)

        assert result.status == "converged"
        assert result.offers[0].price == 36000
        assert result.offers[1].price == 54000
        assert result.finalized_price == round_half_up(
            (result.offers[-2].price + result.offers[-1].price) / 2
        )
        assert result.current_round == result.offers[-1].round

        stored = store.get_negotiation(negotiation.id)
        assert [o.id for o in stored.offers] == [o.id for o in result.offers]
        assert stored.finalized_price == result.finalized_price

        load = store.get_load(matched.load_id)
        assert load.status == "approved"
        assert load.finalized_price == result.finalized_price

    def test_caller_supplied_opening_prices(self, store, matched, buyer_agent, seller_agent):
        service = NegotiationService(store)
        negotiation = service.create_negotiation(matched.id, buyer_agent, seller_agent)

        result = service.start_negotiation(negotiation.id, initial_buyer_price=40000, initial_seller_price=48000)

        assert [o.price for o in result.offers[:2]] == [40000, 48000]

    def test_missing_concession_rate_uses_default(self, store, matched):
        service = NegotiationService(store)
        buyer = Agent(id="b", name="Buyer", min_price=36000, max_price=49500)
        seller = Agent(id="s", name="Seller", min_price=40500, max_price=54000)
        negotiation = service.create_negotiation(matched.id, buyer, seller)

        result = service.start_negotiation(negotiation.id)

        assert result.offers[2].price == 36360  # 36000 + 18000 * 2%

    def test_finished_negotiation_cannot_restart(self, store, matched, buyer_agent, seller_agent):
        service = NegotiationService(store)
        negotiation = service.create_negotiation(matched.id, buyer_agent, seller_agent)
        service.start_negotiation(negotiation.id)

        with pytest.raises(NegotiationNotActiveException) as exc_info:
            service.start_negotiation(negotiation.id)

        assert exc_info.value.details["current_status"] == "converged"

    def test_unknown_negotiation(self, store):
        with pytest.raises(NegotiationNotFoundException):
            NegotiationService(store).start_negotiation("neg_missing")

    def test_non_overlapping_bounds_reported_converged_by_default(self, store, matched):
        service = NegotiationService(store, derive_status=False)
        buyer = Agent(id="b", name="Buyer", min_price=10000, max_price=20000, concession_rate=5)
        seller = Agent(id="s", name="Seller", min_price=30000, max_price=40000, concession_rate=5)
        negotiation = service.create_negotiation(matched.id, buyer, seller)

        result = service.start_negotiation(negotiation.id)

        assert not any(o.converged for o in result.offers)
        assert result.status == "converged"
        assert result.current_round == 100
        assert result.finalized_price == 25000

    def test_non_overlapping_bounds_fail_when_status_is_derived(self, store, matched):
        service = NegotiationService(store, derive_status=True)
        buyer = Agent(id="b", name="Buyer", min_price=10000, max_price=20000, concession_rate=5)
        seller = Agent(id="s", name="Seller", min_price=30000, max_price=40000, concession_rate=5)
        negotiation = service.create_negotiation(matched.id, buyer, seller)

        result = service.start_negotiation(negotiation.id)

        assert result.status == "failed"
        assert store.get_negotiation(negotiation.id).status == "failed"

    def test_derived_status_converges_for_overlapping_bounds(
        self, store, matched, buyer_agent, seller_agent
    ):
        service = NegotiationService(store, derive_status=True)
        negotiation = service.create_negotiation(matched.id, buyer_agent, seller_agent)

        assert service.start_negotiation(negotiation.id).status == "converged"


@pytest.mark.integration
class TestTripService:
    """Test dispatching loads as trips."""

    TRIP_DATA = {"driver_id": "drv_1", "driver_name": "Ramesh"}

    def test_payout_uses_finalized_price(self, store, matched, buyer_agent, seller_agent):
        negotiations = NegotiationService(store)
        negotiation = negotiations.create_negotiation(matched.id, buyer_agent, seller_agent)
        settled = negotiations.start_negotiation(negotiation.id)

        trip = TripService(store).create_trip(matched.load_id, matched.id, self.TRIP_DATA)

        assert trip.payout == settled.finalized_price
        assert trip.status == "assigned"
        assert (trip.origin, trip.destination) == ("Pune", "Bangalore")
        assert store.get_load(matched.load_id).status == "dispatched"

    def test_payout_falls_back_to_predicted_price(self, store, load_service):
        load = load_service.create_load({**LOAD_DATA, "price_predicted": 46200})

        trip = TripService(store).create_trip(load.id, "rec_x", self.TRIP_DATA)

        assert trip.payout == 46200

    def test_payout_default(self, store, listed_load):
        trip = TripService(store).create_trip(listed_load.id, "rec_x", self.TRIP_DATA)

        assert trip.payout == 45000

    def test_zero_finalized_price_is_kept(self, store, load_service):
        load = load_service.create_load({**LOAD_DATA, "price_predicted": 46200})
        store.update_load(load.id, finalized_price=0)

        trip = TripService(store).create_trip(load.id, "rec_x", self.TRIP_DATA)

        assert trip.payout == 0

    def test_trip_for_unknown_load(self, store):
        with pytest.raises(LoadNotFoundException):
            TripService(store).create_trip("load_missing", "rec_x", self.TRIP_DATA)

    def test_missing_driver_is_rejected(self, store, listed_load):
        with pytest.raises(ValidationException):
            TripService(store).create_trip(listed_load.id, "rec_x", {})

    def test_update_trip_status(self, store, listed_load):
        service = TripService(store)
        trip = service.create_trip(listed_load.id, "rec_x", self.TRIP_DATA)

        assert service.update_trip_status(trip.id, "started").status == "started"
        with pytest.raises(ValidationException):
            service.update_trip_status(trip.id, "parked")
        with pytest.raises(TripNotFoundException):
            service.update_trip_status("trip_missing", "started")


@pytest.mark.integration
class TestPricingAndKPIServices:
    """Test price prediction and KPI updates."""

    def test_pricing_service(self, lookup_estimator):
        estimate = PricingService(lookup_estimator).predict_price(LOAD_DATA)

        assert (estimate.min, estimate.max, estimate.predicted) == (42000, 50400, 46200)

    def test_pricing_needs_origin_and_destination(self, lookup_estimator):
        with pytest.raises(ValidationException) as exc_info:
            PricingService(lookup_estimator).predict_price({"origin": "Pune"})

        fields = [err["field"] for err in exc_info.value.details["field_errors"]]
        assert fields == ["destination"]

    def test_kpi_defaults_and_update(self, store):
        service = KPIService(store)

        assert service.get_kpis().utilization == 0.68
        assert service.update_kpis({"utilization": 0.72}).utilization == 0.72
        assert service.get_kpis().utilization == 0.72

    def test_unknown_kpi_field(self, store):
        with pytest.raises(ValidationException, match="revenue"):
            KPIService(store).update_kpis({"revenue": 10})
