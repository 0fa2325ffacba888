"""
Demo script to run a load from listing through dispatch in the terminal.

WHAT: List a load, discover fleets, negotiate a price, and dispatch a trip
WHY: Visual verification of route ranking and negotiation behaviour
HOW: Run every marketplace service against the configured database and
     print the recommendations and the offer ladder
"""

import sys
from pathlib import Path

# Add backend to path if running directly
sys.path.insert(0, str(Path(__file__).parent))

from freight_exchange.core.database import init_db
from freight_exchange.core.record_store import SqlRecordStore
from freight_exchange.models.freight import Truck
from freight_exchange.models.negotiation import Agent
from freight_exchange.services.marketplace import (
    LoadService,
    RecommendationService,
    NegotiationService,
    TripService,
    PricingService,
)
from freight_exchange.services.pricing import generate_listing_text
from freight_exchange.utils.money import format_rupees
from freight_exchange.utils.logger import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


def print_banner(text: str, char: str = "="):
    """Print a formatted banner."""
    width = 80
    print(f"\n{char * width}\n{text.center(width)}\n{char * width}\n")


def run_demo() -> int:
    init_db()
    store = SqlRecordStore()

    pricing = PricingService()
    loads = LoadService(store)
    recommendations = RecommendationService(store)
    negotiations = NegotiationService(store)
    trips = TripService(store)

    print_banner("LIST LOAD")
    load_data = {
        "origin": "Pune",
        "destination": "Bangalore",
        "load_type": "General Cargo",
        "weight": 12000,
        "pickup_time": "2025-01-15T10:30:00",
        "delivery_time": "2025-01-17T18:00:00",
    }
    estimate = pricing.predict_price(load_data)
    load = loads.create_load({
        **load_data,
        "price_predicted": estimate.predicted,
        "price_range": {"min": estimate.min, "max": estimate.max},
    })
    print(generate_listing_text(
        load.origin, load.destination, load.load_type,
        load.weight, load.pickup_time, load.delivery_time,
    ))
    print(f"Predicted: {format_rupees(estimate.predicted)} "
          f"({format_rupees(estimate.min)} - {format_rupees(estimate.max)})")

    print_banner("DISCOVER FLEETS")
    trucks = [
        Truck(id="truck_satara", capacity=15000, current_location="Satara", idle_hours=4),
        Truck(id="truck_mumbai", capacity=12000, current_location="Mumbai", idle_hours=10),
        Truck(id="truck_delhi", capacity=20000, current_location="Delhi", idle_hours=2),
    ]
    matches = recommendations.discover_fleets(load.id, trucks)
    if not matches:
        print("No feasible fleet found")
        return 1

    for rec in matches:
        print(f"{rec.truck_id:<14} feasibility={rec.feasibility:.3f}  "
              f"price={format_rupees(rec.price_suggested)}  eta={rec.eta_hours}h")
        print(f"{'':<14} {rec.route_summary}")

    best = matches[0]

    print_banner("NEGOTIATE")
    buyer = Agent(id="buyer_1", name="Load Owner Agent", min_price=36000, max_price=49500, concession_rate=2)
    seller = Agent(id="seller_1", name="Fleet Agent", min_price=40500, max_price=54000, concession_rate=2)
    negotiation = negotiations.create_negotiation(best.id, buyer, seller)
    negotiation = negotiations.start_negotiation(negotiation.id)

    for offer in negotiation.offers:
        marker = " ✓" if offer.converged else ""
        print(f"Round {offer.round:>3}  {offer.agent_name:<18} {format_rupees(offer.price):>10}{marker}")

    print(f"\nStatus: {negotiation.status}, settled at {format_rupees(negotiation.finalized_price)}")

    print_banner("DISPATCH")
    trip = trips.create_trip(load.id, best.id, {"driver_id": "drv_1", "driver_name": "Ramesh Patil"})
    print(f"Trip {trip.id}: {trip.origin}→{trip.destination}, "
          f"driver {trip.driver_name}, payout {format_rupees(trip.payout)}")

    logger.info(f"Demo complete: load {load.id} is {loads.get_load(load.id).status}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(run_demo())
    except KeyboardInterrupt:
        print("\n\nDemo interrupted by user")
        sys.exit(1)
