"""
Price prediction and listing text for prospective loads.

WHAT: Distance-based price band and a human-readable listing blurb
WHY: Load owners get a starting price range before fleets are matched
HOW: Per-km rate band over the estimated distance
"""

from datetime import datetime

from ..models.freight import PriceEstimate
from ..utils.logger import get_logger
from .distance import DistanceEstimator, get_distance_estimator

logger = get_logger(__name__)

MIN_RATE_PER_KM = 50
MAX_RATE_PER_KM = 60


def predict_price(
    origin: str,
    destination: str,
    distance_estimator: DistanceEstimator | None = None
) -> PriceEstimate:
    """
    Predict the price band for a route.

    Args:
        origin: Pickup location
        destination: Drop location
        distance_estimator: Distance source (configured estimator if omitted)

    Returns:
        PriceEstimate with min/max band and its midpoint
    """
    estimator = distance_estimator or get_distance_estimator()
    distance = estimator.estimate(origin, destination)

    low = distance * MIN_RATE_PER_KM
    high = distance * MAX_RATE_PER_KM
    estimate = PriceEstimate(min=low, max=high, predicted=(low + high) / 2)

    logger.info(f"Predicted price for {origin}→{destination} ({distance:g}km): {estimate.min:.0f}-{estimate.max:.0f}")
    return estimate


def _format_listing_time(value: str) -> str:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return value
    return f"{parsed.day} {parsed.strftime('%b')}, {parsed.strftime('%H:%M')}"


def generate_listing_text(
    origin: str,
    destination: str,
    load_type: str,
    weight: float,
    pickup_time: str,
    delivery_time: str
) -> str:
    """Render the marketplace listing text for a load."""
    pickup = _format_listing_time(pickup_time)
    delivery = _format_listing_time(delivery_time)

    return (
        f"Seeking transport for {weight / 1000:g}T {load_type} from {origin} to {destination}. "
        f"Pickup required by {pickup} with delivery deadline of {delivery}. "
        f"Specialized equipment may be required. Competitive rates offered for reliable carriers."
    )
