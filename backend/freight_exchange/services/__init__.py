"""Matching, negotiation, and marketplace workflow services."""

from .feasibility import compute_feasibility, synthesize_routes
from .negotiation import (
    CONVERGENCE_THRESHOLD,
    MAX_NEGOTIATION_ROUNDS,
    simulate_negotiation,
    get_negotiation_status,
    finalize_price,
    has_converged,
)
from .distance import (
    DistanceEstimator,
    LookupDistanceEstimator,
    RoutingApiDistanceEstimator,
    get_distance_estimator,
    reset_distance_estimator,
)
from .compliance import check_compliance, find_compatible_loads, make_compatible_loads_finder
from .pricing import predict_price, generate_listing_text

__all__ = [
    "compute_feasibility",
    "synthesize_routes",
    "CONVERGENCE_THRESHOLD",
    "MAX_NEGOTIATION_ROUNDS",
    "simulate_negotiation",
    "get_negotiation_status",
    "finalize_price",
    "has_converged",
    "DistanceEstimator",
    "LookupDistanceEstimator",
    "RoutingApiDistanceEstimator",
    "get_distance_estimator",
    "reset_distance_estimator",
    "check_compliance",
    "find_compatible_loads",
    "make_compatible_loads_finder",
    "predict_price",
    "generate_listing_text",
]
