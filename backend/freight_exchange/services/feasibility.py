"""
Feasibility scoring and route synthesis for fleet recommendations.

WHAT: Score load/truck pairings and turn the best ones into recommendations
WHY: Fleet managers see the top three feasible carriers for a load
HOW: Weighted blend of capacity, detour, idle time, and compliance scores

Scoring Breakdown:
- Capacity (40%): fraction of truck capacity the load fills
- Detour (20%): 1 at 0 km, 0 at MAX_DETOUR_KM or more
- Idle time (20%): 1 at 0 h, 0 at MAX_IDLE_HOURS or more
- Compliance (20%): 1 with no failed rules, minus 25% per failed rule
"""

import math
from uuid import uuid4

from ..models.freight import Load, Truck, Recommendation
from ..utils.money import round_half_up, format_rupees
from ..utils.logger import get_logger
from .compliance import (
    ComplianceChecker, CompatibleLoadsFinder, check_compliance, find_compatible_loads
)
from .distance import DistanceEstimator, get_distance_estimator

logger = get_logger(__name__)

CAPACITY_WEIGHT = 0.4
DETOUR_WEIGHT = 0.2
IDLE_WEIGHT = 0.2
COMPLIANCE_WEIGHT = 0.2

MAX_DETOUR_KM = 300
MAX_IDLE_HOURS = 24
RULE_PENALTY = 0.25

# Admissible distance from a truck's position to the pickup point
MIN_ROUTE_DETOUR_KM = 50
MAX_ROUTE_DETOUR_KM = 150

RATE_PER_KM = 50  # rupees per loaded km
DETOUR_RATE_PER_KM = 30  # rupees per empty km to pickup
AVERAGE_SPEED_KMH = 60
MAX_RECOMMENDATIONS = 3
PERMIT_FLAG = "permitRequired"


def compute_feasibility(
    capacity_match: float,
    detour_km: float,
    idle_hours: float,
    failed_rules: int
) -> float:
    """
    Blend the four sub-scores into a feasibility score.

    Out-of-range inputs are clamped rather than rejected.

    Args:
        capacity_match: Fraction of truck capacity used, 0..1
        detour_km: Extra km to reach pickup
        idle_hours: Hours the truck has been idle
        failed_rules: Count of violated compliance rules

    Returns:
        Score in [0, 1]
    """
    detour_score = 1 - min(detour_km, MAX_DETOUR_KM) / MAX_DETOUR_KM
    idle_score = 1 - min(idle_hours, MAX_IDLE_HOURS) / MAX_IDLE_HOURS
    if failed_rules == 0:
        compliance_score = 1.0
    else:
        compliance_score = max(0.0, 1 - failed_rules * RULE_PENALTY)

    raw = (
        CAPACITY_WEIGHT * capacity_match
        + DETOUR_WEIGHT * detour_score
        + IDLE_WEIGHT * idle_score
        + COMPLIANCE_WEIGHT * compliance_score
    )
    return max(0.0, min(1.0, raw))


def synthesize_routes(
    load: Load,
    trucks: list[Truck],
    *,
    distance_estimator: DistanceEstimator | None = None,
    compliance_checker: ComplianceChecker = check_compliance,
    compatible_loads_finder: CompatibleLoadsFinder = find_compatible_loads
) -> list[Recommendation]:
    """
    Build recommendations for the trucks that can feasibly take a load.

    Trucks are skipped when the load requires equipment they lack, or when
    their distance to pickup is outside [MIN_ROUTE_DETOUR_KM, MAX_ROUTE_DETOUR_KM].

    Args:
        load: Load to place
        trucks: Candidate trucks
        distance_estimator: Distance source (configured estimator if omitted)
        compliance_checker: Returns failed rule count for a load/truck pair
        compatible_loads_finder: Returns loads that could join a milk-run

    Returns:
        Up to MAX_RECOMMENDATIONS recommendations, best feasibility first.
        Empty when no truck qualifies.
    """
    estimator = distance_estimator or get_distance_estimator()
    candidates: list[Recommendation] = []

    base_distance = estimator.estimate(load.origin, load.destination)

    for truck in trucks:
        if load.equipment and truck.equipment != load.equipment:
            logger.debug(f"Skipped truck {truck.id}: equipment {truck.equipment} != {load.equipment}")
            continue

        detour_km = estimator.estimate(truck.current_location, load.origin)
        total_distance = base_distance + detour_km

        if detour_km < MIN_ROUTE_DETOUR_KM or detour_km > MAX_ROUTE_DETOUR_KM:
            logger.debug(f"Skipped truck {truck.id}: detour {detour_km}km outside admissible band")
            continue

        capacity_match = min(load.weight / truck.capacity, 1.0)
        failed_rules = compliance_checker(load, truck)
        feasibility = compute_feasibility(
            capacity_match=capacity_match,
            detour_km=detour_km,
            idle_hours=truck.idle_hours,
            failed_rules=failed_rules
        )

        price_suggested = base_distance * RATE_PER_KM + detour_km * DETOUR_RATE_PER_KM

        if detour_km > 0:
            route_summary = (
                f"Route with {detour_km:g}km detour: "
                f"{truck.current_location}→{load.origin}→{load.destination}"
            )
        else:
            route_summary = f"Direct route: {load.origin}→{load.destination}"

        compatible_loads = compatible_loads_finder(load, truck)
        if compatible_loads:
            # Milk-run revenue is descriptive only; price_suggested is unchanged
            total_revenue = price_suggested + sum(
                estimator.estimate(other.origin, other.destination) * RATE_PER_KM
                for other in compatible_loads
            )
            route_summary = (
                f"Milk-run: {truck.current_location}→{load.origin}→"
                f"{'→'.join(other.destination for other in compatible_loads)} — combines "
                f"{load.load_type} + {', '.join(other.load_type for other in compatible_loads)}; "
                f"est. revenue {format_rupees(total_revenue)}"
            )

        candidates.append(Recommendation(
            id=f"rec_{uuid4().hex[:12]}_{truck.id}",
            load_id=load.id,
            origin=load.origin,
            destination=load.destination,
            load_type=load.load_type,
            distance_km=total_distance,
            detour_km=detour_km,
            feasibility=feasibility,
            price_suggested=round_half_up(price_suggested),
            compliance_flags=[PERMIT_FLAG] if failed_rules > 0 else [],
            eta_hours=math.ceil(total_distance / AVERAGE_SPEED_KMH),
            route_summary=route_summary,
            truck_id=truck.id,
        ))

    # Stable sort keeps input order among equal scores
    candidates.sort(key=lambda rec: rec.feasibility, reverse=True)
    top = candidates[:MAX_RECOMMENDATIONS]

    logger.info(
        f"Route synthesis for load {load.id}: {len(candidates)} feasible of "
        f"{len(trucks)} trucks, returning {len(top)}"
    )
    return top
