"""
Compliance rules and milk-run discovery for load/truck pairs.

WHAT: Count violated dispatch rules; find loads that could share a trip
WHY: Route synthesis penalizes non-compliant pairs and describes milk-runs
HOW: Plain rule checks over the load and truck records
"""

from typing import Callable

from ..models.freight import Load, Truck

ComplianceChecker = Callable[[Load, Truck], int]
CompatibleLoadsFinder = Callable[[Load, Truck], list[Load]]

HAZARDOUS_MARKER = "Hazardous"


def check_compliance(load: Load, truck: Truck) -> int:
    """
    Count the compliance rules a load/truck pairing violates.

    Rules:
    - Hazardous cargo needs a permit
    - Truck capacity must cover the load weight

    Returns:
        Number of failed rules (0 means compliant)
    """
    failed_rules = 0
    if HAZARDOUS_MARKER in load.load_type:
        failed_rules += 1
    if truck.capacity < load.weight:
        failed_rules += 1
    return failed_rules


def find_compatible_loads(load: Load, truck: Truck) -> list[Load]:
    """
    Find other open loads that could be combined with this one on a milk-run.

    No load pool is consulted here; pass a different finder to
    synthesize_routes to enable milk-run suggestions.
    """
    return []


def make_compatible_loads_finder(open_loads: list[Load]) -> CompatibleLoadsFinder:
    """
    Build a milk-run finder over a pool of open loads.

    A load is compatible when it is listed, starts where the primary load
    ends, and the truck has spare capacity for it.
    """
    def finder(load: Load, truck: Truck) -> list[Load]:
        spare_capacity = truck.capacity - load.weight
        compatible = []
        for candidate in open_loads:
            if candidate.id == load.id or candidate.status != "listed":
                continue
            if candidate.origin != load.destination:
                continue
            if candidate.weight > spare_capacity:
                continue
            compatible.append(candidate)
            spare_capacity -= candidate.weight
        return compatible

    return finder
