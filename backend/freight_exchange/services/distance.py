"""
Distance estimation between named locations.

WHAT: Road distance in km for an (origin, destination) pair
WHY: Route synthesis and price prediction need distances without owning a map
HOW: Static lookup table, or a routing API over httpx with the table as fallback
"""

import time
from typing import Protocol

import httpx

from ..core.config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_DISTANCE_KM = 500.0

# Directed: a pair missing in one direction falls back even if the reverse exists
KNOWN_DISTANCES_KM: dict[str, dict[str, float]] = {
    "Pune": {"Bangalore": 840, "Satara": 120, "Mumbai": 150},
    "Mumbai": {"Delhi": 1400, "Pune": 150},
    "Satara": {"Bangalore": 720, "Pune": 120},
    "Bangalore": {"Pune": 840, "Satara": 720},
    "Delhi": {"Mumbai": 1400},
}


class DistanceServiceError(Exception):
    """Routing API could not produce a distance."""
    pass


class DistanceEstimator(Protocol):
    """Anything that can estimate the distance between two locations."""

    def estimate(self, origin: str, destination: str) -> float:
        """Return a non-negative distance in km."""
        ...


class LookupDistanceEstimator:
    """Distance estimator backed by a static city table."""

    def __init__(self, table: dict[str, dict[str, float]] | None = None, fallback_km: float = FALLBACK_DISTANCE_KM):
        self.table = table if table is not None else KNOWN_DISTANCES_KM
        self.fallback_km = fallback_km

    def estimate(self, origin: str, destination: str) -> float:
        distance = self.table.get(origin, {}).get(destination)
        if not distance:
            logger.debug(f"No known distance for {origin}→{destination}, using {self.fallback_km}km")
            return self.fallback_km
        return float(distance)


class RoutingApiDistanceEstimator:
    """
    Distance estimator backed by an HTTP routing API.

    Expects GET {base_url}/distance?origin=..&destination=.. to return
    {"distance_km": <number>}. Timeouts, connection errors and 5xx responses
    are retried with exponential backoff; when the API stays unavailable the
    lookup table answers instead, so estimate() never raises for transport
    failures.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        fallback: DistanceEstimator | None = None,
        client: httpx.Client | None = None
    ):
        self.base_url = (base_url or settings.ROUTING_API_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.ROUTING_API_KEY
        self.timeout = timeout if timeout is not None else settings.ROUTING_API_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.ROUTING_MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else settings.ROUTING_RETRY_DELAY
        self.fallback = fallback or LookupDistanceEstimator()

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(5.0, read=self.timeout),
            headers=headers
        )

    def estimate(self, origin: str, destination: str) -> float:
        try:
            return self._fetch_distance(origin, destination)
        except DistanceServiceError as e:
            logger.warning(f"Routing API failed for {origin}→{destination} ({e}), using lookup table")
            return self.fallback.estimate(origin, destination)

    def _fetch_distance(self, origin: str, destination: str) -> float:
        """
        Query the routing API with retries.

        Raises:
            DistanceServiceError: API unreachable, erroring, or returned garbage
        """
        params = {"origin": origin, "destination": destination}

        for attempt in range(self.max_retries):
            try:
                response = self.client.get(f"{self.base_url}/distance", params=params)
                response.raise_for_status()
                distance = float(response.json()["distance_km"])
                if distance < 0:
                    raise DistanceServiceError(f"Negative distance: {distance}")
                logger.debug(f"Routing API distance {origin}→{destination}: {distance}km")
                return distance

            except httpx.TimeoutException as e:
                logger.warning(f"Routing API timeout (attempt {attempt + 1}/{self.max_retries})")
                if attempt == self.max_retries - 1:
                    raise DistanceServiceError(f"Timed out after {self.max_retries} attempts") from e
                time.sleep(self.retry_delay * (2 ** attempt))

            except httpx.ConnectError as e:
                logger.warning(f"Routing API unreachable (attempt {attempt + 1}/{self.max_retries})")
                if attempt == self.max_retries - 1:
                    raise DistanceServiceError("Routing API is not reachable") from e
                time.sleep(self.retry_delay * (2 ** attempt))

            except httpx.HTTPStatusError as e:
                if e.response.status_code >= 500 and attempt < self.max_retries - 1:
                    logger.warning(f"Routing API server error {e.response.status_code} (attempt {attempt + 1}/{self.max_retries})")
                    time.sleep(self.retry_delay * (2 ** attempt))
                else:
                    # Client errors don't retry
                    raise DistanceServiceError(f"HTTP {e.response.status_code}") from e

            except (KeyError, TypeError, ValueError) as e:
                raise DistanceServiceError(f"Invalid response format: {e}") from e

        raise DistanceServiceError("No attempts made")

    def close(self) -> None:
        self.client.close()


# Singleton instance
_estimator_instance: DistanceEstimator | None = None


def get_distance_estimator() -> DistanceEstimator:
    """
    Get the configured distance estimator singleton.

    Raises:
        ValueError: If DISTANCE_PROVIDER is unknown
    """
    global _estimator_instance

    if _estimator_instance is None:
        provider_name = settings.DISTANCE_PROVIDER

        if provider_name == "lookup":
            _estimator_instance = LookupDistanceEstimator()
        elif provider_name == "routing_api":
            _estimator_instance = RoutingApiDistanceEstimator()
        else:
            raise ValueError(f"Unknown distance provider: {provider_name}")

        logger.info(f"Distance estimator initialized: {provider_name}")

    return _estimator_instance


def reset_distance_estimator() -> None:
    """Reset the estimator singleton (useful for testing)."""
    global _estimator_instance
    _estimator_instance = None
