#!/usr/bin/env python3
"""
Google Maps web-service client for the trip planner.

Every directions, places and geocoding request is admitted by the usage
governor before it is sent; a refused request never reaches the network.
Directions results are cached in memory for a day.
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Mapping, Optional

import requests
from dotenv import load_dotenv

from maps_quota import (
    QuotaLimitError,
    RouteCache,
    Settings,
    UsageGovernor,
    build_governor,
    classify,
    get_logger,
    setup_logging,
)

MAPS_API_BASE = "https://maps.googleapis.com/maps/api"
DEFAULT_TIMEOUT_SECONDS = 30

TRAVEL_MODES = {
    "walk": "walking",
    "bike": "bicycling",
    "bus": "transit",
    "car": "driving",
}

# Statuses that mean the request went through, with or without matches.
SUCCESS_STATUSES = ("OK", "ZERO_RESULTS")
QUOTA_STATUSES = ("OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT")


logger = get_logger(__name__)


class MapsApiError(RuntimeError):
    """Raised when the Maps API answers with a failure status or cannot be reached."""

    def __init__(self, message: str, status: str = "UNKNOWN_ERROR"):
        super().__init__(message)
        self.status = status


def parse_api_error(operation: str, payload: Mapping[str, Any]) -> MapsApiError:
    """Build an error from a non-OK Maps API response body."""
    status = str(payload.get("status") or "UNKNOWN_ERROR")
    detail = payload.get("error_message") or ""
    message = f"{operation} failed: {status}"
    if status in QUOTA_STATUSES:
        message += " (quota exceeded)"
    if detail:
        message += f" - {detail}"
    return MapsApiError(message, status)


def format_point(point: Any) -> str:
    if isinstance(point, Mapping):
        return f"{float(point['lat'])},{float(point['lng'])}"
    return str(point)


class MapsApiClient:
    def __init__(
        self,
        api_key: str,
        governor: UsageGovernor,
        cache: Optional[RouteCache] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.governor = governor
        self.cache = cache if cache is not None else RouteCache()
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request_json(self, category: str, operation: str, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        admission = self.governor.check_and_record(category)
        if not admission.admitted:
            raise QuotaLimitError(category, admission.breached)

        query = dict(params)
        query["key"] = self.api_key
        try:
            response = self.session.get(f"{MAPS_API_BASE}/{path}/json", params=query, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            raise MapsApiError(f"{operation} failed: HTTP {exc.response.status_code}", "HTTP_ERROR") from exc
        except requests.exceptions.RequestException as exc:
            raise MapsApiError(f"{operation} failed: network connection error ({exc})", "NETWORK_ERROR") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise MapsApiError(f"{operation} failed: invalid response", "INVALID_RESPONSE") from exc
        if not isinstance(data, dict):
            raise MapsApiError(f"{operation} failed: invalid response", "INVALID_RESPONSE")
        if data.get("status") not in SUCCESS_STATUSES:
            raise parse_api_error(operation, data)
        return data

    def get_directions(self, origin: Any, destination: Any, mode: str = "walk") -> Dict[str, Any]:
        """Route between two points; ``mode`` is one of walk, bike, bus, car."""

        if mode not in TRAVEL_MODES:
            raise ValueError(f"mode must be one of {', '.join(TRAVEL_MODES)}")

        cacheable = isinstance(origin, Mapping) and isinstance(destination, Mapping)
        if cacheable:
            cached = self.cache.get(origin, destination, mode)
            if cached is not None:
                logger.debug("Directions served from cache (%s)", mode)
                return cached

        data = self._request_json(
            "directions",
            "Directions request",
            "directions",
            {
                "origin": format_point(origin),
                "destination": format_point(destination),
                "mode": TRAVEL_MODES[mode],
            },
        )
        if cacheable:
            self.cache.set(origin, destination, mode, data)
        return data

    def search_places(self, query: str) -> List[Dict[str, Any]]:
        data = self._request_json("places", "Places search", "place/textsearch", {"query": query})
        return data.get("results", [])

    def geocode(self, address: str) -> List[Dict[str, Any]]:
        data = self._request_json("geocoding", "Geocoding", "geocode", {"address": address})
        return data.get("results", [])


def parse_point(value: str) -> Any:
    """Accept "lat,lng" as coordinates; anything else is passed through as an address."""
    parts = value.split(",")
    if len(parts) == 2:
        try:
            return {"lat": float(parts[0]), "lng": float(parts[1])}
        except ValueError:
            pass
    return value


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query Google Maps within the configured usage limits.")
    parser.add_argument("--api-key", default=None, help="API key (env: GOOGLE_MAPS_API_KEY)")
    parser.add_argument("--log-level", default=None, help="Logging level (env: LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    directions = sub.add_parser("directions", help="Route between two points")
    directions.add_argument("origin", help='"lat,lng" or an address')
    directions.add_argument("destination", help='"lat,lng" or an address')
    directions.add_argument("--mode", choices=sorted(TRAVEL_MODES), default="walk")

    places = sub.add_parser("places", help="Text search for places")
    places.add_argument("query")

    geocode = sub.add_parser("geocode", help="Geocode an address")
    geocode.add_argument("address")
    return parser.parse_args(argv)


def print_usage_summary(governor: UsageGovernor) -> None:
    for category, entry in governor.usage_stats().items():
        daily = entry["daily"]
        logger.info("Usage %s: %d/%s today (%.0f%%)", category, daily["used"], daily["limit"], daily["percentage"])
    warning = governor.usage_warning()
    if warning:
        print(f"⚠️  {warning.message}")


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    setup_logging(args.log_level)

    settings = Settings.from_env()
    api_key = args.api_key or settings.api_key
    if not api_key:
        print("Missing API key! Pass --api-key or set GOOGLE_MAPS_API_KEY")
        return 2

    governor = build_governor(settings)
    client = MapsApiClient(api_key, governor)

    try:
        if args.command == "directions":
            result: Any = client.get_directions(parse_point(args.origin), parse_point(args.destination), args.mode)
        elif args.command == "places":
            result = client.search_places(args.query)
        else:
            result = client.geocode(args.address)
    except (QuotaLimitError, MapsApiError) as exc:
        details = classify(exc)
        logger.warning("Maps request failed (%s): %s", details.category_name, exc)
        print(f"{details.icon} {details.title}: {details.message}")
        for line in details.degraded_behavior or ():
            print(f"  - {line}")
        print_usage_summary(governor)
        return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    print_usage_summary(governor)
    return 0


if __name__ == "__main__":
    sys.exit(main())
