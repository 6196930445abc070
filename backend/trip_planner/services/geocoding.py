"""
Geocoding resolver: free-text place name -> coordinates.

Resolution order: normalize -> cache -> fallback table -> overseas
short-circuit -> rate-limited AMap call. Every failure path returns None;
`resolve` never raises.
"""

from __future__ import annotations

import asyncio
import re
from enum import Enum
from typing import Any, MutableMapping

import httpx
from pydantic import ValidationError

from trip_planner.core.config import AMAP_GEOCODE_URL
from trip_planner.core.logging import setup_logger
from trip_planner.models.geocode import GeocodeResult, is_valid_coordinate
from trip_planner.services.fallback_coordinates import DEFAULT_FALLBACK_TABLE, FallbackCoordinateTable
from trip_planner.services.rate_limiter import RateLimitedQueue

logger = setup_logger(__name__)

LOG_TAG = "[geocoding]"


class GeocodeFailure(str, Enum):
    RATE_LIMITED = "rate_limited"
    CREDENTIAL_MISMATCH = "credential_mismatch"
    CREDENTIAL_INVALID = "credential_invalid"
    QUOTA_EXCEEDED = "quota_exceeded"
    NO_RESULT = "no_result"
    SERVICE_ERROR = "service_error"
    HTTP_ERROR = "http_error"
    MALFORMED = "malformed"
    INVALID_COORDINATES = "invalid_coordinates"


# AMap infocode -> meaning
INFOCODE_EXPLANATIONS: dict[str, str] = {
    "10001": "API key is wrong or expired",
    "10002": "Key has no permission for this service",
    "10003": "Daily request quota exceeded",
    "10004": "Too many requests per second (QPS limit)",
    "10005": "Caller IP is not on the key's whitelist",
    "10006": "Caller domain is not on the key's whitelist",
    "10007": "Digital signature check failed",
    "10008": "MD5 security code check failed",
    "10009": "API key does not match the platform (use a Web Service key)",
    "10010": "Per-IP quota exceeded",
    "10011": "Service does not support https",
    "10012": "Insufficient permission, request rejected",
    "10013": "Key was deleted",
    "20000": "Illegal request parameters",
    "20001": "Missing required parameter",
    "20002": "Illegal request protocol",
    "20003": "Unknown error",
    "30001": "Engine returned no data; usually an unknown or non-domestic address",
    "30002": "Service response error",
    "30003": "Daily request quota exceeded",
}

_INFOCODE_FAILURES: dict[str, GeocodeFailure] = {
    "10004": GeocodeFailure.RATE_LIMITED,
    "10009": GeocodeFailure.CREDENTIAL_MISMATCH,
    "10001": GeocodeFailure.CREDENTIAL_INVALID,
    "10002": GeocodeFailure.CREDENTIAL_INVALID,
    "10012": GeocodeFailure.CREDENTIAL_INVALID,
    "10013": GeocodeFailure.CREDENTIAL_INVALID,
    "10003": GeocodeFailure.QUOTA_EXCEEDED,
    "10010": GeocodeFailure.QUOTA_EXCEEDED,
    "30003": GeocodeFailure.QUOTA_EXCEEDED,
    "30001": GeocodeFailure.NO_RESULT,
}

# Configuration problems: retrying will not help
CONFIGURATION_FAILURES = frozenset(
    {GeocodeFailure.CREDENTIAL_MISMATCH, GeocodeFailure.CREDENTIAL_INVALID, GeocodeFailure.QUOTA_EXCEEDED}
)

OVERSEAS_KEYWORDS: tuple[str, ...] = (
    "london", "paris", "tokyo", "new york", "sydney", "berlin",
    "rome", "madrid", "amsterdam", "vienna", "prague", "budapest",
    "uk", "england", "france", "japan", "usa", "america", "australia",
    "germany", "italy", "spain", "netherlands", "austria", "czech",
    "hungary", "big ben", "tower bridge", "eiffel tower", "statue of liberty",
)
_OVERSEAS_PATTERN = re.compile(r"\b(?:" + "|".join(re.escape(k) for k in OVERSEAS_KEYWORDS) + r")\b")

_LEADING_VERBS = re.compile(
    r"^(?:参观|游览|前往|到达|抵达|访问|"
    r"(?:visit(?:ing)?|go(?:ing)? to|head(?:ing)? to|arrive at|arriving at|travel to|explore)\s+)",
    re.IGNORECASE,
)
_BOILERPLATE = re.compile(
    r"酒店地址[（(]见下方住宿信息[)）]|[(（]?see (?:the )?accommodation (?:info(?:rmation)?|details?) below[)）]?",
    re.IGNORECASE,
)
_APOSTROPHES = re.compile(r"['‘’]")
_PUNCTUATION = re.compile(r"[，。！？；：“”\"（）【】《》、,.!?;:()\[\]]")
_WHITESPACE = re.compile(r"\s+")


def normalize_address(address: str) -> str:
    """Trim, drop leading action verbs and boilerplate, strip punctuation, collapse whitespace."""
    text = (address or "").strip()
    text = _BOILERPLATE.sub("", text)
    text = _LEADING_VERBS.sub("", text)
    text = _APOSTROPHES.sub("", text)
    text = _PUNCTUATION.sub(" ", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def is_overseas_address(address: str) -> bool:
    return _OVERSEAS_PATTERN.search(address.lower()) is not None


def cache_key(address: str, city_hint: str | None = None) -> tuple[str, str]:
    city = normalize_address(city_hint or "").casefold()
    return (city, address.casefold())


def classify_failure(payload: Any) -> GeocodeFailure | None:
    """
    Classify an AMap geocode payload. Returns None for a usable success payload.
    """
    if not isinstance(payload, dict):
        return GeocodeFailure.MALFORMED

    status = str(payload.get("status", ""))
    infocode = str(payload.get("infocode", ""))
    info = str(payload.get("info", "") or "")

    if status == "1":
        geocodes = payload.get("geocodes")
        if not isinstance(geocodes, list):
            return GeocodeFailure.MALFORMED
        if not geocodes:
            return GeocodeFailure.NO_RESULT
        return None

    if "CUQPS_HAS_EXCEEDED_THE_LIMIT" in info.upper():
        return GeocodeFailure.RATE_LIMITED
    return _INFOCODE_FAILURES.get(infocode, GeocodeFailure.SERVICE_ERROR)


def parse_location(value: Any) -> tuple[float, float] | None:
    """Parse AMap's "lng,lat" string; None when it is missing, malformed or out of range."""
    if not isinstance(value, str) or "," not in value:
        return None
    lng_text, _, lat_text = value.partition(",")
    try:
        lng, lat = float(lng_text), float(lat_text)
    except ValueError:
        return None
    if not is_valid_coordinate(lng, lat):
        return None
    return lng, lat


def _optional_text(value: Any) -> str | None:
    # AMap sends [] for empty administrative fields
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class GeocodingResolver:
    def __init__(
        self,
        api_key: str | None,
        queue: RateLimitedQueue,
        *,
        fallback_table: FallbackCoordinateTable = DEFAULT_FALLBACK_TABLE,
        cache: MutableMapping[tuple[str, str], GeocodeResult] | None = None,
        base_url: str = AMAP_GEOCODE_URL,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
        rate_limit_backoff: float = 3.0,
    ) -> None:
        self.api_key = api_key
        self.queue = queue
        self.fallback_table = fallback_table
        self.cache: MutableMapping[tuple[str, str], GeocodeResult] = cache if cache is not None else {}
        self.base_url = base_url
        self.timeout = timeout
        self.rate_limit_backoff = rate_limit_backoff
        self._http_client = http_client
        self.remote_calls = 0
        self.last_failure: GeocodeFailure | None = None

    # ---- Public API ----
    async def resolve(self, address: str, city_hint: str | None = None) -> GeocodeResult | None:
        try:
            return await self._resolve(address, city_hint)
        except Exception as e:
            logger.warning(f"{LOG_TAG} Unexpected failure resolving '{address}': {type(e).__name__}: {e}")
            return None

    async def resolve_many(
        self, addresses: list[str], city_hint: str | None = None
    ) -> list[GeocodeResult | None]:
        """
        Resolve several addresses concurrently; results keep the input order.
        Remote calls are still serialized by the queue.
        """
        logger.info(f"{LOG_TAG} Batch geocoding {len(addresses)} addresses")
        results = await asyncio.gather(*(self.resolve(a, city_hint) for a in addresses))
        resolved = sum(1 for r in results if r is not None)
        logger.info(f"{LOG_TAG} Batch done: {resolved}/{len(addresses)} resolved")
        return list(results)

    def clear_cache(self) -> None:
        self.cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self.cache)

    # ---- Resolution steps ----
    async def _resolve(self, address: str, city_hint: str | None) -> GeocodeResult | None:
        if not isinstance(address, str) or not address.strip():
            return None

        clean = normalize_address(address)
        if not clean:
            return None
        key = cache_key(clean, city_hint)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        fallback = self.fallback_table.lookup(clean, city_hint)
        if fallback is not None:
            self.cache[key] = fallback
            return fallback

        if is_overseas_address(clean):
            logger.debug(f"{LOG_TAG} Skipping remote lookup for overseas address '{clean}'")
            return None

        if not self.api_key:
            logger.debug(f"{LOG_TAG} No geocoding key configured; '{clean}' unresolved")
            return None

        result = await self.queue.enqueue(lambda: self._remote_lookup(clean, city_hint))
        if result is not None:
            self.cache[key] = result
        return result

    async def _remote_lookup(self, address: str, city_hint: str | None) -> GeocodeResult | None:
        """Runs inside the rate-limited queue: one HTTP GET, classified."""
        params = {"key": self.api_key, "address": address, "output": "json"}
        if city_hint:
            params["city"] = city_hint

        self.remote_calls += 1
        try:
            if self._http_client is not None:
                response = await self._http_client.get(self.base_url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.base_url, params=params)
        except httpx.HTTPError as e:
            return self._fail(GeocodeFailure.HTTP_ERROR, address, f"{type(e).__name__}: {e}")

        if response.status_code != 200:
            return self._fail(GeocodeFailure.HTTP_ERROR, address, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            return self._fail(GeocodeFailure.MALFORMED, address, "response body is not JSON")

        failure = classify_failure(payload)
        if failure is not None:
            if failure is GeocodeFailure.RATE_LIMITED:
                # Hold the whole queue, not just this caller
                self.queue.hold(self.rate_limit_backoff)
            infocode = str(payload.get("infocode", "")) if isinstance(payload, dict) else ""
            return self._fail(failure, address, self._describe(payload), infocode)

        candidate = payload["geocodes"][0]
        if not isinstance(candidate, dict):
            return self._fail(GeocodeFailure.MALFORMED, address, "geocode candidate is not an object")

        coords = parse_location(candidate.get("location"))
        if coords is None:
            return self._fail(
                GeocodeFailure.INVALID_COORDINATES, address, f"location={candidate.get('location')!r}"
            )

        lng, lat = coords
        try:
            result = GeocodeResult(
                lng=lng,
                lat=lat,
                address=_optional_text(candidate.get("formatted_address")) or address,
                city=_optional_text(candidate.get("city")),
                district=_optional_text(candidate.get("district")),
                province=_optional_text(candidate.get("province")),
            )
        except ValidationError as e:
            return self._fail(GeocodeFailure.INVALID_COORDINATES, address, str(e))

        self.last_failure = None
        return result

    # ---- Failure reporting ----
    @staticmethod
    def _describe(payload: Any) -> str:
        if not isinstance(payload, dict):
            return f"payload={payload!r}"
        infocode = str(payload.get("infocode", ""))
        explanation = INFOCODE_EXPLANATIONS.get(infocode, "unknown error code")
        return f"status={payload.get('status')}, info={payload.get('info')}, infocode={infocode} ({explanation})"

    def _fail(self, failure: GeocodeFailure, address: str, detail: str, infocode: str = "") -> None:
        self.last_failure = failure
        message = f"{LOG_TAG} {failure.value} for '{address}': {detail}"
        if failure in CONFIGURATION_FAILURES:
            logger.error(message + " - check the AMap Web Service key configuration")
        elif failure is GeocodeFailure.NO_RESULT:
            logger.debug(message)
        elif failure is GeocodeFailure.RATE_LIMITED:
            logger.warning(message + f" - backing off {self.rate_limit_backoff:.1f}s")
        else:
            logger.warning(message)
        return None


__all__ = [
    "GeocodingResolver",
    "GeocodeFailure",
    "INFOCODE_EXPLANATIONS",
    "OVERSEAS_KEYWORDS",
    "classify_failure",
    "normalize_address",
    "is_overseas_address",
    "parse_location",
    "cache_key",
]
