import asyncio
import logging
import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from trip_planner.services.geocoding import (
    GeocodeFailure,
    GeocodingResolver,
    cache_key,
    classify_failure,
    is_overseas_address,
    normalize_address,
    parse_location,
)
from trip_planner.services.rate_limiter import RateLimitedQueue

WUHOU_PAYLOAD = {
    "status": "1",
    "info": "OK",
    "infocode": "10000",
    "count": "1",
    "geocodes": [
        {
            "formatted_address": "四川省成都市武侯区武侯祠",
            "province": "四川省",
            "city": "成都市",
            "district": "武侯区",
            "location": "104.048,30.646",
        }
    ],
}


class RecordingTransport:
    """httpx.MockTransport handler that records every request."""

    def __init__(self, payload=None, status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.payload, (dict, list)):
            return httpx.Response(self.status_code, json=self.payload)
        return httpx.Response(self.status_code, text=self.payload or "")


async def _sleep(_seconds: float) -> None:
    await asyncio.sleep(0)


def make_resolver(transport: RecordingTransport, api_key: str | None = "test-key"):
    queue = RateLimitedQueue(min_gap=0.0, sleep=_sleep)
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    return GeocodingResolver(api_key, queue, http_client=client), queue


def resolve(resolver: GeocodingResolver, address: str, city: str | None = None):
    return asyncio.run(resolver.resolve(address, city))


# ---- Pure helpers ----


def test_normalize_address():
    assert normalize_address("  参观 故宫  ") == "故宫"
    assert normalize_address("Visit the British Museum!") == "the British Museum"
    assert normalize_address("Go to   St. Paul's Cathedral") == "St Pauls Cathedral"
    assert normalize_address("酒店地址（见下方住宿信息）") == ""
    assert normalize_address("外滩，上海") == "外滩 上海"


def test_cache_key_includes_city_hint():
    assert cache_key("Wuhou Shrine", "成都") != cache_key("Wuhou Shrine")
    assert cache_key("Big Ben", " London ") == cache_key("big ben", "london")


def test_overseas_heuristic():
    assert is_overseas_address("Plaza Mayor Madrid")
    assert is_overseas_address("somewhere in the UK")
    assert not is_overseas_address("成都市武侯祠")
    assert not is_overseas_address("Lukou airport")


def test_classify_failure():
    assert classify_failure(WUHOU_PAYLOAD) is None
    assert classify_failure({"status": "1", "count": "0", "geocodes": []}) is GeocodeFailure.NO_RESULT
    assert classify_failure({"status": "1", "geocodes": "nope"}) is GeocodeFailure.MALFORMED
    assert classify_failure({"status": "0", "info": "CUQPS_HAS_EXCEEDED_THE_LIMIT"}) is GeocodeFailure.RATE_LIMITED
    assert classify_failure({"status": "0", "infocode": "10004"}) is GeocodeFailure.RATE_LIMITED
    assert classify_failure({"status": "0", "infocode": "10009"}) is GeocodeFailure.CREDENTIAL_MISMATCH
    assert classify_failure({"status": "0", "infocode": "10001"}) is GeocodeFailure.CREDENTIAL_INVALID
    assert classify_failure({"status": "0", "infocode": "10003"}) is GeocodeFailure.QUOTA_EXCEEDED
    assert classify_failure({"status": "0", "infocode": "30001"}) is GeocodeFailure.NO_RESULT
    assert classify_failure({"status": "0", "infocode": "20003"}) is GeocodeFailure.SERVICE_ERROR
    assert classify_failure(["not", "a", "dict"]) is GeocodeFailure.MALFORMED


def test_parse_location():
    assert parse_location("104.048,30.646") == (104.048, 30.646)
    assert parse_location("0,0") is None
    assert parse_location("200,30") is None
    assert parse_location("nan,30") is None
    assert parse_location("abc") is None
    assert parse_location(None) is None


# ---- Resolution order ----


def test_big_ben_uses_fallback_table_without_network():
    transport = RecordingTransport(WUHOU_PAYLOAD)
    resolver, _ = make_resolver(transport)

    result = resolve(resolver, "Big Ben")

    assert result is not None
    assert (result.lng, result.lat) == (-0.1246, 51.4994)
    assert transport.requests == []
    assert resolver.remote_calls == 0


def test_remote_lookup_and_cache_idempotence():
    transport = RecordingTransport(WUHOU_PAYLOAD)
    resolver, _ = make_resolver(transport)

    first = resolve(resolver, "成都市武侯祠", "成都")
    second = resolve(resolver, "  成都市武侯祠 ", "成都")

    assert first is not None
    assert first == second
    assert (first.lng, first.lat) == (104.048, 30.646)
    assert first.city == "成都市"
    assert len(transport.requests) == 1
    params = transport.requests[0].url.params
    assert params["key"] == "test-key"
    assert params["address"] == "成都市武侯祠"
    assert params["city"] == "成都"
    assert params["output"] == "json"
    assert resolver.cache_size == 1


def test_fallback_hits_are_cached():
    transport = RecordingTransport(WUHOU_PAYLOAD)
    resolver, _ = make_resolver(transport)

    resolve(resolver, "London Eye")
    resolve(resolver, "London Eye")
    assert resolver.cache_size == 1
    assert transport.requests == []


def test_overseas_address_short_circuits():
    transport = RecordingTransport(WUHOU_PAYLOAD)
    resolver, _ = make_resolver(transport)

    assert resolve(resolver, "Plaza Mayor Madrid") is None
    assert transport.requests == []


def test_no_api_key_means_no_remote_call():
    transport = RecordingTransport(WUHOU_PAYLOAD)
    resolver, _ = make_resolver(transport, api_key=None)

    assert resolve(resolver, "成都市武侯祠") is None
    assert transport.requests == []
    # Fallback table still works without a key
    assert resolve(resolver, "Big Ben") is not None


# ---- Failure classification ----


def test_rate_limit_reply_backs_off_queue():
    transport = RecordingTransport({"status": "0", "info": "CUQPS_HAS_EXCEEDED_THE_LIMIT", "infocode": "10004"})
    resolver, queue = make_resolver(transport)

    assert resolve(resolver, "成都市武侯祠") is None
    assert resolver.last_failure is GeocodeFailure.RATE_LIMITED
    assert resolver.cache_size == 0
    assert queue._hold_until > 0


def test_credential_mismatch_logged_at_error(caplog):
    transport = RecordingTransport({"status": "0", "info": "USERKEY_PLAT_NOMATCH", "infocode": "10009"})
    resolver, _ = make_resolver(transport)

    with caplog.at_level(logging.DEBUG):
        assert resolve(resolver, "成都市武侯祠") is None

    assert resolver.last_failure is GeocodeFailure.CREDENTIAL_MISMATCH
    assert any(r.levelno == logging.ERROR and "credential_mismatch" in r.getMessage() for r in caplog.records)


def test_no_result_is_not_an_error(caplog):
    transport = RecordingTransport({"status": "1", "info": "OK", "count": "0", "geocodes": []})
    resolver, _ = make_resolver(transport)

    with caplog.at_level(logging.DEBUG):
        assert resolve(resolver, "南京市某条小巷") is None

    assert resolver.last_failure is GeocodeFailure.NO_RESULT
    assert not any(r.levelno >= logging.WARNING for r in caplog.records if r.name.endswith("geocoding"))


@pytest.mark.parametrize(
    "transport,failure",
    [
        (RecordingTransport({"error": "boom"}, status_code=500), GeocodeFailure.HTTP_ERROR),
        (RecordingTransport("<html>not json</html>"), GeocodeFailure.MALFORMED),
        (
            RecordingTransport({"status": "1", "geocodes": [{"location": "0,0"}]}),
            GeocodeFailure.INVALID_COORDINATES,
        ),
        (
            RecordingTransport({"status": "1", "geocodes": [{"location": "181.5,30"}]}),
            GeocodeFailure.INVALID_COORDINATES,
        ),
    ],
)
def test_failures_degrade_to_none(transport, failure):
    resolver, _ = make_resolver(transport)
    assert resolve(resolver, "南京市夫子庙") is None
    assert resolver.last_failure is failure
    assert resolver.cache_size == 0


def test_network_error_degrades_to_none():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    queue = RateLimitedQueue(min_gap=0.0, sleep=_sleep)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    resolver = GeocodingResolver("test-key", queue, http_client=client)

    assert resolve(resolver, "南京市夫子庙") is None
    assert resolver.last_failure is GeocodeFailure.HTTP_ERROR


def test_resolve_many_keeps_input_order():
    transport = RecordingTransport(WUHOU_PAYLOAD)
    resolver, _ = make_resolver(transport)

    results = asyncio.run(resolver.resolve_many(["Big Ben", "Plaza Mayor Madrid", "London Eye"]))

    assert [r.address if r else None for r in results] == ["Big Ben", None, "London Eye"]
