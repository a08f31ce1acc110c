"""Tests for the Profiler service."""

import base64

import orjson
import pytest

from webprofiler.exceptions import ProfileImportError
from webprofiler.profiler.collectors import (
    DataCollector,
    Exchange,
    RequestDataCollector,
    default_collectors,
)
from webprofiler.profiler.models import Profile
from webprofiler.profiler.profiler import Profiler
from webprofiler.profiler.storage import MemoryProfilerStorage


@pytest.fixture
def profiler():
    return Profiler(MemoryProfilerStorage(), default_limit=2)


def make_exchange(token="abc123", path="/orders", status=201):
    scope = {
        "type": "http",
        "method": "POST",
        "scheme": "http",
        "server": ("testserver", 80),
        "path": path,
        "query_string": b"page=2",
        "headers": [
            (b"host", b"testserver"),
            (b"authorization", b"Bearer secret"),
        ],
        "client": ("10.1.2.3", 5000),
    }
    return Exchange(
        token=token,
        scope=scope,
        start_time=1700000000.0,
        end_time=1700000000.25,
        status_code=status,
        response_headers=[(b"content-type", b"application/json")],
    )


def test_export_import_round_trip(profiler):
    original = Profile(token="abc123", method="GET", collectors={"time": {"duration_ms": 3}})
    exported = profiler.export(original)

    target = Profiler(MemoryProfilerStorage())
    imported = target.import_profile(exported)

    assert imported is not None
    assert imported.token == "abc123"
    assert target.load_profile("abc123").get_collector("time") == {"duration_ms": 3}


def test_import_existing_token_returns_none(profiler):
    profile = Profile(token="abc123")
    profiler.save_profile(profile)

    assert profiler.import_profile(profiler.export(profile)) is None


@pytest.mark.parametrize(
    "data",
    [
        b"not base64!",
        base64.b64encode(b"{broken json"),
        base64.b64encode(orjson.dumps([1, 2, 3])),
        base64.b64encode(orjson.dumps({"token": "../etc"})),
        base64.b64encode(orjson.dumps({"ip": "127.0.0.1"})),
    ],
)
def test_import_rejects_invalid_data(profiler, data):
    with pytest.raises(ProfileImportError):
        profiler.import_profile(data)


def test_find_uses_default_limit_for_missing_or_bad_values(profiler):
    for token in ("aaa001", "aaa002", "aaa003"):
        profiler.save_profile(Profile(token=token))

    assert len(profiler.find(None, None, None, None)) == 2
    assert len(profiler.find(None, None, "abc", None)) == 2
    assert len(profiler.find(None, None, 0, None)) == 2
    assert len(profiler.find(None, None, "3", None)) == 3


def test_disable_only_affects_current_capture(profiler):
    assert not profiler.is_capturing()
    profiler.disable()

    with profiler.capture() as outer:
        assert profiler.is_capturing()
        with profiler.capture() as inner:
            profiler.disable()
            assert not inner.enabled
        assert outer.enabled
        assert profiler.is_capturing()

    assert not profiler.is_capturing()


def test_capture_tokens_are_six_hex_digits(profiler):
    with profiler.capture() as state:
        assert len(state.token) == 6
        int(state.token, 16)


def test_collect_builds_profile_from_collectors():
    profiler = Profiler(MemoryProfilerStorage(), default_collectors("Shop", "test"))

    profile = profiler.collect(make_exchange())

    assert profile.token == "abc123"
    assert profile.ip == "10.1.2.3"
    assert profile.method == "POST"
    assert profile.url == "http://testserver/orders?page=2"
    assert profile.status_code == 201
    request = profile.get_collector("request")
    assert request["query"] == {"page": "2"}
    assert request["request_headers"]["authorization"] == "******"
    assert request["content_type"] == "application/json"
    assert profile.get_collector("time")["duration_ms"] == 250.0
    assert profile.get_collector("memory")["peak_memory_bytes"] > 0
    assert profile.get_collector("config")["app_name"] == "Shop"


def test_failing_collector_is_skipped():
    class BrokenCollector(DataCollector):
        name = "broken"

        def collect(self, exchange):
            raise RuntimeError("boom")

    profiler = Profiler(MemoryProfilerStorage(), [RequestDataCollector(), BrokenCollector()])

    profile = profiler.collect(make_exchange())

    assert profile.has_collector("request")
    assert not profile.has_collector("broken")
