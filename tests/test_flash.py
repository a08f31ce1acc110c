"""Tests for session flash bags."""

from starlette.requests import Request

from webprofiler.flash import AutoExpireFlashBag, FlashBag, get_flash_bag


def make_request(session):
    scope = {"type": "http", "headers": []}
    if session is not None:
        scope["session"] = session
    return Request(scope)


def test_flash_bag_keeps_messages_until_read():
    session = {}
    bag = FlashBag(session)
    bag.add("notice", "one")
    bag.add("notice", "two")

    assert bag.peek("notice") == ["one", "two"]
    assert bag.has("notice")
    assert bag.get("notice") == ["one", "two"]
    assert bag.get("notice") == []
    assert not bag.has("notice")


def test_flash_bag_get_all_clears():
    bag = FlashBag({})
    bag.set_all({"error": ["bad"], "notice": ["ok"]})

    assert bag.get_all() == {"error": ["bad"], "notice": ["ok"]}
    assert bag.peek_all() == {}


def test_auto_expire_messages_live_for_one_request():
    session = {}
    first = AutoExpireFlashBag(session)
    first.initialize()
    first.add("notice", "saved")
    assert first.peek_all() == {}

    second = AutoExpireFlashBag(session)
    second.initialize()
    assert second.peek("notice") == ["saved"]

    third = AutoExpireFlashBag(session)
    third.initialize()
    assert third.peek_all() == {}


def test_auto_expire_set_all_rearms_for_next_request():
    session = {}
    bag = AutoExpireFlashBag(session)
    bag.add("notice", "saved")

    rearm = AutoExpireFlashBag(session)
    rearm.initialize()
    rearm.set_all(rearm.peek_all())

    after = AutoExpireFlashBag(session)
    after.initialize()
    assert after.get("notice") == ["saved"]


def test_get_flash_bag_without_session():
    assert get_flash_bag(make_request(None)) is None


def test_get_flash_bag_is_cached_per_request():
    session = {"_flashes_auto": {"display": {}, "new": {"notice": ["x"]}}}
    request = make_request(session)

    bag = get_flash_bag(request, auto_expire=True)

    assert isinstance(bag, AutoExpireFlashBag)
    assert get_flash_bag(request, auto_expire=True) is bag
    # initialized only once, so the message is still displayable
    assert bag.peek("notice") == ["x"]
