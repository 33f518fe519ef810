# tests/test_sources.py
import aiohttp
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from uptime_monitor.exceptions import RefreshFetchFailed, SourceUnreachable
from uptime_monitor.models import Records, Unavailable
from uptime_monitor.sources import (
    GET_CURRENT_VALIDATORS,
    SourcePoller,
    ValidatorListSource,
    parse_validators,
)


def test_parse_validators(validator):
    payload = {
        "jsonrpc": "2.0",
        "result": {
            "validators": [
                validator("NodeID-A", uptime="0.9871", delegators=["25000000000"]),
                validator("NodeID-B", connected=False),
            ]
        },
        "id": 1,
    }
    records = parse_validators(payload)
    assert [r.node_id for r in records] == ["NodeID-A", "NodeID-B"]
    assert records[0].uptime == Decimal("0.9871")
    assert records[0].start_time == 1600000000
    assert records[0].delegators[0].stake_amount == Decimal("25000000000")
    assert records[1].connected is False
    assert records[1].delegators == []


def test_parse_validators_null_delegators(validator):
    item = validator("NodeID-A")
    item["delegators"] = None
    records = parse_validators({"result": {"validators": [item]}})
    assert records[0].delegators == []


@pytest.mark.parametrize(
    "payload",
    [
        {"error": {"code": -32000, "message": "boom"}},
        {"result": {}},
        {"result": {"validators": [{"nodeID": "X"}]}},
        None,
        [],
        "oops",
        {"result": None},
    ],
)
def test_parse_validators_malformed(payload):
    with pytest.raises((ValueError, KeyError, TypeError)):
        parse_validators(payload)


@pytest.mark.asyncio
async def test_fetch_validators_posts_json_rpc(validator, fake_session, fake_response):
    session = fake_session(fake_response({"result": {"validators": [validator("X")]}}))
    poller = SourcePoller(["http://a"])
    records = await poller.fetch_validators(session, "http://a")
    assert [r.node_id for r in records] == ["X"]
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "http://a/ext/bc/P")
    assert kwargs["json"] == GET_CURRENT_VALIDATORS


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        {"status": 503, "payload": {}},
        {"status": 200, "payload": ValueError("not json")},
        {"status": 200, "payload": {"result": {"validators": [{"nodeID": "X"}]}}},
        {"status": 200, "payload": None},
        {"status": 200, "payload": []},
        {"status": 200, "payload": "oops"},
        {"status": 200, "payload": {"result": None}},
    ],
)
async def test_fetch_validators_failures_become_source_unreachable(
    response, fake_session, fake_response
):
    session = fake_session(fake_response(**response))
    poller = SourcePoller(["http://a"])
    with pytest.raises(SourceUnreachable) as exc_info:
        await poller.fetch_validators(session, "http://a")
    assert exc_info.value.url == "http://a"


@pytest.mark.asyncio
async def test_fetch_validators_connection_error():
    session = MagicMock()
    session.post.side_effect = aiohttp.ClientConnectionError("refused")
    poller = SourcePoller(["http://a"])
    with pytest.raises(SourceUnreachable):
        await poller.fetch_validators(session, "http://a")


@pytest.mark.asyncio
async def test_poll_tolerates_single_source_failure(validator, records):
    poller = SourcePoller(["http://a", "http://b", "http://c"])
    good = records(validator("X")).records

    async def fake_fetch(session, url):
        if url == "http://b":
            raise SourceUnreachable(url, "timeout")
        return good

    with patch.object(poller, "fetch_validators", new=AsyncMock(side_effect=fake_fetch)):
        outcomes = await poller.poll()

    assert list(outcomes) == ["http://a", "http://b", "http://c"]
    assert isinstance(outcomes["http://a"], Records)
    assert isinstance(outcomes["http://b"], Unavailable)
    assert outcomes["http://b"].reason == "timeout"
    assert isinstance(outcomes["http://c"], Records)


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [None, [], "oops", {"result": None}])
async def test_poll_malformed_body_only_affects_its_source(body, validator, fake_response):
    responses = {
        "http://a/ext/bc/P": fake_response(body),
        "http://b/ext/bc/P": fake_response({"result": {"validators": [validator("X")]}}),
    }
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    session.post.side_effect = lambda url, **kwargs: responses[url]

    poller = SourcePoller(["http://a", "http://b"])
    with patch("uptime_monitor.sources.aiohttp.ClientSession", return_value=session):
        outcomes = await poller.poll()

    assert isinstance(outcomes["http://a"], Unavailable)
    assert isinstance(outcomes["http://b"], Records)
    assert [r.node_id for r in outcomes["http://b"].records] == ["X"]


@pytest.mark.asyncio
async def test_validator_list_fetch(fake_session, fake_response):
    payload = [
        {"nodeId": "A", "name": "alpha", "startTime": 100, "endTime": 200},
        {"nodeId": "B", "name": None},
        {"nodeId": ""},
    ]
    session = fake_session(fake_response(payload))
    with patch("uptime_monitor.sources.aiohttp.ClientSession", return_value=session):
        nodes = await ValidatorListSource("http://list").fetch()
    assert [n.node_id for n in nodes] == ["A", "B"]
    assert nodes[0].name == "alpha"
    assert nodes[0].end_time == 200
    assert nodes[1].name == ""
    assert session.calls[0][:2] == ("GET", "http://list")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        {"status": 500, "payload": []},
        {"status": 200, "payload": [{"name": "missing id"}]},
        {"status": 200, "payload": ValueError("bad json")},
    ],
)
async def test_validator_list_fetch_failure(response, fake_session, fake_response):
    session = fake_session(fake_response(**response))
    with patch("uptime_monitor.sources.aiohttp.ClientSession", return_value=session):
        with pytest.raises(RefreshFetchFailed):
            await ValidatorListSource("http://list").fetch()
