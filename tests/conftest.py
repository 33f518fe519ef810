# tests/conftest.py
import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock

from uptime_monitor.coordinator import UpdateCoordinator
from uptime_monitor.models import RawValidatorRecord, Records, Unavailable
from uptime_monitor.reconciler import ValidatorReconciler
from uptime_monitor.registry import MetricsRegistry
from uptime_monitor.watchset import WatchSetTracker


def wire_validator(
    node_id,
    connected=True,
    uptime="0.95",
    stake="2000000000000",
    start="1600000000",
    end="1700000000",
    delegators=None,
):
    item = {
        "nodeID": node_id,
        "stakeAmount": stake,
        "uptime": uptime,
        "connected": connected,
        "startTime": start,
        "endTime": end,
    }
    if delegators is not None:
        item["delegators"] = [{"stakeAmount": d} for d in delegators]
    return item


class FakeResponse:
    def __init__(self, payload=None, status=200):
        self.payload = payload
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(MagicMock(), (), status=self.status)

    async def json(self, content_type="application/json"):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return self.response

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        return self.response


@pytest.fixture
def validator():
    """Factory for a wire-format validator entry."""
    return wire_validator


@pytest.fixture
def records():
    """Factory for a Records outcome built from wire-format entries."""
    def _records(*items):
        return Records(records=[RawValidatorRecord.model_validate(i) for i in items])
    return _records


@pytest.fixture
def unavailable():
    return Unavailable(reason="connection refused")


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def dashboard():
    dashboard = MagicMock()
    dashboard.update = AsyncMock(return_value=True)
    return dashboard


@pytest.fixture
def make_coordinator(dashboard):
    def _make(outcomes=None, membership_source="ticks", seed=(), validator_list=None, policy="mean"):
        poller = MagicMock()
        poller.poll = AsyncMock(return_value=outcomes or {})
        return UpdateCoordinator(
            registry=MetricsRegistry(),
            poller=poller,
            reconciler=ValidatorReconciler(policy),
            watch_set=WatchSetTracker(seed),
            dashboard=dashboard,
            validator_list=validator_list,
            membership_source=membership_source,
        )
    return _make
