# aggregations.py
# Historical aggregates computed by querying Prometheus for previously exported gauges

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import aiohttp

from .exceptions import InvalidTimeRange
from .logger import get_logger
from .models import ConnectedResponse, UptimeResponse, ValidatorInfoResponse
from .utils import as_utc, parse_query_result, to_prometheus_time

logger = get_logger(__name__)

CONNECTED_QUERY = 'validators_connected{{NodeID="{node_id}"}}'
AVG_CONNECTED_QUERY = 'avg_over_time(validators_connected{{NodeID="{node_id}"}}[{duration}])'
START_TIME_QUERY = 'validators_start_time{{NodeID="{node_id}"}}'
END_TIME_QUERY = 'validators_end_time{{NodeID="{node_id}"}}'


def _ms_to_datetime(value: float) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class PrometheusClient:
    def __init__(self, endpoint: str, timeout: timedelta | None = None):
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

    async def _fetch(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.endpoint}/api/v1/{path}"
        kwargs = {}
        if self.timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout.total_seconds())
        async with aiohttp.ClientSession(**kwargs) as session:
            async with session.get(url, params=params) as resp:
                resp.raise_for_status()
                data = await resp.json()
        if data.get("status") != "success":
            raise ValueError(f"Prometheus query failed: {data.get('error')}")
        return data.get("data", {})

    async def instant_query(self, query: str, at: datetime) -> Dict[str, Any]:
        return await self._fetch("query", {"query": query, "time": at.timestamp()})

    async def range_query(
        self, query: str, start: datetime, end: datetime, step: timedelta
    ) -> Dict[str, Any]:
        params = {
            "query": query,
            "start": start.timestamp(),
            "end": end.timestamp(),
            "step": step.total_seconds(),
        }
        return await self._fetch("query_range", params)


class AggregationsManager:
    def __init__(self, client: PrometheusClient):
        self.client = client

    async def average_validator_uptime(
        self, node_id: str, from_: datetime, to: datetime
    ) -> UptimeResponse | None:
        from_, to = as_utc(from_), as_utc(to)
        duration_ms = (to - from_).total_seconds() * 1000
        if duration_ms <= 0:
            raise InvalidTimeRange("Invalid duration")

        query = AVG_CONNECTED_QUERY.format(
            node_id=node_id, duration=to_prometheus_time(duration_ms)
        )
        logger.info(f"Running query '{query}' at {to}")
        value = parse_query_result(await self.client.instant_query(query, to))
        return UptimeResponse(uptime=value) if value is not None else None

    async def validator_connected_at(self, node_id: str, at: datetime) -> ConnectedResponse | None:
        at = as_utc(at)
        query = CONNECTED_QUERY.format(node_id=node_id)
        logger.info(f"Running query '{query}' at {at}")
        value = parse_query_result(await self.client.instant_query(query, at), bool)
        return ConnectedResponse(connected=value) if value is not None else None

    async def validator_info_at(self, node_id: str, at: datetime) -> ValidatorInfoResponse | None:
        """Start/end time of the validator as known at `at`, and its average connectivity over that period."""
        at = as_utc(at)
        start_time = parse_query_result(
            await self.client.instant_query(START_TIME_QUERY.format(node_id=node_id), at),
            _ms_to_datetime,
        )
        if start_time is None:
            return None

        end_time = parse_query_result(
            await self.client.instant_query(END_TIME_QUERY.format(node_id=node_id), at),
            _ms_to_datetime,
        )
        if end_time is None:
            return None

        duration_ms = (end_time - start_time).total_seconds() * 1000
        if duration_ms <= 0:
            logger.warning(f"Validator {node_id} has a non-positive staking period")
            return None

        query = AVG_CONNECTED_QUERY.format(
            node_id=node_id, duration=to_prometheus_time(duration_ms)
        )
        average = parse_query_result(await self.client.instant_query(query, end_time))
        if average is None:
            return None
        return ValidatorInfoResponse(
            node_id=node_id, start_time=start_time, end_time=end_time, uptime=average
        )

    async def uptime_percentage(
        self,
        node_id: str,
        from_: datetime,
        to: datetime,
        step: timedelta = timedelta(seconds=30),
    ) -> float | None:
        """Share of sampled points in [from_, to] where the validator was connected."""
        from_, to = as_utc(from_), as_utc(to)
        if to <= from_:
            raise InvalidTimeRange("Invalid duration")
        data = await self.client.range_query(
            CONNECTED_QUERY.format(node_id=node_id), from_, to, step
        )
        result = data.get("result") or []
        values = result[0].get("values", []) if result else []
        if len(values) <= 1:
            logger.info("Empty or just one value returned")
            return None
        return sum(float(v) for _, v in values) / len(values)
