# sources.py
# Upstream clients: validator status nodes (JSON-RPC) and the validator list endpoint

import asyncio
from datetime import timedelta
from typing import Any, Dict, List

import aiohttp

from .exceptions import RefreshFetchFailed, SourceUnreachable
from .logger import get_logger
from .models import (
    RawValidatorRecord,
    Records,
    SourceOutcome,
    Unavailable,
    ValidatorNodeItem,
    WatchedNode,
)

logger = get_logger(__name__)

GET_CURRENT_VALIDATORS = {
    "jsonrpc": "2.0",
    "method": "platform.getCurrentValidators",
    "params": {},
    "id": 1,
}


def _session_kwargs(timeout: timedelta | None) -> Dict[str, Any]:
    if timeout is None:
        return {}
    return {"timeout": aiohttp.ClientTimeout(total=timeout.total_seconds())}


def parse_validators(payload: Any) -> List[RawValidatorRecord]:
    """Parse a getCurrentValidators JSON-RPC response body."""
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected response body: {payload!r}")
    if payload.get("error"):
        raise ValueError(f"RPC error: {payload['error']}")
    validators = payload["result"]["validators"]
    return [RawValidatorRecord.model_validate(v) for v in validators]


class SourcePoller:
    """
    Queries every configured node independently.

    A node that cannot be reached or returns a malformed payload yields
    Unavailable; it never stops the other nodes from being polled. There are
    no retries inside a tick.
    """

    def __init__(
        self,
        node_urls: List[str],
        rpc_path: str = "/ext/bc/P",
        timeout: timedelta | None = None,
    ):
        self.node_urls = list(node_urls)
        self.rpc_path = rpc_path
        self.timeout = timeout

    async def fetch_validators(
        self, session: aiohttp.ClientSession, url: str
    ) -> List[RawValidatorRecord]:
        try:
            async with session.post(
                f"{url}{self.rpc_path}", json=GET_CURRENT_VALIDATORS
            ) as resp:
                resp.raise_for_status()
                payload = await resp.json(content_type=None)
            return parse_validators(payload)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, KeyError, TypeError) as e:
            raise SourceUnreachable(url, str(e) or type(e).__name__) from e

    async def _poll_source(self, session: aiohttp.ClientSession, url: str) -> SourceOutcome:
        try:
            records = await self.fetch_validators(session, url)
        except SourceUnreachable as e:
            logger.warning(str(e))
            return Unavailable(reason=e.reason)
        logger.debug(f"Node {url} reported {len(records)} validators")
        return Records(records=records)

    async def poll(self) -> Dict[str, SourceOutcome]:
        """Returns node url -> outcome, in configured order."""
        async with aiohttp.ClientSession(**_session_kwargs(self.timeout)) as session:
            outcomes = await asyncio.gather(
                *(self._poll_source(session, url) for url in self.node_urls)
            )
        return dict(zip(self.node_urls, outcomes))


class ValidatorListSource:
    """Authoritative list of validators to watch, fetched from a REST endpoint."""

    def __init__(self, url: str, timeout: timedelta | None = None):
        self.url = url
        self.timeout = timeout

    async def fetch(self) -> List[WatchedNode]:
        try:
            async with aiohttp.ClientSession(**_session_kwargs(self.timeout)) as session:
                async with session.get(self.url) as resp:
                    resp.raise_for_status()
                    data = await resp.json(content_type=None)
            items = [ValidatorNodeItem.model_validate(item) for item in data]
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, TypeError) as e:
            raise RefreshFetchFailed(self.url, str(e) or type(e).__name__) from e
        return [item.to_watched_node() for item in items if item.node_id]
