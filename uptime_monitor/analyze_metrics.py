# analyze_metrics.py
# Command line uptime analysis of a validator from the samples stored in Prometheus

import argparse
import asyncio
from datetime import datetime, timedelta, timezone

from .aggregations import AggregationsManager, PrometheusClient
from .config import load_config
from .utils import as_utc


def parse_time(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyze metrics for a given node")
    parser.add_argument(
        "--node-id", "-n", type=str, required=True, help="Id of the validator node"
    )
    parser.add_argument(
        "--from", dest="from_", type=parse_time, required=True, help="Start of the interval (ISO 8601)"
    )
    parser.add_argument(
        "--to", type=parse_time, default=None, help="End of the interval (ISO 8601), defaults to now"
    )
    parser.add_argument("--step", type=int, default=30, help="Sampling step in seconds")
    parser.add_argument(
        "--prometheus-url", type=str, default=None, help="Overrides UPTIME_PROMETHEUS_URL"
    )
    return parser


async def run_analyze(
    manager: AggregationsManager,
    node_id: str,
    from_: datetime,
    to: datetime,
    step: timedelta = timedelta(seconds=30),
) -> float | None:
    uptime = await manager.uptime_percentage(node_id, from_, to, step)
    if uptime is None:
        print("Empty or just one value returned")
    else:
        print(f"Uptime percentage {uptime:.4f}")
    return uptime


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    prometheus_url = args.prometheus_url or load_config().prometheus_url
    manager = AggregationsManager(PrometheusClient(prometheus_url))
    to = args.to or datetime.now(timezone.utc)
    uptime = await run_analyze(
        manager, args.node_id, args.from_, to, timedelta(seconds=args.step)
    )
    return 0 if uptime is not None else 1


def run() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
