# tests/test_analyze_metrics.py
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from uptime_monitor.analyze_metrics import build_parser, main, run_analyze


def test_parser_defaults_to_utc():
    args = build_parser().parse_args(["-n", "NodeID-X", "--from", "2024-01-01T00:00:00"])
    assert args.node_id == "NodeID-X"
    assert args.from_ == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert args.to is None
    assert args.step == 30


@pytest.mark.asyncio
async def test_run_analyze_prints_percentage(capsys):
    manager = MagicMock()
    manager.uptime_percentage = AsyncMock(return_value=0.875)
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    result = await run_analyze(manager, "X", start, start + timedelta(hours=1))
    assert result == 0.875
    assert "Uptime percentage 0.8750" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_main_exit_code_without_samples(capsys):
    with patch(
        "uptime_monitor.analyze_metrics.AggregationsManager.uptime_percentage",
        new=AsyncMock(return_value=None),
    ):
        code = await main(
            ["-n", "X", "--from", "2024-01-01T00:00:00+00:00", "--prometheus-url", "http://prom"]
        )
    assert code == 1
    assert "Empty or just one value returned" in capsys.readouterr().out
