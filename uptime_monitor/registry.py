# registry.py
# Owns the exported gauges and renders them in the Prometheus text format

from typing import Dict, Iterable

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from .models import ReconciledRecord


class MetricsRegistry:
    """
    Gauges exported on the pull endpoint.

    Validator gauges are keyed by NodeID and fully replaced on every commit;
    node_available is keyed by NodeURL and only ever overwritten.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self):
        self.registry = CollectorRegistry()
        self.connected = Gauge(
            "validators_connected", "Connected validators", ["NodeID"], registry=self.registry
        )
        self.start_time = Gauge(
            "validators_start_time",
            "Validator start time (ms since epoch)",
            ["NodeID"],
            registry=self.registry,
        )
        self.end_time = Gauge(
            "validators_end_time",
            "Validator end time (ms since epoch)",
            ["NodeID"],
            registry=self.registry,
        )
        self.uptime = Gauge(
            "validators_uptime",
            "Mean self-reported validator uptime",
            ["NodeID"],
            registry=self.registry,
        )
        self.stake = Gauge(
            "validators_stake", "Validator stake", ["NodeID"], registry=self.registry
        )
        self.delegation_stake = Gauge(
            "validators_delegation_stake",
            "Sum of delegator stakes of the validator",
            ["NodeID"],
            registry=self.registry,
        )
        self.node_available = Gauge(
            "node_available", "Is node available", ["NodeURL"], registry=self.registry
        )

    @property
    def validator_gauges(self) -> tuple[Gauge, ...]:
        return (
            self.connected,
            self.start_time,
            self.end_time,
            self.uptime,
            self.stake,
            self.delegation_stake,
        )

    def reset_validators(self) -> None:
        for gauge in self.validator_gauges:
            gauge.clear()

    def set_validator(self, record: ReconciledRecord) -> None:
        node_id = record.node_id
        self.connected.labels(NodeID=node_id).set(1 if record.connected else 0)
        self.start_time.labels(NodeID=node_id).set(record.start_time_ms)
        self.end_time.labels(NodeID=node_id).set(record.end_time_ms)
        self.uptime.labels(NodeID=node_id).set(record.uptime)
        self.stake.labels(NodeID=node_id).set(record.stake)
        self.delegation_stake.labels(NodeID=node_id).set(record.delegation_stake)

    def replace_validators(
        self, records: Iterable[ReconciledRecord], absent: Iterable[str] = ()
    ) -> None:
        """
        Clear every validator series, then repopulate from records.

        Ids in absent get only a validators_connected series set to 0.
        """
        self.reset_validators()
        for record in records:
            self.set_validator(record)
        for node_id in absent:
            self.connected.labels(NodeID=node_id).set(0)

    def set_node_available(self, url: str, available: bool) -> None:
        self.node_available.labels(NodeURL=url).set(1 if available else 0)

    def render(self) -> bytes:
        return generate_latest(self.registry)

    def get_value(self, name: str, labels: Dict[str, str]) -> float | None:
        return self.registry.get_sample_value(name, labels)

    def series_count(self, name: str) -> int:
        for metric in self.registry.collect():
            if metric.name == name:
                return len(metric.samples)
        return 0
