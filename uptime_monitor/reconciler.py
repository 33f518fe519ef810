# reconciler.py
# Folds per-node validator reports into one record per validator

from typing import Dict, Literal

from .logger import get_logger
from .models import RawValidatorRecord, ReconciledRecord, Records, SourceOutcome
from .utils import AverageCollector, normalize_stake

logger = get_logger(__name__)

ConnectivityPolicy = Literal["mean", "any"]


class _ValidatorFold:
    def __init__(self, node_id: str):
        self.node_id = node_id
        self.connected = AverageCollector()
        self.any_connected = False
        self.uptime = AverageCollector()
        self.stake = 0.0
        self.delegation_stake: float | None = None
        self.start_time = 0
        self.end_time = 0

    def add(self, record: RawValidatorRecord) -> None:
        self.connected.add(1 if record.connected else 0)
        self.any_connected = self.any_connected or record.connected
        self.uptime.add(float(record.uptime))
        self.stake = normalize_stake(record.stake_amount)
        self.start_time = record.start_time
        self.end_time = record.end_time
        # The first reporting node's delegator list wins.
        if self.delegation_stake is None:
            self.delegation_stake = sum(
                (normalize_stake(d.stake_amount) for d in record.delegators), 0.0
            )

    def result(self, policy: ConnectivityPolicy) -> ReconciledRecord:
        if policy == "any":
            connected = self.any_connected
        else:
            connected = self.connected.average() > 0.5
        return ReconciledRecord(
            node_id=self.node_id,
            connected=connected,
            uptime=self.uptime.average(),
            stake=self.stake,
            delegation_stake=self.delegation_stake or 0.0,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class ValidatorReconciler:
    """
    Merge the outcomes of one tick into one ReconciledRecord per validator.

    - connected: mean of 0/1 observations, connected when mean > 0.5
      ("any" policy: logical OR of observations).
    - uptime: mean of reported uptime fractions.
    - stake, start/end time: last observation wins.
    - delegation stake: sum of the delegators of the first observation.

    A validator listed twice by the same node is counted once. Unavailable
    outcomes are skipped; if every outcome is Unavailable the result is empty.
    """

    def __init__(self, connectivity_policy: ConnectivityPolicy = "mean"):
        self.connectivity_policy = connectivity_policy

    def reconcile(self, outcomes: Dict[str, SourceOutcome]) -> Dict[str, ReconciledRecord]:
        folds: Dict[str, _ValidatorFold] = {}
        for url, outcome in outcomes.items():
            if not isinstance(outcome, Records):
                continue
            seen = set()
            for record in outcome.records:
                if record.node_id in seen:
                    logger.debug(f"Duplicate record for {record.node_id} from {url} ignored")
                    continue
                seen.add(record.node_id)
                fold = folds.get(record.node_id)
                if fold is None:
                    fold = folds[record.node_id] = _ValidatorFold(record.node_id)
                fold.add(record)
        return {
            node_id: fold.result(self.connectivity_policy)
            for node_id, fold in folds.items()
        }
