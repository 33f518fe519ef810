# coordinator.py
# Serializes metric ticks and validator list refreshes against each other and readers

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, List, Literal, Set

from .dashboard import DashboardRegenerator
from .exceptions import AllSourcesUnreachable, RefreshFetchFailed
from .logger import get_logger
from .models import ReconciledRecord, Records, SourceOutcome
from .reconciler import ValidatorReconciler
from .registry import MetricsRegistry
from .sources import SourcePoller, ValidatorListSource
from .watchset import WatchSetTracker

logger = get_logger(__name__)

MembershipSource = Literal["ticks", "refresh"]


class UpdateCoordinator:
    """
    Runs poll -> reconcile -> commit -> notify.

    Polling happens outside the update lock; only the commit phase holds it.
    Ticks and refreshes share the lock so their commits never interleave, and
    readers wait for any in-flight commit before rendering.
    """

    def __init__(
        self,
        registry: MetricsRegistry,
        poller: SourcePoller,
        reconciler: ValidatorReconciler,
        watch_set: WatchSetTracker,
        dashboard: DashboardRegenerator,
        validator_list: ValidatorListSource | None = None,
        membership_source: MembershipSource = "ticks",
    ):
        self.registry = registry
        self.poller = poller
        self.reconciler = reconciler
        self.watch_set = watch_set
        self.dashboard = dashboard
        self.validator_list = validator_list
        self.membership_source = membership_source

        self._lock = asyncio.Lock()
        self._idle = asyncio.Event()
        self._idle.set()
        self._background: Set[asyncio.Task] = set()

    @property
    def updating(self) -> bool:
        return not self._idle.is_set()

    @asynccontextmanager
    async def update_lock(self):
        async with self._lock:
            self._idle.clear()
            try:
                yield
            finally:
                self._idle.set()

    async def wait_until_idle(self) -> None:
        while self.updating:
            await self._idle.wait()

    async def get_metrics(self) -> bytes:
        await self.wait_until_idle()
        return self.registry.render()

    async def tick(self) -> bool:
        """One metrics update. Never raises; returns True if anything was committed."""
        logger.debug("Updating metrics")
        try:
            outcomes = await self.poller.poll()
        except Exception as e:
            logger.error(f"Polling validator nodes failed: {e}", exc_info=True)
            return False

        async with self.update_lock():
            try:
                self.commit(outcomes)
            except AllSourcesUnreachable as e:
                logger.warning(str(e))
                return False
            except Exception as e:
                logger.error(f"Failed to commit metrics: {e}", exc_info=True)
                return False
        return True

    def commit(self, outcomes: Dict[str, SourceOutcome]) -> None:
        """Must be called with the update lock held."""
        if not any(isinstance(outcome, Records) for outcome in outcomes.values()):
            raise AllSourcesUnreachable(outcomes.keys())

        reconciled = self.reconciler.reconcile(outcomes)
        exported = self._exported_records(reconciled)

        for url, outcome in outcomes.items():
            self.registry.set_node_available(url, isinstance(outcome, Records))
        self.registry.replace_validators(exported.values(), self._absent_ids(exported))

        if self.membership_source == "ticks":
            changed = self.watch_set.ingest(reconciled)
        else:
            changed = self.watch_set.update_known(reconciled)
        logger.debug(f"Committed metrics for {len(exported)} validators")

        if changed:
            self._notify_watch_set_changed()

    def _exported_records(
        self, reconciled: Dict[str, ReconciledRecord]
    ) -> Dict[str, ReconciledRecord]:
        if self.membership_source == "ticks":
            return reconciled
        watched = self.watch_set.node_ids
        return {k: v for k, v in reconciled.items() if k in watched}

    def _absent_ids(self, exported: Dict[str, ReconciledRecord]) -> List[str]:
        """Watched validators no source reported; exported as disconnected."""
        if self.membership_source == "ticks":
            return []
        return sorted(self.watch_set.node_ids - set(exported))

    async def refresh(self) -> bool:
        """Replace the watch set from the validator list endpoint. Never raises."""
        if self.validator_list is None:
            return False
        try:
            nodes = await self.validator_list.fetch()
        except RefreshFetchFailed as e:
            logger.error(str(e))
            return False

        async with self.update_lock():
            if self.watch_set.replace_all(nodes):
                self._notify_watch_set_changed()
        return True

    def _notify_watch_set_changed(self) -> None:
        task = asyncio.create_task(self.dashboard.update(self.watch_set.snapshot()))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for pending dashboard regenerations."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
