# watchset.py
# Tracks the validators under watch and detects changes between ticks

from typing import Dict, Iterable, List, Mapping

from .logger import get_logger
from .models import ReconciledRecord, WatchedNode

logger = get_logger(__name__)


class WatchSetTracker:
    """
    Owns the WatchedNode records, one per validator id.

    Nodes are never handed out directly; snapshot() returns copies.
    """

    def __init__(self, nodes: Iterable[WatchedNode] = ()):
        self._nodes: Dict[str, WatchedNode] = {
            node.node_id: node.model_copy() for node in nodes
        }

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    @property
    def node_ids(self) -> set[str]:
        return set(self._nodes)

    def get(self, node_id: str) -> WatchedNode | None:
        node = self._nodes.get(node_id)
        return node.model_copy() if node else None

    def snapshot(self) -> List[WatchedNode]:
        return [node.model_copy() for node in self._nodes.values()]

    def ingest(self, records: Mapping[str, ReconciledRecord]) -> bool:
        """
        Make the watch set follow a tick's reconciled validators: add new ids,
        update changed ones, drop ids that are gone. Returns True iff anything
        was inserted, updated or removed.
        """
        changed = False
        for node_id, record in records.items():
            node = self._nodes.get(node_id)
            if node is None:
                self._nodes[node_id] = WatchedNode.from_record(record)
                logger.info(f"Started watching validator {node_id}")
                changed = True
            elif node.apply(record):
                changed = True

        for node_id in list(self._nodes):
            if node_id not in records:
                del self._nodes[node_id]
                logger.info(f"Stopped watching validator {node_id}")
                changed = True
        return changed

    def update_known(self, records: Mapping[str, ReconciledRecord]) -> bool:
        """Update already watched validators only; membership is left untouched."""
        changed = False
        for node_id, node in self._nodes.items():
            record = records.get(node_id)
            if record is not None and node.apply(record):
                changed = True
        return changed

    def replace_all(self, nodes: Iterable[WatchedNode]) -> bool:
        """Replace the whole set from an authoritative list. Always reports a change."""
        self._nodes = {node.node_id: node.model_copy() for node in nodes}
        logger.info(f"Watching {len(self._nodes)} validators from refreshed list")
        return True
