# dashboard.py
# Regenerates the Grafana dashboard with one uptime panel per watched validator

import asyncio
import copy
import json
import os
import re
from typing import Any, Dict, List

import aiohttp

from .exceptions import DashboardWriteFailed
from .logger import get_logger
from .models import WatchedNode

logger = get_logger(__name__)

GRID_WIDTH = 24
NODE_ID_PATTERN = re.compile(r'NodeID="(.*?)"')


def build_dashboard(template: Dict[str, Any], nodes: List[WatchedNode]) -> Dict[str, Any]:
    """
    Build a dashboard from a template whose first panel shows all nodes and whose
    second panel is the per-node panel to repeat.

    Panels are laid out left to right and wrap to a new row when the next panel
    would not fit in the grid width.
    """
    dashboard = copy.deepcopy(template)
    panels = dashboard["panels"]
    panel_all, panel_node = panels[0], panels[1]
    width = panel_node["gridPos"]["w"]
    height = panel_node["gridPos"]["h"]

    new_panels = [panel_all]
    x = panel_node["gridPos"]["x"]
    y = panel_node["gridPos"]["y"]
    for i, node in enumerate(nodes):
        if x > 0 and x + width > GRID_WIDTH:
            x = 0
            y += height
        panel = copy.deepcopy(panel_node)
        target = panel["targets"][0]
        target["expr"] = NODE_ID_PATTERN.sub(
            lambda _: f'NodeID="{node.node_id}"', target["expr"], count=1
        )
        panel["title"] = f"Uptime of {node.name or node.node_id}"
        panel["id"] = i + 2
        panel["gridPos"]["x"] = x
        panel["gridPos"]["y"] = y
        new_panels.append(panel)
        x += width

    dashboard["panels"] = new_panels
    return dashboard


class DashboardRegenerator:
    """
    Writes the dashboard for a watch-set snapshot.

    Regenerations run one at a time in request order. A request that has been
    superseded by a newer one by the time it runs, or while its template is
    being read, is dropped without writing.
    """

    def __init__(self, template_url: str | None, dashboard_path: str | None):
        self.template_url = template_url
        self.dashboard_path = dashboard_path
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def enabled(self) -> bool:
        return bool(self.template_url and self.dashboard_path)

    async def read_template(self) -> Dict[str, Any] | None:
        try:
            if self.template_url.startswith(("http://", "https://")):
                async with aiohttp.ClientSession() as session:
                    async with session.get(self.template_url) as resp:
                        resp.raise_for_status()
                        template = await resp.json(content_type=None)
            else:
                with open(self.template_url, "r", encoding="utf-8") as f:
                    template = json.load(f)
        except (aiohttp.ClientError, OSError, ValueError) as e:
            logger.error(f"Error fetching grafana template from {self.template_url}, {e}")
            return None
        if not template:
            logger.info(f"Empty template on {self.template_url}")
            return None
        return template

    def write(self, dashboard: Dict[str, Any]) -> None:
        tmp_path = f"{self.dashboard_path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(dashboard, f)
            os.replace(tmp_path, self.dashboard_path)
        except OSError as e:
            raise DashboardWriteFailed(self.dashboard_path, str(e)) from e

    async def update(self, nodes: List[WatchedNode]) -> bool:
        if not self.enabled:
            return False

        self._generation += 1
        generation = self._generation
        async with self._lock:
            if generation != self._generation:
                logger.debug("Skipping superseded dashboard regeneration")
                return False
            template = await self.read_template()
            if template is None:
                return False
            if generation != self._generation:
                logger.debug("Skipping superseded dashboard regeneration")
                return False
            return self._render(template, nodes)

    def _render(self, template: Dict[str, Any], nodes: List[WatchedNode]) -> bool:
        try:
            dashboard = build_dashboard(template, nodes)
            self.write(dashboard)
        except DashboardWriteFailed as e:
            logger.error(str(e))
            return False
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Error generating dashboard, invalid template: {e}")
            return False

        logger.info(f"Dashboard written to {self.dashboard_path} with {len(nodes)} nodes")
        return True
