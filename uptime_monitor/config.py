# config.py
# Monitor settings (UPTIME_* environment variables) and the seed list of watched validators

import json
from datetime import timedelta
from pathlib import Path
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logger import get_logger
from .models import WatchedNode, ValidatorNodeItem

logger = get_logger(__name__)


class MonitorSettings(BaseSettings):
    node_urls: str = Field(
        default="",
        description="Comma separated list of node urls providing getCurrentValidators.",
    )
    rpc_path: str = "/ext/bc/P"
    validators_file: str | None = None
    step: timedelta = timedelta(seconds=10)

    validators_url: str | None = None
    validators_refresh_interval: timedelta | None = None
    membership_source: Literal["ticks", "refresh"] = Field(
        default="ticks",
        description="'ticks': every tick decides which validators are watched. "
        "'refresh': only the seed file and the refresh endpoint add or remove validators.",
    )
    connectivity_policy: Literal["mean", "any"] = "mean"
    source_timeout: timedelta | None = None

    grafana_dashboard_template_url: str | None = None
    grafana_dashboard_path: str | None = None

    prometheus_url: str = "http://localhost:9090"

    host: str = "0.0.0.0"
    port: int = 8501

    environment: Literal["develop", "production"] = "develop"
    log_path: str | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_prefix="UPTIME_",
        env_ignore_empty=True,
    )

    @field_validator("step", "validators_refresh_interval", "source_timeout", mode="before")
    @classmethod
    def seconds_as_timedelta(cls, v):
        # env values such as UPTIME_STEP=10 are plain seconds
        if isinstance(v, str) and v.strip().replace(".", "", 1).isdigit():
            return timedelta(seconds=float(v))
        return v

    @property
    def node_url_list(self) -> List[str]:
        urls = [url.strip() for url in self.node_urls.split(",")]
        urls = [url for url in urls if url]
        if not urls:
            logger.error("Invalid UPTIME_NODE_URLS parameter")
        return urls

    @property
    def refresh_enabled(self) -> bool:
        return bool(self.validators_url) and self.validators_refresh_interval is not None


def load_config() -> MonitorSettings:
    """Settings from UPTIME_* variables, falling back to .env in the working directory."""
    return MonitorSettings()


def load_validator_nodes(path: str | Path) -> List[WatchedNode]:
    """Read the initial list of watched validators from a JSON file."""
    with open(path, "r") as f:
        items = [ValidatorNodeItem.model_validate(item) for item in json.load(f)]
    nodes = [item.to_watched_node() for item in items if item.node_id]
    if not nodes:
        logger.warning(f"No nodes to watch, check file {path}")
    for node in nodes:
        logger.info(f"Watching validator {node.node_id}")
    return nodes
