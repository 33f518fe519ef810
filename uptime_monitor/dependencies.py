from fastapi import Request

from .aggregations import AggregationsManager, PrometheusClient
from .config import MonitorSettings, load_validator_nodes
from .coordinator import UpdateCoordinator
from .dashboard import DashboardRegenerator
from .logger import get_logger
from .reconciler import ValidatorReconciler
from .registry import MetricsRegistry
from .sources import SourcePoller, ValidatorListSource
from .watchset import WatchSetTracker

logger = get_logger(__name__)


def create_coordinator(config: MonitorSettings) -> UpdateCoordinator:
    seed = load_validator_nodes(config.validators_file) if config.validators_file else []
    validator_list = None
    if config.validators_url:
        validator_list = ValidatorListSource(config.validators_url, config.source_timeout)
    if config.membership_source == "refresh" and not seed and validator_list is None:
        logger.warning(
            "membership_source is 'refresh' but neither a validators file nor a validators url is set"
        )

    return UpdateCoordinator(
        registry=MetricsRegistry(),
        poller=SourcePoller(config.node_url_list, config.rpc_path, config.source_timeout),
        reconciler=ValidatorReconciler(config.connectivity_policy),
        watch_set=WatchSetTracker(seed),
        dashboard=DashboardRegenerator(
            config.grafana_dashboard_template_url, config.grafana_dashboard_path
        ),
        validator_list=validator_list,
        membership_source=config.membership_source,
    )


def create_aggregations_manager(config: MonitorSettings) -> AggregationsManager:
    return AggregationsManager(PrometheusClient(config.prometheus_url, config.source_timeout))


def get_coordinator(request: Request) -> UpdateCoordinator:
    return request.app.state.coordinator


def get_aggregations_manager(request: Request) -> AggregationsManager:
    return request.app.state.aggregations
