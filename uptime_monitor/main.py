from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Response
from fastapi.responses import HTMLResponse

from . import __version__
from .aggregations import AggregationsManager
from .config import load_config
from .coordinator import UpdateCoordinator
from .dependencies import (
    create_aggregations_manager,
    create_coordinator,
    get_aggregations_manager,
    get_coordinator,
)
from .exceptions import InvalidTimeRange
from .logger import configure_logging, get_logger
from .models import ConnectedResponse, UptimeResponse, ValidatorInfoResponse
from .scheduler import RefreshScheduler

logger = get_logger(__name__)

router = APIRouter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = load_config()
    configure_logging(config)
    logger.info("Waiting for application startup.")

    coordinator = create_coordinator(config)
    app.state.config = config
    app.state.coordinator = coordinator
    app.state.aggregations = create_aggregations_manager(config)

    scheduler = RefreshScheduler(
        coordinator,
        step=config.step,
        refresh_interval=config.validators_refresh_interval if config.refresh_enabled else None,
    )
    scheduler.start()
    logger.info("Application startup complete.")
    yield
    await scheduler.stop()
    logger.info("Application shutdown complete.")


@router.get("/", response_class=HTMLResponse)
async def read_root():
    return """
    <html>
        <head>
            <title>Validator Uptime Monitor</title>
        </head>
        <body>
            <h1>Validator Uptime Monitor</h1>
            <p>Navigate to /docs for API documentation.</p>
            <p>Prometheus metrics are served at /metrics/uptime</p>
        </body>
    </html>
    """


@router.get("/health")
async def health():
    return {"healthy": True}


@router.get("/metrics/uptime", tags=["Metrics"], summary="Get metrics for Prometheus")
async def uptime_metrics(
    coordinator: Annotated[UpdateCoordinator, Depends(get_coordinator)],
):
    body = await coordinator.get_metrics()
    return Response(content=body, media_type=coordinator.registry.content_type)


@router.get(
    "/aggregations/uptime",
    tags=["Aggregations"],
    summary="Estimated uptime of a node for the given interval",
)
async def validator_uptime(
    aggregations: Annotated[AggregationsManager, Depends(get_aggregations_manager)],
    node_id: Annotated[str, Query(alias="nodeID")],
    from_: Annotated[datetime, Query(alias="from")],
    to: datetime,
) -> UptimeResponse | None:
    try:
        return await aggregations.average_validator_uptime(node_id, from_, to)
    except InvalidTimeRange as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error computing uptime of {node_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/aggregations/connected",
    tags=["Aggregations"],
    summary="Check if a validator node was connected at a specific time",
)
async def validator_connected(
    aggregations: Annotated[AggregationsManager, Depends(get_aggregations_manager)],
    node_id: Annotated[str, Query(alias="nodeID")],
    at: datetime,
) -> ConnectedResponse | None:
    try:
        return await aggregations.validator_connected_at(node_id, at)
    except Exception as e:
        logger.error(f"Error checking connectivity of {node_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/aggregations/info",
    tags=["Aggregations"],
    summary="Node start time, end time and uptime at a specific time",
)
async def validator_info(
    aggregations: Annotated[AggregationsManager, Depends(get_aggregations_manager)],
    node_id: Annotated[str, Query(alias="nodeID")],
    at: datetime,
) -> ValidatorInfoResponse | None:
    try:
        return await aggregations.validator_info_at(node_id, at)
    except Exception as e:
        logger.error(f"Error fetching info of {node_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


def create_app() -> FastAPI:
    app = FastAPI(title="Validator Uptime Monitor", version=__version__, lifespan=lifespan)
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    config = load_config()
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    run()
