"""FastAPI routes for the fee engine.

The host routes register markets and record trades. The query routes
provide a read-only REST API for:
- Health checks
- Market volatility, regime and EMAs
- Current fees and fee curves
- Recommended liquidity ranges
- Prometheus metrics
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from fee_engine.domain.errors import (
    InputValidationError,
    MarketAlreadyInitializedError,
    MarketNotInitializedError,
)
from fee_engine.keeper.keeper import wall_clock

if TYPE_CHECKING:
    from fee_engine.core.engine import FeeEngine
    from fee_engine.monitoring.metrics import MetricsCollector

logger = logging.getLogger(__name__)

# API models


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    uptime_seconds: float
    markets: int


class MarketInfo(BaseModel):
    """Registration status of a market."""

    market_id: str
    initialized: bool
    observation_count: int


class VolatilityResponse(BaseModel):
    """Volatility state of a market."""

    market_id: str
    current_vol: int
    regime: int
    regime_label: str
    ema_7d: int
    ema_30d: int
    last_update: int | None
    sample_count: int


class FeeResponse(BaseModel):
    """Fee the next trade of a market would pay."""

    market_id: str
    fee_bps: int


class FeeConfigResponse(BaseModel):
    """Active fee curve of a market."""

    market_id: str
    points: list[tuple[int, int]]


class RangeResponse(BaseModel):
    """Recommended liquidity range."""

    market_id: str
    current_tick: int
    lower_tick: int
    upper_tick: int
    regime_label: str


class MarketCreateRequest(BaseModel):
    """Market registration request."""

    market_id: str
    initial_tick: int
    timestamp: int | None = None


class TradeRequest(BaseModel):
    """Post-trade tick of a market."""

    tick: int
    timestamp: int | None = None


# Router factory


def create_query_router(
    engine: FeeEngine,
    metrics: MetricsCollector | None = None,
    start_time: datetime | None = None,
) -> APIRouter:
    """Create query API router.

    Args:
        engine: Engine to read from
        metrics: Optional metrics collector for /metrics
        start_time: Application start time

    Returns:
        FastAPI router
    """
    router = APIRouter(prefix="/api/v1", tags=["query"])
    _start_time = start_time or datetime.now(UTC)

    def _require_market(market_id: str) -> None:
        if not engine.is_market_initialized(market_id):
            raise HTTPException(status_code=404, detail="Market not found")

    @router.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        now = datetime.now(UTC)
        uptime = (now - _start_time).total_seconds()
        return HealthResponse(
            status="healthy",
            timestamp=now.isoformat(),
            uptime_seconds=uptime,
            markets=len(engine.market_ids),
        )

    @router.get("/markets", response_model=list[MarketInfo])
    async def list_markets() -> list[MarketInfo]:
        """List registered markets."""
        return [
            MarketInfo(
                market_id=market_id,
                initialized=True,
                observation_count=engine.get_observation_count(market_id),
            )
            for market_id in engine.market_ids
        ]

    @router.get("/markets/{market_id}", response_model=MarketInfo)
    async def get_market(market_id: str) -> MarketInfo:
        """Get registration status of a market.

        Unknown markets are reported as not initialized rather than 404.
        """
        initialized = engine.is_market_initialized(market_id)
        return MarketInfo(
            market_id=market_id,
            initialized=initialized,
            observation_count=(
                engine.get_observation_count(market_id) if initialized else 0
            ),
        )

    @router.get("/markets/{market_id}/volatility", response_model=VolatilityResponse)
    async def get_volatility(market_id: str) -> VolatilityResponse:
        """Get volatility, regime and EMAs for a market."""
        _require_market(market_id)
        state = engine.get_vol_state(market_id)
        return VolatilityResponse(
            market_id=market_id,
            current_vol=state.current_vol,
            regime=int(state.regime),
            regime_label=state.regime.label,
            ema_7d=state.ema_7d,
            ema_30d=state.ema_30d,
            last_update=state.last_update,
            sample_count=state.sample_count,
        )

    @router.get("/markets/{market_id}/fee", response_model=FeeResponse)
    async def get_fee(market_id: str) -> FeeResponse:
        """Get the current fee for a market."""
        _require_market(market_id)
        return FeeResponse(market_id=market_id, fee_bps=engine.quote_fee(market_id))

    @router.get("/markets/{market_id}/fee-config", response_model=FeeConfigResponse)
    async def get_fee_config(market_id: str) -> FeeConfigResponse:
        """Get the active fee curve for a market."""
        _require_market(market_id)
        config = engine.get_fee_config(market_id)
        return FeeConfigResponse(market_id=market_id, points=config.to_pairs())

    @router.get("/markets/{market_id}/range", response_model=RangeResponse)
    async def get_range(market_id: str, tick: int) -> RangeResponse:
        """Get the recommended liquidity range around a tick."""
        try:
            rng = engine.get_recommended_range(market_id, tick)
        except MarketNotInitializedError as e:
            raise HTTPException(status_code=404, detail="Market not found") from e
        regime = engine.get_vol_state(market_id).regime
        return RangeResponse(
            market_id=market_id,
            current_tick=tick,
            lower_tick=rng.lower_tick,
            upper_tick=rng.upper_tick,
            regime_label=regime.label,
        )

    @router.get("/parameters")
    async def get_parameters() -> dict[str, Any]:
        """Get governance-controlled parameters."""
        return {
            "governance": engine.governance,
            "min_update_interval": engine.min_update_interval,
            "incentive_amount": engine.incentive_amount,
            "treasury_balance": engine.treasury.balance,
        }

    @router.get("/metrics")
    async def get_metrics() -> Response:
        """Get Prometheus metrics."""
        if not metrics:
            raise HTTPException(status_code=503, detail="Metrics not available")
        metrics.refresh(engine)
        return Response(
            content=metrics.get_metrics(),
            media_type="text/plain; version=0.0.4",
        )

    return router


def create_host_router(
    engine: FeeEngine,
    clock: Callable[[], int] = wall_clock,
) -> APIRouter:
    """Create host API router.

    Registers markets and records post-trade ticks. Requests without a
    timestamp use the server clock.

    Args:
        engine: Engine to write to
        clock: Source of default timestamps in seconds

    Returns:
        FastAPI router
    """
    router = APIRouter(prefix="/api/v1", tags=["host"])

    @router.post("/markets", response_model=MarketInfo, status_code=201)
    async def create_market(request: MarketCreateRequest) -> MarketInfo:
        """Register a market and seed its first observation."""
        timestamp = request.timestamp if request.timestamp is not None else clock()
        try:
            engine.on_market_created(
                request.market_id, request.initial_tick, timestamp
            )
        except MarketAlreadyInitializedError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        except InputValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

        return MarketInfo(
            market_id=request.market_id,
            initialized=True,
            observation_count=engine.get_observation_count(request.market_id),
        )

    @router.post("/markets/{market_id}/trades", response_model=MarketInfo)
    async def record_trade(market_id: str, trade: TradeRequest) -> MarketInfo:
        """Record the tick after a trade."""
        timestamp = trade.timestamp if trade.timestamp is not None else clock()
        try:
            engine.on_trade(market_id, trade.tick, timestamp)
        except MarketNotInitializedError as e:
            raise HTTPException(status_code=404, detail="Market not found") from e
        except InputValidationError as e:
            logger.warning(f"Trade rejected for {market_id}: {e}")
            raise HTTPException(status_code=422, detail=str(e)) from e

        return MarketInfo(
            market_id=market_id,
            initialized=True,
            observation_count=engine.get_observation_count(market_id),
        )

    return router


def create_app(
    engine: FeeEngine,
    metrics: MetricsCollector | None = None,
    clock: Callable[[], int] = wall_clock,
) -> Any:
    """Create FastAPI application.

    Args:
        engine: Engine to expose
        metrics: Optional metrics collector
        clock: Source of default timestamps for the host routes

    Returns:
        FastAPI application
    """
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware

    app = FastAPI(
        title="Fee Engine API",
        description="Market registration, trades and volatility and fee state",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(create_host_router(engine=engine, clock=clock))
    app.include_router(create_query_router(engine=engine, metrics=metrics))

    logger.debug("API created")
    return app
