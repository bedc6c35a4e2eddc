"""Engine API module.

Provides FastAPI routes for registering markets, recording trades and
reading engine state.
"""

from fee_engine.monitoring.api.routes import (
    create_app,
    create_host_router,
    create_query_router,
)

__all__ = [
    "create_app",
    "create_host_router",
    "create_query_router",
]
