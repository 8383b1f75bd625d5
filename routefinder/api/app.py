"""FastAPI application factory."""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from routefinder.api.routes import router
from routefinder.config import RouterConfig, load_config
from routefinder.core.service import RouteService
from routefinder.core.utils import get_logger

LOGGER = get_logger("routefinder.api")


def create_app(
    config: Optional[RouterConfig] = None,
    service: Optional[RouteService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    A ready ``service`` takes precedence; otherwise one is built from
    ``config`` (or ``config.json`` in the working directory).
    """
    if service is None:
        service = RouteService.from_config(config or load_config())

    app = FastAPI(title="Bridge Route Optimizer API", version="1.0.0", docs_url="/docs")
    app.state.route_service = service
    app.include_router(router)
    LOGGER.info(
        "API ready with %s chains (quotes=%s, balances=%s, cache=%s)",
        len(service.config.chains),
        service.config.quote_provider,
        service.config.balance_provider,
        service.config.cache,
    )
    return app


__all__ = ["create_app"]
