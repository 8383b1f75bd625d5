"""HTTP routes for the route finder."""

from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from routefinder.core.errors import (
    BalanceUnavailable,
    InsufficientBalance,
    InvalidInput,
    NoRouteFound,
    OptimizationTimeout,
)
from routefinder.core.service import RouteService
from routefinder.core.utils import get_logger

LOGGER = get_logger("routefinder.api")

router = APIRouter()

HTTP_422_UNPROCESSABLE = 422

_FAILURE_STATUS: Dict[str, int] = {
    InsufficientBalance.code: HTTP_422_UNPROCESSABLE,
    NoRouteFound.code: HTTP_422_UNPROCESSABLE,
    OptimizationTimeout.code: status.HTTP_504_GATEWAY_TIMEOUT,
}


class RouteRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_chain: str = Field(alias="targetChain")
    amount: str
    token_address: str = Field(alias="tokenAddress")
    user_address: str = Field(alias="userAddress")


def _error(status_code: int, code: str, message: str, **extra: Any) -> JSONResponse:
    content: Dict[str, Any] = {"status": "error", "error": code, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def get_service(request: Request) -> RouteService:
    return request.app.state.route_service


@router.post("/api/route")
def find_routes(body: RouteRequestBody, request: Request):
    service = get_service(request)
    try:
        result = service.find_routes(
            target_chain=body.target_chain,
            amount=body.amount,
            token_address=body.token_address,
            user_address=body.user_address,
        )
    except InvalidInput as exc:
        return _error(status.HTTP_400_BAD_REQUEST, exc.code, str(exc))
    except BalanceUnavailable as exc:
        LOGGER.error("Balance source unavailable: %s", exc)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc.code, str(exc))

    payload = result.to_dict()
    if not result.success:
        status_code = _FAILURE_STATUS.get(result.error or "", HTTP_422_UNPROCESSABLE)
        return _error(status_code, result.error or NoRouteFound.code, result.message or "", data=payload)
    return {"status": "success", "data": payload}


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "success", "timestamp": time.time()}


__all__ = ["RouteRequestBody", "router"]
