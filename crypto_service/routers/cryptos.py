"""
Cryptocurrency routes
GET  /api/cryptos               - tracked assets (cache → CoinGecko)
GET  /api/cryptos/{id}          - one asset (cache → database)
GET  /api/cryptos/{id}/chart    - price history (cache → CoinGecko)
POST /api/cryptos/update        - refresh now
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from crypto_service.models.crypto import ChartPoint, CryptoAsset
from crypto_service.models.response import (
    ErrorResponse,
    NotFoundResponse,
    UpdateResponse,
)
from crypto_service.services.crypto_service import CryptoService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cryptos", tags=["Cryptocurrencies"])

_ERROR_RESPONSES = {500: {"model": ErrorResponse}}


def get_crypto_service(request: Request) -> CryptoService:
    return request.app.state.services.crypto


def _error(error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=error, details=str(exc)).model_dump(),
    )


@router.get(
    "",
    response_model=List[CryptoAsset],
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
)
async def list_cryptos(svc: CryptoService = Depends(get_crypto_service)):
    """All tracked cryptocurrencies"""
    try:
        return await svc.list_cryptos()
    except Exception as exc:
        logger.error(f"❌ Error fetching cryptocurrencies: {exc}", exc_info=True)
        return _error("Failed to fetch cryptocurrency data", exc)


@router.post("/update", response_model=UpdateResponse, responses=_ERROR_RESPONSES)
async def update_cryptos(svc: CryptoService = Depends(get_crypto_service)):
    """Fetch from CoinGecko now and persist the result"""
    try:
        count = await svc.update_crypto_data()
    except Exception as exc:
        logger.error(f"❌ Error updating cryptocurrency data: {exc}", exc_info=True)
        return _error("Failed to update cryptocurrency data", exc)
    return UpdateResponse(updated_count=count)


@router.get(
    "/{crypto_id}",
    response_model=CryptoAsset,
    response_model_exclude_none=True,
    responses={404: {"model": NotFoundResponse}, **_ERROR_RESPONSES},
)
async def get_crypto(crypto_id: str, svc: CryptoService = Depends(get_crypto_service)):
    """One cryptocurrency by its CoinGecko id"""
    try:
        crypto = await svc.get_crypto(crypto_id)
    except Exception as exc:
        logger.error(f"❌ Error fetching cryptocurrency by id: {exc}", exc_info=True)
        return _error("Failed to fetch cryptocurrency", exc)

    if crypto is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=NotFoundResponse(id=crypto_id).model_dump(),
        )
    return crypto


@router.get(
    "/{crypto_id}/chart",
    response_model=List[ChartPoint],
    responses=_ERROR_RESPONSES,
)
async def get_chart(
    crypto_id: str,
    request: Request,
    days: Optional[int] = Query(default=None, ge=1, le=365, description="History window, default 7"),
    svc: CryptoService = Depends(get_crypto_service),
):
    """Price history for the chart view"""
    days = days or request.app.state.settings.CHART_DEFAULT_DAYS
    try:
        return await svc.get_chart(crypto_id, days=days)
    except Exception as exc:
        logger.error(f"❌ Error fetching chart data for {crypto_id}: {exc}")
        return _error("Failed to fetch chart data", exc)
