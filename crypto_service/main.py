"""
CryptoTracker market data service
FastAPI application entry point

Run with:
    uvicorn crypto_service.main:app --host 0.0.0.0 --port 5000
    python -m crypto_service.main
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crypto_service import __version__
from crypto_service.config import CryptoServiceSettings, settings as default_settings
from crypto_service.container import Services, build_services
from crypto_service.models.response import ErrorResponse
from crypto_service.routers import cryptos, health

# ── Logging ───────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, default_settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hook"""
    cfg: CryptoServiceSettings = app.state.settings
    logger.info("=" * 60)
    logger.info(f"🚀 Starting CryptoTracker API Server v{__version__}")
    logger.info(f"   Redis     : {cfg.REDIS_HOST}:{cfg.REDIS_PORT}")
    logger.info(f"   Provider  : {cfg.COINGECKO_API_URL}")
    logger.info(f"   Tracking  : {', '.join(cfg.TRACKED_CRYPTO_IDS)}")
    logger.info("=" * 60)

    services: Services = app.state.services_factory(cfg)
    app.state.services = services

    # the database is the only hard dependency at boot
    if not await services.db.connect():
        await services.close()
        raise RuntimeError("Database connection failed")

    try:
        await services.db.init_schema()

        await services.acquisition.ping()

        redis_ok = await services.cache.connect()
        if not redis_ok:
            logger.warning("⚠️ Redis not connected, continuing without cache")

        if cfg.REFRESH_ON_STARTUP:
            logger.info("🔥 Fetching initial cryptocurrency data...")
            try:
                await services.crypto.update_crypto_data()
            except Exception as exc:
                logger.error(f"❌ Initial data update failed: {exc}", exc_info=True)

        services.scheduler.start()
    except BaseException:
        logger.error("❌ Startup failed, closing connections")
        await services.close()
        raise

    logger.info(
        f"📊 Cryptocurrency data ready! (Redis: {'enabled' if redis_ok else 'disabled'})"
    )

    yield

    logger.info("🛑 Shutting down...")
    await services.close()
    logger.info("✅ Shutdown complete")


# ── App factory ───────────────────────────────────────────
def create_app(
    settings: Optional[CryptoServiceSettings] = None,
    services_factory: Callable[[CryptoServiceSettings], Services] = build_services,
) -> FastAPI:
    cfg = settings or default_settings
    app = FastAPI(
        title="CryptoTracker API",
        description=(
            "Cryptocurrency market data service\n"
            "- 📊 Tracked coins from CoinGecko (sample data fallback)\n"
            "- ⚡ Redis cache-aside\n"
            "- 🗄️ Relational persistence with upserts\n"
            "- ⏰ Background refresh every 5 minutes"
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = cfg
    app.state.services_factory = services_factory

    # ── CORS ──────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Request logging / timing ──────────────────────────
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        elapsed = (time.time() - start) * 1000
        response.headers["X-Process-Time"] = f"{elapsed:.1f}ms"
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.1f}ms)")
        return response

    # ── Global exception handler ──────────────────────────
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error", details=str(exc)).model_dump(),
        )

    app.include_router(health.router)
    app.include_router(cryptos.router)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "CryptoTracker API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "api": "/api/cryptos",
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "crypto_service.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
        log_level=default_settings.LOG_LEVEL.lower(),
    )
