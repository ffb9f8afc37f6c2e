"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어, 라우터, 수명주기 등록.

FastAPI application entry point — Middleware, routers and lifespan.
The lifespan configures logging, starts the maintenance scheduler and,
on shutdown, stops it and cancels pending notification tasks.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from promo_api.api.auth import router as auth_router
from promo_api.api.devices import router as devices_router
from promo_api.api.favorites import router as favorites_router
from promo_api.api.promotions import router as promotions_router
from promo_api.config import settings
from promo_api.middleware.axiom_logging import AxiomLoggingMiddleware
from promo_api.services.maintenance_service import maintenance_scheduler
from promo_api.services.notification_service import notification_dispatcher
from promo_api.utils.expo_push import expo_push_client
from promo_api.utils.log_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging("DEBUG" if settings.DEBUG else settings.LOG_LEVEL)
    maintenance_scheduler.start()
    logger.info("%s started", settings.APP_NAME)
    yield
    await maintenance_scheduler.stop()
    await notification_dispatcher.shutdown()


app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Axiom API 로깅 미들웨어 — Axiom API request/response logging
# CORS보다 먼저 등록하여 모든 요청을 캡처 (Registered before CORS to capture all requests)
app.add_middleware(AxiomLoggingMiddleware)

# CORS 미들웨어 — Cross-Origin Resource Sharing middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
@app.get("/api/v1/health")
async def health_check() -> dict[str, Any]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring, with the push
    client and scheduler status.
    """
    return {
        "status": "ok",
        "push": expo_push_client.stats(),
        "maintenance_running": maintenance_scheduler.is_running,
    }


# ---------------------------------------------------------------------------
# 라우터 등록 — Router registration
# ---------------------------------------------------------------------------
app.include_router(auth_router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(devices_router, prefix="/api/v1/devices", tags=["Devices"])
app.include_router(favorites_router, prefix="/api/v1/favorites", tags=["Favorites"])
app.include_router(promotions_router, prefix="/api/v1/promotions", tags=["Promotions"])
