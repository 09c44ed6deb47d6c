"""
FastAPI приложение Shop API.
Витрина Mini App, корзина, регистрация пользователей и админка каталога.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from duckshop.common.constants import TypeMsg
from duckshop.common.exceptions import ShopError
from duckshop.common.logger import log_error, log_info, log_warning
from duckshop.config import settings
from duckshop.services.shop_api.dependencies import ShopContainer, build_container
from duckshop.services.shop_api.routes import register_routes
from duckshop.shared.models.common import ErrorResponse, HealthStatus

SERVICE_NAME = "shop_api"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).to_api(),
    )


def _validation_message(exc: RequestValidationError) -> str:
    """Первая ошибка валидации в виде 'поле: сообщение'."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


# =============================================================================
# ОБРАБОТЧИКИ ОШИБОК
# =============================================================================

async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    if exc.status_code >= 500:
        await log_error(f"{request.method} {request.url.path}: {exc.message}")
    return _error(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    await log_warning(f"{request.method} {request.url.path}: невалидный запрос ({message})")
    return _error(status.HTTP_400_BAD_REQUEST, message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    await log_error(
        f"{request.method} {request.url.path}: необработанная ошибка {exc!r}",
        exc_info=True,
    )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")


# =============================================================================
# ПРИЛОЖЕНИЕ
# =============================================================================

def create_app(container: Optional[ShopContainer] = None) -> FastAPI:
    """
    Создаёт приложение.

    Args:
        container: Готовый контейнер зависимостей. Если не передан,
            он создаётся из настроек в lifespan, и приложение само
            подключается к БД и закрывает пул при остановке.
    """
    started_at = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Жизненный цикл приложения."""
        await log_info("Shop API запускается...", type_msg=TypeMsg.INFO)

        owned = getattr(app.state, "container", None) is None
        if owned:
            app.state.container = build_container(settings)
            await app.state.container.startup(apply_schema=settings.database.DB_APPLY_SCHEMA)

        yield

        if owned:
            await app.state.container.shutdown()
            app.state.container = None
        await log_info("Shop API остановлен", type_msg=TypeMsg.INFO)

    app = FastAPI(
        title="Duck Shop API",
        description="Бэкенд Telegram Mini App магазина",
        version=settings.system.VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.container = container

    # Mini App открывается с разных хостов Telegram
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/ping", tags=["Health"])
    async def ping() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check(request: Request) -> HealthStatus:
        """Проверка здоровья сервиса."""
        deps = {}
        shop: Optional[ShopContainer] = request.app.state.container
        if shop is None:
            deps["postgres"] = "unhealthy"
        else:
            deps["postgres"] = "healthy" if await shop.db.health_check() else "unhealthy"

        overall = "healthy" if all(v == "healthy" for v in deps.values()) else "degraded"
        return HealthStatus(
            service=SERVICE_NAME,
            status=overall,
            version=settings.system.VERSION,
            uptime_seconds=round(time.monotonic() - started_at, 3),
            dependencies=deps,
        )

    register_routes(app)
    return app
