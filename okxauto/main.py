import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from okxauto.config import load_engine_config, settings
from okxauto.database import init_db
from okxauto.engine import TradingEngine
from okxauto.exceptions import AppError
from okxauto.exchange_clients.factory import create_exchange_client
from okxauto.routers import engine_router, trades_router
from okxauto.services.trade_store import TradeStore

logger = logging.getLogger(__name__)

app = FastAPI(title="OKX Auto Trading Engine")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Built on startup
trading_engine: Optional[TradingEngine] = None
trade_store = TradeStore()


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Translate domain exceptions into HTTP responses"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.add_exception_handler(AppError, app_error_handler)


def override_get_engine() -> TradingEngine:
    return trading_engine


def override_get_trade_store() -> TradeStore:
    return trade_store


app.dependency_overrides[engine_router.get_engine] = override_get_engine
app.dependency_overrides[trades_router.get_trade_store] = override_get_trade_store

# Include all routers
app.include_router(engine_router.router)
app.include_router(trades_router.router)


@app.on_event("startup")
async def startup_event():
    global trading_engine

    logger.info("Initializing database...")
    await init_db()

    config = load_engine_config(settings.engine_config_path)
    exchange = create_exchange_client(settings)
    trading_engine = TradingEngine(exchange, config, trade_store=trade_store)

    logger.info("Starting trading engine...")
    await trading_engine.start()
    logger.info("Startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    if trading_engine is None:
        return

    logger.info("Shutting down - waiting for in-flight orders...")
    await trading_engine.stop()

    close = getattr(trading_engine.exchange, "close", None)
    if close:
        await close()
    logger.info("Shutdown complete")


def run():
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
