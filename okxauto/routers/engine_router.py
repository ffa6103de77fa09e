"""
Engine control routes

Handles:
- Engine status and account balance
- Strategy listing and enable/disable
- Engine start/stop
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from okxauto.engine import TradingEngine
from okxauto.schemas.exchange import Balance

logger = logging.getLogger(__name__)

router = APIRouter(tags=["engine"])


# Dependency - overridden in main.py
def get_engine() -> TradingEngine:
    """Get trading engine - will be overridden in main.py"""
    raise NotImplementedError("Must override engine dependency")


@router.get("/api/system/status")
async def get_status(engine: TradingEngine = Depends(get_engine)):
    return engine.get_status()


@router.get("/api/system/balance", response_model=List[Balance])
async def get_balance(engine: TradingEngine = Depends(get_engine)):
    return await engine.get_balance()


@router.get("/api/strategies")
async def list_strategies(engine: TradingEngine = Depends(get_engine)):
    return engine.list_strategies()


@router.post("/api/strategies/{name}/enable")
async def enable_strategy(name: str, engine: TradingEngine = Depends(get_engine)):
    await engine.enable_strategy(name)
    logger.info(f"Strategy {name} enabled via API")
    return {"message": f"Strategy {name} enabled"}


@router.post("/api/strategies/{name}/disable")
async def disable_strategy(name: str, engine: TradingEngine = Depends(get_engine)):
    await engine.disable_strategy(name)
    logger.info(f"Strategy {name} disabled via API")
    return {"message": f"Strategy {name} disabled"}


@router.post("/api/engine/start")
async def start_engine(engine: TradingEngine = Depends(get_engine)):
    """Start the engine (no-op if already running)"""
    await engine.start()
    return {"message": "Trading engine started", "running": engine.running}


@router.post("/api/engine/stop")
async def stop_engine(engine: TradingEngine = Depends(get_engine)):
    """Stop the engine after in-flight orders complete"""
    await engine.stop()
    return {"message": "Trading engine stopped", "running": engine.running}
