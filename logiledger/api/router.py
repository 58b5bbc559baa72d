"""
API Router - JSON Endpoints
"""
from fastapi import APIRouter
from datetime import datetime

from logiledger import __version__
from logiledger.api.orders import orders_router
from logiledger.api.distribution import distribution_router
from logiledger.api.finance import finance_router

api_router = APIRouter(tags=["API"])

# Include sub-routers
api_router.include_router(orders_router)
api_router.include_router(distribution_router)
api_router.include_router(finance_router)

# ===================== HEALTH & STATUS =====================

@api_router.get("/status")
async def api_status():
    return {"status": "ok", "version": __version__, "timestamp": datetime.now().isoformat()}
