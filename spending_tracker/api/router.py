from fastapi import APIRouter

from . import stats, telegram

api_router = APIRouter()
api_router.include_router(stats.router, prefix="/stats", tags=["stats"])
api_router.include_router(telegram.router, prefix="/telegram", tags=["telegram"])
