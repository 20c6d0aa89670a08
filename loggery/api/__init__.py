from fastapi import APIRouter

from loggery.api.logs import router as logs_router
from loggery.api.viewers import router as viewers_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(logs_router)
api_router.include_router(viewers_router)
