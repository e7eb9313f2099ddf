"""Application routers for server-rendered pages."""

from fastapi import APIRouter

from app.routes.auth import router as auth_router
from app.routes.pages import router as pages_router
from app.routes.reservations import router as reservations_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(reservations_router)
router.include_router(pages_router)

__all__ = ["router"]
