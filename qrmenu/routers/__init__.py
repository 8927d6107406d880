"""
HTTP routers, mounted under /api by qrmenu.main.
"""

from fastapi import APIRouter

from qrmenu.routers import auth, menu, orders, payments, tables

api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router)
api_router.include_router(menu.router)
api_router.include_router(tables.router)
api_router.include_router(orders.router)
api_router.include_router(payments.router)

__all__ = ["api_router"]
