"""API v1 router registration."""

from fastapi import APIRouter

from freelance_billing.api.routes import expenses, monthly_closures

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(monthly_closures.router)
v1_router.include_router(expenses.router)
