"""
Main API router.
"""

from fastapi import APIRouter
from ledger.api import transactions, recurring

api_router = APIRouter()

api_router.include_router(transactions.router)
api_router.include_router(recurring.router)
