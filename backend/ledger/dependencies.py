"""
FastAPI dependencies.
"""

from typing import Generator
from fastapi import Depends
from sqlalchemy.orm import Session

from ledger.config import settings
from ledger.database import SessionLocal
from ledger.services.series_service import SeriesLifecycleManager
from ledger.services.transaction_store import TransactionStore


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database sessions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_transaction_store(db: Session = Depends(get_db)) -> TransactionStore:
    return TransactionStore(db, transactional=settings.store_transactional)


def get_series_manager(
    store: TransactionStore = Depends(get_transaction_store)
) -> SeriesLifecycleManager:
    return SeriesLifecycleManager(store)
