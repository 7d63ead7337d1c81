"""
Create the schema and default categories.

    python -m ledger.seed
"""

import logging
import uuid
from sqlalchemy.orm import Session

from ledger.database import SessionLocal, init_db
from ledger.models import Category

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    # (name, color, icon)
    ("Salary", "#10b981", "dollar-sign"),
    ("Freelance", "#22c55e", "briefcase"),
    ("Housing", "#3b82f6", "home"),
    ("Utilities", "#0ea5e9", "zap"),
    ("Groceries", "#f59e0b", "shopping-cart"),
    ("Transportation", "#8b5cf6", "car"),
    ("Health", "#14b8a6", "heart-pulse"),
    ("Education", "#6366f1", "graduation-cap"),
    ("Subscriptions", "#a855f7", "repeat"),
    ("Insurance", "#64748b", "shield"),
    ("Loans", "#ef4444", "landmark"),
    ("Other", "#9ca3af", "circle"),
]


def seed_categories(db: Session) -> int:
    """Insert the default categories unless any category exists. Returns how many were added."""
    existing_count = db.query(Category).count()
    if existing_count > 0:
        logger.info(f"Categories already seeded ({existing_count} categories exist)")
        return 0

    for name, color, icon in DEFAULT_CATEGORIES:
        db.add(Category(id=str(uuid.uuid4()), name=name, color=color, icon=icon, is_system=True))
    db.commit()
    logger.info(f"Seeded {len(DEFAULT_CATEGORIES)} categories")
    return len(DEFAULT_CATEGORIES)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    init_db()

    db = SessionLocal()
    try:
        seed_categories(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
