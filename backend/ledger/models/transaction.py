"""
Transaction database model.
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import (
    Column, String, Boolean, DateTime, Date, Numeric, Integer, Text, Enum,
    ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship
from ledger.database import Base
from ledger.models.recurrence import Frequency


class TransactionType(str, enum.Enum):
    """Transaction type enumeration."""
    income = "income"
    expense = "expense"


class Transaction(Base):
    """
    Transaction model.

    A recurring series is one parent template row (is_recurring and
    is_parent_template set, recurrence fields populated) plus one child row per
    materialized occurrence pointing back through parent_transaction_id.
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(Enum(TransactionType), nullable=False, default=TransactionType.expense)
    date = Column(Date, nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    card_id = Column(String(36), ForeignKey("credit_cards.id"), nullable=True)

    # Series linkage. No foreign key: deleting only the parent leaves children dangling.
    parent_transaction_id = Column(String(36), nullable=True, index=True)
    is_recurring = Column(Boolean, default=False, nullable=False)
    is_parent_template = Column(Boolean, default=False, nullable=False)

    # Recurrence rule, parent only
    recurrence_frequency = Column(Enum(Frequency), nullable=True)
    recurrence_interval = Column(Integer, nullable=True)
    recurrence_count = Column(Integer, nullable=True)
    custom_days = Column(Integer, nullable=True)
    next_recurrence_date = Column(Date, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="transactions")
    card = relationship("CreditCard", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")

    __table_args__ = (
        CheckConstraint(
            "account_id IS NULL OR card_id IS NULL",
            name="ck_transaction_account_or_card",
        ),
        Index("idx_transaction_parent_date", "parent_transaction_id", "date"),
        Index("idx_transaction_category", "category_id"),
    )
