"""
Ledger audit model - AuditEntry (IMMUTABLE)
"""

from sqlalchemy import Column, String, ForeignKey, Enum as SQLEnum, Numeric, JSON, Text, Uuid
from sqlalchemy.orm import relationship
import enum
from app.core.common.base_model import BaseModel


class AuditKind(str, enum.Enum):
    """Kinds of balance-affecting events"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    BOT_ALLOCATION = "bot_allocation"  # available -> locked at investment creation
    BOT_RETURN = "bot_return"  # daily accrual credited to returns_balance
    BOT_RETURN_CREDIT = "bot_return_credit"  # settlement: principal + returns -> available


class AuditStatus(str, enum.Enum):
    """Audit entry status enum"""
    COMPLETED = "completed"
    APPROVED = "approved"


class AuditEntry(BaseModel):
    """
    AuditEntry model - IMMUTABLE (WRITE-ONCE)

    One row per balance-affecting event, consumed by the activity log and
    transaction history views.

    IMMUTABILITY RULES (application-level):
    - NEVER UPDATE an AuditEntry
    - NEVER DELETE an AuditEntry
    - Corrections are new entries
    """

    __tablename__ = "audit_entries"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", name="fk_audit_entries_user_id"), nullable=False, index=True)
    investment_id = Column(Uuid(as_uuid=True), ForeignKey("investments.id", name="fk_audit_entries_investment_id"), nullable=True, index=True)
    kind = Column(SQLEnum(AuditKind, name="audit_kind", create_constraint=True, values_callable=lambda e: [m.value for m in e]), nullable=False, index=True)
    amount = Column(Numeric(24, 8), nullable=False)
    status = Column(String(20), nullable=False, default=AuditStatus.COMPLETED.value)
    description = Column(Text, nullable=False)
    entry_metadata = Column(JSON, nullable=True, name="metadata")  # DB column name: metadata (attr renamed to avoid SQLAlchemy conflict)
    # Note: updated_at exists in BaseModel but MUST NOT be used - entries are write-once

    # Relationships
    user = relationship("User", foreign_keys=[user_id], lazy="select")
    investment = relationship("Investment", foreign_keys=[investment_id], lazy="select")
