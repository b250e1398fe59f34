"""
User model
"""

from sqlalchemy import Column, String, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum
from app.core.common.base_model import BaseModel


class UserStatus(str, enum.Enum):
    """User status enum"""
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class User(BaseModel):
    """
    User model

    Owned by the (external) sign-up/profile flows; the accrual engine only
    needs the identity to hang wallets and investments off.
    """

    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    status = Column(SQLEnum(UserStatus, name="user_status"), nullable=False, default=UserStatus.ACTIVE)

    # Profile fields
    first_name = Column(String(255), nullable=True)
    other_names = Column(String(255), nullable=True)

    # Relationships
    wallet = relationship("Wallet", back_populates="user", uselist=False, lazy="select")
    investments = relationship("Investment", back_populates="user", lazy="select")
