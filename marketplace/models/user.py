from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    customer = "customer"
    seller = "seller"
    admin = "admin"


class User(SQLModel, table=True):
    __table_args__ = (CheckConstraint("wallet >= 0", name="ck_user_wallet_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    phone: str = Field(index=True, unique=True)
    name: str = Field(default="User")
    email: Optional[str] = None
    role: UserRole = Field(default=UserRole.customer)
    is_active: bool = Field(default=True)
    is_verified: bool = Field(default=False)

    # store credit, spent at checkout and refilled by refunds
    wallet: float = Field(default=0, ge=0)

    # one-time login code, cleared after a successful verification
    otp: Optional[str] = None
    otp_expiry: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
