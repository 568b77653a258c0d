from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel

from .config import SIGNUP_BONUS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(SQLModel, table=True):
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_account_balance_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    password_hash: str
    balance: int = Field(default=SIGNUP_BONUS, ge=0)


class TransferRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    from_account_id: int = Field(foreign_key="account.id", index=True)
    to_account_id: int = Field(foreign_key="account.id", index=True)
    amount: int = Field(gt=0)
    created_at: datetime = Field(default_factory=utcnow, index=True)


class InventoryEntry(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("account_id", "item"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", index=True)
    item: str
    quantity: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=utcnow)
