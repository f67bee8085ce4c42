import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import TransactionType


class CategoryIn(BaseModel):
    name: str = Field(..., max_length=100)
    type: TransactionType
    icon: Optional[str] = Field(default=None, max_length=10)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: TransactionType
    icon: Optional[str]
    created_at: datetime


class TransactionIn(BaseModel):
    description: str = Field(..., max_length=255)
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    category_id: Optional[int] = None
    type: TransactionType
    date: dt.date
    payment_method: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    amount: float
    category_id: Optional[int]
    type: TransactionType
    date: dt.date
    payment_method: Optional[str]
    notes: Optional[str]
    created_at: datetime


class TransactionListItem(TransactionOut):
    category_name: Optional[str] = None
    category_type: Optional[TransactionType] = None


class Created(BaseModel):
    id: int
    message: str


class Message(BaseModel):
    message: str


class Summary(BaseModel):
    total_income: float
    total_expense: float
    balance: float


class CategoryTotal(BaseModel):
    name: str
    icon: Optional[str]
    total: float


class TrendPoint(BaseModel):
    month: str
    income: float
    expense: float
