from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from models import TransactionType


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    icon: Optional[str] = Field(default=None, max_length=50)


class TransactionIn(BaseModel):
    # Unknown keys such as a client-side created_at are dropped on purpose.
    model_config = ConfigDict(extra="ignore")

    date: date
    type: TransactionType
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    category_id: int
    description: Optional[str] = Field(default=None, max_length=500)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    type: TransactionType
    icon: Optional[str] = None
    user_id: Optional[str] = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    user_id: str
    date: date
    type: TransactionType
    amount: Decimal
    category_id: int
    category: CategoryOut
    description: Optional[str] = None
    created_at: datetime


class MonthlyData(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str
    month_number: int = Field(..., ge=1, le=12)
    year: int
    income: Decimal
    expenses: Decimal


class CategoryData(BaseModel):
    model_config = ConfigDict(frozen=True)

    category_id: int
    category_name: str
    icon: str = ""
    amount: Decimal
    percentage: Decimal


class DashboardStats(BaseModel):
    """Snapshot of one user's dashboard; rebuilt on every request."""

    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    monthly_trend: tuple[MonthlyData, ...] = ()
    expenses_by_category: tuple[CategoryData, ...] = ()
    recent_transactions: tuple[TransactionOut, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def net_savings(self) -> Decimal:
        return self.total_income - self.total_expenses
