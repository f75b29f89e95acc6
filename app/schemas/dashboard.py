from datetime import datetime
from typing import List

from pydantic import BaseModel


class CategoryCost(BaseModel):
    """Category row for the dashboard list and donut chart."""
    category: str
    total: float
    icon: str  # SF Symbol name, e.g. "cart.fill"
    color: str  # Color tag, e.g. "green"
    description: str  # "groceries and related expenses"


class MonthlyTotal(BaseModel):
    """Bar chart entry for one calendar month."""
    month: str  # Three-letter label, e.g. "Jan"
    year: int
    month_number: int  # 1-12
    total: float


class Insight(BaseModel):
    icon: str
    title: str
    description: str
    color: str


class SpendingSummary(BaseModel):
    total_expense: float  # Sum of amounts actually paid
    total_tax: float
    total_savings: float
    receipt_count: int


class DashboardResponse(BaseModel):
    generated_at: datetime
    source_available: bool = True  # False when receipts could not be loaded this time
    summary: SpendingSummary
    categories: List[CategoryCost]
    monthly: List[MonthlyTotal]
    insights: List[Insight]


class CategoryCostsResponse(BaseModel):
    categories: List[CategoryCost]


class MonthlyTotalsResponse(BaseModel):
    months: List[MonthlyTotal]


class InsightsResponse(BaseModel):
    insights: List[Insight]
