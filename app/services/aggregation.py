"""Receipt aggregation: category totals, monthly totals, spending insights.

Every function here is a pure fold over a receipt snapshot. Nothing is
cached or mutated; callers re-run the aggregation whenever the snapshot
changes.
"""

from collections import Counter, defaultdict
from datetime import date, datetime
from typing import Sequence

from app.core.categories import TAX_CATEGORY, get_category_style
from app.schemas.dashboard import CategoryCost, Insight, MonthlyTotal, SpendingSummary
from app.schemas.receipt import LineItem, Receipt

MONTH_LABELS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

DEFAULT_MONTH_WINDOW = 8

SPENDING_TIP = Insight(
    icon="lightbulb.fill",
    title="Spending Tip",
    description="Add more receipts to get personalized spending insights.",
    color="yellow",
)


def format_amount(amount: float) -> str:
    return f"${amount:.2f}"


def is_excluded_from_category_totals(item: LineItem) -> bool:
    """Discount lines and zero-priced points redemptions are not spending."""
    if item.is_discount:
        return True
    description = item.discount_description or ""
    return item.price == 0 and "point" in description.lower()


def category_totals(receipts: Sequence[Receipt]) -> dict[str, float]:
    """Spend per item category, plus every receipt's tax under "Tax"."""
    totals: dict[str, float] = {}

    for receipt in receipts:
        for item in receipt.items:
            if is_excluded_from_category_totals(item):
                continue
            totals[item.category] = totals.get(item.category, 0.0) + item.price
        totals[TAX_CATEGORY] = totals.get(TAX_CATEGORY, 0.0) + receipt.total_tax

    return totals


def sorted_category_costs(receipts: Sequence[Receipt]) -> list[CategoryCost]:
    """Category rows, largest total first (ties by name)."""
    totals = category_totals(receipts)
    rows = []
    for category, total in sorted(totals.items(), key=lambda kv: (-kv[1], kv[0])):
        style = get_category_style(category)
        rows.append(
            CategoryCost(
                category=category,
                total=total,
                icon=style.icon,
                color=style.color,
                description=f"{category.lower()} and related expenses",
            )
        )
    return rows


def trailing_months(now: date, count: int = DEFAULT_MONTH_WINDOW) -> list[tuple[int, int]]:
    """(year, month) pairs for the `count` months ending at `now`, oldest first."""
    months = []
    year, month = now.year, now.month
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month <= 0:
            month += 12
            year -= 1
    months.reverse()
    return months


def monthly_totals(
    receipts: Sequence[Receipt],
    now: datetime,
    months: int = DEFAULT_MONTH_WINDOW,
) -> list[MonthlyTotal]:
    """Amount actually spent per month over the trailing window, zero-filled.

    Receipts dated outside the window are left out of this view.
    """
    buckets: dict[tuple[int, int], float] = {key: 0.0 for key in trailing_months(now, months)}

    for receipt in receipts:
        key = (receipt.purchase_date.year, receipt.purchase_date.month)
        if key in buckets:
            buckets[key] += receipt.total_amount

    return [
        MonthlyTotal(
            month=MONTH_LABELS[month - 1],
            year=year,
            month_number=month,
            total=total,
        )
        for (year, month), total in sorted(buckets.items())
    ]


def spending_summary(receipts: Sequence[Receipt]) -> SpendingSummary:
    total_expense = 0.0
    total_tax = 0.0
    total_savings = 0.0

    for receipt in receipts:
        total_expense += receipt.total_amount
        total_tax += receipt.total_tax
        total_savings += receipt.savings

    return SpendingSummary(
        total_expense=total_expense,
        total_tax=total_tax,
        total_savings=total_savings,
        receipt_count=len(receipts),
    )


def _top_entry(values: dict) -> tuple:
    # Largest value wins; ties go to the lexicographically smallest key
    return min(values.items(), key=lambda kv: (-kv[1], kv[0]))


def insights(receipts: Sequence[Receipt]) -> list[Insight]:
    """Ranked observations about the snapshot, padded with a tip when sparse."""
    if not receipts:
        return []

    found: list[Insight] = []

    total_savings = sum(receipt.savings for receipt in receipts)
    if total_savings > 0:
        found.append(
            Insight(
                icon="tag.fill",
                title="Savings Found",
                description=(
                    f"You've saved {format_amount(total_savings)} "
                    "through discounts and points redemptions."
                ),
                color="green",
            )
        )

    store_visits = Counter(receipt.store_name for receipt in receipts)
    store_name, visits = _top_entry(store_visits)
    if visits > 1:
        found.append(
            Insight(
                icon="bag.fill",
                title="Frequent Shopping",
                description=f"You've visited {store_name} {visits} times.",
                color="blue",
            )
        )

    # Only discount lines are skipped here; points redemptions priced at 0 still count
    spend_by_category: dict[str, float] = defaultdict(float)
    for receipt in receipts:
        for item in receipt.items:
            if not item.is_discount:
                spend_by_category[item.category] += item.price

    if spend_by_category:
        category, amount = _top_entry(spend_by_category)
        style = get_category_style(category)
        found.append(
            Insight(
                icon=style.icon,
                title="Top Spending Category",
                description=f"You've spent {format_amount(amount)} on {category.lower()}.",
                color=style.color,
            )
        )

    if len(found) < 2:
        found.append(SPENDING_TIP)

    return found
