"""Dashboard aggregation over an in-memory snapshot of one user's ledger.

The functions in this module never touch the database. ``MetricsService``
loads the snapshot once and hands it to ``build_dashboard_stats``; every
helper can also be called on its own, which is how the tests exercise the
individual steps.

Amounts stay ``Decimal`` end to end so totals are exact.
"""

from datetime import date
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable, Sequence

from models import TransactionType
from periods import Period, add_months, current_month, month_end
from schemas import CategoryData, DashboardStats, MonthlyData, TransactionOut


RECENT_LIMIT = 5
TREND_MONTHS = 6

# Fixed English abbreviations; strftime("%b") would follow the process locale.
MONTH_LABELS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_PERCENT_STEP = Decimal("0.1")


def month_label(month: int) -> str:
    return MONTH_LABELS[month - 1]


def newest_first(transactions: Iterable[TransactionOut]) -> list[TransactionOut]:
    """Order by date, then creation time, then id, all descending."""
    return sorted(
        transactions,
        key=lambda txn: (txn.date, txn.created_at, txn.id),
        reverse=True,
    )


def current_month_transactions(
    snapshot: Iterable[TransactionOut], today: date
) -> list[TransactionOut]:
    window = current_month(today)
    return [txn for txn in snapshot if window.contains(txn.date)]


def sum_by_type(
    transactions: Iterable[TransactionOut], transaction_type: TransactionType
) -> Decimal:
    return sum(
        (txn.amount for txn in transactions if txn.type == transaction_type), _ZERO
    )


def percentage_of(amount: Decimal, total: Decimal) -> Decimal:
    if not total:
        return _ZERO
    return (amount / total * _HUNDRED).quantize(_PERCENT_STEP, rounding=ROUND_HALF_EVEN)


def monthly_trend(
    snapshot: Iterable[TransactionOut],
    today: date,
    *,
    months: int = TREND_MONTHS,
) -> list[MonthlyData]:
    """Income and expense totals per calendar month, oldest month first.

    Only months that have at least one transaction produce a point. The
    window closes at the end of the current month, so future-dated entries
    never add buckets beyond ``months``.
    """
    window = Period("trend", add_months(today, -(months - 1)), month_end(today))

    buckets: dict[tuple[int, int], tuple[Decimal, Decimal]] = {}
    for txn in snapshot:
        if not window.contains(txn.date):
            continue
        key = (txn.date.year, txn.date.month)
        income, expenses = buckets.get(key, (_ZERO, _ZERO))
        if txn.type == TransactionType.income:
            income += txn.amount
        else:
            expenses += txn.amount
        buckets[key] = (income, expenses)

    out: list[MonthlyData] = []
    for year, month in sorted(buckets):
        income, expenses = buckets[(year, month)]
        out.append(
            MonthlyData(
                month=month_label(month),
                month_number=month,
                year=year,
                income=income,
                expenses=expenses,
            )
        )
    return out


def expenses_by_category(
    transactions: Iterable[TransactionOut], total_expenses: Decimal
) -> list[CategoryData]:
    """Expense totals per category, largest first.

    Groups are keyed on category id so two categories sharing a display name
    stay separate. Equal amounts keep the order in which their category was
    first seen.
    """
    groups: dict[int, dict[str, object]] = {}
    for txn in transactions:
        if txn.type != TransactionType.expense:
            continue
        group = groups.get(txn.category_id)
        if group is None:
            group = {
                "name": txn.category.name,
                "icon": txn.category.icon or "",
                "amount": _ZERO,
            }
            groups[txn.category_id] = group
        group["amount"] = group["amount"] + txn.amount

    ranked = sorted(groups.items(), key=lambda item: item[1]["amount"], reverse=True)
    return [
        CategoryData(
            category_id=category_id,
            category_name=group["name"],
            icon=group["icon"],
            amount=group["amount"],
            percentage=percentage_of(group["amount"], total_expenses),
        )
        for category_id, group in ranked
    ]


def recent_transactions(
    snapshot: Iterable[TransactionOut], limit: int = RECENT_LIMIT
) -> list[TransactionOut]:
    return newest_first(snapshot)[:limit]


def build_dashboard_stats(
    snapshot: Sequence[TransactionOut], today: date
) -> DashboardStats:
    this_month = current_month_transactions(snapshot, today)
    total_income = sum_by_type(this_month, TransactionType.income)
    total_expenses = sum_by_type(this_month, TransactionType.expense)

    return DashboardStats(
        total_income=total_income,
        total_expenses=total_expenses,
        monthly_trend=monthly_trend(snapshot, today),
        expenses_by_category=expenses_by_category(this_month, total_expenses),
        recent_transactions=recent_transactions(snapshot),
    )
