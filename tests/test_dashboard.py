from datetime import date
from decimal import Decimal

from models import TransactionType
from schemas import CategoryIn, TransactionIn
from services import CategoryService, MetricsService, TransactionService


TODAY = date(2026, 3, 15)


def _add(
    session,
    user_id: str,
    day: date,
    amount: str,
    category_id: int,
    txn_type: TransactionType = TransactionType.expense,
):
    return TransactionService(session, user_id).create(
        TransactionIn(
            date=day,
            type=txn_type,
            amount=Decimal(amount),
            category_id=category_id,
        )
    )


def test_dashboard_for_user_without_transactions(session) -> None:
    stats = MetricsService(session, "alice").dashboard_stats(today=TODAY)

    assert stats.total_income == 0
    assert stats.total_expenses == 0
    assert stats.net_savings == 0
    assert stats.monthly_trend == ()
    assert stats.expenses_by_category == ()
    assert stats.recent_transactions == ()


def test_dashboard_salary_and_rent(session) -> None:
    _add(session, "alice", date(2026, 3, 1), "5000", 1, TransactionType.income)
    _add(session, "alice", date(2026, 3, 2), "1500", 5)

    stats = MetricsService(session, "alice").dashboard_stats(today=TODAY)

    assert stats.total_income == Decimal("5000")
    assert stats.total_expenses == Decimal("1500")
    assert stats.net_savings == Decimal("3500")
    assert [
        (c.category_name, c.amount, c.percentage) for c in stats.expenses_by_category
    ] == [("Rent", Decimal("1500"), Decimal("100.0"))]
    assert [(p.year, p.month, p.income, p.expenses) for p in stats.monthly_trend] == [
        (2026, "Mar", Decimal("5000"), Decimal("1500"))
    ]
    assert len(stats.recent_transactions) == 2


def test_dashboard_is_scoped_to_the_owner(session) -> None:
    _add(session, "alice", date(2026, 3, 1), "10", 4)
    _add(session, "bob", date(2026, 3, 1), "999", 4)

    stats = MetricsService(session, "alice").dashboard_stats(today=TODAY)

    assert stats.total_expenses == Decimal("10")
    assert {t.user_id for t in stats.recent_transactions} == {"alice"}


def test_dashboard_keeps_same_named_categories_apart(session) -> None:
    own_rent = CategoryService(session, "alice").create(
        CategoryIn(name="Rent", type=TransactionType.expense, icon="🏡")
    )
    _add(session, "alice", date(2026, 3, 1), "700", 5)
    _add(session, "alice", date(2026, 3, 2), "300", own_rent.id)

    stats = MetricsService(session, "alice").dashboard_stats(today=TODAY)

    assert [
        (c.category_id, c.category_name, c.icon, c.percentage)
        for c in stats.expenses_by_category
    ] == [
        (5, "Rent", "🏠", Decimal("70.0")),
        (own_rent.id, "Rent", "🏡", Decimal("30.0")),
    ]


def test_recent_transactions_length_and_order(session) -> None:
    days = [date(2026, 1, d) for d in (3, 9, 1, 7, 5, 2, 8)]
    for day in days:
        _add(session, "alice", day, "1", 4)

    stats = MetricsService(session, "alice").dashboard_stats(today=TODAY)

    assert len(stats.recent_transactions) == 5
    assert [t.date.day for t in stats.recent_transactions] == [9, 8, 7, 5, 3]


def test_dashboard_reflects_updates_and_deletes(session) -> None:
    service = TransactionService(session, "alice")
    metrics = MetricsService(session, "alice")
    txn = _add(session, "alice", date(2026, 3, 4), "20", 4)

    service.update(
        txn.id,
        TransactionIn(
            date=date(2026, 3, 4),
            type=TransactionType.expense,
            amount=Decimal("80"),
            category_id=4,
        ),
    )
    assert metrics.dashboard_stats(today=TODAY).total_expenses == Decimal("80")

    service.delete(txn.id)
    assert metrics.dashboard_stats(today=TODAY).total_expenses == 0


def test_repeated_calls_are_identical(session) -> None:
    _add(session, "alice", date(2026, 3, 1), "5000", 1, TransactionType.income)
    _add(session, "alice", date(2026, 2, 11), "45.90", 4)
    _add(session, "alice", date(2026, 3, 12), "60", 8)

    metrics = MetricsService(session, "alice")

    assert metrics.dashboard_stats(today=TODAY) == metrics.dashboard_stats(today=TODAY)


def test_snapshot_is_detached_from_the_session(session) -> None:
    txn = _add(session, "alice", date(2026, 3, 1), "10", 4)

    snapshot = MetricsService(session, "alice").snapshot()
    TransactionService(session, "alice").delete(txn.id)

    assert [t.id for t in snapshot] == [txn.id]
    assert snapshot[0].category.name == "Food & Dining"
