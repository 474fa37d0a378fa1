"""Derived values over flat record lists.

Every function here is a pure reducer: it takes the current collection (and an
optional ``today``) and recomputes from scratch. Money is rounded to 2 decimals
here, never at storage.

Windows:
  * this week       Monday..Sunday of the calendar week containing ``today``
  * last 7 days     trailing window ``today - 6 .. today``
  * previous 7 days ``today - 13 .. today - 7``
  * last 30 days    ``today - 29 .. today``

Egg daily average is this month's total divided by the highest day-of-month
among this month's entries. Expense daily average is the total divided by the
number of distinct expense dates.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Iterable, Optional, TypeVar

from flockbook.domain.models import (
    Customer,
    DeathRecord,
    EggEntry,
    Expense,
    FeedEntry,
    FlockBatch,
    FlockEvent,
    FlockProfile,
    Sale,
)

T = TypeVar("T")

LOW_STOCK_THRESHOLD = 5


def money(value: float) -> float:
    return round(float(value), 2)


def parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def week_bounds(today: date) -> tuple[date, date]:
    start = today - timedelta(days=today.weekday())
    return start, start + timedelta(days=6)


def previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def _total(records: Iterable[T], value: Callable[[T], float], keep: Callable[[date], bool], day: Callable[[T], Optional[str]]) -> float:
    total = 0.0
    for r in records:
        d = parse_day(day(r))
        if d is not None and keep(d):
            total += value(r)
    return total


def _between(start: date, end: date) -> Callable[[date], bool]:
    return lambda d: start <= d <= end


def _same_month(year: int, month: int) -> Callable[[date], bool]:
    return lambda d: d.year == year and d.month == month


@dataclass(frozen=True)
class EggStatistics:
    total: int
    average_daily: float
    this_week: int
    last_7_days: int
    previous_7_days: int
    this_month: int
    previous_month_to_date: int
    last_30_days: int


def egg_statistics(entries: list[EggEntry], today: Optional[date] = None) -> EggStatistics:
    today = today or date.today()
    count = lambda e: e.count
    day = lambda e: e.date

    week_start, week_end = week_bounds(today)
    prev_year, prev_month = previous_month(today)

    this_month_days = [d for d in (parse_day(e.date) for e in entries) if d and d.year == today.year and d.month == today.month]
    this_month = int(_total(entries, count, _same_month(today.year, today.month), day))
    average = this_month / max(d.day for d in this_month_days) if this_month_days else 0.0

    return EggStatistics(
        total=sum(e.count for e in entries),
        average_daily=money(average),
        this_week=int(_total(entries, count, _between(week_start, week_end), day)),
        last_7_days=int(_total(entries, count, _between(today - timedelta(days=6), today), day)),
        previous_7_days=int(_total(entries, count, _between(today - timedelta(days=13), today - timedelta(days=7)), day)),
        this_month=this_month,
        previous_month_to_date=int(_total(
            entries,
            count,
            lambda d: d.year == prev_year and d.month == prev_month and d.day <= today.day,
            day,
        )),
        last_30_days=int(_total(entries, count, _between(today - timedelta(days=29), today), day)),
    )


@dataclass(frozen=True)
class ExpenseStatistics:
    total: float
    average_daily: float
    this_week: float
    last_7_days: float
    this_month: float
    last_30_days: float
    by_category: dict[str, float] = field(default_factory=dict)


def expense_statistics(expenses: list[Expense], today: Optional[date] = None) -> ExpenseStatistics:
    today = today or date.today()
    amount = lambda e: e.amount
    day = lambda e: e.date

    total = sum(e.amount for e in expenses)
    unique_dates = {e.date for e in expenses}
    week_start, week_end = week_bounds(today)

    by_category: dict[str, float] = defaultdict(float)
    for e in expenses:
        by_category[e.category] += e.amount

    return ExpenseStatistics(
        total=money(total),
        average_daily=money(total / len(unique_dates)) if unique_dates else 0.0,
        this_week=money(_total(expenses, amount, _between(week_start, week_end), day)),
        last_7_days=money(_total(expenses, amount, _between(today - timedelta(days=6), today), day)),
        this_month=money(_total(expenses, amount, _same_month(today.year, today.month), day)),
        last_30_days=money(_total(expenses, amount, _between(today - timedelta(days=29), today), day)),
        by_category={k: money(v) for k, v in sorted(by_category.items())},
    )


def feed_duration_days(entry: FeedEntry) -> Optional[int]:
    """Whole days between opening and depletion; None while the bag is open."""
    opened = parse_day(entry.opened_date)
    depleted = parse_day(entry.depleted_date)
    if opened is None or depleted is None:
        return None
    return abs((depleted - opened).days)


@dataclass(frozen=True)
class FeedTypeTotals:
    quantity: float
    value: float
    count: int


@dataclass(frozen=True)
class FeedStatistics:
    total_quantity: float
    total_value: float
    average_price: float
    open_count: int
    closed_count: int
    low_stock: list[FeedEntry]
    by_type: dict[str, FeedTypeTotals]
    durations: dict[str, int]
    average_duration_days: float
    daily_consumption: dict[str, float]


def feed_statistics(entries: list[FeedEntry]) -> FeedStatistics:
    total_quantity = sum(e.quantity for e in entries)
    total_value = sum(e.quantity * (e.price_per_unit or 0) for e in entries)

    by_type: dict[str, list[FeedEntry]] = defaultdict(list)
    for e in entries:
        by_type[e.type].append(e)

    # only closed bags count toward consumption
    durations: dict[str, int] = {}
    consumption: dict[str, float] = {}
    for e in entries:
        days = feed_duration_days(e)
        if days is None or e.id is None:
            continue
        durations[e.id] = days
        if days > 0:
            consumption[e.id] = round(e.quantity / days, 2)

    return FeedStatistics(
        total_quantity=money(total_quantity),
        total_value=money(total_value),
        average_price=money(total_value / total_quantity) if total_quantity > 0 else 0.0,
        open_count=sum(1 for e in entries if e.is_open),
        closed_count=sum(1 for e in entries if not e.is_open),
        low_stock=[e for e in entries if e.quantity <= LOW_STOCK_THRESHOLD],
        by_type={
            t: FeedTypeTotals(
                quantity=money(sum(e.quantity for e in items)),
                value=money(sum(e.quantity * (e.price_per_unit or 0) for e in items)),
                count=len(items),
            )
            for t, items in sorted(by_type.items())
        },
        durations=durations,
        average_duration_days=round(sum(durations.values()) / len(durations), 1) if durations else 0.0,
        daily_consumption=consumption,
    )


@dataclass(frozen=True)
class FlockStatistics:
    total_birds: int
    laying_hens: int
    production_rate: float
    breed_distribution: dict[str, int]
    events_by_type: dict[str, int]
    last_event_date: Optional[str]
    total_deaths: int = 0
    mortality_rate: float = 0.0


def flock_statistics(
    profile: Optional[FlockProfile],
    events: list[FlockEvent],
    batches: Iterable[FlockBatch] = (),
    deaths: Iterable[DeathRecord] = (),
) -> FlockStatistics:
    events_by_type = dict(Counter(e.type for e in events))
    dated = sorted(e.date for e in events if parse_day(e.date))
    last_event = dated[-1] if dated else None

    total_deaths = sum(d.count for d in deaths)
    acquired = sum(b.initial_count for b in batches)
    mortality = round(total_deaths / acquired * 100, 2) if acquired > 0 else 0.0

    if profile is None:
        return FlockStatistics(0, 0, 0.0, {}, events_by_type, last_event, total_deaths, mortality)

    total = profile.hens + profile.roosters + profile.chicks + profile.brooding
    # brooding hens are not laying
    laying = max(profile.hens - profile.brooding, 0)
    rate = min(laying / profile.hens * 100, 100.0) if profile.hens > 0 else 0.0

    return FlockStatistics(
        total_birds=total,
        laying_hens=laying,
        production_rate=round(rate, 2),
        breed_distribution=dict(Counter(profile.breed_types)),
        events_by_type=events_by_type,
        last_event_date=last_event,
        total_deaths=total_deaths,
        mortality_rate=mortality,
    )


@dataclass(frozen=True)
class SalesSummary:
    customer_count: int
    total_sales: int
    total_revenue: float
    total_eggs_sold: int
    free_eggs_given: int
    top_customer: Optional[str]


def sales_summary(customers: list[Customer], sales: list[Sale]) -> SalesSummary:
    eggs_by_customer: Counter[str] = Counter()
    for s in sales:
        eggs_by_customer[s.customer_id] += s.egg_count

    top_customer = None
    if eggs_by_customer:
        top_id, _eggs = eggs_by_customer.most_common(1)[0]
        top_customer = next((c.name for c in customers if c.id == top_id), None)

    return SalesSummary(
        customer_count=len(customers),
        total_sales=len(sales),
        total_revenue=money(sum(s.total_amount for s in sales)),
        total_eggs_sold=sum(s.egg_count for s in sales if s.total_amount > 0),
        free_eggs_given=sum(s.egg_count for s in sales if s.total_amount == 0),
        top_customer=top_customer,
    )


@dataclass(frozen=True)
class SavingsSummary:
    total_revenue: float
    total_expenses: float
    net_savings: float


def savings_summary(sales: list[Sale], expenses: list[Expense]) -> SavingsSummary:
    revenue = sum(s.total_amount for s in sales)
    spent = sum(e.amount for e in expenses)
    return SavingsSummary(
        total_revenue=money(revenue),
        total_expenses=money(spent),
        net_savings=money(revenue - spent),
    )
