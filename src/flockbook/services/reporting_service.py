from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional

from flockbook.services.statistics import (
    EggStatistics,
    ExpenseStatistics,
    FeedStatistics,
    FlockStatistics,
    SalesSummary,
    SavingsSummary,
    savings_summary,
)


@dataclass(frozen=True)
class Dashboard:
    today: str
    eggs: EggStatistics
    expenses: ExpenseStatistics
    feed: FeedStatistics
    flock: FlockStatistics
    sales: SalesSummary
    savings: SavingsSummary

    def to_dict(self) -> dict:
        data = asdict(self)
        # low-stock entries are reported by id, brand and quantity only
        data["feed"]["low_stock"] = [
            {"id": e.id, "brand": e.brand, "quantity": e.quantity, "unit": e.unit}
            for e in self.feed.low_stock
        ]
        return data


class ReportingService:
    def __init__(self, eggs, expenses, feed, flock, crm):
        self.eggs = eggs
        self.expenses = expenses
        self.feed = feed
        self.flock = flock
        self.crm = crm

    def savings(self) -> SavingsSummary:
        return savings_summary(self.crm.sales, self.expenses.all_entries())

    def dashboard(self, today: Optional[date] = None) -> Dashboard:
        today = today or date.today()
        return Dashboard(
            today=today.isoformat(),
            eggs=self.eggs.statistics(today),
            expenses=self.expenses.statistics(today),
            feed=self.feed.statistics(),
            flock=self.flock.statistics(),
            sales=self.crm.summary(),
            savings=self.savings(),
        )
