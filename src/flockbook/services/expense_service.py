from __future__ import annotations

from datetime import date
from typing import Optional

from flockbook.domain.errors import ValidationError
from flockbook.domain.models import Expense
from flockbook.services.resource_service import ResourceService
from flockbook.services.statistics import ExpenseStatistics, expense_statistics, parse_day


class ExpenseService(ResourceService):
    collection = "expenses"
    kind = "expenses"
    operation = "expenses"
    model = Expense
    label = "Expense"

    def __init__(self, gateway, cache=None, category: Optional[str] = None, **kwargs):
        super().__init__(gateway, cache, **kwargs)
        self.category = category

    def _matches(self, entry: Expense) -> bool:
        return self.category is None or entry.category == self.category

    def categories(self) -> list[str]:
        return sorted({e.category for e in self.all_entries()})

    def statistics(self, today: Optional[date] = None) -> ExpenseStatistics:
        return expense_statistics(self.entries, today)

    def _validate(self, record: Expense) -> None:
        if parse_day(record.date) is None:
            raise ValidationError("Date is required (YYYY-MM-DD).")
        if not record.category.strip():
            raise ValidationError("Category is required.")
        if not record.description.strip():
            raise ValidationError("Description is required.")
        if record.amount <= 0:
            raise ValidationError("Amount must be > 0.")
