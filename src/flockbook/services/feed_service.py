from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from flockbook.domain.errors import ValidationError
from flockbook.domain.models import FEED_UNITS, Expense, FeedEntry
from flockbook.services.resource_service import ResourceService
from flockbook.services.statistics import FeedStatistics, feed_statistics, parse_day

log = logging.getLogger("flockbook.sync")

FEED_EXPENSE_CATEGORY = "Feed"


class FeedService(ResourceService):
    collection = "feed_inventory"
    kind = "feedInventory"
    operation = "feed"
    model = FeedEntry
    label = "Feed entry"
    aliases = {
        "openedDate": "opened_date",
        "depletedDate": "depleted_date",
        "pricePerUnit": "price_per_unit",
        "batchNumber": "batch_number",
    }

    def __init__(self, gateway, cache=None, feed_type: Optional[str] = None, **kwargs):
        super().__init__(gateway, cache, **kwargs)
        self.feed_type = feed_type

    def _matches(self, entry: FeedEntry) -> bool:
        return self.feed_type is None or entry.type == self.feed_type

    @property
    def open_entries(self) -> list[FeedEntry]:
        return [e for e in self.entries if e.is_open]

    def add(self, entry: FeedEntry, total_cost: Optional[float] = None) -> FeedEntry:
        """Save a feed purchase; with ``total_cost`` also record it as a Feed expense.

        The two writes are independent. If the expense fails the feed entry
        stays saved and the error propagates. A non-positive ``total_cost`` is
        rejected before either write.
        """
        if total_cost is not None and total_cost <= 0:
            raise ValidationError("Total cost must be > 0.")
        record = super().add(entry)
        if total_cost is not None:
            self.record_purchase_expense(record, total_cost)
        return record

    def record_purchase_expense(self, entry: FeedEntry, total_cost: float) -> Expense:
        if total_cost <= 0:
            raise ValidationError("Total cost must be > 0.")
        expense = Expense(
            id=self.new_temp_id(),
            date=entry.opened_date,
            category=FEED_EXPENSE_CATEGORY,
            description=f"{entry.brand} {entry.type} ({_qty(entry.quantity)} {entry.unit})",
            amount=round(float(total_cost), 2),
        )
        self._submit(lambda: self.gateway.save("expenses", [expense.to_wire()]))
        log.info("feed_expense_recorded feed_id=%s amount=%.2f", entry.id, expense.amount)
        return expense

    def deplete(self, record_id: str, depleted_date: Optional[str] = None) -> FeedEntry:
        return self.update(record_id, {"depleted_date": depleted_date or date.today().isoformat()})

    def statistics(self) -> FeedStatistics:
        return feed_statistics(self.entries)

    def _check_update(self, current: FeedEntry, merged: FeedEntry) -> None:
        if current.depleted_date and merged.depleted_date != current.depleted_date:
            raise ValidationError(f"Feed entry {current.id} was already marked depleted on {current.depleted_date}.")

    def _validate(self, record: FeedEntry) -> None:
        if not record.brand.strip():
            raise ValidationError("Brand is required.")
        if not record.type.strip():
            raise ValidationError("Feed type is required.")
        if record.unit not in FEED_UNITS:
            raise ValidationError(f"Unit must be one of: {', '.join(FEED_UNITS)}.")
        if record.quantity < 0:
            raise ValidationError("Quantity must be >= 0.")
        if record.price_per_unit < 0:
            raise ValidationError("Price per unit must be >= 0.")
        if parse_day(record.opened_date) is None:
            raise ValidationError("Opened date is required (YYYY-MM-DD).")
        if record.depleted_date is not None and parse_day(record.depleted_date) is None:
            raise ValidationError("Depleted date must be YYYY-MM-DD.")


def _qty(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
