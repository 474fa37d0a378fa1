from __future__ import annotations

from datetime import date
from typing import Optional

from flockbook.domain.errors import ValidationError
from flockbook.domain.models import EggEntry
from flockbook.services.resource_service import ResourceService
from flockbook.services.statistics import EggStatistics, egg_statistics, parse_day


class EggService(ResourceService):
    collection = "egg_entries"
    kind = "eggEntries"
    operation = "eggs"
    model = EggEntry
    label = "Egg entry"

    def entry_for_date(self, day: str) -> Optional[EggEntry]:
        for entry in self.all_entries():
            if entry.date == day:
                return entry
        return None

    def add(self, entry: EggEntry, allow_duplicate: bool = False) -> EggEntry:
        if not allow_duplicate:
            existing = self.entry_for_date(entry.date)
            if existing is not None:
                raise ValidationError(
                    f"An entry for {entry.date} already exists ({existing.count} eggs). Confirm to add another."
                )
        return super().add(entry)

    def statistics(self, today: Optional[date] = None) -> EggStatistics:
        return egg_statistics(self.entries, today)

    def _validate(self, record: EggEntry) -> None:
        if parse_day(record.date) is None:
            raise ValidationError("Date is required (YYYY-MM-DD).")
        if record.count < 0:
            raise ValidationError("Egg count must be >= 0.")
