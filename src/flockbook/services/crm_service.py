from __future__ import annotations

from dataclasses import replace

from flockbook.domain.errors import NotFoundError, ValidationError
from flockbook.domain.models import Customer, Sale
from flockbook.services.resource_service import FallbackFetch, ResourceService, saved_record
from flockbook.services.statistics import SalesSummary, parse_day, sales_summary


class CrmService(ResourceService):
    """Customers and their egg sales.

    The generic add/update/delete act on customers. Deleting a customer is a
    soft delete (``is_active=False``) so past sales keep their owner.
    """

    collection = "customers"
    kind = "customers"
    model = Customer
    label = "Customer"

    def __init__(self, gateway, cache=None, **kwargs):
        super().__init__(gateway, cache, **kwargs)
        self._sales_fallback = FallbackFetch(self._fetch_sales, self._fallback.cache_seconds, self.clock)

    def _fetch_sales(self) -> list[Sale]:
        return [Sale.from_wire(s) for s in self.gateway.fetch_collection("sales") or []]

    @property
    def customers(self) -> list[Customer]:
        return self.all_entries()

    @property
    def active_customers(self) -> list[Customer]:
        return [c for c in self.all_entries() if c.is_active]

    @property
    def sales(self) -> list[Sale]:
        cached = self._cached("sales")
        if cached is not None:
            return cached
        return self._sales_fallback.get()

    def sales_for(self, customer_id: str) -> list[Sale]:
        return [s for s in self.sales if s.customer_id == customer_id]

    def find_sale(self, sale_id: str) -> Sale:
        for sale in self.sales:
            if sale.id == sale_id:
                return sale
        raise NotFoundError(f"Sale {sale_id} not found.")

    # -------- customers --------

    def add(self, entry: Customer) -> Customer:
        return self.add_customer(entry)

    def update(self, record_id: str, changes: dict) -> Customer:
        return self.update_customer(record_id, changes)

    def delete(self, record_id: str) -> None:
        self.deactivate_customer(record_id)

    def add_customer(self, customer: Customer) -> Customer:
        self._validate(customer)
        payload = replace(customer, id=None).to_wire()
        response = self._submit(lambda: self.gateway.save_customer(payload))
        return saved_record(Customer, response, customer)

    def update_customer(self, customer_id: str, changes: dict) -> Customer:
        current = self.find(customer_id)
        merged = self._merge(current, changes)
        self._validate(merged)
        payload = merged.to_wire()
        payload.pop("id", None)
        self._submit(lambda: self.gateway.update_customer(customer_id, payload))
        return merged

    def deactivate_customer(self, customer_id: str) -> Customer:
        return self.update_customer(customer_id, {"is_active": False})

    # -------- sales --------

    def add_sale(self, sale: Sale) -> Sale:
        customer = self.find(sale.customer_id)
        self._validate_sale(sale)
        payload = replace(sale, id=None, customer_name=customer.name).to_wire()
        response = self._submit(lambda: self.gateway.save_sale(payload))
        if self.cache is None:
            self._sales_fallback.invalidate()
        return saved_record(Sale, response, sale)

    def update_sale(self, sale_id: str, changes: dict) -> Sale:
        current = self.find_sale(sale_id)
        merged = self._merge(current, changes)
        if merged.customer_id != current.customer_id:
            self.find(merged.customer_id)
        self._validate_sale(merged)
        payload = merged.to_wire()
        payload.pop("id", None)
        self._submit(lambda: self.gateway.update_sale(sale_id, payload))
        if self.cache is None:
            self._sales_fallback.invalidate()
        return merged

    def summary(self) -> SalesSummary:
        return sales_summary(self.customers, self.sales)

    def _validate(self, record: Customer) -> None:
        if not record.name.strip():
            raise ValidationError("Customer name is required.")

    def _validate_sale(self, sale: Sale) -> None:
        if parse_day(sale.sale_date) is None:
            raise ValidationError("Sale date is required (YYYY-MM-DD).")
        if sale.dozen_count < 0 or sale.individual_count < 0:
            raise ValidationError("Egg counts must be >= 0.")
        if sale.egg_count == 0:
            raise ValidationError("A sale must include at least one egg.")
        if sale.total_amount < 0:
            raise ValidationError("Total amount must be >= 0.")
