from __future__ import annotations

from typing import Any, Optional, Protocol

from flockbook.domain.models import ApiResponse, Session


class SessionProvider(Protocol):
    def get_session(self) -> Optional[Session]: ...
    def refresh_session(self) -> Optional[Session]: ...
    def sign_out(self) -> None: ...


class DataGateway(Protocol):
    """One call per domain verb. Remote API and local store both satisfy it."""

    def fetch_all(self) -> ApiResponse: ...
    def fetch_collection(self, kind: str) -> Any: ...
    def save(self, operation: str, payload: Any) -> ApiResponse: ...
    def delete_record(self, operation: str, record_id: str) -> ApiResponse: ...
    def save_customer(self, payload: dict) -> ApiResponse: ...
    def update_customer(self, customer_id: str, payload: dict) -> ApiResponse: ...
    def save_sale(self, payload: dict) -> ApiResponse: ...
    def update_sale(self, sale_id: str, payload: dict) -> ApiResponse: ...
    def save_flock_batch(self, payload: dict) -> ApiResponse: ...
    def save_death_record(self, payload: dict) -> ApiResponse: ...
