from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from flockbook.domain.errors import AuthenticationError, NetworkError, ServerError
from flockbook.domain.models import ApiResponse
from flockbook.repositories.contracts import SessionProvider

log = logging.getLogger("flockbook.gateway")

# /api/data?type=... that carries each collection
COLLECTION_SOURCES = {
    "eggEntries": "production",
    "expenses": "expenses",
    "feedInventory": "all",
    "flockProfile": "all",
    "flockEvents": "all",
    "customers": "crm",
    "sales": "crm",
    "flockBatches": "all",
    "deathRecords": "all",
}


def normalize_envelope(raw: Any) -> ApiResponse:
    """Map both envelope shapes the API has used onto one ApiResponse.

    Current:  {"success": bool, "data": ..., "message": ...}
    Legacy:   {"message": str, "data": ..., "timestamp": str}
    """
    if isinstance(raw, dict):
        if isinstance(raw.get("success"), bool):
            return ApiResponse(success=raw["success"], data=raw.get("data"), message=raw.get("message"))
        if "message" in raw and "timestamp" in raw:
            return ApiResponse(success=True, data=raw.get("data"), message=raw.get("message"))
    raise ServerError("Server returned invalid response format", 500, str(raw)[:500])


class ApiClient:
    """Authenticated JSON requests with response classification. No retries."""

    def __init__(
        self,
        base_url: str,
        sessions: SessionProvider,
        timeout: float = 10.0,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.sessions = sessions
        self.timeout = timeout
        self.http = http or requests.Session()

    def auth_headers(self) -> dict[str, str]:
        try:
            session = self.sessions.get_session()
        except Exception as exc:
            log.warning("session_read_failed error=%s", exc)
            session = None

        if session is None or not session.access_token:
            log.info("session_missing attempting_refresh")
            try:
                session = self.sessions.refresh_session()
            except Exception as exc:
                log.warning("session_refresh_failed error=%s", exc)
                self.sessions.sign_out()
                raise AuthenticationError("User not authenticated - please log in again") from exc
            if session is None or not session.access_token:
                log.warning("session_refresh_failed error=no_session")
                self.sessions.sign_out()
                raise AuthenticationError("User not authenticated - please log in again")
            log.info("session_refreshed")

        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {session.access_token}",
        }

    def get(self, endpoint: str, params: Optional[dict] = None) -> ApiResponse:
        return self._request("GET", endpoint, params=params)

    def post(self, endpoint: str, body: Any, params: Optional[dict] = None) -> ApiResponse:
        return self._request("POST", endpoint, body=body, params=params)

    def put(self, endpoint: str, body: Any, params: Optional[dict] = None) -> ApiResponse:
        return self._request("PUT", endpoint, body=body, params=params)

    def delete(self, endpoint: str, body: Any = None, params: Optional[dict] = None) -> ApiResponse:
        return self._request("DELETE", endpoint, body=body, params=params)

    def _request(self, method: str, endpoint: str, body: Any = None, params: Optional[dict] = None) -> ApiResponse:
        headers = self.auth_headers()
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.http.request(
                method,
                url,
                headers=headers,
                json=body,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.warning("request_failed method=%s endpoint=%s error=%s", method, endpoint, exc)
            raise NetworkError(f"{method} {endpoint} failed: {exc}") from exc

        log.info("request_done method=%s endpoint=%s status=%s", method, endpoint, resp.status_code)
        return self.handle_response(resp)

    def handle_response(self, resp: requests.Response) -> ApiResponse:
        if not 200 <= resp.status_code < 300:
            text = resp.text
            log.error("api_error status=%s body=%s", resp.status_code, text[:500])
            if resp.status_code == 401:
                self.sessions.sign_out()
                raise AuthenticationError("Authentication failed - please refresh the page or log in again")
            raise ServerError(f"HTTP error! status: {resp.status_code} - {text}", resp.status_code, text)

        try:
            raw = resp.json()
        except ValueError as exc:
            log.error("invalid_json status=%s", resp.status_code)
            raise ServerError("Invalid response format from server", 500, resp.text) from exc
        return normalize_envelope(raw)


class RemoteDataGateway(ApiClient):
    def fetch_all(self) -> ApiResponse:
        return self._ensure(self.get("/api/data", params={"type": "all"}))

    def fetch_collection(self, kind: str) -> Any:
        source = COLLECTION_SOURCES.get(kind)
        if source is None:
            raise ValueError(f"Unknown collection: {kind}")
        response = self._ensure(self.get("/api/data", params={"type": source}))
        data = response.data if isinstance(response.data, dict) else {}
        if kind == "flockEvents" and data.get("flockEvents") is None:
            profile = data.get("flockProfile") or {}
            return profile.get("events") or []
        if kind == "flockProfile":
            return data.get("flockProfile")
        return data.get(kind) or []

    def save(self, operation: str, payload: Any) -> ApiResponse:
        return self._ensure(self.post("/api/crud", payload, params={"operation": operation}))

    def delete_record(self, operation: str, record_id: str) -> ApiResponse:
        return self._ensure(self.delete("/api/crud", {"id": record_id}, params={"operation": operation}))

    def save_customer(self, payload: dict) -> ApiResponse:
        return self._ensure(self.post("/api/customers", payload))

    def update_customer(self, customer_id: str, payload: dict) -> ApiResponse:
        return self._ensure(self.put("/api/customers", {**payload, "id": customer_id}))

    def save_sale(self, payload: dict) -> ApiResponse:
        return self._ensure(self.post("/api/sales", payload))

    def update_sale(self, sale_id: str, payload: dict) -> ApiResponse:
        return self._ensure(self.put("/api/sales", {**payload, "id": sale_id}))

    def save_flock_batch(self, payload: dict) -> ApiResponse:
        return self._ensure(self.post("/api/flockBatches", payload))

    def save_death_record(self, payload: dict) -> ApiResponse:
        return self._ensure(self.post("/api/deathRecords", payload))

    @staticmethod
    def _ensure(response: ApiResponse) -> ApiResponse:
        if not response.success:
            raise ServerError(response.message or "Request was not successful", 200, response.message or "")
        return response
