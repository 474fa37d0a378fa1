from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import requests

from flockbook.domain.errors import AuthenticationError
from flockbook.domain.models import Session

log = logging.getLogger(__name__)

# tokens this close to expiry are treated as already expired
EXPIRY_LEEWAY_SECONDS = 30


class TokenSessionProvider:
    """Bearer session backed by a refresh-token grant."""

    def __init__(
        self,
        auth_url: str,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        expires_at: Optional[float] = None,
        user_id: Optional[str] = None,
        timeout: float = 10.0,
        http: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.auth_url = auth_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.clock = clock
        self._session: Optional[Session] = None
        if access_token or refresh_token:
            self._session = Session(
                access_token=access_token or "",
                refresh_token=refresh_token,
                expires_at=expires_at,
                user_id=user_id,
            )
        self._sign_out_listeners: list[Callable[[], None]] = []

    def add_sign_out_listener(self, callback: Callable[[], None]) -> None:
        self._sign_out_listeners.append(callback)

    def get_session(self) -> Optional[Session]:
        session = self._session
        if session is None or not session.access_token:
            return None
        if session.expires_at is not None and self.clock() >= session.expires_at - EXPIRY_LEEWAY_SECONDS:
            return None
        return session

    def current_user_id(self) -> Optional[str]:
        session = self._session
        return session.user_id if session is not None else None

    def refresh_session(self) -> Optional[Session]:
        current = self._session
        if current is None or not current.refresh_token:
            return None

        url = f"{self.auth_url}/auth/v1/token"
        try:
            r = self.http.post(
                url,
                params={"grant_type": "refresh_token"},
                json={"refresh_token": current.refresh_token},
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            log.warning("token_refresh_failed error=%s", e)
            raise AuthenticationError("Token refresh failed") from e

        access = data.get("access_token")
        if not access:
            raise AuthenticationError("Token refresh returned no access token")

        expires_in = data.get("expires_in")
        self._session = Session(
            access_token=str(access),
            refresh_token=data.get("refresh_token") or current.refresh_token,
            expires_at=self.clock() + float(expires_in) if expires_in else None,
            user_id=(data.get("user") or {}).get("id") or current.user_id,
        )
        return self._session

    def sign_out(self) -> None:
        self._session = None
        log.info("signed_out")
        for callback in list(self._sign_out_listeners):
            callback()
