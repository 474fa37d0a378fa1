from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from flockbook.config import ApiSettings
from flockbook.repositories.contracts import DataGateway
from flockbook.repositories.http_gateway import RemoteDataGateway
from flockbook.repositories.local_gateway import LocalStoreGateway
from flockbook.repositories.sqlite_repo import SqliteRepository
from flockbook.services.cache_service import DataCache
from flockbook.services.crm_service import CrmService
from flockbook.services.egg_service import EggService
from flockbook.services.expense_service import ExpenseService
from flockbook.services.feed_service import FeedService
from flockbook.services.flock_service import FlockService
from flockbook.services.reporting_service import ReportingService
from flockbook.services.session_service import TokenSessionProvider


@dataclass(frozen=True)
class AppContainer:
    repo: SqliteRepository
    sessions: Optional[TokenSessionProvider]
    gateway: DataGateway
    cache: DataCache
    eggs: EggService
    expenses: ExpenseService
    feed: FeedService
    flock: FlockService
    crm: CrmService
    reporting: ReportingService


def build_container(
    settings: ApiSettings,
    db_path: Path | str,
    access_token: Optional[str] = None,
    refresh_token: Optional[str] = None,
    user_id: Optional[str] = None,
    http: Optional[requests.Session] = None,
) -> AppContainer:
    repo = SqliteRepository(db_path)
    repo.init_db()

    if settings.local_mode:
        sessions = None
        gateway = LocalStoreGateway(repo)
    else:
        http = http or requests.Session()
        sessions = TokenSessionProvider(
            settings.auth_url,
            access_token=access_token,
            refresh_token=refresh_token,
            user_id=user_id,
            timeout=settings.timeout,
            http=http,
        )
        gateway = RemoteDataGateway(settings.base_url, sessions, timeout=settings.timeout, http=http)

    cache = DataCache(
        gateway,
        repo=repo,
        user_id=user_id,
        ttl_minutes=settings.snapshot_ttl_minutes,
        resolve_user=sessions.current_user_id if sessions is not None else None,
    )
    if sessions is not None:
        # sign-out ends the cache's lifetime
        sessions.add_sign_out_listener(cache.close)

    eggs = EggService(gateway, cache)
    expenses = ExpenseService(gateway, cache)
    feed = FeedService(gateway, cache)
    flock = FlockService(gateway, cache)
    crm = CrmService(gateway, cache)
    reporting = ReportingService(eggs, expenses, feed, flock, crm)

    return AppContainer(
        repo=repo,
        sessions=sessions,
        gateway=gateway,
        cache=cache,
        eggs=eggs,
        expenses=expenses,
        feed=feed,
        flock=flock,
        crm=crm,
        reporting=reporting,
    )
