from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys

from flockbook.domain.errors import ValidationError


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class ApiSettings:
    base_url: str
    auth_url: str
    timeout: float = 10.0
    local_mode: bool = False
    snapshot_ttl_minutes: int = 10


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "FlockBook") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "flockbook.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _env_number(env: dict, key: str, default: float) -> float:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValidationError(f"{key} must be a number. Received: {raw!r}") from exc
    if value <= 0:
        raise ValidationError(f"{key} must be > 0. Received: {raw!r}")
    return value


def _env_whole_number(env: dict, key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(f"{key} must be a whole number. Received: {raw!r}") from exc
    if value < 1:
        raise ValidationError(f"{key} must be >= 1. Received: {raw!r}")
    return value


def load_api_settings(env: dict | None = None) -> ApiSettings:
    env = os.environ if env is None else env
    base_url = (env.get("FLOCKBOOK_API_URL") or "http://localhost:3000").strip().rstrip("/")
    auth_url = (env.get("FLOCKBOOK_AUTH_URL") or base_url).strip().rstrip("/")
    return ApiSettings(
        base_url=base_url,
        auth_url=auth_url,
        timeout=_env_number(env, "FLOCKBOOK_API_TIMEOUT", 10.0),
        local_mode=_env_flag(env.get("FLOCKBOOK_LOCAL_MODE")),
        snapshot_ttl_minutes=_env_whole_number(env, "FLOCKBOOK_SNAPSHOT_TTL_MINUTES", 10),
    )
