"""Application settings and runtime config resolution.

Environment-backed defaults shared by the API, the services and the CLI.
Every ``resolve_*`` function takes the environment as a mapping so tests can
pass a plain dict.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional

# Feed composition
ENV_FEED_SECTION_CAP = "FEED_SECTION_CAP"
ENV_FEED_FRESH_HOURS = "FEED_FRESH_HOURS"
ENV_FEED_TODAY_HOURS = "FEED_TODAY_HOURS"
ENV_FEED_TRENDING_HOURS = "FEED_TRENDING_HOURS"
ENV_FEED_POOL_LIMIT = "FEED_POOL_LIMIT"
ENV_FEED_STALE_TTL_SECONDS = "FEED_STALE_TTL_SECONDS"

DEFAULT_FEED_SECTION_CAP = 20
DEFAULT_FEED_FRESH_HOURS = 6
DEFAULT_FEED_TODAY_HOURS = 24
DEFAULT_FEED_TRENDING_HOURS = 48
DEFAULT_FEED_POOL_LIMIT = 200
DEFAULT_FEED_STALE_TTL_SECONDS = 300

# Explore pagination
ENV_EXPLORE_PAGE_LIMIT = "EXPLORE_PAGE_LIMIT"
ENV_EXPLORE_CACHE_TTL_SECONDS = "EXPLORE_CACHE_TTL_SECONDS"
DEFAULT_EXPLORE_PAGE_LIMIT = 50
DEFAULT_EXPLORE_CACHE_TTL_SECONDS = 300

# Upstream aggregator
ENV_AGGREGATOR_BASE_URL = "AGGREGATOR_BASE_URL"
ENV_AGGREGATOR_API_KEY = "AGGREGATOR_API_KEY"
ENV_AGGREGATOR_TIMEOUT_SECONDS = "AGGREGATOR_TIMEOUT_SECONDS"
ENV_AGGREGATOR_FEED_FUNCTION = "AGGREGATOR_FEED_FUNCTION"
ENV_AGGREGATOR_EXPLORE_FUNCTION = "AGGREGATOR_EXPLORE_FUNCTION"
DEFAULT_AGGREGATOR_TIMEOUT_SECONDS = 20
DEFAULT_AGGREGATOR_FEED_FUNCTION = "social_feed"
DEFAULT_AGGREGATOR_EXPLORE_FUNCTION = "explore_feed_v2"

# Persistence
ENV_DATABASE_PATH = "DATABASE_PATH"
DEFAULT_DATABASE_PATH = "data/kivaw_feed.db"

# API env names and defaults
ENV_API_HOST = "API_HOST"
ENV_API_PORT = "API_PORT"
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 8111

# Manual explore refresh rate limiting
ENV_EXPLORE_REFRESH_RATE_LIMIT = "EXPLORE_REFRESH_RATE_LIMIT"
ENV_EXPLORE_REFRESH_WINDOW_SECONDS = "EXPLORE_REFRESH_WINDOW_SECONDS"
DEFAULT_EXPLORE_REFRESH_RATE_LIMIT = 5
DEFAULT_EXPLORE_REFRESH_WINDOW_SECONDS = 60

# Clerk
ENV_CLERK_AUTHORIZED_PARTIES = "CLERK_AUTHORIZED_PARTIES"
DEFAULT_CLERK_AUTHORIZED_PARTIES = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
)

# CLI client
ENV_KIVAW_STATE_PATH = "KIVAW_STATE_PATH"
DEFAULT_KIVAW_STATE_PATH = "~/.kivaw/state.json"


def _clamp(value: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, value))


def _int_setting(
    env: Mapping[str, str],
    name: str,
    default: int,
    minimum: int,
    maximum: int,
) -> int:
    try:
        value = int(env.get(name, str(default)))
    except ValueError:
        value = default
    return _clamp(value, minimum, maximum)


@dataclass(frozen=True)
class FeedSettings:
    section_cap: int
    fresh_window: timedelta
    today_window: timedelta
    trending_window: timedelta
    pool_limit: int
    stale_ttl: timedelta


@dataclass(frozen=True)
class ExploreSettings:
    page_limit: int
    cache_ttl: timedelta


@dataclass(frozen=True)
class AggregatorSettings:
    base_url: Optional[str]
    api_key: Optional[str]
    timeout_seconds: int
    feed_function: str
    explore_function: str


@dataclass(frozen=True)
class DatabaseSettings:
    path: str


@dataclass(frozen=True)
class APISettings:
    host: str
    port: int


@dataclass(frozen=True)
class RefreshSecuritySettings:
    refresh_rate_limit: int
    refresh_window_seconds: int


@dataclass(frozen=True)
class ClerkSettings:
    authorized_parties: list[str]


@dataclass(frozen=True)
class ClientSettings:
    state_path: Path


@dataclass(frozen=True)
class AppSettings:
    feed: FeedSettings
    explore: ExploreSettings
    aggregator: AggregatorSettings
    database: DatabaseSettings
    api: APISettings
    refresh_security: RefreshSecuritySettings


def resolve_feed_settings(env: Mapping[str, str] = os.environ) -> FeedSettings:
    fresh = _int_setting(env, ENV_FEED_FRESH_HOURS, DEFAULT_FEED_FRESH_HOURS, 1, 168)
    today = _int_setting(env, ENV_FEED_TODAY_HOURS, DEFAULT_FEED_TODAY_HOURS, 1, 168)
    trending = _int_setting(env, ENV_FEED_TRENDING_HOURS, DEFAULT_FEED_TRENDING_HOURS, 1, 336)

    # Windows must nest: fresh <= today <= trending
    today = max(today, fresh)
    trending = max(trending, today)

    return FeedSettings(
        section_cap=_int_setting(env, ENV_FEED_SECTION_CAP, DEFAULT_FEED_SECTION_CAP, 1, 100),
        fresh_window=timedelta(hours=fresh),
        today_window=timedelta(hours=today),
        trending_window=timedelta(hours=trending),
        pool_limit=_int_setting(env, ENV_FEED_POOL_LIMIT, DEFAULT_FEED_POOL_LIMIT, 10, 200),
        stale_ttl=timedelta(
            seconds=_int_setting(
                env, ENV_FEED_STALE_TTL_SECONDS, DEFAULT_FEED_STALE_TTL_SECONDS, 0, 86400
            )
        ),
    )


def resolve_explore_settings(env: Mapping[str, str] = os.environ) -> ExploreSettings:
    return ExploreSettings(
        page_limit=_int_setting(env, ENV_EXPLORE_PAGE_LIMIT, DEFAULT_EXPLORE_PAGE_LIMIT, 1, 50),
        cache_ttl=timedelta(
            seconds=_int_setting(
                env,
                ENV_EXPLORE_CACHE_TTL_SECONDS,
                DEFAULT_EXPLORE_CACHE_TTL_SECONDS,
                0,
                86400,
            )
        ),
    )


def resolve_aggregator_settings(env: Mapping[str, str] = os.environ) -> AggregatorSettings:
    base_url = (env.get(ENV_AGGREGATOR_BASE_URL) or "").strip().rstrip("/") or None
    api_key = (env.get(ENV_AGGREGATOR_API_KEY) or "").strip() or None

    return AggregatorSettings(
        base_url=base_url,
        api_key=api_key,
        timeout_seconds=_int_setting(
            env,
            ENV_AGGREGATOR_TIMEOUT_SECONDS,
            DEFAULT_AGGREGATOR_TIMEOUT_SECONDS,
            1,
            120,
        ),
        feed_function=env.get(ENV_AGGREGATOR_FEED_FUNCTION) or DEFAULT_AGGREGATOR_FEED_FUNCTION,
        explore_function=(
            env.get(ENV_AGGREGATOR_EXPLORE_FUNCTION) or DEFAULT_AGGREGATOR_EXPLORE_FUNCTION
        ),
    )


def resolve_database_settings(env: Mapping[str, str] = os.environ) -> DatabaseSettings:
    return DatabaseSettings(path=env.get(ENV_DATABASE_PATH) or DEFAULT_DATABASE_PATH)


def resolve_api_settings(env: Mapping[str, str] = os.environ) -> APISettings:
    host = env.get(ENV_API_HOST, DEFAULT_API_HOST)
    try:
        port = int(env.get(ENV_API_PORT, str(DEFAULT_API_PORT)))
    except ValueError:
        port = DEFAULT_API_PORT

    return APISettings(host=host, port=port)


def resolve_refresh_security_settings(
    env: Mapping[str, str] = os.environ,
) -> RefreshSecuritySettings:
    return RefreshSecuritySettings(
        refresh_rate_limit=_int_setting(
            env,
            ENV_EXPLORE_REFRESH_RATE_LIMIT,
            DEFAULT_EXPLORE_REFRESH_RATE_LIMIT,
            1,
            200,
        ),
        refresh_window_seconds=_int_setting(
            env,
            ENV_EXPLORE_REFRESH_WINDOW_SECONDS,
            DEFAULT_EXPLORE_REFRESH_WINDOW_SECONDS,
            1,
            3600,
        ),
    )


def resolve_clerk_settings(env: Mapping[str, str] = os.environ) -> ClerkSettings:
    raw = env.get(ENV_CLERK_AUTHORIZED_PARTIES, "")
    parties = [p.strip() for p in raw.split(",") if p.strip()]
    return ClerkSettings(authorized_parties=parties or list(DEFAULT_CLERK_AUTHORIZED_PARTIES))


def resolve_client_settings(env: Mapping[str, str] = os.environ) -> ClientSettings:
    raw = env.get(ENV_KIVAW_STATE_PATH) or DEFAULT_KIVAW_STATE_PATH
    return ClientSettings(state_path=Path(raw).expanduser())


def get_app_settings(env: Mapping[str, str] = os.environ) -> AppSettings:
    return AppSettings(
        feed=resolve_feed_settings(env=env),
        explore=resolve_explore_settings(env=env),
        aggregator=resolve_aggregator_settings(env=env),
        database=resolve_database_settings(env=env),
        api=resolve_api_settings(env=env),
        refresh_security=resolve_refresh_security_settings(env=env),
    )
