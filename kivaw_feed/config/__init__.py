"""Configuration module for kivaw-feed."""

from kivaw_feed.config.settings import (
    AppSettings,
    get_app_settings,
    resolve_aggregator_settings,
    resolve_explore_settings,
    resolve_feed_settings,
)

__all__ = [
    "AppSettings",
    "get_app_settings",
    "resolve_aggregator_settings",
    "resolve_explore_settings",
    "resolve_feed_settings",
]
