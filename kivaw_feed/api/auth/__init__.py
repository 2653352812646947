"""Clerk-based authentication for the feed API."""

from kivaw_feed.api.auth.clerk_auth import current_user_id, get_current_user

__all__ = ["current_user_id", "get_current_user"]
