"""Clerk JWT verification as a FastAPI dependency.

Uses the official ``clerk-backend-api`` SDK to validate session tokens
issued by Clerk. The incoming FastAPI request is converted into an
``httpx.Request`` (required by the SDK) and passed to
``authenticate_request()``.

Saved items and explore streams are scoped to the Clerk user id, the
``sub`` claim of the session token::

    @router.get("/saves")
    async def saves(user_id: str = Depends(current_user_id)):
        ...
"""

from __future__ import annotations

import os

import httpx
from clerk_backend_api import Clerk
from clerk_backend_api.security import AuthenticateRequestOptions
from fastapi import Depends, HTTPException, Request, status

from kivaw_feed.config.settings import resolve_clerk_settings


async def get_current_user(request: Request) -> dict:
    """FastAPI dependency: verify Clerk session token.

    Returns the decoded JWT payload on success, or raises 401.
    """
    secret_key = os.getenv("CLERK_SECRET_KEY", "")
    if not secret_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="CLERK_SECRET_KEY is not configured",
        )

    clerk = Clerk(bearer_auth=secret_key)

    # The SDK inspects headers on an httpx.Request, not a Starlette one
    httpx_request = httpx.Request(
        method=request.method,
        url=str(request.url),
        headers=dict(request.headers),
    )

    request_state = clerk.authenticate_request(
        httpx_request,
        AuthenticateRequestOptions(
            authorized_parties=_get_authorized_parties(),
        ),
    )

    if not request_state.is_signed_in:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return request_state.payload  # type: ignore[return-value]


def _get_authorized_parties() -> list[str]:
    """Frontend origins allowed to present session tokens.

    Reads ``CLERK_AUTHORIZED_PARTIES`` (comma-separated), falling back to
    the local frontend dev origins. The same list feeds the CORS
    middleware in ``kivaw_feed.api.main``.
    """
    return resolve_clerk_settings().authorized_parties


async def current_user_id(user: dict = Depends(get_current_user)) -> str:
    """FastAPI dependency: the signed-in user's id.

    Clerk puts the user id in the ``sub`` claim. A verified token without
    one is rejected with 401.
    """
    user_id = (user or {}).get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session token has no subject",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id
