"""Authentication backend clients.

The session layer wraps a hosted auth service; it never issues tokens
itself. Backends raise ``AuthBackendError`` with a kind that separates
terminal token failures (the session must be dropped) from failures that
are worth retrying.

Supports:
- HttpAuthBackend: GoTrue-compatible REST API over httpx
- InMemoryAuthBackend: scripted backend for tests and offline runs
"""

from __future__ import annotations

import logging
import time
from collections import deque
from enum import Enum
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from vitrine.session.models import Session, SessionUser

logger = logging.getLogger(__name__)

_INVALID_TOKEN_MARKERS = (
    "invalid_token",
    "invalid_grant",
    "invalid refresh token",
    "refresh token not found",
    "jwt expired",
)


class AuthErrorKind(str, Enum):
    """How the session layer should react to a backend failure."""

    INVALID_TOKEN = "invalid_token"  # Terminal: drop the session
    AUTH = "auth"  # Authentication-related, not explicitly a bad token
    TRANSIENT = "transient"  # Network, server or unknown: keep the session


class AuthBackendError(Exception):
    """Raised by auth backends."""

    def __init__(
        self,
        message: str,
        kind: AuthErrorKind = AuthErrorKind.TRANSIENT,
        status: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status = status

    @property
    def is_invalid_token(self) -> bool:
        return self.kind == AuthErrorKind.INVALID_TOKEN or "invalid_token" in self.message

    @property
    def mentions_auth(self) -> bool:
        """Whether the failure is about authentication or tokens at all."""
        if self.kind in (AuthErrorKind.INVALID_TOKEN, AuthErrorKind.AUTH):
            return True
        lowered = self.message.lower()
        return "auth" in lowered or "token" in lowered


def classify_auth_error(message: str, status: int | None = None) -> AuthErrorKind:
    """Map a backend error message (and HTTP status, if any) to a kind."""
    lowered = message.lower()
    if any(marker in lowered for marker in _INVALID_TOKEN_MARKERS):
        return AuthErrorKind.INVALID_TOKEN
    if status in (401, 403):
        return AuthErrorKind.INVALID_TOKEN
    if status is not None and status >= 500:
        return AuthErrorKind.TRANSIENT
    if "auth" in lowered or "token" in lowered or (status is not None and 400 <= status < 500):
        return AuthErrorKind.AUTH
    return AuthErrorKind.TRANSIENT


class AuthBackend(Protocol):
    """Operations the session layer needs from the auth service."""

    async def get_current_session(self) -> Session | None: ...

    async def set_session(self, session: Session) -> Session: ...

    async def refresh_session(self) -> Session: ...


class HttpAuthBackend:
    """Client for a GoTrue-compatible auth REST API.

    Keeps the current session in memory, like a browser auth client does.
    ``get_current_session`` only talks to the server when the held access
    token has expired.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._session: Session | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"apikey": self.api_key} if self.api_key else {}
            self._client = httpx.AsyncClient(
                base_url=self.base_url, headers=headers, timeout=self.timeout
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = await self._get_client().request(
                method, path, headers=headers, params=params, json=json
            )
        except httpx.HTTPError as e:
            raise AuthBackendError(f"Auth request failed: {e}", AuthErrorKind.TRANSIENT) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            message = self._error_message(body, response)
            raise AuthBackendError(
                message,
                classify_auth_error(message, response.status_code),
                status=response.status_code,
            )

        if not isinstance(body, dict):
            raise AuthBackendError("Unexpected auth response", AuthErrorKind.TRANSIENT)
        return body

    @staticmethod
    def _error_message(body: Any, response: httpx.Response) -> str:
        if isinstance(body, dict):
            parts = [
                str(body[key])
                for key in ("error", "error_code", "error_description", "msg", "message")
                if body.get(key)
            ]
            if parts:
                return ": ".join(parts)
        return f"HTTP {response.status_code}"

    def _is_expired(self, session: Session) -> bool:
        return session.expires_at is not None and session.expires_at <= time.time()

    async def get_current_session(self) -> Session | None:
        if self._session is None:
            return None
        if self._is_expired(self._session):
            logger.info("Held access token expired, refreshing")
            return await self.refresh_session()
        return self._session

    async def set_session(self, session: Session) -> Session:
        """Adopt a previously persisted session after checking it with the server."""
        if self._is_expired(session):
            self._session = session
            return await self.refresh_session()

        body = await self._request("GET", "/auth/v1/user", token=session.access_token)
        try:
            user = SessionUser.model_validate(body)
        except ValidationError as e:
            raise AuthBackendError(f"Malformed user response: {e}") from e

        self._session = session.model_copy(update={"user": user})
        return self._session

    async def refresh_session(self) -> Session:
        if self._session is None or not self._session.refresh_token:
            raise AuthBackendError("Auth session missing", AuthErrorKind.AUTH)

        body = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": self._session.refresh_token},
        )
        if body.get("expires_at") is None and body.get("expires_in") is not None:
            body["expires_at"] = int(time.time()) + int(body["expires_in"])
        try:
            self._session = Session.model_validate(body)
        except ValidationError as e:
            raise AuthBackendError(f"Malformed token response: {e}") from e
        return self._session


class InMemoryAuthBackend:
    """Auth backend that answers from memory.

    ``session`` is what ``get_current_session`` returns. Queue failures with
    ``fail_next(operation, error)``; each queued error is raised once.
    """

    def __init__(self, session: Session | None = None):
        self.session = session
        self.calls: list[str] = []
        self._failures: dict[str, deque[Exception]] = {}
        self._refresh_counter = 0

    def fail_next(self, operation: str, error: Exception) -> None:
        self._failures.setdefault(operation, deque()).append(error)

    def _maybe_fail(self, operation: str) -> None:
        self.calls.append(operation)
        queued = self._failures.get(operation)
        if queued:
            raise queued.popleft()

    async def get_current_session(self) -> Session | None:
        self._maybe_fail("get_current_session")
        return self.session

    async def set_session(self, session: Session) -> Session:
        self._maybe_fail("set_session")
        self.session = session
        return session

    async def refresh_session(self) -> Session:
        self._maybe_fail("refresh_session")
        if self.session is None:
            raise AuthBackendError("Auth session missing", AuthErrorKind.AUTH)
        # Rotate the access token so callers can tell a refreshed session apart
        self._refresh_counter += 1
        base_token = self.session.access_token.split("~")[0]
        self.session = self.session.model_copy(
            update={"access_token": f"{base_token}~{self._refresh_counter}"}
        )
        return self.session
