"""Authentication session models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SessionUser(BaseModel):
    """The user a session belongs to.

    Only ``id`` is required; backend-specific fields are kept as extras so a
    persisted session round-trips without loss.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    email: str | None = None


class Session(BaseModel):
    """An authentication session as issued by the auth backend."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(min_length=1)
    refresh_token: str = ""
    expires_at: int | None = None  # Token expiry, epoch seconds (backend-issued)
    expires_in: int | None = None
    token_type: str = "bearer"
    user: SessionUser

    @property
    def user_id(self) -> str:
        return self.user.id
