"""User data model for adios."""

from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from adios.models.constants import ACCESS_TOKEN_EXPIRY_BUFFER_SECONDS
from adios.models.timestamps import ensure_utc, utc_now


class User(BaseModel):
    """A video-conferencing account that signed in through OAuth."""

    id: str = Field(..., description="Unique user identifier (UUID v4)")
    external_identity_id: str = Field(..., description="User ID at the identity provider")
    display_name: str = Field(..., description="User display name")
    access_token: str = Field(..., repr=False, description="Provider OAuth access token")
    refresh_token: str = Field(..., repr=False, description="Provider OAuth refresh token")
    expires_at: datetime = Field(..., description="Access token expiry")
    default_meeting_length_minutes: Optional[int] = Field(
        None, ge=1, description="Length limit for this user's meetings (null means app default)"
    )
    created_at: datetime = Field(..., description="User creation timestamp")
    updated_at: datetime = Field(..., description="User last update timestamp")

    @field_validator("expires_at", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v):
        return ensure_utc(v)

    def is_access_token_expired(self, now: Optional[datetime] = None) -> bool:
        """True when the access token expires within the safety buffer."""
        now_with_buffer = ensure_utc(now or utc_now()) + timedelta(seconds=ACCESS_TOKEN_EXPIRY_BUFFER_SECONDS)
        return self.expires_at < now_with_buffer
