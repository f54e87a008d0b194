"""SQLAlchemy database models for adios."""

import uuid
from typing import Optional
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index

from adios.database.database import Base
from adios.database.token_crypto import encrypt_tokens, decrypt_tokens
from adios.models.timestamps import ensure_utc, utc_now


def new_id() -> str:
    return str(uuid.uuid4())


def validate_meeting_length(minutes: Optional[int]) -> None:
    """Reject non-positive meeting length limits (None means unset)."""
    if minutes is not None and minutes < 1:
        raise ValueError(f"Meeting length must be a positive number of minutes, got {minutes}")


class UserDB(Base):
    """Database model for User.

    Tokens are stored encrypted-at-rest; do NOT log raw tokens.
    """

    __tablename__ = "users"
    __table_args__ = (
        # One row per provider account.
        Index("ix_users_zoom_id", "zoom_id", unique=True),
    )

    # Primary key
    id = Column("user_id", String, primary_key=True, default=new_id)

    # Provider identity
    external_identity_id = Column("zoom_id", String, nullable=False)
    display_name = Column(String, nullable=False)

    # OAuth credentials (Fernet ciphertext)
    access_token = Column(String, nullable=False)
    refresh_token = Column(String, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # Preferences
    default_meeting_length_minutes = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    def set_tokens(self, access_token: str, refresh_token: str, expires_at) -> None:
        """Encrypt and assign a new credential set."""
        self.access_token, self.refresh_token = encrypt_tokens(access_token, refresh_token)
        self.expires_at = ensure_utc(expires_at)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from adios.models.user import User
        access_token, refresh_token = decrypt_tokens(self.access_token, self.refresh_token)
        return User(
            id=self.id,
            external_identity_id=self.external_identity_id,
            display_name=self.display_name,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=self.expires_at,
            default_meeting_length_minutes=self.default_meeting_length_minutes,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class MeetingDB(Base):
    """Database model for Meeting."""

    __tablename__ = "meetings"
    __table_args__ = (
        # One row per provider occurrence; the series id may repeat.
        Index("ix_meetings_zoom_uuid", "zoom_uuid", unique=True),
    )

    # Primary key
    id = Column("meeting_id", String, primary_key=True, default=new_id)

    # Owner; users with meetings cannot be deleted
    user_id = Column(String, ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False, index=True)

    # Provider identity
    external_meeting_id = Column("zoom_id", String, nullable=False)
    external_occurrence_id = Column("zoom_uuid", String, nullable=False)

    # Occurrence details
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    topic = Column(String, nullable=True)
    max_meeting_length_minutes = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from adios.models.meeting import Meeting
        return Meeting(
            id=self.id,
            user_id=self.user_id,
            external_meeting_id=self.external_meeting_id,
            external_occurrence_id=self.external_occurrence_id,
            start_time=self.start_time,
            end_time=self.end_time,
            topic=self.topic,
            max_meeting_length_minutes=self.max_meeting_length_minutes,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
