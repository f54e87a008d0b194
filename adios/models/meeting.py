"""Meeting data model for adios."""

from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from adios.models.constants import DEFAULT_MAX_MEETING_LENGTH_MINUTES
from adios.models.timestamps import ensure_utc, utc_now
from adios.models.user import User


class Meeting(BaseModel):
    """A single occurrence of a meeting hosted by a User.

    `external_meeting_id` names the meeting series at the provider; several
    occurrences can share it. `external_occurrence_id` names this instance.
    """

    id: str = Field(..., description="Unique meeting identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who hosts this meeting")
    external_meeting_id: str = Field(..., description="Provider meeting (series) ID")
    external_occurrence_id: str = Field(..., description="Provider occurrence UUID")
    start_time: datetime = Field(..., description="Occurrence start time")
    end_time: Optional[datetime] = Field(None, description="Occurrence end time (null while running)")
    topic: Optional[str] = Field(None, description="Meeting topic")
    max_meeting_length_minutes: Optional[int] = Field(
        None, ge=1, description="Length limit for this meeting (null means owner's default)"
    )
    created_at: datetime = Field(..., description="Meeting creation timestamp")
    updated_at: datetime = Field(..., description="Meeting last update timestamp")

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v):
        return ensure_utc(v)

    def is_ended(self) -> bool:
        return self.end_time is not None

    def duration(self, now: Optional[datetime] = None) -> timedelta:
        """Elapsed time; running meetings are measured up to `now`."""
        end = self.end_time or ensure_utc(now or utc_now())
        return end - self.start_time

    def max_duration(self, user: User) -> timedelta:
        """Resolve the length limit: meeting override, then owner default, then app default."""
        if self.max_meeting_length_minutes is not None:
            return timedelta(minutes=self.max_meeting_length_minutes)
        if user.default_meeting_length_minutes is not None:
            return timedelta(minutes=user.default_meeting_length_minutes)
        return timedelta(minutes=DEFAULT_MAX_MEETING_LENGTH_MINUTES)

    def minutes_remaining(self, user: User, now: Optional[datetime] = None) -> int:
        """Whole minutes left before the limit (negative once exceeded)."""
        remaining = self.max_duration(user) - self.duration(now)
        # truncate toward zero
        return int(remaining.total_seconds() / 60)

    def is_over_limit(self, user: User, now: Optional[datetime] = None) -> bool:
        if self.is_ended():
            return False
        return self.duration(now) > self.max_duration(user)
