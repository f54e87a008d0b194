"""Repository for Meeting database operations."""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from adios.models.meeting import Meeting
from adios.models.timestamps import ensure_utc, next_updated_at, utc_now
from adios.database.models import MeetingDB, new_id, validate_meeting_length
from adios.database.exceptions import NotFound, translate_integrity_error

logger = logging.getLogger(__name__)


class MeetingRepository:
    """Repository for Meeting database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, meeting_id: str) -> Optional[MeetingDB]:
        return self.db.query(MeetingDB).filter(MeetingDB.id == meeting_id).first()

    def _row_by_occurrence_id(self, external_occurrence_id: str) -> Optional[MeetingDB]:
        return self.db.query(MeetingDB).filter(
            MeetingDB.external_occurrence_id == external_occurrence_id
        ).first()

    def _row_for_user(self, user_id: str, meeting_id: str) -> MeetingDB:
        meeting_db = self.db.query(MeetingDB).filter(
            MeetingDB.id == meeting_id,
            MeetingDB.user_id == user_id,
        ).first()
        if not meeting_db:
            raise NotFound("Meeting", meeting_id)
        return meeting_db

    def _commit(self, meeting_db: MeetingDB, action: str) -> Meeting:
        """Commit the pending change to `meeting_db`, translating constraint failures."""
        meeting_id, occurrence_id, user_id = meeting_db.id, meeting_db.external_occurrence_id, meeting_db.user_id
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Failed to {action} meeting {meeting_id}: {type(e).__name__}")
            raise translate_integrity_error(
                e, f"Meeting occurrence {occurrence_id} for user {user_id} violates a constraint"
            ) from e
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to {action} meeting {meeting_id}: {type(e).__name__}: {str(e)}")
            raise
        self.db.refresh(meeting_db)
        logger.debug(f"{action.capitalize()}d meeting {meeting_id} ({occurrence_id})")
        return meeting_db.to_pydantic()

    def get(self, meeting_id: str) -> Optional[Meeting]:
        """Get meeting by ID."""
        meeting_db = self._row(meeting_id)
        return meeting_db.to_pydantic() if meeting_db else None

    def get_for_user(self, user_id: str, meeting_id: str) -> Meeting:
        """Get a meeting by ID, only if `user_id` hosts it."""
        return self._row_for_user(user_id, meeting_id).to_pydantic()

    def find_by_occurrence_id(self, external_occurrence_id: str) -> Meeting:
        """Get meeting by provider occurrence ID or raise NotFound."""
        meeting_db = self._row_by_occurrence_id(external_occurrence_id)
        if not meeting_db:
            raise NotFound("Meeting", external_occurrence_id)
        return meeting_db.to_pydantic()

    def list_by_user(self, user_id: str) -> List[Meeting]:
        """Get all meetings hosted by a user sorted by start_time."""
        meetings_db = self.db.query(MeetingDB).filter(
            MeetingDB.user_id == user_id
        ).order_by(MeetingDB.start_time, MeetingDB.id).all()
        return [meeting_db.to_pydantic() for meeting_db in meetings_db]

    def list_active(self) -> List[Meeting]:
        """Get every meeting without an end_time sorted by start_time."""
        meetings_db = self.db.query(MeetingDB).filter(
            MeetingDB.end_time.is_(None)
        ).order_by(MeetingDB.start_time, MeetingDB.id).all()
        return [meeting_db.to_pydantic() for meeting_db in meetings_db]

    def create_meeting(
        self,
        user_id: str,
        external_meeting_id: str,
        external_occurrence_id: str,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        *,
        topic: Optional[str] = None,
        max_meeting_length_minutes: Optional[int] = None,
    ) -> Meeting:
        """Create a new meeting occurrence.

        Raises:
            ConstraintViolation: the occurrence ID is already stored
            ForeignKeyViolation: `user_id` does not reference a user
        """
        validate_meeting_length(max_meeting_length_minutes)
        now = utc_now()
        meeting_db = MeetingDB(
            id=new_id(),
            user_id=user_id,
            external_meeting_id=external_meeting_id,
            external_occurrence_id=external_occurrence_id,
            start_time=ensure_utc(start_time),
            end_time=ensure_utc(end_time),
            topic=topic,
            max_meeting_length_minutes=max_meeting_length_minutes,
            created_at=now,
            updated_at=now,
        )
        self.db.add(meeting_db)
        return self._commit(meeting_db, "create")

    def create_if_absent(
        self,
        user_id: str,
        external_meeting_id: str,
        external_occurrence_id: str,
        start_time: datetime,
        topic: Optional[str] = None,
    ) -> Tuple[Meeting, bool]:
        """Insert an occurrence unless it is already stored.

        Returns the stored meeting and whether it was created by this call.
        """
        existing = self._row_by_occurrence_id(external_occurrence_id)
        if existing:
            return existing.to_pydantic(), False
        return (
            self.create_meeting(user_id, external_meeting_id, external_occurrence_id, start_time, topic=topic),
            True,
        )

    def set_end_time(self, meeting_id: str, end_time: datetime) -> Meeting:
        """Record when a meeting ended.

        Raises:
            NotFound: no meeting with this ID
        """
        meeting_db = self._row(meeting_id)
        if not meeting_db:
            raise NotFound("Meeting", meeting_id)

        meeting_db.end_time = ensure_utc(end_time)
        meeting_db.updated_at = next_updated_at(meeting_db.updated_at, utc_now())
        return self._commit(meeting_db, "update")

    def set_end_time_by_occurrence_id(self, external_occurrence_id: str, end_time: datetime) -> Meeting:
        """Record when a meeting ended, addressed by provider occurrence ID."""
        meeting_db = self._row_by_occurrence_id(external_occurrence_id)
        if not meeting_db:
            raise NotFound("Meeting", external_occurrence_id)

        meeting_db.end_time = ensure_utc(end_time)
        meeting_db.updated_at = next_updated_at(meeting_db.updated_at, utc_now())
        return self._commit(meeting_db, "update")

    def set_max_meeting_length(self, user_id: str, meeting_id: str, minutes: Optional[int]) -> Meeting:
        """Set (or clear with None) a meeting's length limit; user-scoped."""
        validate_meeting_length(minutes)
        meeting_db = self._row_for_user(user_id, meeting_id)

        meeting_db.max_meeting_length_minutes = minutes
        meeting_db.updated_at = next_updated_at(meeting_db.updated_at, utc_now())
        return self._commit(meeting_db, "update")
