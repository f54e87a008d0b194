"""Repository for User database operations."""

import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from adios.models.user import User
from adios.models.timestamps import next_updated_at, utc_now
from adios.database.models import UserDB, new_id, validate_meeting_length
from adios.database.exceptions import NotFound, translate_integrity_error

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, user_id: str) -> Optional[UserDB]:
        return self.db.query(UserDB).filter(UserDB.id == user_id).first()

    def _row_by_external_id(self, external_identity_id: str) -> Optional[UserDB]:
        return self.db.query(UserDB).filter(UserDB.external_identity_id == external_identity_id).first()

    def _commit(self, user_db: UserDB, action: str) -> User:
        """Commit the pending change to `user_db`, translating constraint failures."""
        # Rollback expires the instance, so read identifiers up front.
        user_id, external_id = user_db.id, user_db.external_identity_id
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Failed to {action} user {user_id}: {type(e).__name__}")
            raise translate_integrity_error(
                e, f"User with external id {external_id} violates a constraint"
            ) from e
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to {action} user {user_id}: {type(e).__name__}: {str(e)}")
            raise
        self.db.refresh(user_db)
        logger.debug(f"{action.capitalize()}d user {user_db.id}")
        return user_db.to_pydantic()

    def get(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        user_db = self._row(user_id)
        return user_db.to_pydantic() if user_db else None

    def get_or_fail(self, user_id: str) -> User:
        """Get user by ID or raise NotFound."""
        user = self.get(user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    def find_by_external_id(self, external_identity_id: str) -> User:
        """Get user by identity-provider ID or raise NotFound."""
        user_db = self._row_by_external_id(external_identity_id)
        if not user_db:
            raise NotFound("User", external_identity_id)
        return user_db.to_pydantic()

    def list_all(self) -> List[User]:
        """Get every user, oldest first."""
        users_db = self.db.query(UserDB).order_by(UserDB.created_at, UserDB.id).all()
        return [user_db.to_pydantic() for user_db in users_db]

    def create_user(
        self,
        external_identity_id: str,
        display_name: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> User:
        """Create a new user.

        Raises:
            ConstraintViolation: a user with this external id already exists
        """
        now = utc_now()
        user_db = UserDB(
            id=new_id(),
            external_identity_id=external_identity_id,
            display_name=display_name,
            created_at=now,
            updated_at=now,
        )
        user_db.set_tokens(access_token, refresh_token, expires_at)
        self.db.add(user_db)
        return self._commit(user_db, "create")

    def upsert_from_oauth(
        self,
        external_identity_id: str,
        display_name: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> User:
        """Create or refresh a user after a successful OAuth login.

        An existing user keeps its id and created_at; profile and tokens are replaced.
        """
        user_db = self._row_by_external_id(external_identity_id)
        if user_db is None:
            return self.create_user(external_identity_id, display_name, access_token, refresh_token, expires_at)

        user_db.display_name = display_name
        user_db.set_tokens(access_token, refresh_token, expires_at)
        user_db.updated_at = next_updated_at(user_db.updated_at, utc_now())
        return self._commit(user_db, "update")

    def update_tokens(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> User:
        """Store a rotated credential set.

        Raises:
            NotFound: no user with this ID
        """
        user_db = self._row(user_id)
        if not user_db:
            raise NotFound("User", user_id)

        user_db.set_tokens(access_token, refresh_token, expires_at)
        user_db.updated_at = next_updated_at(user_db.updated_at, utc_now())
        return self._commit(user_db, "update")

    def set_default_meeting_length(self, user_id: str, minutes: Optional[int]) -> User:
        """Set (or clear with None) the user's default meeting length limit."""
        validate_meeting_length(minutes)
        user_db = self._row(user_id)
        if not user_db:
            raise NotFound("User", user_id)

        user_db.default_meeting_length_minutes = minutes
        user_db.updated_at = next_updated_at(user_db.updated_at, utc_now())
        return self._commit(user_db, "update")

    def delete(self, user_id: str) -> None:
        """Delete a user that hosts no meetings.

        Raises:
            NotFound: no user with this ID
            ForeignKeyViolation: meetings still reference the user
        """
        user_db = self._row(user_id)
        if not user_db:
            raise NotFound("User", user_id)

        self.db.delete(user_db)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Failed to delete user {user_id}: {type(e).__name__}")
            raise translate_integrity_error(e, f"User {user_id} still hosts meetings") from e
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete user {user_id}: {type(e).__name__}: {str(e)}")
            raise
        logger.debug(f"Deleted user {user_id}")
