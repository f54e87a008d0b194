"""Tests for UserRepository operations."""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from adios.database.exceptions import ConstraintViolation, ForeignKeyViolation, NotFound
from adios.database.models import UserDB


class TestUserRepository:
    """Test UserRepository create/read/update operations."""

    def test_create_user_round_trips_fields(self, user_repository, sample_user_base):
        """Test that a created user reads back exactly as given."""
        created = user_repository.create_user(**sample_user_base)
        found = user_repository.find_by_external_id(sample_user_base["external_identity_id"])

        assert found.id == created.id
        assert found.external_identity_id == "z123"
        assert found.display_name == "Alice"
        assert found.access_token == "access-token-1"
        assert found.refresh_token == "refresh-token-1"
        assert found.expires_at == sample_user_base["expires_at"]
        assert found.default_meeting_length_minutes is None

    def test_create_user_generates_id_and_timestamps(self, user_repository, sample_user_base):
        created = user_repository.create_user(**sample_user_base)

        assert created.id
        assert created.created_at.tzinfo is not None
        assert created.created_at == created.updated_at

    def test_generated_ids_are_unique(self, user_repository, sample_user_base):
        first = user_repository.create_user(**sample_user_base)
        second = user_repository.create_user(**{**sample_user_base, "external_identity_id": "z456"})

        assert first.id != second.id

    def test_duplicate_external_id_raises_constraint_violation(self, user_repository, sample_user_base):
        """Test that a second user with the same external id is rejected."""
        user_repository.create_user(**sample_user_base)

        with pytest.raises(ConstraintViolation):
            user_repository.create_user(**{**sample_user_base, "display_name": "Someone Else"})

        # The session is usable again and the original row is intact.
        assert len(user_repository.list_all()) == 1
        assert user_repository.find_by_external_id("z123").display_name == "Alice"

    def test_find_by_external_id_miss_raises_not_found(self, user_repository):
        with pytest.raises(NotFound) as exc_info:
            user_repository.find_by_external_id("nobody")

        assert exc_info.value.entity == "User"
        assert exc_info.value.key == "nobody"

    def test_get_returns_none_for_missing_user(self, user_repository):
        assert user_repository.get("nonexistent-id") is None

    def test_get_or_fail_raises_for_missing_user(self, user_repository):
        with pytest.raises(NotFound):
            user_repository.get_or_fail("nonexistent-id")

    def test_expires_at_is_normalized_to_utc(self, user_repository, sample_user_base):
        """Test that an expiry given in another zone is stored as the same instant."""
        plus_two = timezone(timedelta(hours=2))
        expires_at = datetime(2030, 1, 1, 14, 0, tzinfo=plus_two)
        created = user_repository.create_user(**{**sample_user_base, "expires_at": expires_at})

        assert created.expires_at == expires_at
        assert created.expires_at.utcoffset() == timedelta(0)
        assert created.expires_at.hour == 12

    def test_list_all_oldest_first(self, user_repository, sample_user_base):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        with patch("adios.database.user_repository.utc_now", return_value=base + timedelta(minutes=1)):
            user_repository.create_user(**{**sample_user_base, "external_identity_id": "second"})
        with patch("adios.database.user_repository.utc_now", return_value=base):
            user_repository.create_user(**{**sample_user_base, "external_identity_id": "first"})

        users = user_repository.list_all()
        assert [u.external_identity_id for u in users] == ["first", "second"]


class TestTokenUpdates:
    """Test token rotation and OAuth upserts."""

    def test_update_tokens_replaces_credentials_and_advances_updated_at(self, user_repository, test_user, later):
        new_expiry = datetime(2031, 6, 1, tzinfo=timezone.utc)
        with patch("adios.database.user_repository.utc_now", return_value=later()):
            updated = user_repository.update_tokens(test_user.id, "access-token-2", "refresh-token-2", new_expiry)

        assert updated.access_token == "access-token-2"
        assert updated.refresh_token == "refresh-token-2"
        assert updated.expires_at == new_expiry
        assert updated.updated_at > test_user.updated_at
        assert updated.created_at == test_user.created_at

        reloaded = user_repository.get(test_user.id)
        assert reloaded.access_token == "access-token-2"

    def test_update_tokens_missing_user_raises_not_found(self, user_repository, token_expiry):
        with pytest.raises(NotFound):
            user_repository.update_tokens("nonexistent-id", "a", "r", token_expiry)

    def test_upsert_creates_new_user(self, user_repository, sample_user_base):
        user = user_repository.upsert_from_oauth(**sample_user_base)

        assert user_repository.find_by_external_id("z123").id == user.id

    def test_upsert_existing_user_keeps_identity(self, user_repository, test_user, sample_user_base, later):
        with patch("adios.database.user_repository.utc_now", return_value=later()):
            user = user_repository.upsert_from_oauth(**{
                **sample_user_base,
                "display_name": "Alice B.",
                "access_token": "fresh-access",
                "refresh_token": "fresh-refresh",
            })

        assert user.id == test_user.id
        assert user.created_at == test_user.created_at
        assert user.updated_at > test_user.updated_at
        assert user.display_name == "Alice B."
        assert user.access_token == "fresh-access"
        assert user.refresh_token == "fresh-refresh"
        assert len(user_repository.list_all()) == 1

    def test_updated_at_advances_when_clock_has_not_moved(self, user_repository, test_user, token_expiry):
        with patch("adios.database.user_repository.utc_now", return_value=test_user.updated_at):
            updated = user_repository.update_tokens(test_user.id, "a", "r", token_expiry)

        assert updated.updated_at > test_user.updated_at

    def test_updated_at_advances_when_clock_steps_back(self, user_repository, test_user):
        earlier = test_user.updated_at - timedelta(hours=1)
        with patch("adios.database.user_repository.utc_now", return_value=earlier):
            first = user_repository.set_default_meeting_length(test_user.id, 30)
            second = user_repository.set_default_meeting_length(test_user.id, 45)

        assert test_user.updated_at < first.updated_at < second.updated_at


class TestTokenStorage:
    """Tokens are encrypted at rest."""

    def test_tokens_are_not_stored_in_plaintext(self, user_repository, db_session, test_user):
        row = db_session.query(UserDB).filter(UserDB.id == test_user.id).first()

        assert row.access_token != "access-token-1"
        assert row.refresh_token != "refresh-token-1"
        assert "access-token-1" not in row.access_token

    def test_missing_key_raises(self, user_repository, sample_user_base, monkeypatch):
        monkeypatch.delenv("TOKEN_ENCRYPTION_KEY")

        with pytest.raises(RuntimeError, match="TOKEN_ENCRYPTION_KEY"):
            user_repository.create_user(**sample_user_base)

    def test_wrong_key_raises_on_read(self, user_repository, test_user, monkeypatch):
        from cryptography.fernet import Fernet

        monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", Fernet.generate_key().decode("utf-8"))

        with pytest.raises(RuntimeError, match="could not be decrypted"):
            user_repository.get(test_user.id)

    def test_rotated_key_still_reads_old_rows(self, user_repository, test_user, token_encryption_key, monkeypatch):
        """Test that prepending a new key keeps rows written under the old key readable."""
        from cryptography.fernet import Fernet

        new_key = Fernet.generate_key().decode("utf-8")
        monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", f"{new_key},{token_encryption_key}")

        assert user_repository.get(test_user.id).access_token == "access-token-1"

        user_repository.update_tokens(test_user.id, "access-token-2", "refresh-token-2", test_user.expires_at)

        # Rewritten rows use the new primary key only.
        monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", new_key)
        reloaded = user_repository.get(test_user.id)
        assert reloaded.access_token == "access-token-2"
        assert reloaded.refresh_token == "refresh-token-2"

    def test_invalid_key_raises(self, user_repository, sample_user_base, monkeypatch):
        monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", "not-a-fernet-key")

        with pytest.raises(RuntimeError, match="invalid Fernet key"):
            user_repository.create_user(**sample_user_base)

    def test_repr_hides_tokens(self, test_user):
        assert "access-token-1" not in repr(test_user)
        assert "refresh-token-1" not in repr(test_user)


class TestMeetingLengthPreference:

    def test_set_default_meeting_length(self, user_repository, test_user):
        user = user_repository.set_default_meeting_length(test_user.id, 25)
        assert user.default_meeting_length_minutes == 25

        cleared = user_repository.set_default_meeting_length(test_user.id, None)
        assert cleared.default_meeting_length_minutes is None

    def test_set_default_meeting_length_rejects_non_positive(self, user_repository, test_user):
        with pytest.raises(ValueError):
            user_repository.set_default_meeting_length(test_user.id, 0)

    def test_set_default_meeting_length_missing_user(self, user_repository):
        with pytest.raises(NotFound):
            user_repository.set_default_meeting_length("nonexistent-id", 30)


class TestUserDeletion:
    """Users referenced by meetings cannot be deleted."""

    def test_delete_user_without_meetings(self, user_repository, test_user):
        user_repository.delete(test_user.id)

        assert user_repository.get(test_user.id) is None

    def test_delete_user_with_meetings_raises(self, user_repository, meeting_repository, sample_meeting_base, test_user):
        meeting_repository.create_meeting(**sample_meeting_base)

        with pytest.raises(ForeignKeyViolation):
            user_repository.delete(test_user.id)

        assert user_repository.get(test_user.id) is not None
        assert len(meeting_repository.list_by_user(test_user.id)) == 1

    def test_delete_missing_user_raises_not_found(self, user_repository):
        with pytest.raises(NotFound):
            user_repository.delete("nonexistent-id")

    def test_failed_delete_rolls_back(self, user_repository, db_session, test_user):
        """Test that a non-constraint commit failure leaves the user in place."""
        with patch.object(db_session, "commit", side_effect=RuntimeError("disk I/O error")), patch.object(
            db_session, "rollback", wraps=db_session.rollback
        ) as rollback:
            with pytest.raises(RuntimeError, match="disk I/O error"):
                user_repository.delete(test_user.id)

        rollback.assert_called_once()
        assert user_repository.get(test_user.id) is not None
