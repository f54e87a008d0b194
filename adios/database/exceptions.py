"""Store errors surfaced to callers of the repositories.

Uniqueness and referential integrity are enforced by the database; this
module maps the driver's IntegrityError onto a small taxonomy so callers
never need to inspect driver-specific error codes.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError

# SQLSTATE codes (PostgreSQL)
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class StoreError(Exception):
    """Base class for adios store errors."""


class NotFound(StoreError):
    """Lookup miss."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class ConstraintViolation(StoreError):
    """Uniqueness constraint breach (users.zoom_id or meetings.zoom_uuid)."""


class ForeignKeyViolation(StoreError):
    """Referential integrity breach between meetings and users."""


def _sqlstate(exc: IntegrityError) -> Optional[str]:
    orig = exc.orig
    # psycopg 3 exposes `sqlstate`, psycopg2 exposes `pgcode`.
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_integrity_error(exc: IntegrityError, message: str) -> StoreError:
    """Return the store error matching an IntegrityError.

    Raises the original exception when it is neither a uniqueness nor a
    foreign-key failure (e.g. a NOT NULL breach, which is a programming error).
    """
    code = _sqlstate(exc)
    if code == UNIQUE_VIOLATION:
        return ConstraintViolation(message)
    if code == FOREIGN_KEY_VIOLATION:
        return ForeignKeyViolation(message)

    # SQLite has no SQLSTATE; fall back to its message text.
    text = str(exc.orig).lower()
    if "foreign key" in text:
        return ForeignKeyViolation(message)
    if "unique" in text:
        return ConstraintViolation(message)
    raise exc
