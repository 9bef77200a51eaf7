"""
PostgreSQL repository adapters - Implement the credential store ports.

This module provides the PostgreSQL implementation of the domain's
UserRepository and PendingRegistrationRepository ports using psycopg3
with raw SQL on an async connection pool.

Storage notes:
- Emails and usernames are stored lowercase and carry UNIQUE constraints;
  a violated constraint surfaces as the domain's Conflict.
- Each OTP is stored as a (code, expiry) column pair guarded by a CHECK
  constraint so the two halves are always set or cleared together.
- update() writes only the columns present in UserChanges and skips
  full-record validation.
"""

import logging
import uuid
from pathlib import Path
from typing import Any

import psycopg
from psycopg import errors as pg_errors
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from src.domain.exceptions import Conflict, UpstreamFailure
from src.domain.models import NewUser, PendingRegistration, User, UserChanges
from src.domain.otp import OtpGrant

logger = logging.getLogger(__name__)

_USER_COLUMNS = """
    id, username, email, full_name, bio, avatar, cover_image, password, refresh_token,
    forgot_password_otp, forgot_password_otp_expiry,
    update_email_otp, update_email_otp_expiry,
    created_at, updated_at
"""

# OTP grants span two columns each
_OTP_COLUMNS = {
    "forgot_password_otp": ("forgot_password_otp", "forgot_password_otp_expiry"),
    "update_email_otp": ("update_email_otp", "update_email_otp_expiry"),
}


def _grant(code: str | None, expires_at: Any) -> OtpGrant | None:
    if code is None or expires_at is None:
        return None
    return OtpGrant(code=code, expires_at=expires_at)


def _row_to_user(row: dict[str, Any]) -> User:
    return User(
        id=str(row["id"]),
        username=row["username"],
        email=row["email"],
        full_name=row["full_name"],
        password=row["password"],
        bio=row["bio"],
        avatar=row["avatar"],
        cover_image=row["cover_image"],
        refresh_token=row["refresh_token"],
        forgot_password_otp=_grant(row["forgot_password_otp"], row["forgot_password_otp_expiry"]),
        update_email_otp=_grant(row["update_email_otp"], row["update_email_otp_expiry"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _as_uuid(user_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        return None


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 AsyncConnectionPool for database connections
        """
        self._pool = pool

    async def find_by_id(self, user_id: str) -> User | None:
        key = _as_uuid(user_id)
        if key is None:
            return None
        return await self._fetch_one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s", (key,))

    async def find_by_email(self, email: str) -> User | None:
        return await self._fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s", (email,)
        )

    async def find_by_username(self, username: str) -> User | None:
        return await self._fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE username = %s", (username,)
        )

    async def find_by_email_or_username(self, identifier: str) -> User | None:
        return await self._fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s OR username = %s LIMIT 1",
            (identifier, identifier),
        )

    async def create(self, new_user: NewUser) -> User:
        """
        Insert a user row.

        Raises:
            Conflict: UNIQUE violation on email or username
        """
        query = f"""
            INSERT INTO users (username, email, full_name, password, bio, avatar, cover_image)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING {_USER_COLUMNS}
        """
        params = (
            new_user.username,
            new_user.email,
            new_user.full_name,
            new_user.password,
            new_user.bio,
            new_user.avatar,
            new_user.cover_image,
        )
        user = await self._fetch_one(query, params)
        if user is None:
            raise UpstreamFailure("Something went wrong while registering the user!")
        return user

    async def update(self, user_id: str, changes: UserChanges) -> User | None:
        key = _as_uuid(user_id)
        if key is None:
            return None

        assignments: list[sql.Composable] = []
        params: list[Any] = []
        for name, value in changes.present().items():
            if name in _OTP_COLUMNS:
                code_column, expiry_column = _OTP_COLUMNS[name]
                assignments.append(sql.SQL("{} = %s").format(sql.Identifier(code_column)))
                assignments.append(sql.SQL("{} = %s").format(sql.Identifier(expiry_column)))
                params.extend([value.code, value.expires_at] if value is not None else [None, None])
            else:
                assignments.append(sql.SQL("{} = %s").format(sql.Identifier(name)))
                params.append(value)

        if not assignments:
            return await self.find_by_id(user_id)

        assignments.append(sql.SQL("updated_at = NOW()"))
        query = sql.SQL("UPDATE users SET {} WHERE id = %s RETURNING {}").format(
            sql.SQL(", ").join(assignments),
            sql.SQL(_USER_COLUMNS),
        )
        params.append(key)
        return await self._fetch_one(query, tuple(params))

    async def delete(self, user_id: str) -> User | None:
        key = _as_uuid(user_id)
        if key is None:
            return None
        return await self._fetch_one(
            f"DELETE FROM users WHERE id = %s RETURNING {_USER_COLUMNS}", (key,)
        )

    async def _fetch_one(self, query: Any, params: tuple) -> User | None:
        try:
            async with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                await cursor.execute(query, params)
                row = await cursor.fetchone()
        except pg_errors.UniqueViolation as e:
            raise Conflict(_conflict_message(e)) from None
        except psycopg.Error as e:
            logger.error("User query failed: %s", e)
            raise UpstreamFailure("Credential store operation failed") from e
        return _row_to_user(row) if row is not None else None


def _conflict_message(error: pg_errors.UniqueViolation) -> str:
    constraint = getattr(error.diag, "constraint_name", None) or ""
    if "username" in constraint:
        return "User with username already exists"
    if "email" in constraint:
        return "User with email already exists"
    return "User already exists"


class PostgresPendingRegistrationRepository:
    """Implements PendingRegistrationRepository protocol via psycopg3."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def find(self, email: str) -> PendingRegistration | None:
        row = await self._execute(
            "SELECT email, verification_otp, created_at"
            " FROM pending_registrations WHERE email = %s",
            (email,),
        )
        return _row_to_registration(row)

    async def create(self, email: str, otp: str) -> PendingRegistration:
        """
        Store the OTP for ``email``.

        ON CONFLICT replaces a concurrent insert for the same email so at
        most one row per email ever exists.
        """
        row = await self._execute(
            """
            INSERT INTO pending_registrations (email, verification_otp, created_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (email) DO UPDATE
            SET verification_otp = EXCLUDED.verification_otp,
                created_at = NOW()
            RETURNING email, verification_otp, created_at
            """,
            (email, otp),
        )
        registration = _row_to_registration(row)
        if registration is None:
            raise UpstreamFailure("Something went wrong while registering.")
        return registration

    async def delete(self, email: str) -> bool:
        row = await self._execute(
            "DELETE FROM pending_registrations WHERE email = %s RETURNING email", (email,)
        )
        return row is not None

    async def _execute(self, query: str, params: tuple) -> dict[str, Any] | None:
        try:
            async with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                await cursor.execute(query, params)
                return await cursor.fetchone()
        except psycopg.Error as e:
            logger.error("Registration query failed: %s", e)
            raise UpstreamFailure("Registration store operation failed") from e


def _row_to_registration(row: dict[str, Any] | None) -> PendingRegistration | None:
    if row is None:
        return None
    return PendingRegistration(
        email=row["email"], otp=row["verification_otp"], created_at=row["created_at"]
    )


async def run_migrations(pool: AsyncConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 AsyncConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            async with pool.connection() as conn:
                await conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
