"""
In-memory repository adapters - Dict-backed credential store.

Used by the test suite and for running the API locally without a
database (``STORE_BACKEND=memory``). Same contract as the PostgreSQL
adapters, including uniqueness checks on email and username.
"""

import dataclasses
import uuid
from datetime import UTC, datetime

from src.domain.exceptions import Conflict
from src.domain.models import NewUser, PendingRegistration, User, UserChanges


class InMemoryUserRepository:
    """Implements UserRepository protocol over a dict keyed by user id."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    async def find_by_id(self, user_id: str) -> User | None:
        return self._copy(self._users.get(user_id))

    async def find_by_email(self, email: str) -> User | None:
        return self._copy(next((u for u in self._users.values() if u.email == email), None))

    async def find_by_username(self, username: str) -> User | None:
        return self._copy(next((u for u in self._users.values() if u.username == username), None))

    async def find_by_email_or_username(self, identifier: str) -> User | None:
        return self._copy(
            next(
                (u for u in self._users.values() if identifier in (u.email, u.username)),
                None,
            )
        )

    async def create(self, new_user: NewUser) -> User:
        self._check_unique(email=new_user.email, username=new_user.username)
        now = datetime.now(UTC)
        user = User(
            id=str(uuid.uuid4()),
            username=new_user.username,
            email=new_user.email,
            full_name=new_user.full_name,
            password=new_user.password,
            bio=new_user.bio,
            avatar=new_user.avatar,
            cover_image=new_user.cover_image,
            created_at=now,
            updated_at=now,
        )
        self._users[user.id] = user
        return self._copy(user)

    async def update(self, user_id: str, changes: UserChanges) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        present = changes.present()
        self._check_unique(
            email=present.get("email"), username=present.get("username"), exclude=user_id
        )
        updated = dataclasses.replace(user, **present, updated_at=datetime.now(UTC))
        self._users[user_id] = updated
        return self._copy(updated)

    async def delete(self, user_id: str) -> User | None:
        return self._copy(self._users.pop(user_id, None))

    def _check_unique(
        self, email: str | None = None, username: str | None = None, exclude: str | None = None
    ) -> None:
        for user in self._users.values():
            if user.id == exclude:
                continue
            if email is not None and user.email == email:
                raise Conflict("User with email already exists")
            if username is not None and user.username == username:
                raise Conflict("User with username already exists")

    @staticmethod
    def _copy(user: User | None) -> User | None:
        # Callers get snapshots, like rows fetched from a real store
        return dataclasses.replace(user) if user is not None else None


class InMemoryPendingRegistrationRepository:
    """Implements PendingRegistrationRepository protocol over a dict keyed by email."""

    def __init__(self) -> None:
        self._registrations: dict[str, PendingRegistration] = {}

    async def find(self, email: str) -> PendingRegistration | None:
        return self._registrations.get(email)

    async def create(self, email: str, otp: str) -> PendingRegistration:
        registration = PendingRegistration(email=email, otp=otp, created_at=datetime.now(UTC))
        self._registrations[email] = registration
        return registration

    async def delete(self, email: str) -> bool:
        return self._registrations.pop(email, None) is not None

    def __len__(self) -> int:
        return len(self._registrations)
