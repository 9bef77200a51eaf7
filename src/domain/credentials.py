"""
Credential store - The domain's view of user and registration records.

Wraps the repository ports and applies the password hook: whenever a
write carries a ``password`` it is hashed before it reaches the store,
and writes without one never touch the stored digest.
"""

import dataclasses
import logging
from dataclasses import dataclass

from .exceptions import AuthError, UpstreamFailure
from .models import UNSET, NewUser, PendingRegistration, User, UserChanges
from .passwords import PasswordHasher
from .ports import PendingRegistrationRepository, UserRepository

logger = logging.getLogger(__name__)


@dataclass
class CredentialStore:
    """Reads and writes users and pending registrations for the services."""

    users: UserRepository
    registrations: PendingRegistrationRepository
    hasher: PasswordHasher

    async def find_user_by_email_or_username(self, identifier: str) -> User | None:
        return await self._call(self.users.find_by_email_or_username(identifier))

    async def find_user_by_id(self, user_id: str) -> User | None:
        return await self._call(self.users.find_by_id(user_id))

    async def find_user_by_email(self, email: str) -> User | None:
        return await self._call(self.users.find_by_email(email))

    async def find_user_by_username(self, username: str) -> User | None:
        return await self._call(self.users.find_by_username(username))

    async def create_user(self, new_user: NewUser) -> User:
        hashed = await self.hasher.hash_async(new_user.password)
        return await self._call(self.users.create(dataclasses.replace(new_user, password=hashed)))

    async def update_user(self, user_id: str, changes: UserChanges) -> User | None:
        if changes.password is not UNSET:
            hashed = await self.hasher.hash_async(changes.password)
            changes = dataclasses.replace(changes, password=hashed)
        return await self._call(self.users.update(user_id, changes))

    async def delete_user(self, user_id: str) -> User | None:
        return await self._call(self.users.delete(user_id))

    async def find_registration(self, email: str) -> PendingRegistration | None:
        return await self._call(self.registrations.find(email))

    async def create_registration(self, email: str, otp: str) -> PendingRegistration:
        return await self._call(self.registrations.create(email, otp))

    async def delete_registration(self, email: str) -> bool:
        return await self._call(self.registrations.delete(email))

    async def _call(self, awaitable):
        """Await a port call, surfacing unknown adapter errors as UpstreamFailure."""
        try:
            return await awaitable
        except AuthError:
            raise
        except Exception as e:
            logger.exception("Credential store call failed")
            raise UpstreamFailure("Credential store operation failed") from e
