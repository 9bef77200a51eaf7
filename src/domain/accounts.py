"""
Account service - Profile edits and account deletion for a signed-in user.
"""

import logging
from dataclasses import dataclass

from .credentials import CredentialStore
from .exceptions import Conflict, InvalidInput, NotFound, Unauthorized
from .models import ProfileChanges, UserChanges, UserProfile
from .ports import AssetStore
from .validation import normalize_username, require

logger = logging.getLogger(__name__)


@dataclass
class AccountService:
    store: CredentialStore
    assets: AssetStore

    async def get_profile(self, user_id: str) -> UserProfile:
        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found.")
        return user.to_profile()

    async def update_profile(self, user_id: str, changes: ProfileChanges) -> UserProfile:
        """
        Apply each present field with its own rule.

        An absent field is left alone, never cleared.

        Raises:
            InvalidInput: A present field is blank, or the username is malformed
            Conflict: Username taken by someone else
        """
        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found.")

        updates: dict[str, str] = {}
        if changes.full_name is not None:
            full_name = changes.full_name.strip()
            if not full_name:
                raise InvalidInput("Full name cannot be empty.")
            if full_name != user.full_name:
                updates["full_name"] = full_name

        if changes.bio is not None and changes.bio.strip() != user.bio:
            updates["bio"] = changes.bio.strip()

        if changes.username is not None:
            username = normalize_username(changes.username)
            if username != user.username:
                if await self.store.find_user_by_username(username) is not None:
                    raise Conflict("Sorry! This username is not available.")
                updates["username"] = username

        if not updates:
            return user.to_profile()

        updated = await self.store.update_user(user_id, UserChanges(**updates))
        if updated is None:
            raise NotFound("User not found.")
        logger.info("Profile updated: user_id=%s fields=%s", user_id, sorted(updates))
        return updated.to_profile()

    async def delete_account(self, user_id: str, password: str) -> UserProfile:
        """
        Delete the account after re-checking the password.

        Stored media are removed afterwards on a best-effort basis.

        Raises:
            InvalidInput: Blank password
            Unauthorized: Password does not match
            NotFound: User already gone
        """
        require(password, "Password")

        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found.")
        if not await self.store.hasher.verify_async(password, user.password):
            raise Unauthorized("Incorrect password.")

        deleted = await self.store.delete_user(user_id)
        if deleted is None:
            raise NotFound("User not found.")

        for url in (user.avatar, user.cover_image):
            await self._remove_asset(url)

        logger.info("Account deleted: user_id=%s", user_id)
        return deleted.to_profile()

    async def _remove_asset(self, url: str) -> None:
        if not url or not url.strip():
            return
        try:
            await self.assets.delete(url)
        except Exception as e:
            # Media cleanup never fails the deletion
            logger.warning("Asset deletion failed: url=%s error=%s", url, e)
