# sfa_portal/core/auth_provider.py
"""
Credential store used as the portal's auth provider.

Credentials live in their own collection and are treated as an independent
system from member profiles: nothing here participates in a transaction with
the `users` / `users_by_uid` collections.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from pymongo.errors import DuplicateKeyError

from sfa_portal.core.security import get_password_hash, verify_password
from sfa_portal.models.credential import AuthCredential

logger = logging.getLogger(__name__)


class CredentialNotFound(Exception):
    """No credential exists for the given uid or email."""


class EmailAlreadyInUse(Exception):
    """Another credential already owns the email."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthProvider:
    async def _ensure_email_free(self, email: str, uid: Optional[str] = None) -> None:
        owner = await AuthCredential.find_one(AuthCredential.email == email)
        if owner is not None and owner.id != uid:
            raise EmailAlreadyInUse(email)

    async def create_user(self, email: str, password: str) -> AuthCredential:
        await self._ensure_email_free(normalize_email(email))
        credential = AuthCredential(email=normalize_email(email), hashed_password=get_password_hash(password))
        try:
            await credential.insert()
        except DuplicateKeyError as e:
            raise EmailAlreadyInUse(email) from e
        logger.info(f"Credential created for uid '{credential.id}'.")
        return credential

    async def get_user(self, uid: str) -> AuthCredential:
        credential = await AuthCredential.get(uid)
        if credential is None:
            raise CredentialNotFound(uid)
        return credential

    async def get_user_by_email(self, email: str) -> AuthCredential:
        credential = await AuthCredential.find_one(AuthCredential.email == normalize_email(email))
        if credential is None:
            raise CredentialNotFound(email)
        return credential

    async def update_email(self, uid: str, new_email: str) -> AuthCredential:
        credential = await self.get_user(uid)
        await self._ensure_email_free(normalize_email(new_email), uid)
        try:
            await credential.set({
                AuthCredential.email: normalize_email(new_email),
                AuthCredential.updated_at: datetime.now(timezone.utc),
            })
        except DuplicateKeyError as e:
            raise EmailAlreadyInUse(new_email) from e
        return credential

    async def set_disabled(self, uid: str, disabled: bool) -> None:
        result = await AuthCredential.get_motor_collection().update_one(
            {"_id": uid},
            {"$set": {"disabled": disabled, "updated_at": datetime.now(timezone.utc)}},
        )
        if result.matched_count == 0:
            raise CredentialNotFound(uid)

    async def delete_user(self, uid: str) -> None:
        result = await AuthCredential.get_motor_collection().delete_one({"_id": uid})
        if result.deleted_count == 0:
            raise CredentialNotFound(uid)
        logger.info(f"Credential deleted for uid '{uid}'.")

    async def authenticate(self, email: str, password: str) -> Optional[AuthCredential]:
        try:
            credential = await self.get_user_by_email(email)
        except CredentialNotFound:
            return None
        if not verify_password(password, credential.hashed_password):
            return None
        return credential


auth_provider = AuthProvider()


def get_auth_provider() -> AuthProvider:
    return auth_provider
